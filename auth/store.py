"""
auth/store.py -- Credential Store contract and its SQLAlchemy Core implementation.

Pattern: Repository + Data Mapper.
CredentialStore is the contract AuthService depends on. UserStore is the
SQLite repository; _row_to_user / _row_to_app are the mappers. Service and
route code never touches SQL directly.

Contract (every method raises StorageError):
  save_user(email, pass_hash) -> int   ALREADY_EXISTS on duplicate email
  get_user(email) -> User              NOT_FOUND when no row matches
  is_admin(user_id) -> bool            NOT_FOUND when the id does not exist
  get_app(app_id) -> App               NOT_FOUND when the id does not exist
Any other database failure is StorageError(INTERNAL) chained to the
SQLAlchemyError that caused it.

Atomicity:
  Email uniqueness is enforced by the UNIQUE constraint on users.email.
  save_user() never checks-then-inserts: two concurrent registrations of
  the same email race on the INSERT, and SQLite lets exactly one win. The
  loser gets a UNIQUE IntegrityError, translated to ALREADY_EXISTS. Any
  other integrity failure (NOT NULL, CHECK) is INTERNAL.

Timeouts:
  The SQLite busy timeout (storage_timeout_seconds) bounds how long a call
  waits for a write lock. A call that exceeds it fails with "database is
  locked", which surfaces as INTERNAL. No retries happen here.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from sqlalchemy import Column, Integer, LargeBinary, MetaData, String, Table, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from auth.errors import ErrorKind, StorageError
from auth.models import App, User

# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    """The storage capability AuthService needs. One object serves all four calls."""

    def save_user(self, email: str, pass_hash: bytes) -> int: ...

    def get_user(self, email: str) -> User: ...

    def is_admin(self, user_id: int) -> bool: ...

    def get_app(self, app_id: int) -> App: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Integer, nullable=False, server_default="0"),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQLite repository for User and App records. Implements CredentialStore.

    Usage:
        store = UserStore("sqlite:///./storage/sso.db")
        uid = store.save_user("a@x.com", hash_password("secret123"))
        user = store.get_user("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # A private in-memory DB lives on one connection. Share it across
            # threads so executor workers see the schema create_all() built.
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # CredentialStore
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned id.

        Raises StorageError(ALREADY_EXISTS) if the email is taken.
        """
        op = "storage.save_user"
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash))
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise StorageError(ErrorKind.ALREADY_EXISTS, op, "user already exists") from exc
            raise StorageError(ErrorKind.INTERNAL, op, "constraint violation") from exc
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc

    def get_user(self, email: str) -> User:
        """Look up a user by exact email. Raises StorageError(NOT_FOUND) if absent."""
        op = "storage.get_user"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc
        if row is None:
            raise StorageError(ErrorKind.NOT_FOUND, op, "user not found")
        return _row_to_user(row)

    def is_admin(self, user_id: int) -> bool:
        """Return the stored admin flag. Raises StorageError(NOT_FOUND) for an unknown id."""
        op = "storage.is_admin"
        try:
            with self.engine.connect() as conn:
                value = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).scalar()
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc
        if value is None:
            raise StorageError(ErrorKind.NOT_FOUND, op, "user not found")
        return bool(value)

    def get_app(self, app_id: int) -> App:
        """Look up an app by id. Raises StorageError(NOT_FOUND) if absent."""
        op = "storage.get_app"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc
        if row is None:
            raise StorageError(ErrorKind.NOT_FOUND, op, "app not found")
        return _row_to_app(row)

    # ------------------------------------------------------------------
    # Out-of-band provisioning (CLI and tests)
    # ------------------------------------------------------------------

    def create_app(self, name: str) -> int:
        """Insert a new app and return its id. Raises StorageError(ALREADY_EXISTS) on a duplicate name."""
        op = "storage.create_app"
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_apps.insert().values(name=name))
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise StorageError(ErrorKind.ALREADY_EXISTS, op, "app already exists") from exc
            raise StorageError(ErrorKind.INTERNAL, op, "constraint violation") from exc
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc

    def set_admin(self, user_id: int, is_admin: bool) -> None:
        """Grant or revoke the admin flag. Raises StorageError(NOT_FOUND) for an unknown id."""
        op = "storage.set_admin"
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.update().where(_users.c.id == user_id).values(is_admin=1 if is_admin else 0)
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise StorageError(ErrorKind.INTERNAL, op, "database error") from exc
        if result.rowcount == 0:
            raise StorageError(ErrorKind.NOT_FOUND, op, "user not found")

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by the health endpoint."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


def open_store(storage_path: str, timeout: float = 5.0) -> UserStore:
    """Open the SQLite store at storage_path, creating its parent directory if needed.

    storage_path may be ":memory:" for a throwaway database.
    """
    if storage_path == ":memory:":
        return UserStore("sqlite:///:memory:", timeout=timeout)
    path = Path(storage_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return UserStore(f"sqlite:///{path}", timeout=timeout)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True only for a UNIQUE constraint failure; NOT NULL and CHECK failures are not duplicates."""
    return "UNIQUE constraint failed" in str(exc.orig)


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name)
