"""Unit tests for auth/store.py -- UserStore against SQLite.

Covers:
- save_user() assigns sequential ids and round-trips the hash bytes
- duplicate email -> StorageError(ALREADY_EXISTS)
- get_user() / is_admin() / get_app() -> StorageError(NOT_FOUND) when absent
- set_admin() provisioning and its NOT_FOUND case
- create_app() duplicate names
- database failures surface as StorageError(INTERNAL) with the cause chained
- UNIQUE failures are ALREADY_EXISTS; other integrity failures are INTERNAL
- open_store() creates the parent directory of a file path
- open_store(":memory:") is one database shared by every thread
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.errors import ErrorKind, StorageError
from auth.store import CredentialStore, UserStore, open_store


class TestUsers:
    def test_save_and_get_user(self, store: UserStore) -> None:
        uid = store.save_user("a@x.com", b"$2b$12$hash-bytes")
        assert uid == 1
        user = store.get_user("a@x.com")
        assert user.id == uid
        assert user.email == "a@x.com"
        assert user.pass_hash == b"$2b$12$hash-bytes"
        assert user.is_admin is False

    def test_ids_are_sequential(self, store: UserStore) -> None:
        assert store.save_user("a@x.com", b"h1") == 1
        assert store.save_user("b@x.com", b"h2") == 2

    def test_duplicate_email_already_exists(self, store: UserStore) -> None:
        store.save_user("a@x.com", b"h1")
        with pytest.raises(StorageError) as excinfo:
            store.save_user("a@x.com", b"h2")
        assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS
        assert excinfo.value.op == "storage.save_user"
        # First registration is untouched
        assert store.get_user("a@x.com").pass_hash == b"h1"

    def test_email_lookup_is_exact(self, store: UserStore) -> None:
        store.save_user("a@x.com", b"h1")
        with pytest.raises(StorageError) as excinfo:
            store.get_user("b@x.com")
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    def test_is_admin_defaults_false(self, store: UserStore) -> None:
        uid = store.save_user("a@x.com", b"h1")
        assert store.is_admin(uid) is False

    def test_set_admin_roundtrip(self, store: UserStore) -> None:
        uid = store.save_user("a@x.com", b"h1")
        store.set_admin(uid, True)
        assert store.is_admin(uid) is True
        assert store.get_user("a@x.com").is_admin is True
        store.set_admin(uid, False)
        assert store.is_admin(uid) is False

    def test_is_admin_unknown_user(self, store: UserStore) -> None:
        with pytest.raises(StorageError) as excinfo:
            store.is_admin(404)
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    def test_set_admin_unknown_user(self, store: UserStore) -> None:
        with pytest.raises(StorageError) as excinfo:
            store.set_admin(404, True)
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    def test_user_repr_hides_hash(self, store: UserStore) -> None:
        store.save_user("a@x.com", b"super-secret-hash")
        assert "super-secret-hash" not in repr(store.get_user("a@x.com"))


class TestApps:
    def test_create_and_get_app(self, store: UserStore) -> None:
        app_id = store.create_app("Portal")
        app = store.get_app(app_id)
        assert app.id == app_id
        assert app.name == "Portal"

    def test_unknown_app_not_found(self, store: UserStore) -> None:
        with pytest.raises(StorageError) as excinfo:
            store.get_app(99)
        assert excinfo.value.kind is ErrorKind.NOT_FOUND
        assert excinfo.value.op == "storage.get_app"

    def test_duplicate_app_name(self, store: UserStore) -> None:
        store.create_app("Portal")
        with pytest.raises(StorageError) as excinfo:
            store.create_app("Portal")
        assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS


class TestFailures:
    def test_database_error_is_internal(self, store: UserStore) -> None:
        """A driver-level failure becomes INTERNAL with the SQLAlchemy error as __cause__."""
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE users"))
            conn.commit()
        with pytest.raises(StorageError) as excinfo:
            store.get_user("a@x.com")
        assert excinfo.value.kind is ErrorKind.INTERNAL
        assert isinstance(excinfo.value.__cause__, OperationalError)
        with pytest.raises(StorageError) as excinfo:
            store.save_user("a@x.com", b"h1")
        assert excinfo.value.kind is ErrorKind.INTERNAL

    def test_not_null_violation_is_internal(self, store: UserStore) -> None:
        """Only UNIQUE failures mean a duplicate; other constraint failures are INTERNAL."""
        with pytest.raises(StorageError) as excinfo:
            store.save_user(None, b"h1")  # type: ignore[arg-type]
        assert excinfo.value.kind is ErrorKind.INTERNAL
        assert isinstance(excinfo.value.__cause__, IntegrityError)
        with pytest.raises(StorageError) as excinfo:
            store.create_app(None)  # type: ignore[arg-type]
        assert excinfo.value.kind is ErrorKind.INTERNAL

    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True


def test_open_store_creates_parent_dir(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "dir" / "sso.db"
    s = open_store(str(db_path))
    try:
        s.save_user("a@x.com", b"h1")
        assert db_path.exists()
    finally:
        s.close()


def test_open_store_memory() -> None:
    s = open_store(":memory:")
    try:
        assert s.ping() is True
    finally:
        s.close()


def test_open_store_memory_shared_across_threads() -> None:
    """Worker threads see the same in-memory schema and rows as the opening thread."""
    s = open_store(":memory:")
    try:
        app_id = s.create_app("Portal")
        with ThreadPoolExecutor(max_workers=2) as pool:
            uid = pool.submit(s.save_user, "a@x.com", b"h1").result()
            user = pool.submit(s.get_user, "a@x.com").result()
            app = pool.submit(s.get_app, app_id).result()
        assert user.id == uid
        assert app.name == "Portal"
        assert s.get_user("a@x.com").id == uid
    finally:
        s.close()


def test_user_store_satisfies_contract(store: UserStore) -> None:
    """UserStore is usable wherever a CredentialStore is expected."""
    contract: CredentialStore = store
    for name in ("save_user", "get_user", "is_admin", "get_app"):
        assert callable(getattr(contract, name))
