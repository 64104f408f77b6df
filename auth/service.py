"""
auth/service.py -- Authentication Service: Register, Login, IsAdmin.

Each operation is a short fixed pipeline over three collaborators injected
once at construction:
  store  -- CredentialStore (one object for users and apps)
  issuer -- TokenIssuer (holds the signing key)
  token_ttl -- lifetime of issued tokens, from Settings

The service keeps no state between calls and is safe to share across any
number of concurrent requests.

Error classification (StorageError -> AuthError):
  login:    user NOT_FOUND      -> INVALID_CREDENTIALS
            password mismatch   -> INVALID_CREDENTIALS
            app NOT_FOUND       -> INVALID_APP
            anything else       -> INTERNAL
  register: ALREADY_EXISTS      -> USER_ALREADY_EXISTS
            anything else       -> INTERNAL
  is_admin: NOT_FOUND           -> USER_NOT_FOUND
            anything else       -> INTERNAL

Login check order: the password is verified BEFORE the app is looked
up. A caller probing with a bad app id learns nothing about whether the
credentials were right unless they already were. Do not reorder.

Register has no "does this email exist" pre-check. The store's UNIQUE
constraint is the only existence test, so concurrent registrations of one
email cannot both succeed.

Logging: warnings for expected failures, logger.exception for INTERNAL.
Records carry the operation name and numeric ids only -- never the email,
password, hash, or token.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.errors import AuthError, ErrorKind, StorageError
from auth.passwords import DUMMY_HASH, hash_password, verify_password
from auth.store import CredentialStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("sso.auth")


class AuthService:
    """Stateless orchestration of the credential store, password hashing and token issuer."""

    def __init__(self, store: CredentialStore, issuer: TokenIssuer, token_ttl: timedelta) -> None:
        if token_ttl <= timedelta(0):
            raise ValueError("token_ttl must be a positive duration")
        self._store = store
        self._issuer = issuer
        self._token_ttl = token_ttl

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, app_id: int) -> str:
        """Verify credentials and return a token scoped to app_id.

        Raises AuthError with kind INVALID_CREDENTIALS, INVALID_APP or INTERNAL.
        """
        op = "auth.login"

        try:
            user = self._store.get_user(email)
        except StorageError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                # Equalize timing -- do NOT return before running bcrypt
                verify_password(DUMMY_HASH, password)
                logger.warning("%s: user not found", op)
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op, "invalid credentials") from exc
            logger.exception("%s: failed to load user", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to load user") from exc

        if not verify_password(user.pass_hash, password):
            logger.info("%s: invalid password (user_id=%s)", op, user.id)
            raise AuthError(ErrorKind.INVALID_CREDENTIALS, op, "invalid credentials")

        try:
            app = self._store.get_app(app_id)
        except StorageError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                logger.warning("%s: app not found (app_id=%s)", op, app_id)
                raise AuthError(ErrorKind.INVALID_APP, op, "invalid app") from exc
            logger.exception("%s: failed to load app", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to load app") from exc

        try:
            token = self._issuer.issue(user, app, self._token_ttl)
        except Exception as exc:
            # Any issuer failure (jose, key material, TTL) is INTERNAL.
            logger.exception("%s: failed to sign token", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to issue token") from exc

        logger.info("%s: user logged in (user_id=%s app_id=%s)", op, user.id, app.id)
        return token

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(self, email: str, password: str) -> int:
        """Create a user and return the new id.

        Raises AuthError with kind USER_ALREADY_EXISTS or INTERNAL.
        """
        op = "auth.register"

        try:
            pass_hash = hash_password(password)
        except (ValueError, OSError) as exc:
            logger.exception("%s: failed to hash password", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to hash password") from exc

        try:
            user_id = self._store.save_user(email, pass_hash)
        except StorageError as exc:
            if exc.kind is ErrorKind.ALREADY_EXISTS:
                logger.warning("%s: user already exists", op)
                raise AuthError(ErrorKind.USER_ALREADY_EXISTS, op, "user already exists") from exc
            logger.exception("%s: failed to save user", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to save user") from exc

        logger.info("%s: registered new user (user_id=%s)", op, user_id)
        return user_id

    # ------------------------------------------------------------------
    # IsAdmin
    # ------------------------------------------------------------------

    def is_admin(self, user_id: int) -> bool:
        """Return the stored admin flag for user_id.

        Raises AuthError with kind USER_NOT_FOUND or INTERNAL.
        """
        op = "auth.is_admin"

        try:
            is_admin = self._store.is_admin(user_id)
        except StorageError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                logger.warning("%s: user not found (user_id=%s)", op, user_id)
                raise AuthError(ErrorKind.USER_NOT_FOUND, op, "user not found") from exc
            logger.exception("%s: failed to read admin flag", op)
            raise AuthError(ErrorKind.INTERNAL, op, "failed to read admin flag") from exc

        logger.info("%s: checked admin flag (user_id=%s is_admin=%s)", op, user_id, is_admin)
        return is_admin
