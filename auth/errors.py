"""
auth/errors.py -- Structured error taxonomy for the credential service.

Every failure that crosses a layer boundary is an SSOError carrying:
  kind    -- ErrorKind, the programmatic classification callers branch on.
  op      -- dotted name of the operation that failed ("auth.login",
             "storage.save_user"). Used for diagnostic logging.
  message -- short human-readable text. Safe to log; never includes
             passwords, password hashes, tokens, or the signing key.

The underlying cause (SQLAlchemyError, JWTError, ...) is chained with
`raise ... from exc` so tracebacks keep the full story while the error
itself stays free of sensitive values.

Two subclasses mark which layer raised the error:
  StorageError -- raised by stores (NOT_FOUND, ALREADY_EXISTS, INTERNAL).
  AuthError    -- raised by AuthService (INVALID_CREDENTIALS, INVALID_APP,
                  USER_ALREADY_EXISTS, USER_NOT_FOUND, INTERNAL).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable error kinds. The api/ layer maps these to HTTP status codes."""

    # Store-level outcomes
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"

    # Service-level outcomes
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_APP = "invalid_app"
    USER_ALREADY_EXISTS = "user_already_exists"
    USER_NOT_FOUND = "user_not_found"

    # Unexpected: hashing, signing, storage connectivity, timeouts
    INTERNAL = "internal"


class SSOError(Exception):  # noqa: N818
    """Base exception for all classified credential-service failures."""

    def __init__(self, kind: ErrorKind, op: str, message: str = "") -> None:
        self.kind = kind
        self.op = op
        self.message = message or kind.value.replace("_", " ")
        super().__init__(f"{op}: {self.message}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, op={self.op!r})"


class StorageError(SSOError):
    """Raised by CredentialStore implementations."""


class AuthError(SSOError):
    """Raised by AuthService operations."""
