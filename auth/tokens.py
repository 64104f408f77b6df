"""
auth/tokens.py -- Signed, time-bounded identity assertions (JWT).

Security design decisions:
  JWT: python-jose with HS256. A token carries the user's id (uid), email,
       the app it was issued for (app_id), and an absolute expiry (exp).
       HS256 is deterministic: the same claim set and key always give the
       same token string.

  Signing key: symmetric and process-wide. It comes from Settings.secret_key,
       which is validated at startup. TokenIssuer keeps its own
       reference so nothing here reads global configuration.

  TTL: supplied by the caller (AuthService gets it from Settings). A zero or
       negative TTL is a caller bug and raises ValueError -- a token without a
       usable expiry is never issued.

  Verification: decode() is the downstream verifier's view. It rejects a bad
       signature, a missing exp, an expired exp, and payloads missing the
       identity claims. It raises JWTError (ExpiredSignatureError for expiry)
       so callers can tell the cases apart.

Layer rule: no imports from api/. core/ is allowed for Settings only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import App, User
    from core.config import Settings

logger = logging.getLogger("sso.tokens")

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("uid", "email", "app_id")


class TokenIssuer:
    """Builds and verifies HS256 tokens with one immutable signing key.

    Usage:
        issuer = TokenIssuer.from_settings(settings)
        token = issuer.issue(user, app, timedelta(hours=1))
        claims = issuer.decode(token)
    """

    def __init__(self, secret_key: str, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a signing key.")
        self._secret_key = secret_key
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(settings.secret_key)

    def __repr__(self) -> str:
        return f"TokenIssuer(algorithm={self._algorithm!r})"

    def issue(self, user: User, app: App, ttl: timedelta, now: datetime | None = None) -> str:
        """Encode a signed token for user scoped to app, expiring at now + ttl.

        Args:
            user: The authenticated user. id and email are embedded.
            app:  The app the token is issued for. id is embedded.
            ttl:  Lifetime of the token. Must be positive.
            now:  Issue instant; defaults to the current UTC time.

        Raises:
            ValueError: ttl is zero or negative.
            JWTError:   signing failed.
        """
        if ttl <= timedelta(0):
            raise ValueError("token ttl must be a positive duration")
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "uid": user.id,
            "email": user.email,
            "app_id": app.id,
            "exp": issued_at + ttl,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        """Verify signature and expiry and return the claims.

        Raises JWTError on any failure. ExpiredSignatureError (a JWTError
        subclass) signals a correctly signed token whose exp has passed.
        """
        payload = jwt.decode(
            token,
            self._secret_key,
            algorithms=[self._algorithm],
            options={"require_exp": True},
        )
        missing = [c for c in _REQUIRED_CLAIMS if c not in payload]
        if missing:
            raise JWTError(f"token is missing claims: {', '.join(missing)}")
        return payload
