"""
auth/passwords.py -- One-way salted password hashing with bcrypt.

Security design decisions:
  bcrypt directly (no passlib wrapper). gensalt() draws a fresh random salt on
  every call, so hashing the same secret twice gives two different outputs.
  The cost factor is bcrypt's default (12 rounds) and is not configurable.

  verify_password() delegates to bcrypt.checkpw, which recomputes the hash
  and compares it in constant time.

  Hashing failures (e.g. the OS entropy source is unavailable) propagate to
  the caller. There is no fallback to a weaker scheme.

  bcrypt rejects secrets longer than 72 bytes. The api/ request models cap
  passwords at 72 UTF-8 bytes so that limit is never reached in practice.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt


def hash_password(secret: str) -> bytes:
    """Return a salted bcrypt hash of secret as raw bytes."""
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt())


def verify_password(hashed: bytes, candidate: str) -> bool:
    """Return True if candidate reproduces hashed.

    A malformed stored hash or an over-long candidate is a mismatch, not an
    error: bcrypt signals both with ValueError.
    """
    try:
        return bcrypt.checkpw(candidate.encode("utf-8"), hashed)
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load. AuthService.login() verifies against it when
# the email is unknown so an unknown email costs the same bcrypt work as a
# wrong password, and response time does not reveal which one happened.
DUMMY_HASH: bytes = hash_password("sso_timing_dummy")
