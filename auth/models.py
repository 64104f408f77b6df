"""
auth/models.py -- Domain dataclasses for credential-service entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; these classes own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered identity.

    email is unique across users; the store enforces it with a UNIQUE
    constraint, not the service.

    pass_hash is the bcrypt output as raw bytes -- never the plaintext secret.
    It is excluded from repr() so a stray log line cannot leak it.

    is_admin is provisioned out-of-band (main.py set-admin); no service
    operation changes it.
    """

    email: str
    pass_hash: bytes = field(repr=False)
    id: int | None = None
    is_admin: bool = False


@dataclass
class App:
    """A client application permitted to request tokens for its users.

    Apps are pre-provisioned (main.py add-app). Every issued token names one.
    """

    name: str
    id: int | None = None
