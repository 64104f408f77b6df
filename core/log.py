"""
core/log.py -- Process-wide logging setup.

Called once by each entry point (api/main.py lifespan, main.py CLI) before any
other work. Modules create their own loggers with logging.getLogger("sso.<area>")
and never configure handlers themselves.

Levels by environment:
  local, dev -- DEBUG
  prod       -- INFO

Security: nothing in this service logs passwords, password hashes, tokens or
the signing key. Log records carry operation names and numeric ids.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "local": logging.DEBUG,
    "dev": logging.DEBUG,
    "prod": logging.INFO,
}


def setup_logging(env: str) -> logging.Logger:
    """Configure the root logger for the given environment and return the service logger."""
    logging.basicConfig(
        level=_LEVELS.get(env, logging.INFO),
        format=_FORMAT,
        datefmt=_DATEFMT,
        force=True,
    )
    logger = logging.getLogger("sso")
    logger.debug("Debug messages are enabled")
    return logger
