#!/usr/bin/env python3
"""
SSO -- central credential service for client applications.

Usage:
  python main.py serve
  python main.py add-app "Billing Portal"
  python main.py set-admin 42
  python main.py set-admin 42 --revoke

Apps and the administrator flag are provisioned out-of-band with this CLI;
the HTTP API never creates apps or changes admin status.

Environment variables (or .env):
  SECRET_KEY         Token signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG              true to auto-generate a throwaway SECRET_KEY.
  ENV                local, dev or prod. Controls log level.
  TOKEN_TTL_SECONDS  Lifetime of issued tokens (default 3600).
  STORAGE_PATH       SQLite database file (default ./storage/sso.db).
  HOST, PORT         Bind address for `serve` (default 127.0.0.1:44044).
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from auth.errors import ErrorKind, StorageError
from auth.store import open_store
from core.config import get_settings
from core.log import setup_logging


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run("api.main:app", host=args.host or settings.host, port=args.port or settings.port)
    return 0


def _add_app(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = open_store(settings.storage_path, timeout=settings.storage_timeout_seconds)
    try:
        app_id = store.create_app(args.name)
    except StorageError as exc:
        if exc.kind is ErrorKind.ALREADY_EXISTS:
            print(f"  [!] An app named '{args.name}' already exists.", file=sys.stderr)
            return 1
        raise
    finally:
        store.close()
    print(app_id)
    return 0


def _set_admin(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = open_store(settings.storage_path, timeout=settings.storage_timeout_seconds)
    try:
        store.set_admin(args.user_id, not args.revoke)
    except StorageError as exc:
        if exc.kind is ErrorKind.NOT_FOUND:
            print(f"  [!] No user with id {args.user_id}.", file=sys.stderr)
            return 1
        raise
    finally:
        store.close()
    state = "revoked from" if args.revoke else "granted to"
    print(f"  Admin {state} user {args.user_id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso",
        description="Central credential service: registration, app-scoped login tokens, admin checks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 8080
  python main.py add-app "Billing Portal"
  python main.py set-admin 1
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.set_defaults(func=_serve)

    add_app = sub.add_parser("add-app", help="Provision a client application and print its id")
    add_app.add_argument("name", help="Human-readable application name")
    add_app.set_defaults(func=_add_app)

    set_admin = sub.add_parser("set-admin", help="Grant (or revoke) the administrator flag")
    set_admin.add_argument("user_id", type=int, metavar="USER_ID", help="Numeric user id")
    set_admin.add_argument("--revoke", action="store_true", help="Clear the flag instead of setting it")
    set_admin.set_defaults(func=_set_admin)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    setup_logging(get_settings().env)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
