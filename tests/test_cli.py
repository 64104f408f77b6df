"""Tests for main.py -- out-of-band provisioning commands.

Covers:
- add-app prints the new app id and rejects duplicate names
- set-admin grants and revokes the flag; unknown ids exit 1
- no command prints help and exits 0
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

import main
from auth.store import open_store
from core.config import get_settings


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point STORAGE_PATH at a temp file and rebuild the cached Settings around it."""
    path = tmp_path / "cli" / "sso.db"
    monkeypatch.setenv("STORAGE_PATH", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def test_add_app_prints_id(db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["add-app", "Billing Portal"]) == 0
    assert capsys.readouterr().out.strip() == "1"

    store = open_store(str(db_path))
    try:
        assert store.get_app(1).name == "Billing Portal"
    finally:
        store.close()


def test_add_app_duplicate_name(db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["add-app", "Portal"]) == 0
    assert main.main(["add-app", "Portal"]) == 1
    assert "already exists" in capsys.readouterr().err


def test_set_admin_grant_and_revoke(db_path: Path) -> None:
    store = open_store(str(db_path))
    try:
        uid = store.save_user("ops@x.com", b"hash")
        assert main.main(["set-admin", str(uid)]) == 0
        assert store.is_admin(uid) is True
        assert main.main(["set-admin", str(uid), "--revoke"]) == 0
        assert store.is_admin(uid) is False
    finally:
        store.close()


def test_set_admin_unknown_user(db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["set-admin", "42"]) == 1
    assert "No user with id 42" in capsys.readouterr().err


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main([]) == 0
    assert "usage:" in capsys.readouterr().out
