from __future__ import annotations

import base64
from pathlib import Path
from uuid import uuid4

import pytest
import sqlalchemy as sa
from alembic.config import Config
from fastapi.testclient import TestClient

from alembic import command
from apps.identity_api.main import create_app
from identity_vault.application.services.admin_bootstrap_service import AdminBootstrapConfigError
from identity_vault.config.settings import load_settings
from identity_vault.domain.crypto.bundle import EncryptedBundle
from identity_vault.infrastructure.security.field_cipher import AesGcmFieldCipher
from identity_vault.infrastructure.security.lookup_indexer import HmacLookupIndexer

DATA_KEY_B64 = base64.b64encode(b"d" * 32).decode("ascii")
INDEX_KEY_B64 = base64.b64encode(b"x" * 32).decode("ascii")

REQUIRED_ENV = {
    "SESSION_SECRET": "bootstrap-session-secret",
    "DATA_KEY_B64": DATA_KEY_B64,
    "INDEX_KEY_B64": INDEX_KEY_B64,
    "BCRYPT_COST": "4",
    "MFA_SWEEP_INTERVAL_SECONDS": "0",
}


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")
    return sync_url, async_url


def _set_runtime_env(monkeypatch: pytest.MonkeyPatch, *, database_url: str) -> None:
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.delenv("BOOTSTRAP_ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("BOOTSTRAP_ADMIN_PASSWORD", raising=False)
    monkeypatch.delenv("BOOTSTRAP_ADMIN_PASSWORD_FILE", raising=False)


def _run_startup() -> None:
    load_settings.cache_clear()
    try:
        with TestClient(create_app()):
            pass
    finally:
        load_settings.cache_clear()


def _users(sync_url: str) -> list[sa.RowMapping]:
    with sa.create_engine(sync_url).begin() as connection:
        return list(
            connection.execute(
                sa.text("SELECT role_id, email_index, email_bundle_json FROM users")
            ).mappings()
        )


@pytest.mark.asyncio
async def test_startup_bootstrap_creates_first_admin_from_env_password(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_env_password.db")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", "bootstrap-admin@example.org")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", "bootstrap-password")

    _run_startup()

    rows = _users(sync_url)
    assert len(rows) == 1
    assert rows[0]["role_id"] == 1
    assert rows[0]["email_index"] == HmacLookupIndexer(key_b64=INDEX_KEY_B64).index(
        "bootstrap-admin@example.org"
    )
    bundle = EncryptedBundle.from_json(rows[0]["email_bundle_json"])
    assert AesGcmFieldCipher(key_b64=DATA_KEY_B64).open(bundle) == "bootstrap-admin@example.org"


@pytest.mark.asyncio
async def test_startup_bootstrap_reads_admin_password_from_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_password_file.db")
    password_file = tmp_path / "bootstrap-password.txt"
    password_file.write_text("bootstrap-from-file\n", encoding="utf-8")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", "file-admin@example.org")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD_FILE", str(password_file))

    _run_startup()

    assert [row["role_id"] for row in _users(sync_url)] == [1]


@pytest.mark.asyncio
async def test_startup_bootstrap_skips_when_users_exist(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_existing_user.db")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", "bootstrap-admin@example.org")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", "bootstrap-password")
    with sa.create_engine(sync_url).begin() as connection:
        connection.execute(
            sa.text(
                "INSERT INTO users (user_id, role_id, email_index, password_hash) "
                "VALUES (:user_id, 3, :email_index, 'hash')"
            ),
            {"user_id": uuid4().hex, "email_index": "existing" * 4},
        )

    _run_startup()

    assert [row["role_id"] for row in _users(sync_url)] == [3]


@pytest.mark.asyncio
async def test_startup_rejects_invalid_password_source_configuration(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_invalid_config.db")
    password_file = tmp_path / "bootstrap-password.txt"
    password_file.write_text("bootstrap-from-file\n", encoding="utf-8")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", "invalid-config@example.org")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", "bootstrap-password")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD_FILE", str(password_file))

    with pytest.raises(AdminBootstrapConfigError, match="set only one of"):
        _run_startup()

    assert _users(sync_url) == []
