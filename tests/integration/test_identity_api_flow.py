from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import sqlalchemy as sa
from alembic.config import Config
from fastapi.testclient import TestClient

from alembic import command
from apps.identity_api.main import create_app
from identity_vault.application.services.identity_service import IdentityService
from identity_vault.application.services.mfa_service import MfaChallengeManager
from identity_vault.infrastructure.db.session import create_session_factory
from identity_vault.infrastructure.db.user_repository import SqlAlchemyUserRepository
from identity_vault.infrastructure.mfa.in_memory_challenge_store import InMemoryChallengeStore
from identity_vault.infrastructure.security.field_cipher import AesGcmFieldCipher
from identity_vault.infrastructure.security.lookup_indexer import HmacLookupIndexer
from identity_vault.infrastructure.security.password_hasher import BcryptPasswordHasher

DATA_KEY_B64 = base64.b64encode(b"d" * 32).decode("ascii")
INDEX_KEY_B64 = base64.b64encode(b"x" * 32).decode("ascii")
SESSION_SECRET = "integration-session-secret"
_CODE_PATTERN = re.compile(r"code is: (\d+)")


@dataclass
class RecordingMailSender:
    sent: list[tuple[str, str, str]] = field(default_factory=list)
    succeed: bool = True

    async def deliver(self, *, to_address: str, subject: str, body: str) -> bool:
        self.sent.append((to_address, subject, body))
        return self.succeed

    def last_code_for(self, address: str) -> str:
        for to_address, _subject, body in reversed(self.sent):
            if to_address == address:
                match = _CODE_PATTERN.search(body)
                assert match is not None
                return match.group(1)
        raise AssertionError(f"no code sent to {address}")


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _insert_user(
    connection: sa.Connection,
    *,
    email: str,
    password: str,
    role_id: int | None,
) -> UUID:
    user_id = uuid4()
    connection.execute(
        sa.text(
            "INSERT INTO users (user_id, role_id, email_index, email_bundle_json, password_hash) "
            "VALUES (:user_id, :role_id, :email_index, :email_bundle_json, :password_hash)"
        ),
        {
            "user_id": user_id.hex,
            "role_id": role_id,
            "email_index": HmacLookupIndexer(key_b64=INDEX_KEY_B64).index(email),
            "email_bundle_json": AesGcmFieldCipher(key_b64=DATA_KEY_B64).seal(email).to_json(),
            "password_hash": BcryptPasswordHasher(rounds=4).hash_password(password),
        },
    )
    return user_id


def _build_client(async_url: str, mail_sender: RecordingMailSender) -> TestClient:
    users = SqlAlchemyUserRepository(create_session_factory(async_url))
    mfa = MfaChallengeManager(store=InMemoryChallengeStore(), mail_sender=mail_sender)
    identity_service = IdentityService(
        users=users,
        field_cipher=AesGcmFieldCipher(key_b64=DATA_KEY_B64),
        lookup_indexer=HmacLookupIndexer(key_b64=INDEX_KEY_B64),
        password_hasher=BcryptPasswordHasher(rounds=4),
        mfa=mfa,
    )
    app = create_app(
        identity_service=identity_service,
        users=users,
        mfa_manager=mfa,
        session_secret=SESSION_SECRET,
        sweep_interval_seconds=0,
    )
    return TestClient(app)


def _sign_in(
    client: TestClient,
    mail_sender: RecordingMailSender,
    *,
    email: str,
    password: str,
) -> None:
    login = client.post("/auth/login", json={"email": email, "password": password})
    assert login.status_code == 200
    verify = client.post(
        "/auth/verify-mfa",
        json={"code": mail_sender.last_code_for(email)},
    )
    assert verify.status_code == 200


@pytest.mark.asyncio
async def test_register_login_verify_profile_logout_flow(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_flow.db")
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        register = client.post(
            "/auth/register",
            json={"email": "alice@example.org", "username": "alice", "password": "Secret1"},
        )
        assert register.status_code == 201
        user_id = register.json()["user_id"]

        login = client.post(
            "/auth/login",
            json={"email": "Alice@Example.org", "password": "Secret1"},
        )
        assert login.status_code == 200
        assert login.json() == {
            "ok": True,
            "mfa_required": True,
            "code_sent_to": "al***e@example.org",
            "expires_in_seconds": 300,
        }

        premature = client.get("/auth/me")
        assert premature.status_code == 401

        verify = client.post(
            "/auth/verify-mfa",
            json={"code": mail_sender.last_code_for("alice@example.org")},
        )
        assert verify.status_code == 200
        assert verify.json() == {"ok": True, "logged_in": True}

        profile = client.get("/auth/me")
        assert profile.status_code == 200
        assert profile.json()["user"] == {
            "id": user_id,
            "role_id": None,
            "role": "public",
            "email": "alice@example.org",
            "username": "alice",
        }

        logout = client.post("/auth/logout")
        assert logout.status_code == 200
        assert client.get("/auth/me").status_code == 401

    with sa.create_engine(sync_url).begin() as connection:
        row = connection.execute(
            sa.text("SELECT email_index, email_bundle_json, password_hash FROM users")
        ).mappings().one()
    assert "alice" not in row["email_index"]
    assert "alice" not in row["email_bundle_json"]
    assert row["password_hash"].startswith("$2b$04$")


@pytest.mark.asyncio
async def test_register_validation_and_duplicate_errors(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_register_errors.db")
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        missing = client.post("/auth/register", json={"password": "Secret1"})
        first = client.post("/auth/register", json={"email": "a@b.com", "password": "Secret1"})
        duplicate = client.post(
            "/auth/register",
            json={"email": "A@B.com", "password": "Other1"},
        )
        unknown_field = client.post(
            "/auth/register",
            json={"email": "c@d.com", "password": "Secret1", "is_admin": True},
        )

    assert missing.status_code == 400
    assert missing.json() == {"detail": "email is required"}
    assert first.status_code == 201
    assert duplicate.status_code == 409
    assert unknown_field.status_code == 422


@pytest.mark.asyncio
async def test_login_failures_share_one_generic_message(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_login_failures.db")
    with sa.create_engine(sync_url).begin() as connection:
        _insert_user(connection, email="a@b.com", password="Secret1", role_id=3)
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        unknown = client.post("/auth/login", json={"email": "x@b.com", "password": "Secret1"})
        wrong = client.post("/auth/login", json={"email": "a@b.com", "password": "nope"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"detail": "Invalid email or password"}
    assert mail_sender.sent == []


@pytest.mark.asyncio
async def test_login_delivery_failure_returns_bad_gateway(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_delivery_failure.db")
    with sa.create_engine(sync_url).begin() as connection:
        _insert_user(connection, email="a@b.com", password="Secret1", role_id=3)
    mail_sender = RecordingMailSender(succeed=False)

    with _build_client(async_url, mail_sender) as client:
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "Secret1"})
        verify = client.post("/auth/verify-mfa", json={"code": "123456"})

    assert response.status_code == 502
    assert response.json() == {"detail": "Failed to send MFA code"}
    assert verify.status_code == 401
    assert verify.json() == {"detail": "No login in progress"}


@pytest.mark.asyncio
async def test_wrong_code_then_right_code_completes_login(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_wrong_code.db")
    with sa.create_engine(sync_url).begin() as connection:
        _insert_user(connection, email="a@b.com", password="Secret1", role_id=3)
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        client.post("/auth/login", json={"email": "a@b.com", "password": "Secret1"})
        code = mail_sender.last_code_for("a@b.com")
        wrong_code = "0" * 6 if code != "0" * 6 else "1" * 6
        wrong = client.post("/auth/verify-mfa", json={"code": wrong_code})
        right = client.post("/auth/verify-mfa", json={"code": code})
        replay = client.post("/auth/verify-mfa", json={"code": code})

    assert wrong.status_code == 401
    assert wrong.json() == {"detail": "Incorrect code"}
    assert right.status_code == 200
    assert replay.status_code == 401
    assert replay.json() == {"detail": "No login in progress"}


@pytest.mark.asyncio
async def test_privileged_role_hint_at_registration_requires_admin(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_register_role_hint.db")
    with sa.create_engine(sync_url).begin() as connection:
        _insert_user(connection, email="admin@example.org", password="AdminPw1", role_id=1)
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        anonymous = client.post(
            "/auth/register",
            json={"email": "r@example.org", "password": "Secret1", "role": "researcher"},
            headers={"x-user-role": "admin"},
        )
        _sign_in(client, mail_sender, email="admin@example.org", password="AdminPw1")
        by_admin = client.post(
            "/auth/register",
            json={"email": "r@example.org", "password": "Secret1", "role": "researcher"},
        )

    assert anonymous.status_code == 403
    assert anonymous.json() == {"detail": "Only admin can assign or change roles."}
    assert by_admin.status_code == 201

    with sa.create_engine(sync_url).begin() as connection:
        role_id = connection.execute(
            sa.text("SELECT role_id FROM users WHERE user_id = :user_id"),
            {"user_id": UUID(by_admin.json()["user_id"]).hex},
        ).scalar_one()
    assert role_id == 2


@pytest.mark.asyncio
async def test_admin_assigns_roles_with_policy_checks(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_admin_roles.db")
    with sa.create_engine(sync_url).begin() as connection:
        admin_id = _insert_user(
            connection, email="admin@example.org", password="AdminPw1", role_id=1
        )
        member_id = _insert_user(
            connection, email="member@example.org", password="MemberPw1", role_id=3
        )
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        unauthenticated = client.put(
            f"/admin/users/{member_id}/role",
            json={"role": "researcher"},
        )

        _sign_in(client, mail_sender, email="member@example.org", password="MemberPw1")
        as_member = client.put(f"/admin/users/{admin_id}/role", json={"role": "public"})
        client.post("/auth/logout")

        _sign_in(client, mail_sender, email="admin@example.org", password="AdminPw1")
        promoted = client.put(f"/admin/users/{member_id}/role", json={"role": "Researcher"})
        invalid = client.put(f"/admin/users/{member_id}/role", json={"role": "superuser"})
        own = client.put(f"/admin/users/{admin_id}/role", json={"role": "public"})
        missing = client.put(f"/admin/users/{uuid4()}/role", json={"role": "public"})

    assert unauthenticated.status_code == 401
    assert as_member.status_code == 403
    assert as_member.json() == {"detail": "Only admin can assign or change roles."}
    assert promoted.status_code == 200
    assert promoted.json() == {
        "ok": True,
        "user": {"user_id": str(member_id), "role_id": 2, "role_name": "researcher"},
    }
    assert invalid.status_code == 400
    assert invalid.json() == {"detail": "Invalid role name"}
    assert own.status_code == 403
    assert own.json() == {"detail": "You cannot change your own role"}
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_table_access_uses_hints_only_without_verified_session(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_table_access.db")
    with sa.create_engine(sync_url).begin() as connection:
        _insert_user(connection, email="p@example.org", password="PublicPw1", role_id=3)
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        public_view = client.get("/access/tables/species")
        full_without_role = client.get("/access/tables/species?scope=full")
        header_hint = client.get(
            "/access/tables/users?scope=full",
            headers={"x-user-role": "admin"},
        )
        query_hint = client.get("/access/tables/alerts?scope=full&role=researcher")
        unknown_table = client.get(
            "/access/tables/secrets?scope=full",
            headers={"x-user-role": "admin"},
        )

        _sign_in(client, mail_sender, email="p@example.org", password="PublicPw1")
        session_wins = client.get(
            "/access/tables/users?scope=full",
            headers={"x-user-role": "admin"},
        )

    assert public_view.status_code == 200
    assert public_view.json() == {
        "table": "species",
        "scope": "public",
        "role": "public",
        "permission": "tables:species:view_public",
        "allowed": True,
    }
    assert full_without_role.status_code == 403
    assert full_without_role.json() == {"detail": "Forbidden: permission denied"}
    assert header_hint.status_code == 200
    assert header_hint.json()["role"] == "admin"
    assert query_hint.status_code == 200
    assert query_hint.json()["permission"] == "tables:alerts:view"
    assert unknown_table.status_code == 403
    assert session_wins.status_code == 403


@pytest.mark.asyncio
async def test_decrypt_access_allows_only_staff_roles(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_decrypt_access.db")
    mail_sender = RecordingMailSender()

    with _build_client(async_url, mail_sender) as client:
        anonymous = client.get("/access/decrypt")
        researcher = client.get("/access/decrypt", headers={"x-user-role": "researcher"})
        admin = client.get("/access/decrypt?role=admin")
        farmer = client.get("/access/decrypt", headers={"x-user-role": "farmer"})

    assert anonymous.status_code == 403
    assert anonymous.json() == {"detail": "Forbidden: no decrypt permission"}
    assert researcher.status_code == 200
    assert researcher.json() == {"role": "researcher", "allowed": True}
    assert admin.status_code == 200
    assert admin.json()["role"] == "admin"
    assert farmer.status_code == 403
