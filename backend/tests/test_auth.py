from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

import jwt
import pytest

TEST_SECRET = "test-secret-key-with-at-least-32-bytes"


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr("auth.jwt_handler.JWT_SECRET_KEY", TEST_SECRET)
    return TEST_SECRET


@pytest.fixture
def real_auth():
    """Drop the dependency overrides so requests go through token checks."""
    from app import app

    app.dependency_overrides.clear()
    return app


@pytest.fixture
def stored_user():
    user = SimpleNamespace(id="user123", email="test@example.com", role="viewer", organization_ids=["org-1"])
    with patch("auth.dependencies.UserDoc") as mock_user_doc:
        mock_user_doc.find_one = AsyncMock(return_value=user)
        yield mock_user_doc


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestTokens:
    def test_access_token_roundtrip(self, jwt_secret):
        from auth.jwt_handler import create_access_token, decode_token

        token = create_access_token("test@example.com", "user123", "editor")
        payload = decode_token(token)

        assert payload["sub"] == "test@example.com"
        assert payload["role"] == "editor"
        assert payload["type"] == "access"

    def test_tampered_token_rejected(self, jwt_secret):
        from auth.jwt_handler import create_access_token, decode_token

        token = create_access_token("test@example.com", "user123", "editor")

        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token[:-2] + "xx")

    def test_missing_secret_fails_startup_check(self, monkeypatch):
        import auth.config

        monkeypatch.setattr(auth.config, "JWT_SECRET_KEY", None)

        with pytest.raises(RuntimeError):
            auth.config.validate_auth_config()


class TestProtectedEndpoints:
    """Requests without the test overrides."""

    def test_missing_token(self, client, mock_db, real_auth):
        response = client.get("/schedule/rules/organization")

        assert response.status_code == 401

    def test_invalid_token(self, client, mock_db, real_auth, jwt_secret):
        response = client.get("/schedule/rules/organization", headers=bearer("invalid_token"))

        assert response.status_code == 401

    def test_expired_token(self, client, mock_db, real_auth, jwt_secret):
        payload = {
            "sub": "test@example.com",
            "user_id": "user123",
            "role": "viewer",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=5),
            "iat": datetime.now(timezone.utc) - timedelta(minutes=35),
            "type": "access",
        }
        token = jwt.encode(payload, jwt_secret, algorithm="HS256")

        response = client.get("/schedule/rules/organization", headers=bearer(token))

        assert response.status_code == 401
        assert "expired" in response.json()["detail"].lower()

    def test_token_without_type_claim(self, client, mock_db, real_auth, jwt_secret):
        payload = {
            "sub": "test@example.com",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=30),
        }
        token = jwt.encode(payload, jwt_secret, algorithm="HS256")

        response = client.get("/schedule/rules/organization", headers=bearer(token))

        assert response.status_code == 401

    def test_viewer_can_read(self, client, mock_db, real_auth, jwt_secret, stored_user):
        from auth.jwt_handler import create_access_token

        mock_db["OrganizationScheduleRuleDoc"].find_one = AsyncMock(return_value=None)
        token = create_access_token("test@example.com", "user123", "viewer")

        response = client.get("/schedule/rules/organization", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["organization_id"] == "org-1"

    def test_viewer_cannot_edit(self, client, mock_db, real_auth, jwt_secret, stored_user):
        from auth.jwt_handler import create_access_token

        token = create_access_token("test@example.com", "user123", "viewer")

        response = client.put(
            "/schedule/rules/organization",
            json={"rotation_enabled": True},
            headers=bearer(token),
        )

        assert response.status_code == 403

    def test_unknown_user(self, client, mock_db, real_auth, jwt_secret, stored_user):
        from auth.jwt_handler import create_access_token

        stored_user.find_one = AsyncMock(return_value=None)
        token = create_access_token("gone@example.com", "user123", "admin")

        response = client.get("/schedule/rules/organization", headers=bearer(token))

        assert response.status_code == 401


class TestOrganizationScope:
    def test_user_without_organization(self, client, mock_db, override_auth_dependencies):
        override_auth_dependencies.organization_ids = []

        response = client.get("/schedule/rules/organization")

        assert response.status_code == 403
