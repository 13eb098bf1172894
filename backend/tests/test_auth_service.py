"""Tests for login, token validation and tenant switching."""
from datetime import timedelta

import pytest
from jose import jwt

from berthboard.modules.auth_service import (
    AuthError,
    AuthService,
    TenantAccessError,
    hash_password,
    verify_password,
)
from berthboard.utils.dates import utcnow


@pytest.fixture
def auth(reference):
    return AuthService(reference, secret_key="test-secret", token_ttl=timedelta(hours=1))


class TestLogin:
    def test_login_ok(self, auth):
        before = utcnow()
        session = auth.login("admin@berthboard.com", "admin123")
        assert session.user.id == "1"
        assert session.user.tenant_id == "tenant1"
        assert before + timedelta(hours=1) <= session.expires_at <= utcnow() + timedelta(hours=1)
        assert "password_hash" not in session.user.model_dump()

    def test_email_is_case_insensitive(self, auth):
        assert auth.login("  Planner@BerthBoard.com ", "planner123").user.id == "2"

    def test_wrong_password(self, auth):
        with pytest.raises(AuthError, match="Invalid email or password"):
            auth.login("admin@berthboard.com", "admin124")

    def test_unknown_email(self, auth):
        with pytest.raises(AuthError):
            auth.login("nobody@berthboard.com", "admin123")

    def test_overlong_password_rejected(self, auth):
        with pytest.raises(AuthError, match="Invalid email or password"):
            auth.login("admin@berthboard.com", "x" * 200)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("MySecurePassword123!")
        assert hashed.startswith("$2b$")
        assert verify_password("MySecurePassword123!", hashed)
        assert not verify_password("WrongPassword", hashed)

    def test_hash_is_salted(self):
        assert hash_password("pw") != hash_password("pw")

    def test_malformed_stored_hash(self):
        assert not verify_password("pw", "not-a-bcrypt-hash")


class TestTokens:
    def test_validate_round_trip(self, auth):
        token = auth.login("viewer@berthboard.com", "viewer123").token
        user = auth.validate_token(token)
        assert user.id == "3"
        assert user.role.value == "viewer"

    def test_claims(self, auth):
        token, _ = auth.issue_token("2", "tenant2")
        claims = jwt.decode(token, "test-secret", algorithms=["HS256"])
        assert claims["sub"] == "2"
        assert claims["tenant"] == "tenant2"
        assert claims["exp"] > claims["iat"]

    def test_tokens_are_unique(self, auth):
        assert auth.issue_token("1", "tenant1")[0] != auth.issue_token("1", "tenant1")[0]

    def test_expired_token(self, reference):
        expired = AuthService(reference, secret_key="test-secret", token_ttl=timedelta(seconds=-5))
        token, _ = expired.issue_token("3", "tenant1")
        with pytest.raises(AuthError, match="expired"):
            expired.validate_token(token)

    def test_tampered_token(self, auth):
        header, payload, _ = auth.issue_token("3", "tenant1")[0].split(".")
        signature = auth.issue_token("1", "tenant1")[0].split(".")[2]
        with pytest.raises(AuthError, match="Invalid token"):
            auth.validate_token(f"{header}.{payload}.{signature}")

    def test_token_from_other_secret_rejected(self, reference, auth):
        other = AuthService(reference, secret_key="another-secret")
        token, _ = other.issue_token("1", "tenant1")
        with pytest.raises(AuthError):
            auth.validate_token(token)

    def test_missing_tenant_claim(self, auth):
        token = jwt.encode({"sub": "1"}, "test-secret", algorithm="HS256")
        with pytest.raises(AuthError, match="missing claims"):
            auth.validate_token(token)

    @pytest.mark.parametrize("token", ["", "garbage", "abc.def", "!!!.123.xyz"])
    def test_malformed_token(self, auth, token):
        with pytest.raises(AuthError):
            auth.validate_token(token)

    def test_logout_revokes(self, auth):
        token = auth.login("viewer@berthboard.com", "viewer123").token
        auth.logout(token)
        with pytest.raises(AuthError, match="revoked"):
            auth.validate_token(token)

    def test_logout_rejects_invalid_token(self, auth):
        with pytest.raises(AuthError):
            auth.logout("garbage")

class TestTenants:
    def test_user_tenants(self, auth):
        assert [t.id for t in auth.get_user_tenants("2")] == ["tenant1", "tenant2"]
        assert [t.id for t in auth.get_user_tenants("1")] == ["tenant1", "tenant2", "tenant3", "tenant4"]

    def test_switch_tenant_allowed(self, auth):
        token = auth.login("planner@berthboard.com", "planner123").token
        session = auth.switch_tenant(token, "tenant2")
        assert session.user.tenant_id == "tenant2"
        assert auth.validate_token(session.token).tenant_id == "tenant2"

    def test_switch_tenant_revokes_old_token(self, auth):
        token = auth.login("planner@berthboard.com", "planner123").token
        auth.switch_tenant(token, "tenant2")
        with pytest.raises(AuthError):
            auth.validate_token(token)

    def test_switch_tenant_denied(self, auth):
        token = auth.login("viewer@berthboard.com", "viewer123").token
        with pytest.raises(TenantAccessError, match="Access denied"):
            auth.switch_tenant(token, "tenant2")

    def test_get_tenant(self, auth):
        assert auth.get_tenant("tenant2").name == "Los Angeles Port"
        with pytest.raises(TenantAccessError):
            auth.get_tenant("tenant99")
