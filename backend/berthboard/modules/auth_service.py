"""Tenant-aware authentication over the reference user list.

Session tokens are JWTs signed with settings.AUTH_SECRET_KEY.

Token claims:
  - sub:     user ID
  - tenant:  tenant the user is currently working in
  - jti:     unique token id
  - iat/exp: issue and expiry timestamps

Switching tenants issues a new token. Logout and tenant switches put the
old token on a process-local revocation list until its natural expiry.
"""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from berthboard.config import settings
from berthboard.modules.reference_data import ReferenceData
from berthboard.schemas.auth import LoginResponse
from berthboard.schemas.reference import Tenant, User, UserRecord
from berthboard.utils.dates import utcnow

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication failed (bad credentials, bad or expired token)."""


class TenantAccessError(AuthError):
    """The user may not act in the requested tenant."""


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
    except ValueError as e:
        # Malformed stored hash, or a password over bcrypt's 72-byte limit
        logger.warning("Password check failed: %s", e)
        return False


class AuthService:
    def __init__(
        self,
        reference: ReferenceData,
        *,
        secret_key: Optional[str] = None,
        token_ttl: Optional[timedelta] = None,
        algorithm: Optional[str] = None,
    ):
        self._reference = reference
        self._secret = secret_key or settings.AUTH_SECRET_KEY
        self._algorithm = algorithm or settings.AUTH_ALGORITHM
        self._ttl = token_ttl or timedelta(minutes=settings.AUTH_TOKEN_TTL_MINUTES)
        # token -> unix expiry
        self._revoked: dict[str, float] = {}

    # ── Tokens ───────────────────────────────────────────────────────────────

    def issue_token(self, user_id: str, tenant_id: str) -> tuple[str, datetime]:
        now = utcnow()
        expires_at = now + self._ttl
        payload = {
            "sub": user_id,
            "tenant": tenant_id,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm), expires_at

    def _decode(self, token: str) -> dict:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise AuthError("Token expired") from e
        except JWTError as e:
            raise AuthError(f"Invalid token: {e}") from e
        if not claims.get("sub") or not claims.get("tenant"):
            raise AuthError("Invalid token: missing claims")
        return claims

    def _revoke(self, token: str, expires_at: float) -> None:
        now = time.time()
        self._revoked = {t: exp for t, exp in self._revoked.items() if exp > now}
        if expires_at > now:
            self._revoked[token] = expires_at

    # ── Users ────────────────────────────────────────────────────────────────

    def _find_user(self, user_id: str) -> UserRecord:
        user = next((u for u in self._reference.users if u.id == user_id), None)
        if user is None:
            raise AuthError("User not found")
        return user

    def _as_session_user(self, user: UserRecord, tenant_id: str) -> User:
        session_user = user.public()
        session_user.tenant_id = tenant_id
        return session_user

    def login(self, email: str, password: str) -> LoginResponse:
        """Authenticate by email/password into the user's home tenant."""
        email = email.strip().casefold()
        user = next((u for u in self._reference.users if u.email.casefold() == email), None)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for %s", email)
            raise AuthError("Invalid email or password")

        token, expires_at = self.issue_token(user.id, user.tenant_id)
        logger.info("User %s logged in (tenant %s)", user.id, user.tenant_id)
        return LoginResponse(user=self._as_session_user(user, user.tenant_id), token=token, expires_at=expires_at)

    def validate_token(self, token: str) -> User:
        """Resolve a token to the session user, with tenant_id set to the active tenant."""
        if token in self._revoked:
            raise AuthError("Token revoked")
        claims = self._decode(token)
        return self._as_session_user(self._find_user(claims["sub"]), claims["tenant"])

    def logout(self, token: str) -> None:
        claims = self._decode(token)
        self._revoke(token, claims["exp"])
        logger.info("User %s logged out", claims["sub"])

    # ── Tenants ──────────────────────────────────────────────────────────────

    def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = self._reference.get_tenant(tenant_id)
        if tenant is None:
            raise TenantAccessError("Tenant not found")
        return tenant

    def get_user_tenants(self, user_id: str) -> list[Tenant]:
        user = self._find_user(user_id)
        allowed = set(user.available_tenants) | {user.tenant_id}
        return [t for t in self._reference.tenants if t.id in allowed]

    def switch_tenant(self, token: str, tenant_id: str) -> LoginResponse:
        """Re-issue the session token for another tenant the user may access."""
        current = self.validate_token(token)
        user = self._find_user(current.id)
        if tenant_id != user.tenant_id and tenant_id not in user.available_tenants:
            raise TenantAccessError("Access denied: You do not have permission to access this tenant")
        self.get_tenant(tenant_id)

        new_token, expires_at = self.issue_token(user.id, tenant_id)
        self._revoke(token, self._decode(token)["exp"])
        logger.info("User %s switched tenant %s -> %s", user.id, current.tenant_id, tenant_id)
        return LoginResponse(user=self._as_session_user(user, tenant_id), token=new_token, expires_at=expires_at)
