"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes
- Shared-secret extraction for the bulk ingest endpoint
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import text

from opportunity_hub.core.config import get_settings
from opportunity_hub.db.postgres import get_db_session

logger = logging.getLogger(__name__)

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor. auto_error is off so a missing header is a 401
# from get_current_user, and anonymous access works for get_optional_user.
bearer_scheme = HTTPBearer(auto_error=False)

# Roles whose posts skip moderation
TRUSTED_ROLES = ("admin", "member")


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _load_user(user_id: str) -> Optional[dict]:
    with get_db_session() as db:
        row = db.execute(
            text("""
                SELECT id, name, email, role, is_active FROM users
                WHERE id = :id AND deleted_at IS NULL
            """),
            {"id": user_id}
        ).mappings().fetchone()
    return dict(row) if row else None


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[dict]:
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        return None
    return _load_user(payload["sub"])


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    user = _resolve_user(credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {"id": user["id"], "name": user["name"], "email": user["email"], "role": user["role"]}


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency - current user, or None for anonymous or invalid tokens."""
    user = _resolve_user(credentials)
    if not user or not user["is_active"]:
        return None
    return {"id": user["id"], "name": user["name"], "email": user["email"], "role": user["role"]}


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require admin role."""
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
    return user


def is_admin(user: Optional[dict]) -> bool:
    return bool(user) and user["role"] == "admin"


def can_post_directly(user: dict) -> bool:
    return user["role"] in TRUSTED_ROLES


def get_ingest_token(request: Request) -> Optional[str]:
    """
    Shared secret for machine ingest: a Bearer token (scheme matched
    case-insensitively), else X-Ingest-Token, else X-API-Key.
    """
    authorization = (request.headers.get("authorization") or "").strip()
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()

    for header in ("x-ingest-token", "x-api-key"):
        value = (request.headers.get(header) or "").strip()
        if value:
            return value
    return None
