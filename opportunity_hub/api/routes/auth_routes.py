"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
GET /auth/is-admin - Whether the caller is an admin
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from opportunity_hub.core.auth import (
    create_access_token, get_current_user, get_optional_user, hash_password, verify_password
)
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import (
    IsAdminResponse, LoginRequest, MessageResponse, RegisterRequest, TokenResponse, UserResponse
)
from opportunity_hub.utils.dates import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account with the default "user" role.

    Posts from plain users wait for moderation; admins can promote
    trusted accounts to "member".
    """
    email = request.email.lower()
    with get_db_session() as db:
        existing = db.execute(
            text("SELECT id FROM users WHERE email = :email"),
            {"email": email}
        ).fetchone()
        if existing:
            raise HTTPException(status_code=400, detail="Email already registered")

        now = utc_now()
        db.execute(
            text("""
                INSERT INTO users (id, name, email, password_hash, role, created_at, updated_at)
                VALUES (:id, :name, :email, :password_hash, 'user', :now, :now)
            """),
            {
                "id": str(uuid.uuid4()),
                "name": request.name.strip(),
                "email": email,
                "password_hash": hash_password(request.password),
                "now": now,
            }
        )

    logger.info("Registered user %s", email)
    return MessageResponse(message="Registered successfully. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        user = db.execute(
            text("""
                SELECT id, password_hash, role, is_active FROM users
                WHERE email = :email AND deleted_at IS NULL
            """),
            {"email": request.email.lower()}
        ).fetchone()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id, password_hash, role, is_active = user

    if not is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(data={"sub": str(user_id), "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        row = db.execute(
            text("SELECT id, name, email, role, image, is_active, created_at FROM users WHERE id = :id"),
            {"id": user["id"]}
        ).mappings().fetchone()

    return UserResponse(**row)


@router.get("/is-admin", response_model=IsAdminResponse)
async def is_admin(user: Optional[dict] = Depends(get_optional_user)):
    if not user:
        return IsAdminResponse(is_admin=False)
    return IsAdminResponse(is_admin=user["role"] == "admin", role=user["role"])
