"""
Auth Router — login, token validation and logout.

Tokens are stateless; logout only acknowledges so the client can drop its copy.
"""

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, MessageResponse
from core.security import Actor, create_access_token, verify_password
from crm.errors import AuthError, NotFoundError
from db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class LoginRequest(BaseModel):
    email: str
    password: str


class UserProfile(CamelModel):
    id: str
    name: str
    email: str
    role: str
    is_active: bool


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: UserProfile


class ValidateResponse(BaseModel):
    success: bool = True
    user: UserProfile


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    result = await db.execute(select(User).where(func.lower(User.email) == body.email.strip().lower()))
    user = result.scalar_one_or_none()

    if user is None:
        logger.info("auth.login_failed", reason="unknown_email")
        raise AuthError("Invalid credentials")
    if not user.is_active:
        logger.info("auth.login_failed", reason="inactive", user_id=user.id)
        raise AuthError("User account is inactive")
    if not verify_password(body.password, user.password_hash):
        logger.info("auth.login_failed", reason="bad_password", user_id=user.id)
        raise AuthError("Invalid credentials")

    actor = Actor(id=user.id, email=user.email, role=user.role)
    token = create_access_token(actor.to_claims())
    logger.info("auth.login", user_id=user.id)
    return LoginResponse(token=token, user=UserProfile.model_validate(user))


@router.get("/validate", response_model=ValidateResponse)
async def validate(
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Confirm the token still maps to an active user."""
    user = await db.get(User, actor.id)
    if user is None:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthError("User account is inactive")
    return ValidateResponse(user=UserProfile.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(actor: Actor = Depends(get_current_user)):
    logger.info("auth.logout", user_id=actor.id)
    return MessageResponse(message="Logged out successfully")
