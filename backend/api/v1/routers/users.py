"""
Users Router — staff directory. Password hashes never leave the server.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, require_roles
from api.v1.schemas import CamelModel
from core.security import Actor
from crm.constants import UserRole
from db.models import User

router = APIRouter(prefix="/api/v1/users", tags=["users"])


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(require_roles(UserRole.ADMIN.value)),
):
    """Admin only."""
    result = await db.execute(select(User).order_by(User.id))
    return result.scalars().all()
