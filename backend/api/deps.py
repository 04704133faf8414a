"""
Renuga CRM API Dependencies

Dependency injection for DB sessions, auth, and the current actor.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.security import Actor, decode_access_token
from db.session import AsyncSessionLocal

settings = get_settings()
security = HTTPBearer(auto_error=False)

# Dev actor must match the admin in scripts/seed_data.py
DEV_ACTOR = Actor(id="U004", email="admin@renuga.com", role="Admin")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    """Decode the bearer token into an Actor. Bypassed in debug mode."""
    if settings.debug:
        return DEV_ACTOR

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = decode_access_token(credentials.credentials)
    actor = Actor.from_claims(payload) if payload is not None else None
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return actor


def require_roles(*roles: str):
    """Dependency factory restricting a route to the given user roles."""

    async def _check(actor: Actor = Depends(get_current_user)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return actor

    return _check
