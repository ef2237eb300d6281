from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.security import Identity, authenticate, challenge_headers
from movienight.db.session import get_session
from movienight.services import household_service
from movienight.services.household_service import ActiveHouseholdContext


async def get_db() -> AsyncSession:
    async for session in get_session():
        yield session


async def get_current_identity(authorization: str | None = Header(default=None)) -> Identity:
    identity = authenticate(authorization)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers=challenge_headers(),
        )
    return identity


async def get_optional_identity(authorization: str | None = Header(default=None)) -> Identity | None:
    return authenticate(authorization)


async def get_household_context(
    session: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> ActiveHouseholdContext:
    context = await household_service.resolve_active_household(session, identity)
    if context is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Household not found")
    return context
