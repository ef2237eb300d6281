"""Household context resolution and membership listing."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from movienight.core.errors import HouseholdNotFoundError, ServiceError, is_missing_relation
from movienight.core.observability import EventLogger
from movienight.core.security import Identity
from movienight.models.household import Household, HouseholdMember

events = EventLogger("movienight.services.households")


@dataclass(frozen=True, slots=True)
class ActiveHouseholdContext:
    """The household an identity acts on, resolved once per request."""
    identity: Identity
    membership_id: uuid.UUID
    display_name: str | None
    household_id: uuid.UUID
    household_name: str | None

    def target_household_id(self, requested: str | uuid.UUID | None) -> uuid.UUID:
        """Return the household a request acts on; foreign ids in the body are ignored."""
        if requested is not None and str(requested) != str(self.household_id):
            events.warning(
                "household_id_mismatch",
                requested=str(requested),
                resolved=str(self.household_id),
                user_id=self.identity.id,
            )
        return self.household_id


async def resolve_active_household(session: AsyncSession, identity: Identity) -> ActiveHouseholdContext | None:
    """Return the identity's household context, or None when onboarding is incomplete.

    Implementation notes:
    - The oldest membership wins when an identity belongs to several households.
    - A missing membership table is treated the same as no membership.
    """
    stmt = (
        select(HouseholdMember)
        .options(selectinload(HouseholdMember.household))
        .where(HouseholdMember.user_id == identity.id)
        .order_by(HouseholdMember.created_at.asc(), HouseholdMember.id.asc())
        .limit(1)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_missing_relation(exc):
            events.warning("household_schema_missing", user_id=identity.id)
            return None
        raise ServiceError.persistence(exc) from exc
    membership = result.scalar_one_or_none()
    if membership is None:
        return None
    household = membership.household
    return ActiveHouseholdContext(
        identity=identity,
        membership_id=membership.id,
        display_name=membership.display_name,
        household_id=membership.household_id,
        household_name=household.name if household else None,
    )


async def require_active_household(session: AsyncSession, identity: Identity) -> ActiveHouseholdContext:
    """Resolve the household context or fail hard for callers without a fallback."""
    context = await resolve_active_household(session, identity)
    if context is None:
        raise HouseholdNotFoundError("No active household context")
    return context


async def list_household_members(session: AsyncSession, household_id: uuid.UUID) -> list[HouseholdMember]:
    """List members ordered by display name; an unprovisioned table yields no members."""
    stmt = (
        select(HouseholdMember)
        .where(HouseholdMember.household_id == household_id)
        .order_by(HouseholdMember.display_name.asc())
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_missing_relation(exc):
            return []
        raise ServiceError.persistence(exc) from exc
    return list(result.scalars().all())


async def create_household(
    session: AsyncSession,
    name: str | None,
    *,
    identity: Identity | None = None,
    display_name: str | None = None,
) -> Household:
    """Create a household, optionally enrolling an identity as its first member."""
    household = Household(name=name)
    session.add(household)
    if identity is not None:
        household.members.append(
            HouseholdMember(user_id=identity.id, user_email=identity.email, display_name=display_name)
        )
    await session.commit()
    await session.refresh(household)
    events.info("household_created", household_id=str(household.id), with_member=identity is not None)
    return household


async def get_household(session: AsyncSession, household_id: uuid.UUID) -> Household | None:
    return await session.get(Household, household_id)
