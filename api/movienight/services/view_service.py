"""Preference and home view assembly plus revision-based invalidation."""

from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.errors import ServiceError, is_missing_relation
from movienight.core.observability import EventLogger
from movienight.models.household import Household, HouseholdMember
from movienight.schema.household import HouseholdContextRead, HouseholdMemberRead
from movienight.schema.preferences import FilterView, PreferencesView
from movienight.schema.views import HomeView
from movienight.services import chat_service, household_service
from movienight.services.household_service import ActiveHouseholdContext

events = EventLogger("movienight.services.views")

VIEWS = ("preferences", "home")


async def invalidate_household_views(session: AsyncSession, household_id: uuid.UUID) -> None:
    """Bump the household's view revision inside the caller's transaction."""
    await session.execute(
        update(Household)
        .where(Household.id == household_id)
        .values(views_revision=Household.views_revision + 1)
        .execution_options(synchronize_session=False)
    )
    events.debug("views_invalidated", household_id=str(household_id), views=list(VIEWS))


async def get_revision(session: AsyncSession, household_id: uuid.UUID) -> int:
    try:
        result = await session.execute(select(Household.views_revision).where(Household.id == household_id))
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_missing_relation(exc):
            return 0
        raise ServiceError.persistence(exc) from exc
    return int(result.scalar_one_or_none() or 0)


def view_etag(household_id: uuid.UUID, revision: int) -> str:
    return f'W/"{household_id}:{revision}"'


async def build_preferences_view(session: AsyncSession, context: ActiveHouseholdContext) -> PreferencesView:
    from movienight.services import filter_service

    filters = await filter_service.list_filters(session, context.household_id)
    return PreferencesView(
        household_id=str(context.household_id),
        household_name=context.household_name,
        filters=[FilterView.model_validate(limit) for limit in filters],
        revision=await get_revision(session, context.household_id),
    )


def context_read(context: ActiveHouseholdContext) -> HouseholdContextRead:
    return HouseholdContextRead(
        user_id=context.identity.id,
        email=context.identity.email,
        membership_id=str(context.membership_id),
        display_name=context.display_name,
        household_id=str(context.household_id),
        household_name=context.household_name,
    )


def member_read(member: HouseholdMember) -> HouseholdMemberRead:
    return HouseholdMemberRead(
        id=str(member.id),
        display_name=member.display_name,
        birthday=member.birthday,
        email=member.user_email,
    )


async def build_home_view(session: AsyncSession, context: ActiveHouseholdContext) -> HomeView:
    """Assemble filters, members, and recent chat history for the home screen."""
    from movienight.services import filter_service

    filters = await filter_service.list_filters(session, context.household_id)
    members = await household_service.list_household_members(session, context.household_id)
    messages = await chat_service.list_history(session, context.household_id)
    return HomeView(
        household=context_read(context),
        filters=[FilterView.model_validate(limit) for limit in filters],
        members=[member_read(member) for member in members],
        messages=messages,
        revision=await get_revision(session, context.household_id),
    )
