from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_db, get_household_context
from movienight.schema.household import HouseholdContextRead, HouseholdMemberRead
from movienight.services import household_service, view_service
from movienight.services.household_service import ActiveHouseholdContext

router = APIRouter()


@router.get("/me", response_model=HouseholdContextRead)
async def read_my_household(
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> HouseholdContextRead:
    return view_service.context_read(context)


@router.get("/me/members", response_model=list[HouseholdMemberRead])
async def list_my_household_members(
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> list[HouseholdMemberRead]:
    members = await household_service.list_household_members(session, context.household_id)
    return [view_service.member_read(member) for member in members]
