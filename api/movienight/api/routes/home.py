from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_db, get_household_context
from movienight.schema.views import HomeView
from movienight.services import view_service
from movienight.services.household_service import ActiveHouseholdContext

router = APIRouter()


@router.get("", response_model=HomeView)
async def read_home(
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> HomeView:
    return await view_service.build_home_view(session, context)
