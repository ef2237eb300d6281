from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_db, get_household_context
from movienight.schema.base import ActionResult
from movienight.schema.watch import BlockRecommendationPayload, LogMoviePayload
from movienight.services import watch_service
from movienight.services.household_service import ActiveHouseholdContext

router = APIRouter()


@router.post("/log-movie", response_model=ActionResult, response_model_exclude_none=True)
async def log_movie_endpoint(
    payload: LogMoviePayload,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await watch_service.log_watch(session, context, payload)
    return ActionResult.success()


@router.post("/recommendations/do-not-recommend", response_model=ActionResult, response_model_exclude_none=True)
async def do_not_recommend_endpoint(
    payload: BlockRecommendationPayload,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await watch_service.block_recommendation(session, context, payload)
    return ActionResult.success()
