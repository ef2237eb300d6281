from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_db, get_household_context
from movienight.schema.base import ActionResult
from movienight.schema.preferences import FilterLabelsPayload, PreferencesView, UpdateFilterPayload
from movienight.services import filter_service, view_service
from movienight.services.household_service import ActiveHouseholdContext

router = APIRouter()


@router.get("", response_model=PreferencesView)
async def read_preferences(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> PreferencesView | Response:
    revision = await view_service.get_revision(session, context.household_id)
    etag = view_service.view_etag(context.household_id, revision)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})
    view = await view_service.build_preferences_view(session, context)
    response.headers["ETag"] = view_service.view_etag(context.household_id, view.revision)
    return view


@router.put("/filters", response_model=ActionResult, response_model_exclude_none=True)
async def update_filter_endpoint(
    payload: UpdateFilterPayload,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await filter_service.update_filter(
        session, context.household_id, payload.label_key, payload.max_intensity, payload.hard_no
    )
    return ActionResult.success()


@router.post("/filters", response_model=ActionResult, response_model_exclude_none=True)
async def add_filters_endpoint(
    payload: FilterLabelsPayload,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await filter_service.add_filters(session, context.household_id, payload.labels)
    return ActionResult.success()


@router.post("/filters/remove", response_model=ActionResult, response_model_exclude_none=True)
async def remove_filters_endpoint(
    payload: FilterLabelsPayload,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await filter_service.remove_filters(session, context.household_id, payload.labels)
    return ActionResult.success()


@router.post("/filters/reset", response_model=ActionResult, response_model_exclude_none=True)
async def reset_filters_endpoint(
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ActionResult:
    await filter_service.reset_filters(session, context.household_id)
    return ActionResult.success()
