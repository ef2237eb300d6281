"""Watch logging and do-not-recommend handling for households."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.errors import ErrorKind, ServiceError
from movienight.core.observability import EventLogger
from movienight.models.watch import HouseholdBlockedMovie, HouseholdWatchLog
from movienight.schema.watch import BlockRecommendationPayload, LogMoviePayload
from movienight.services import webhook_service
from movienight.services.household_service import ActiveHouseholdContext

events = EventLogger("movienight.services.watch")

LOG_FAILED_MESSAGE = "Unable to log the movie right now"
BLOCK_FAILED_MESSAGE = "Unable to update preferences"


def _require_movie_id(movie_id: str | None) -> str:
    value = (movie_id or "").strip()
    if not value:
        raise ServiceError.validation("movieId is required")
    return value


async def _forward(target: str, payload: dict[str, Any], failure_message: str, household_id: uuid.UUID) -> None:
    url = webhook_service.webhook_url(target)
    if not url:
        events.debug("webhook_not_configured", target=target, household_id=str(household_id))
        return
    try:
        await webhook_service.deliver(target, url, payload)
    except webhook_service.WebhookError as exc:
        events.error("watch_webhook_failed", target=target, household_id=str(household_id), error=str(exc))
        raise ServiceError(ErrorKind.WEBHOOK, failure_message) from exc


async def log_watch(
    session: AsyncSession, context: ActiveHouseholdContext, payload: LogMoviePayload
) -> HouseholdWatchLog:
    """Forward a watched movie to the log workflow, then record it for the household."""
    movie_id = _require_movie_id(payload.movie_id)
    household_id = context.target_household_id(payload.household_id)
    body = payload.model_dump(by_alias=True, mode="json")
    body.update(movieId=movie_id, householdId=str(household_id))
    await _forward(webhook_service.LOG_MOVIE, body, LOG_FAILED_MESSAGE, household_id)

    entry = HouseholdWatchLog(
        household_id=household_id,
        movie_id=movie_id,
        watch_date=payload.watch_date,
        watched_by=payload.watched_by,
        rating=payload.rating,
        logged_by=context.identity.id,
    )
    session.add(entry)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("watch_log_failed", household_id=str(household_id), movie_id=movie_id, error=str(exc))
        raise ServiceError.persistence(exc) from exc
    events.info("movie_logged", household_id=str(household_id), movie_id=movie_id)
    return entry


async def block_recommendation(
    session: AsyncSession, context: ActiveHouseholdContext, payload: BlockRecommendationPayload
) -> None:
    """Forward a do-not-recommend request, then store it; blocking twice is a no-op."""
    movie_id = _require_movie_id(payload.movie_id)
    household_id = context.target_household_id(payload.household_id)
    await _forward(
        webhook_service.BLOCK_RECOMMENDATION,
        {"movieId": movie_id, "householdId": str(household_id)},
        BLOCK_FAILED_MESSAGE,
        household_id,
    )

    try:
        existing = await session.execute(
            select(HouseholdBlockedMovie.id).where(
                HouseholdBlockedMovie.household_id == household_id,
                HouseholdBlockedMovie.movie_id == movie_id,
            )
        )
        if existing.scalar_one_or_none() is None:
            session.add(
                HouseholdBlockedMovie(household_id=household_id, movie_id=movie_id, blocked_by=context.identity.id)
            )
            await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("block_failed", household_id=str(household_id), movie_id=movie_id, error=str(exc))
        raise ServiceError.persistence(exc) from exc
    events.info("movie_blocked", household_id=str(household_id), movie_id=movie_id)


async def list_blocked(session: AsyncSession, household_id: uuid.UUID) -> list[str]:
    result = await session.execute(
        select(HouseholdBlockedMovie.movie_id)
        .where(HouseholdBlockedMovie.household_id == household_id)
        .order_by(HouseholdBlockedMovie.created_at.asc())
    )
    return list(result.scalars().all())
