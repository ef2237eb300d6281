"""Chat relay between households and the recommendation webhook."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.core.errors import ServiceError, is_missing_relation
from movienight.core.observability import EventLogger
from movienight.models.chat import ChatRole, HouseholdChatMessage
from movienight.schema.chat import (
    ChatMessageRead,
    ChatReply,
    ChatRequest,
    recommendations_from_metadata,
)
from movienight.services import webhook_service
from movienight.services.household_service import ActiveHouseholdContext

FALLBACK_MESSAGE = "The movie assistant is unavailable right now. Please try again shortly."
PREVIEW_TEMPLATE = "Preview response: you said “{message}”. Configure a chat webhook to enable full conversations."

default_events = EventLogger("movienight.services.chat")


async def persist_message(
    session: AsyncSession,
    *,
    household_id: uuid.UUID,
    role: ChatRole,
    content: str,
    metadata: dict[str, Any] | None = None,
    user_id: str | None = None,
    events: EventLogger | None = None,
) -> HouseholdChatMessage | None:
    """Store a chat message; failures are logged and never interrupt the conversation."""
    events = events or default_events
    message = HouseholdChatMessage(
        household_id=household_id,
        role=role,
        content=content,
        metadata_=metadata,
        user_id=user_id,
    )
    session.add(message)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        if not is_missing_relation(exc):
            events.error(
                "chat_persist_failed",
                household_id=str(household_id),
                role=role.value,
                error=str(exc),
            )
        return None
    return message


def _reply_from_webhook(response: webhook_service.WebhookResponse) -> ChatReply:
    """Map a webhook body onto a reply: fields of a JSON object, otherwise the body text itself."""
    if not response.text.strip():
        raise webhook_service.WebhookError("Empty webhook body")
    try:
        parsed = response.json()
    except ValueError:
        return ChatReply(message=response.text)
    if not isinstance(parsed, dict):
        return ChatReply(message=response.text)
    message = parsed.get("message")
    recommendations = parsed.get("recommendations")
    reply_id = parsed.get("id")
    return ChatReply(
        message=message if isinstance(message, str) else response.text,
        recommendations=recommendations_from_metadata({"recommendations": recommendations})
        if isinstance(recommendations, list)
        else None,
        id=str(reply_id) if reply_id is not None else None,
    )


async def relay(
    session: AsyncSession,
    context: ActiveHouseholdContext,
    request: ChatRequest,
    *,
    events: EventLogger | None = None,
) -> ChatReply:
    """Persist the user turn, ask the webhook for a reply, persist and return it.

    Implementation notes:
    - Without a configured webhook the relay answers with a preview echo.
    - Webhook failures of any kind become one fixed fallback message; details stay in server logs.
    """
    events = events or default_events
    message = (request.message or "").strip()
    if not message:
        raise ServiceError.validation("Message is required")

    household_id = context.target_household_id(request.household_id)
    filters = [item.model_dump(by_alias=True) for item in request.filters] if request.filters is not None else None
    history = [item.model_dump(by_alias=True) for item in request.history] if request.history is not None else None

    await persist_message(
        session,
        household_id=household_id,
        role=ChatRole.USER,
        content=message,
        metadata={"filters": filters, "history": history},
        user_id=context.identity.id,
        events=events,
    )

    url = webhook_service.webhook_url(webhook_service.CHAT)
    if not url:
        reply = ChatReply(message=PREVIEW_TEMPLATE.format(message=message))
        events.info("chat_preview_reply", household_id=str(household_id))
    else:
        payload = {
            "message": message,
            "householdId": str(household_id),
            "filters": filters,
            "history": history,
        }
        try:
            response = await webhook_service.deliver(webhook_service.CHAT, url, payload)
            reply = _reply_from_webhook(response)
        except webhook_service.WebhookError as exc:
            events.error("chat_webhook_failed", household_id=str(household_id), error=str(exc))
            reply = ChatReply(message=FALLBACK_MESSAGE)

    metadata = None
    if reply.recommendations:
        metadata = {"recommendations": [item.model_dump(by_alias=True) for item in reply.recommendations]}
    stored = await persist_message(
        session,
        household_id=household_id,
        role=ChatRole.ASSISTANT,
        content=reply.message,
        metadata=metadata,
        events=events,
    )
    if reply.id is None and stored is not None:
        reply.id = str(stored.id)
    return reply


def message_read(row: HouseholdChatMessage) -> ChatMessageRead:
    return ChatMessageRead(
        id=str(row.id),
        role=row.role.value,
        content=row.content,
        created_at=row.created_at,
        recommendations=recommendations_from_metadata(row.metadata_),
    )


async def list_history(
    session: AsyncSession, household_id: uuid.UUID, *, limit: int | None = None
) -> list[ChatMessageRead]:
    """Return the most recent messages in chronological order; a missing table reads as empty."""
    limit = limit or settings.chat_history_limit
    stmt = (
        select(HouseholdChatMessage)
        .where(HouseholdChatMessage.household_id == household_id)
        .order_by(HouseholdChatMessage.created_at.desc(), HouseholdChatMessage.id.desc())
        .limit(limit)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_missing_relation(exc):
            return []
        raise ServiceError.persistence(exc) from exc
    rows = list(result.scalars().all())
    rows.reverse()
    return [message_read(row) for row in rows]
