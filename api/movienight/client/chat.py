"""Client-side chat conversation with an optimistic pending reply."""

from __future__ import annotations

import itertools
from datetime import date, datetime, timezone
from typing import Sequence

from movienight.client.api import MovieNightClient
from movienight.client.notifications import Notifier
from movienight.client.sync import MutationIntent, MutationKind, OptimisticCollection
from movienight.core.observability import EventLogger
from movienight.schema.base import ActionResult
from movienight.schema.chat import ChatMessageRead, ChatReply, HistoryEntry, RecommendationMovie
from movienight.schema.preferences import FilterView

HISTORY_WINDOW = 8
PENDING_PREFIX = "assistant-pending-"

SEND_FAILED = "We couldn't reach the movie assistant. Please try again."
LOG_SAVED = "Saved to your family log."
LOG_FAILED = "Unable to log the movie right now."
BLOCK_FAILED = "Couldn't update that preference yet."


def message_signature(messages: Sequence[ChatMessageRead]) -> str:
    return "|".join(f"{message.id}::{message.role}" for message in messages)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatSession:
    """Household conversation state; a pending assistant bubble stands in until the reply arrives."""

    def __init__(
        self,
        client: MovieNightClient,
        *,
        household_id: str | None = None,
        notifier: Notifier | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self.client = client
        self.household_id = household_id
        self._sequence = itertools.count(1)
        self.notifier = notifier or Notifier()
        self.events = events or EventLogger("movienight.client.chat")
        self.messages: OptimisticCollection[ChatMessageRead] = OptimisticCollection(
            signature=message_signature,
            notifier=self.notifier,
            events=self.events,
            name="messages",
        )

    @property
    def items(self) -> list[ChatMessageRead]:
        return self.messages.items

    @property
    def sending(self) -> bool:
        return self.messages.in_flight

    async def refresh(self) -> bool:
        history = await self.client.chat_history()
        return self.messages.receive(history.messages)

    async def send(self, text: str, *, filters: Sequence[FilterView] | None = None) -> bool:
        """Send one message; the user turn stays visible even when the reply fails."""
        trimmed = (text or "").strip()
        if not trimmed or self.messages.in_flight:
            return False

        current = self.messages.items
        history = [
            HistoryEntry(role=message.role, content=message.content)
            for message in current[-HISTORY_WINDOW:]
            if not message.pending
        ]
        serial = next(self._sequence)
        user_message = ChatMessageRead(id=f"user-{serial}", role="user", content=trimmed, created_at=_now())
        placeholder = ChatMessageRead(
            id=f"{PENDING_PREFIX}{serial}", role="assistant", content="", created_at=_now(), pending=True
        )
        replies: list[ChatReply] = []

        async def _confirm() -> ActionResult:
            reply = await self.client.chat(
                trimmed,
                household_id=self.household_id,
                filters=list(filters) if filters is not None else None,
                history=history,
            )
            replies.append(reply)
            return ActionResult.success()

        def _resolve(items: list[ChatMessageRead]) -> list[ChatMessageRead]:
            reply = replies[-1]
            assistant = ChatMessageRead(
                id=reply.id or f"assistant-{serial}",
                role="assistant",
                content=reply.message,
                created_at=_now(),
                recommendations=reply.recommendations,
            )
            return [item for item in items if item.id != placeholder.id] + [assistant]

        intent = MutationIntent(
            kind=MutationKind.SEND,
            optimistic=current + [user_message, placeholder],
            rollback=current + [user_message],
            success_message="Reply received",
            failure_message=SEND_FAILED,
        )
        return await self.messages.commit(intent, _confirm, _resolve)

    async def log_movie(
        self,
        movie_id: str,
        *,
        watch_date: date | None = None,
        watched_by: list[str] | None = None,
        rating: float | None = None,
    ) -> bool:
        result = await self.client.log_movie(
            movie_id,
            watch_date=watch_date,
            watched_by=watched_by,
            rating=rating,
            household_id=self.household_id,
        )
        if result.ok:
            self.notifier.success(LOG_SAVED)
            return True
        self.events.warning("log_movie_failed", movie_id=movie_id, error=result.error)
        self.notifier.error(LOG_FAILED)
        return False

    async def block_recommendation(self, movie: RecommendationMovie) -> bool:
        if not movie.movie_id:
            self.notifier.error(BLOCK_FAILED)
            return False
        result = await self.client.block_recommendation(movie.movie_id, household_id=self.household_id)
        if result.ok:
            self.notifier.success(f"We'll skip {movie.title} going forward.")
            return True
        self.events.warning("block_recommendation_failed", movie_id=movie.movie_id, error=result.error)
        self.notifier.error(BLOCK_FAILED)
        return False
