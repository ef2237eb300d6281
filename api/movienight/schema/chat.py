"""Chat relay request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from movienight.schema.base import CamelModel
from movienight.schema.preferences import FilterView


class RecommendationMovie(CamelModel):
    """Movie suggested by the recommendation agent; unknown fields are kept."""
    model_config = CamelModel.model_config | {"extra": "allow"}

    title: str
    movie_id: str | None = None
    release_year: int | None = None
    runtime_minutes: int | None = None
    mpaa_rating: str | None = None
    synopsis: str | None = None
    poster_url: str | None = None


class HistoryEntry(CamelModel):
    role: str
    content: str


class ChatRequest(CamelModel):
    message: str = ""
    household_id: str | None = None
    filters: list[FilterView] | None = None
    history: list[HistoryEntry] | None = None


class ChatReply(CamelModel):
    message: str
    recommendations: list[RecommendationMovie] | None = None
    id: str | None = None


class ChatMessageRead(CamelModel):
    """Chat history entry; `pending` is only ever set client-side."""
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime
    pending: bool = False
    recommendations: list[RecommendationMovie] | None = None


def recommendations_from_metadata(metadata: dict[str, Any] | None) -> list[RecommendationMovie] | None:
    """Extract well-formed recommendations stored alongside an assistant message."""
    if not metadata:
        return None
    possible = metadata.get("recommendations")
    if not isinstance(possible, list):
        return None
    return [
        RecommendationMovie.model_validate(item)
        for item in possible
        if isinstance(item, dict) and isinstance(item.get("title"), str)
    ]


class ChatHistory(CamelModel):
    messages: list[ChatMessageRead] = Field(default_factory=list)
