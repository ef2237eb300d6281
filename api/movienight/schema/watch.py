"""Log-watch and block-recommendation payloads."""

from __future__ import annotations

from datetime import date

from pydantic import Field

from movienight.schema.base import CamelModel


class LogMoviePayload(CamelModel):
    movie_id: str = ""
    watch_date: date | None = None
    watched_by: list[str] | None = None
    rating: float | None = Field(default=None, ge=0, le=10)
    household_id: str | None = None


class BlockRecommendationPayload(CamelModel):
    movie_id: str = ""
    household_id: str | None = None
