"""Preference filter request/response schemas."""

from __future__ import annotations

from pydantic import Field

from movienight.schema.base import CamelModel


class FilterView(CamelModel):
    """One household filter as shown to clients."""
    label_key: str
    max_intensity: int
    hard_no: bool = False


class UpdateFilterPayload(CamelModel):
    label_key: str = ""
    max_intensity: float | None = None
    hard_no: bool = False


class FilterLabelsPayload(CamelModel):
    """Payload for bulk add/remove of filter labels."""
    labels: list[str] = Field(default_factory=list)


class PreferencesView(CamelModel):
    household_id: str
    household_name: str | None = None
    filters: list[FilterView] = Field(default_factory=list)
    revision: int = 0
