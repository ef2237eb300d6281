"""Household context and member schemas."""

from __future__ import annotations

from datetime import date

from movienight.schema.base import CamelModel


class HouseholdContextRead(CamelModel):
    """Resolved household for the current identity."""
    user_id: str
    email: str | None = None
    membership_id: str
    display_name: str | None = None
    household_id: str
    household_name: str | None = None


class HouseholdMemberRead(CamelModel):
    id: str
    display_name: str | None = None
    birthday: date | None = None
    email: str | None = None
