"""Composite read models backing the home screen."""

from __future__ import annotations

from pydantic import Field

from movienight.schema.base import CamelModel
from movienight.schema.chat import ChatMessageRead
from movienight.schema.household import HouseholdContextRead, HouseholdMemberRead
from movienight.schema.preferences import FilterView


class HomeView(CamelModel):
    household: HouseholdContextRead
    filters: list[FilterView] = Field(default_factory=list)
    members: list[HouseholdMemberRead] = Field(default_factory=list)
    messages: list[ChatMessageRead] = Field(default_factory=list)
    revision: int = 0
