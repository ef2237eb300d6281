"""SQLAlchemy models for households, preferences, chat, and watch history."""

from movienight.models.chat import ChatRole, HouseholdChatMessage
from movienight.models.household import Household, HouseholdMember
from movienight.models.preferences import ContentLabel, HouseholdFilterLimit
from movienight.models.watch import HouseholdBlockedMovie, HouseholdWatchLog

__all__ = [
    "ChatRole",
    "ContentLabel",
    "Household",
    "HouseholdBlockedMovie",
    "HouseholdChatMessage",
    "HouseholdFilterLimit",
    "HouseholdMember",
    "HouseholdWatchLog",
]
