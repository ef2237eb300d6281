"""Python client for the Movie Night API with optimistic local state."""

from movienight.client.api import ApiError, MovieNightClient
from movienight.client.chat import ChatSession
from movienight.client.notifications import Notifier, Toast
from movienight.client.preferences import PreferencesSession
from movienight.client.sync import (
    MutationInFlightError,
    MutationIntent,
    MutationKind,
    OptimisticCollection,
    SyncState,
    filter_signature,
)

__all__ = [
    "ApiError",
    "ChatSession",
    "MovieNightClient",
    "MutationInFlightError",
    "MutationIntent",
    "MutationKind",
    "Notifier",
    "OptimisticCollection",
    "PreferencesSession",
    "SyncState",
    "Toast",
    "filter_signature",
]
