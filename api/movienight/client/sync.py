"""Optimistic mutation engine for client-held collections.

A collection is either settled (local items equal the last server-confirmed
items) or pending (one optimistic mutation applied locally and awaiting
confirmation). Invariants:

- At most one mutation is in flight per collection.
- While a mutation is pending, server snapshots whose signature differs from
  the pending signature are not adopted.
- Every terminal transition (commit or rollback) emits exactly one toast.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Sequence, TypeVar

from movienight.client.notifications import Notifier
from movienight.core.observability import EventLogger
from movienight.schema.base import ActionResult
from movienight.schema.preferences import FilterView

T = TypeVar("T")

GENERIC_FAILURE = "Something went wrong. Please try again."


class SyncState(str, enum.Enum):
    SETTLED = "settled"
    PENDING = "pending"


class MutationKind(str, enum.Enum):
    UPDATE = "update"
    ADD = "add"
    REMOVE = "remove"
    RESET = "reset"
    SEND = "send"


class MutationInFlightError(RuntimeError):
    """Raised when a second mutation is started before the first resolves."""


@dataclass(slots=True)
class MutationIntent(Generic[T]):
    """One optimistic change: what to show now and what to restore on failure.

    `rollback` defaults to the settled items at the moment the mutation starts.
    `failure_message` is used when the confirmation reports no error text of its own.
    """
    kind: MutationKind
    optimistic: list[T]
    affected_keys: tuple[str, ...] = ()
    rollback: list[T] | None = None
    success_message: str | None = None
    failure_message: str | None = None


def filter_signature(filters: Iterable[FilterView]) -> str:
    """Fingerprint a filter list independent of its order."""
    return "|".join(
        sorted(f"{item.label_key}::{item.max_intensity}::{1 if item.hard_no else 0}" for item in filters)
    )


class OptimisticCollection(Generic[T]):
    """Local and settled views of one server-owned collection."""

    def __init__(
        self,
        items: Iterable[T] = (),
        *,
        signature: Callable[[Sequence[T]], str],
        notifier: Notifier | None = None,
        events: EventLogger | None = None,
        name: str = "collection",
    ) -> None:
        self.name = name
        self._signature = signature
        self._items: list[T] = list(items)
        self._settled: list[T] = list(self._items)
        self._pending_signature: str | None = None
        self._in_flight = False
        self.notifier = notifier or Notifier()
        self.events = events or EventLogger("movienight.client.sync")

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def settled(self) -> list[T]:
        return list(self._settled)

    @property
    def pending_signature(self) -> str | None:
        return self._pending_signature

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def state(self) -> SyncState:
        return SyncState.PENDING if self._pending_signature is not None else SyncState.SETTLED

    def signature(self, items: Sequence[T] | None = None) -> str:
        return self._signature(self._items if items is None else items)

    def edit(self, items: Iterable[T]) -> None:
        """Replace local items with a draft that is not sent anywhere."""
        self._items = list(items)

    def receive(self, snapshot: Iterable[T]) -> bool:
        """Offer a server snapshot; returns False when it was suppressed."""
        incoming = list(snapshot)
        if self._pending_signature is not None:
            incoming_signature = self._signature(incoming)
            if incoming_signature != self._pending_signature:
                self.events.debug(
                    "snapshot_suppressed",
                    collection=self.name,
                    pending=self._pending_signature,
                    incoming=incoming_signature,
                )
                return False
            self._pending_signature = None
            self.events.debug("pending_confirmed_by_snapshot", collection=self.name)
        self._items = list(incoming)
        self._settled = list(incoming)
        return True

    async def commit(
        self,
        intent: MutationIntent[T],
        confirm: Callable[[], Awaitable[ActionResult]],
        resolve: Callable[[list[T]], list[T]] | None = None,
    ) -> bool:
        """Apply an intent optimistically and reconcile it with the confirmation.

        `resolve` maps the optimistic items onto the authoritative ones once the
        confirmation succeeds (for example to swap a placeholder for the real row).
        """
        if self._in_flight:
            raise MutationInFlightError(f"A {self.name} change is already being saved")

        rollback = list(intent.rollback) if intent.rollback is not None else list(self._settled)
        optimistic = list(intent.optimistic)
        self._in_flight = True
        self._items = optimistic
        self._pending_signature = self._signature(optimistic)
        self.events.debug(
            "mutation_started",
            collection=self.name,
            kind=intent.kind.value,
            keys=list(intent.affected_keys),
        )
        try:
            try:
                result = await confirm()
            except Exception as exc:  # noqa: BLE001
                self.events.error(
                    "mutation_confirm_raised",
                    collection=self.name,
                    kind=intent.kind.value,
                    error=f"{exc.__class__.__name__}: {exc}",
                )
                result = ActionResult.failure(intent.failure_message or GENERIC_FAILURE)

            if result.ok:
                final = resolve(list(optimistic)) if resolve is not None else optimistic
                self._items = list(final)
                self._settled = list(final)
                self._pending_signature = None
                self.events.info("mutation_committed", collection=self.name, kind=intent.kind.value)
                self.notifier.success(intent.success_message or "Saved")
                return True

            self._items = list(rollback)
            self._settled = list(rollback)
            self._pending_signature = None
            error = result.error or intent.failure_message or GENERIC_FAILURE
            self.events.warning(
                "mutation_rolled_back",
                collection=self.name,
                kind=intent.kind.value,
                error=error,
            )
            self.notifier.error(error)
            return False
        finally:
            self._in_flight = False
