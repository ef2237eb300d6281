"""Single-slot, auto-dismissing toast notifications."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Literal

ToastKind = Literal["success", "error", "info"]

TOAST_DURATION_SECONDS = 3.6


@dataclass(frozen=True, slots=True)
class Toast:
    kind: ToastKind
    text: str
    shown_at: float
    expires_at: float


class Notifier:
    """Hold at most one toast; a new toast replaces the current one instead of queueing."""

    def __init__(
        self,
        *,
        duration: float = TOAST_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration = duration
        self._clock = clock
        self._current: Toast | None = None
        self._listeners: list[Callable[[Toast], None]] = []
        self.history: list[Toast] = []

    def show(self, kind: ToastKind, text: str) -> Toast:
        now = self._clock()
        toast = Toast(kind=kind, text=text, shown_at=now, expires_at=now + self.duration)
        self._current = toast
        self.history.append(toast)
        for listener in list(self._listeners):
            listener(toast)
        return toast

    def success(self, text: str) -> Toast:
        return self.show("success", text)

    def error(self, text: str) -> Toast:
        return self.show("error", text)

    @property
    def current(self) -> Toast | None:
        """The visible toast, or None once it has expired."""
        if self._current is not None and self._clock() >= self._current.expires_at:
            self._current = None
        return self._current

    def dismiss(self) -> None:
        self._current = None

    def subscribe(self, listener: Callable[[Toast], None]) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
