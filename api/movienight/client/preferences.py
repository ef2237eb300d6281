"""Client-side preference editing on top of the optimistic sync engine."""

from __future__ import annotations

from typing import Iterable

from movienight.client.api import MovieNightClient
from movienight.client.notifications import Notifier
from movienight.client.sync import MutationIntent, MutationKind, OptimisticCollection, filter_signature
from movienight.core.observability import EventLogger
from movienight.schema.preferences import FilterView
from movienight.utils.labels import (
    DEFAULT_FILTERS,
    DEFAULT_INTENSITY,
    MAX_INTENSITY,
    MIN_INTENSITY,
    clamp_intensity,
    default_intensity_for,
    format_filter_label,
    normalize_label_key,
    parse_label_input,
)


def _copy(filters: Iterable[FilterView]) -> list[FilterView]:
    return [item.model_copy() for item in filters]


class PreferencesSession:
    """Local filter state for one household, reconciled with the server optimistically."""

    def __init__(
        self,
        client: MovieNightClient,
        *,
        notifier: Notifier | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self.client = client
        self.notifier = notifier or Notifier()
        self.events = events or EventLogger("movienight.client.preferences")
        self.filters: OptimisticCollection[FilterView] = OptimisticCollection(
            signature=filter_signature,
            notifier=self.notifier,
            events=self.events,
            name="filters",
        )
        self.household_name: str | None = None
        self._etag: str | None = None
        self._remembered_intensity: dict[str, int] = {}

    @property
    def items(self) -> list[FilterView]:
        return self.filters.items

    def _find(self, label_key: str, filters: Iterable[FilterView] | None = None) -> FilterView | None:
        source = self.filters.items if filters is None else filters
        return next((item for item in source if item.label_key == label_key), None)

    async def refresh(self) -> bool:
        """Pull the server view and offer it to the collection; False when unchanged or suppressed."""
        view, etag = await self.client.get_preferences(etag=self._etag)
        if view is None:
            return False
        self.household_name = view.household_name
        adopted = self.filters.receive(view.filters)
        if adopted:
            self._etag = etag
        return adopted

    def set_intensity(self, label_key: str, value: float) -> None:
        intensity = clamp_intensity(value, minimum=MIN_INTENSITY)
        self.filters.edit(
            item.model_copy(update={"max_intensity": intensity}) if item.label_key == label_key else item
            for item in self.filters.items
        )

    def toggle_hard_no(self, label_key: str, checked: bool) -> None:
        """Flip the hard-no flag locally, remembering the intensity it replaced."""
        updated: list[FilterView] = []
        for item in self.filters.items:
            if item.label_key != label_key:
                updated.append(item)
                continue
            if checked:
                previous = item.max_intensity if item.max_intensity > 0 else DEFAULT_INTENSITY
                self._remembered_intensity[label_key] = previous
                updated.append(item.model_copy(update={"hard_no": True, "max_intensity": 0}))
                continue
            remembered = self._remembered_intensity.pop(label_key, None)
            if remembered is None:
                settled = self._find(label_key, self.filters.settled)
                persisted = settled.max_intensity if settled is not None else DEFAULT_INTENSITY
                remembered = persisted if persisted > 0 else DEFAULT_INTENSITY
            restored = max(1, min(MAX_INTENSITY, remembered))
            updated.append(item.model_copy(update={"hard_no": False, "max_intensity": restored}))
        self.filters.edit(updated)

    async def save_filter(self, label_key: str) -> bool:
        snapshot = _copy(self.filters.items)
        target = self._find(label_key, snapshot)
        if target is None:
            return False
        intent = MutationIntent(
            kind=MutationKind.UPDATE,
            optimistic=snapshot,
            affected_keys=(label_key,),
            success_message=f"{format_filter_label(label_key)} saved",
            failure_message="Unable to save filter",
        )
        return await self.filters.commit(
            intent,
            lambda: self.client.update_filter(target.label_key, target.max_intensity, target.hard_no),
        )

    async def remove_filters(self, label_keys: Iterable[str]) -> bool:
        selected = [key for key in dict.fromkeys(label_keys) if key]
        if not selected:
            self.notifier.error("Choose filters to remove")
            return False
        snapshot = _copy(self.filters.items)
        remaining = [item for item in snapshot if item.label_key not in selected]
        intent = MutationIntent(
            kind=MutationKind.REMOVE,
            optimistic=remaining,
            affected_keys=tuple(selected),
            rollback=snapshot,
            success_message="Filters removed",
            failure_message="Unable to remove filters",
        )
        return await self.filters.commit(intent, lambda: self.client.remove_filters(selected))

    async def reset(self) -> bool:
        snapshot = _copy(self.filters.items)
        defaults = [
            FilterView(label_key=preset.label_key, max_intensity=preset.default_intensity, hard_no=False)
            for preset in DEFAULT_FILTERS
        ]
        self._remembered_intensity.clear()
        intent = MutationIntent(
            kind=MutationKind.RESET,
            optimistic=defaults,
            affected_keys=tuple(preset.label_key for preset in DEFAULT_FILTERS),
            rollback=snapshot,
            success_message="Filters reset to defaults",
            failure_message="Unable to reset filters",
        )
        return await self.filters.commit(intent, self.client.reset_filters)

    async def add(self, raw_input: str) -> bool:
        """Add comma or newline separated labels that the household does not have yet."""
        parsed = parse_label_input(raw_input)
        if not parsed:
            self.notifier.error("Add at least one filter label")
            return False
        snapshot = _copy(self.filters.items)
        existing = {item.label_key.lower() for item in snapshot}
        unique: dict[str, str] = {}
        for label in parsed:
            key = normalize_label_key(label)
            if key and key not in existing and key not in unique:
                unique[key] = label
        if not unique:
            self.notifier.error("Those filters already exist")
            return False

        new_rows = [
            FilterView(label_key=key, max_intensity=default_intensity_for(key), hard_no=False) for key in unique
        ]
        intent = MutationIntent(
            kind=MutationKind.ADD,
            optimistic=snapshot + new_rows,
            affected_keys=tuple(unique),
            rollback=snapshot,
            success_message="Filters added",
            failure_message="Unable to add filters",
        )
        labels = list(unique.values())
        return await self.filters.commit(intent, lambda: self.client.add_filters(labels))
