"""Household content-filter CRUD with label normalization and presets."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.errors import ServiceError, is_missing_relation
from movienight.core.observability import EventLogger
from movienight.models.preferences import ContentLabel, HouseholdFilterLimit
from movienight.services import view_service
from movienight.utils.labels import (
    DEFAULT_FILTERS,
    clamp_intensity,
    clean_label,
    default_intensity_for,
    format_filter_label,
    normalize_label_key,
)

events = EventLogger("movienight.services.filters")


@dataclass(frozen=True, slots=True)
class NormalizedLabel:
    key: str
    raw_label: str
    dictionary_label: str


def _dialect_insert(session: AsyncSession):
    """Return the dialect's INSERT construct supporting ON CONFLICT, if any."""
    dialect_name = session.bind.dialect.name if session.bind else None
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert

        return insert
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert

        return insert
    return None


def normalize_labels(labels: Iterable[str] | None) -> list[NormalizedLabel]:
    """Normalize raw labels, dropping empties and case-insensitive duplicates (first wins)."""
    unique: dict[str, NormalizedLabel] = {}
    for raw in labels or []:
        if not isinstance(raw, str):
            continue
        key = normalize_label_key(raw)
        if not key or key in unique:
            continue
        unique[key] = NormalizedLabel(
            key=key,
            raw_label=raw,
            dictionary_label=clean_label(raw) or format_filter_label(key),
        )
    return list(unique.values())


async def list_filters(session: AsyncSession, household_id: uuid.UUID) -> list[HouseholdFilterLimit]:
    """List a household's filters sorted by label key; a missing table reads as empty."""
    stmt = (
        select(HouseholdFilterLimit)
        .where(HouseholdFilterLimit.household_id == household_id)
        .order_by(HouseholdFilterLimit.label_key.asc())
        .execution_options(populate_existing=True)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_missing_relation(exc):
            return []
        raise ServiceError.persistence(exc) from exc
    return list(result.scalars().all())


async def _ensure_dictionary(session: AsyncSession, entries: list[tuple[str, str]]) -> None:
    """Create dictionary rows for label keys that do not have one yet; existing labels are kept."""
    if not entries:
        return
    rows = [{"key": key, "label": label} for key, label in entries]
    insert = _dialect_insert(session)
    if insert is not None:
        await session.execute(insert(ContentLabel).on_conflict_do_nothing(index_elements=["key"]), rows)
        return
    existing = await session.execute(select(ContentLabel.key).where(ContentLabel.key.in_([k for k, _ in entries])))
    known = set(existing.scalars().all())
    session.add_all(ContentLabel(key=key, label=label) for key, label in entries if key not in known)
    await session.flush()


async def _upsert_limit(
    session: AsyncSession, household_id: uuid.UUID, label_key: str, max_intensity: int, hard_no: bool
) -> None:
    now = datetime.now(timezone.utc)
    insert = _dialect_insert(session)
    if insert is not None:
        stmt = insert(HouseholdFilterLimit).values(
            household_id=household_id,
            label_key=label_key,
            max_intensity=max_intensity,
            hard_no=hard_no,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["household_id", "label_key"],
            set_={
                "max_intensity": stmt.excluded.max_intensity,
                "hard_no": stmt.excluded.hard_no,
                "updated_at": now,
            },
        )
        await session.execute(stmt)
        return
    result = await session.execute(
        select(HouseholdFilterLimit).where(
            HouseholdFilterLimit.household_id == household_id,
            HouseholdFilterLimit.label_key == label_key,
        )
    )
    limit = result.scalar_one_or_none()
    if limit is None:
        session.add(
            HouseholdFilterLimit(
                household_id=household_id, label_key=label_key, max_intensity=max_intensity, hard_no=hard_no
            )
        )
    else:
        limit.max_intensity = max_intensity
        limit.hard_no = hard_no


async def _insert_new_limits(session: AsyncSession, household_id: uuid.UUID, label_keys: list[str]) -> None:
    """Insert filters at their preset intensity; a row created concurrently for the same label wins."""
    rows = [
        {
            "household_id": household_id,
            "label_key": key,
            "hard_no": False,
            "max_intensity": default_intensity_for(key),
        }
        for key in label_keys
    ]
    insert = _dialect_insert(session)
    if insert is not None:
        await session.execute(
            insert(HouseholdFilterLimit).on_conflict_do_nothing(index_elements=["household_id", "label_key"]),
            rows,
        )
        return
    session.add_all(HouseholdFilterLimit(**row) for row in rows)
    await session.flush()


async def update_filter(
    session: AsyncSession,
    household_id: uuid.UUID,
    label_key: str,
    max_intensity: Any,
    hard_no: bool,
) -> HouseholdFilterLimit:
    """Upsert one filter; a hard no always stores intensity 0."""
    key = normalize_label_key(label_key)
    if not key:
        events.warning("filter_update_rejected", household_id=str(household_id), reason="missing_label")
        raise ServiceError.validation("Label is required")

    hard_no = bool(hard_no)
    intensity = 0 if hard_no else clamp_intensity(max_intensity)
    events.debug(
        "filter_update_sanitized",
        household_id=str(household_id),
        label_key=key,
        hard_no=hard_no,
        max_intensity=intensity,
        requested_intensity=max_intensity,
    )
    try:
        await _ensure_dictionary(session, [(key, format_filter_label(key))])
        await _upsert_limit(session, household_id, key, intensity, hard_no)
        await view_service.invalidate_household_views(session, household_id)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("filter_update_failed", household_id=str(household_id), label_key=key, error=str(exc))
        raise ServiceError.persistence(exc) from exc

    result = await session.execute(
        select(HouseholdFilterLimit).where(
            HouseholdFilterLimit.household_id == household_id,
            HouseholdFilterLimit.label_key == key,
        )
    )
    limit = result.scalar_one()
    await session.refresh(limit)
    events.info("filter_updated", household_id=str(household_id), label_key=key)
    return limit


async def add_filters(session: AsyncSession, household_id: uuid.UUID, labels: Iterable[str] | None) -> list[str]:
    """Add new filters at their preset (or default) intensity, skipping ones the household already has.

    Implementation notes:
    - Dictionary rows are written first because household rows reference them.
    - When every label already exists the call fails so the caller can say so.
    """
    normalized = normalize_labels(labels)
    if not normalized:
        raise ServiceError.validation("Add at least one filter")

    try:
        existing_result = await session.execute(
            select(HouseholdFilterLimit.label_key).where(HouseholdFilterLimit.household_id == household_id)
        )
        existing = {key.lower() for key in existing_result.scalars().all()}
        to_insert = [entry for entry in normalized if entry.key.lower() not in existing]
        if not to_insert:
            raise ServiceError.validation("Those filters already exist")

        await _ensure_dictionary(session, [(entry.key, entry.dictionary_label) for entry in to_insert])
        await _insert_new_limits(session, household_id, [entry.key for entry in to_insert])
        await view_service.invalidate_household_views(session, household_id)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("filters_add_failed", household_id=str(household_id), error=str(exc))
        raise ServiceError.persistence(exc) from exc

    added = [entry.key for entry in to_insert]
    events.info(
        "filters_added",
        household_id=str(household_id),
        added=added,
        skipped=len(normalized) - len(added),
    )
    return added


async def remove_filters(session: AsyncSession, household_id: uuid.UUID, labels: Iterable[str] | None) -> list[str]:
    """Delete the named filters; labels the household does not have are ignored."""
    keys = [entry.key for entry in normalize_labels(labels)]
    if not keys:
        raise ServiceError.validation("Select at least one filter to remove")

    try:
        result = await session.execute(
            delete(HouseholdFilterLimit)
            .where(
                HouseholdFilterLimit.household_id == household_id,
                HouseholdFilterLimit.label_key.in_(keys),
            )
            .execution_options(synchronize_session=False)
        )
        await view_service.invalidate_household_views(session, household_id)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("filters_remove_failed", household_id=str(household_id), error=str(exc))
        raise ServiceError.persistence(exc) from exc

    events.info("filters_removed", household_id=str(household_id), requested=keys, removed=result.rowcount)
    return keys


async def reset_filters(session: AsyncSession, household_id: uuid.UUID) -> list[HouseholdFilterLimit]:
    """Replace every filter with the preset table in a single transaction."""
    try:
        await session.execute(
            delete(HouseholdFilterLimit)
            .where(HouseholdFilterLimit.household_id == household_id)
            .execution_options(synchronize_session=False)
        )
        await _ensure_dictionary(session, [(preset.label_key, preset.label) for preset in DEFAULT_FILTERS])
        session.add_all(
            HouseholdFilterLimit(
                household_id=household_id,
                label_key=preset.label_key,
                hard_no=False,
                max_intensity=preset.default_intensity,
            )
            for preset in DEFAULT_FILTERS
        )
        await view_service.invalidate_household_views(session, household_id)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        events.error("filters_reset_failed", household_id=str(household_id), error=str(exc))
        raise ServiceError.persistence(exc) from exc

    events.info("filters_reset", household_id=str(household_id))
    return await list_filters(session, household_id)
