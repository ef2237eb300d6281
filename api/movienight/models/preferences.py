"""Content label dictionary and per-household filter limits."""

from __future__ import annotations

import typing
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movienight.db.base_class import Base

if typing.TYPE_CHECKING:  # pragma: no cover
    from movienight.models.household import Household


class ContentLabel(Base):
    """Known content label keys with their display names."""
    __tablename__ = "content_label_dictionary"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class HouseholdFilterLimit(Base):
    """One household's tolerance for a content label."""
    __tablename__ = "household_filter_limits"
    __table_args__ = (
        UniqueConstraint("household_id", "label_key", name="uq_household_filter_label"),
        CheckConstraint("max_intensity >= 0 AND max_intensity <= 10", name="max_intensity_range"),
        CheckConstraint("NOT hard_no OR max_intensity = 0", name="hard_no_zero_intensity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("households.id", ondelete="CASCADE"), nullable=False
    )
    label_key: Mapped[str] = mapped_column(
        String(128), ForeignKey("content_label_dictionary.key", ondelete="CASCADE"), nullable=False
    )
    max_intensity: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    hard_no: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    household: Mapped["Household"] = relationship(back_populates="filter_limits")
