"""Import all models here for Alembic autogenerate."""

from movienight.db.base_class import Base
from movienight.models import chat, household, preferences, watch  # noqa: F401

__all__ = ["Base"]
