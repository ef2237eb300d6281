"""Shared schema base classes for API payloads."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire model using camelCase keys while accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ActionResult(BaseModel):
    """Outcome of a mutation: `ok`, or a failure with a user-facing error."""
    ok: bool
    error: str | None = None
    kind: str | None = None

    @classmethod
    def success(cls) -> "ActionResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str, kind: str | None = None) -> "ActionResult":
        return cls(ok=False, error=error, kind=kind)
