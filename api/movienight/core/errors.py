"""Error kinds shared by services and the HTTP layer."""

from __future__ import annotations

import enum

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

UNDEFINED_TABLE_SQLSTATE = "42P01"


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced to callers."""
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    MISSING_SCHEMA = "missing_schema"
    WEBHOOK = "webhook"


class ServiceError(Exception):
    """Raised by services with a tagged kind and a user-facing message."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def validation(cls, message: str) -> "ServiceError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def persistence(cls, exc: SQLAlchemyError) -> "ServiceError":
        return cls(classify_db_error(exc), describe_db_error(exc))


class HouseholdNotFoundError(RuntimeError):
    """Raised when an identity has no resolvable household membership."""


def _sqlstate(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_missing_relation(exc: BaseException) -> bool:
    """Return True when a database error means the table does not exist yet."""
    if not isinstance(exc, SQLAlchemyError):
        return False
    if _sqlstate(exc) == UNDEFINED_TABLE_SQLSTATE:
        return True
    text = str(getattr(exc, "orig", None) or exc).lower()
    return "no such table" in text or ("relation" in text and "does not exist" in text)


def classify_db_error(exc: SQLAlchemyError) -> ErrorKind:
    """Tell a missing table apart from other store failures."""
    if is_missing_relation(exc):
        return ErrorKind.MISSING_SCHEMA
    return ErrorKind.PERSISTENCE


def describe_db_error(exc: SQLAlchemyError) -> str:
    """Return the underlying store message without SQLAlchemy's wrapper text."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip() or exc.__class__.__name__
    return str(exc).strip() or exc.__class__.__name__
