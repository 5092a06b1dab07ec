"""Shared utility functions for blueprints and services.

parse_date:          ISO / DD.MM.YYYY → date, None on bad input
as_utc / utcnow:     timezone normalisation (SQLite returns naive datetimes)
query_int:           query-string integer with default, ValueError on bad input
db_commit_or_error:  single commit + rollback + log path for every blueprint
"""
import logging
from datetime import date, datetime, timezone

from flask import request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from assurance.models import db
from assurance.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def query_int(name: str, default: int, *aliases: str) -> int:
    """Read an integer query parameter (first of *name* / *aliases* present).

    Raises ValueError when the value is present but not an integer.
    """
    for key in (name, *aliases):
        raw = request.args.get(key)
        if raw is None or raw == "":
            continue
        return int(raw)
    return default


def query_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the request's session; on failure roll back and return an error response.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError    → 409 ERR_CONFLICT_DUPLICATE
    any other failure → 500 ERR_DATABASE
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit")
        return api_error(E.DATABASE, "Database error")
    return None
