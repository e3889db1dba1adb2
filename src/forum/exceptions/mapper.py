"""
Translate SQLAlchemy IntegrityErrors into app-level exceptions.

Two steps:
  1. classify: which kind of constraint failed (unique / not null / foreign key / check).
     Postgres drivers expose a SQLSTATE code; SQLite and others only give message text.
  2. map: raise the matching RepositoryError subclass with the involved columns
     attached, without leaking raw DB messages to callers.

Repositories wrap their writes in `db_error_handler`, which also rolls the session back
so it stays usable after the failure.
"""

import re
import logging
from contextlib import asynccontextmanager
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .base import DuplicateError, RepositoryError

logger = logging.getLogger(__name__)


class ConstraintKind(str, Enum):
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
PGCODE_TO_KIND = {
    "23505": ConstraintKind.UNIQUE,
    "23502": ConstraintKind.NOT_NULL,
    "23503": ConstraintKind.FOREIGN_KEY,
    "23514": ConstraintKind.CHECK,
}

# message fragments for drivers without SQLSTATE (SQLite, MySQL)
MESSAGE_KEYWORDS = (
    (ConstraintKind.UNIQUE, ("unique constraint", "unique failed", "unique violation", "duplicate")),
    (ConstraintKind.NOT_NULL, ("not null constraint", "null value in column")),
    (ConstraintKind.FOREIGN_KEY, ("foreign key constraint", "is not present in table")),
    (ConstraintKind.CHECK, ("check constraint",)),
)


def classify_integrity_error(exc: IntegrityError) -> tuple[ConstraintKind, str | None]:
    """
    Return (kind, constraint_name). constraint_name is only known for Postgres.
    """
    orig = exc.orig

    # asyncpg exposes `sqlstate`, psycopg exposes `pgcode`
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode:
        diag = getattr(orig, "diag", None)
        constraint_name = (
            getattr(diag, "constraint_name", None) if diag else getattr(orig, "constraint_name", None)
        )
        kind = PGCODE_TO_KIND.get(pgcode, ConstraintKind.UNKNOWN)
        logger.debug("mapper.postgres_diagnostic", extra={"pgcode": pgcode, "constraint_name": constraint_name})
        return kind, constraint_name

    message = str(orig).lower()
    for kind, keywords in MESSAGE_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return kind, None

    logger.warning("mapper.unclassified_integrity_error", extra={"message_snippet": message[:200]})
    return ConstraintKind.UNKNOWN, None


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from the DB message:
      - Postgres: 'null value in column "name"' / 'Key (user_id, conversation_id)=(1, 2) already exists.'
      - SQLite:   'UNIQUE constraint failed: subscriptions.user_id, subscriptions.conversation_id'
    """
    msg = str(exc.orig) if exc.orig is not None else str(exc)

    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r"key \((?P<cols>[^)]+)\)=", msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    m = re.search(r"(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$", msg, flags=re.IGNORECASE | re.MULTILINE)
    if m:
        return [c.split(".")[-1].strip() for c in re.split(r",\s*", m.group("cols"))]

    return None


def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None) -> None:
    """
    Map an IntegrityError to an app-level exception and raise it.
    """
    kind, constraint_name = classify_integrity_error(exc)
    columns = extract_columns_from_integrity(exc)
    model_part = model_name or "Record"
    context = {"model": model_part, "fields": columns, "constraint": constraint_name}

    if kind is ConstraintKind.UNIQUE:
        # expected client-level conflict -> INFO
        logger.info("mapper.duplicate_detected", extra=context)
        detail = f"field(s): {', '.join(columns)}" if columns else "unique constraint"
        raise DuplicateError(
            f"{model_part} already exists for {detail}", fields=columns, constraint=constraint_name
        ) from exc

    if kind is ConstraintKind.NOT_NULL:
        logger.info("mapper.not_null_violation", extra=context)
        detail = f": {', '.join(columns)}" if columns else ""
        raise RepositoryError(
            f"Missing required field(s){detail} for {model_part}", fields=columns, constraint=constraint_name
        ) from exc

    if kind is ConstraintKind.FOREIGN_KEY:
        logger.info("mapper.foreign_key_violation", extra=context)
        raise RepositoryError(
            f"{model_part} references a record that does not exist", fields=columns, constraint=constraint_name
        ) from exc

    if kind is ConstraintKind.CHECK:
        logger.debug("mapper.check_constraint_failure", extra={**context, "raw": str(exc.orig)})
        raise RepositoryError(
            f"{model_part} business rule violated (check constraint).", constraint=constraint_name
        ) from exc

    logger.warning("mapper.unknown_integrity_error", extra=context)
    logger.debug("mapper.unknown_integrity_raw", extra={"model": model_part, "raw": str(exc.orig)})
    raise RepositoryError(f"{model_part} database integrity error.") from exc


@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Usage:
        async with db_error_handler(self.db, self.model.__name__):
            ... DB writes that may raise IntegrityError ...

    Rolls back on DB errors and raises a mapped app-level exception. The rollback discards
    the whole unit of work of the session, not just the failed statement. RepositoryErrors
    raised inside the block are already app-level and pass through untouched.
    """
    try:
        yield
    except IntegrityError as exc:
        await _safe_rollback(db, model_name)
        raise_mapped_integrity_error(exc, model_name)
    except RepositoryError:
        raise
    except Exception as exc:
        await _safe_rollback(db, model_name)
        logger.exception("Unexpected DB error for %s", model_name, extra={"model": model_name})
        raise RepositoryError(f"Failed to operate on {model_name or 'database'}") from exc


async def _safe_rollback(db: AsyncSession, model_name: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception("Failed to rollback session", extra={"model": model_name})
