"""
Generic pre-write checks used by BaseRepository.create().

They turn the usual database errors (unknown column, NOT NULL, UNIQUE) into clear
app-level errors before anything is sent to the database.
"""

from typing import Any, Iterable

from sqlalchemy import Integer, UniqueConstraint, and_, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession


def find_unknown_model_kwargs(model, kwargs: dict[str, Any]) -> list[str]:
    """
    Keys of `kwargs` that are not mapped attributes (columns or relationships) of `model`.
    """
    allowed = {attr.key for attr in sa_inspect(model).attrs}
    return [k for k in kwargs if k not in allowed]


def _is_generated_pk(col) -> bool:
    # Integer primary keys are generated by the database unless autoincrement=False
    return col.primary_key and col.autoincrement is not False and isinstance(col.type, Integer)


def get_required_columns(model) -> list[str]:
    """
    Columns that are NOT NULL, have no client/server default and are not generated keys.
    """
    cols = []
    for col in model.__table__.columns:
        has_default = col.default is not None or col.server_default is not None
        if not col.nullable and not has_default and not _is_generated_pk(col):
            cols.append(col.name)
    return cols


def get_unique_column_sets(model) -> list[list[str]]:
    """
    Unique column sets declared on the table:
      - Column(unique=True)
      - UniqueConstraint(...) in __table_args__
      - Index(..., unique=True)
    """
    table = model.__table__
    unique_sets: list[list[str]] = [[col.name] for col in table.columns if col.unique]
    unique_sets += [
        [c.name for c in constraint.columns]
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    unique_sets += [[c.name for c in idx.columns] for idx in table.indexes if idx.unique]
    return unique_sets


async def find_unique_conflicts(db: AsyncSession, model, kwargs: dict[str, Any]) -> set[str]:
    """
    Look for existing rows that an insert of `kwargs` would collide with.

    Best-effort: concurrent inserts can still slip between this check and the write,
    the database constraint (and mapper.db_error_handler) covers that case.
    """
    conflicts: set[str] = set()

    for cols in get_unique_column_sets(model):
        if not all(c in kwargs for c in cols):
            continue

        conditions: Iterable = [getattr(model, c) == kwargs[c] for c in cols]
        res = await db.execute(select(model).where(and_(*conditions)).limit(1))
        if res.scalars().first() is not None:
            conflicts.update(cols)

    return conflicts
