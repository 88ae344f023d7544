"""Insert-if-absent helper keyed by a natural unique key.

Concurrent callers racing on the same key end with a single row; the loser's
insert is a no-op at the database, not an IntegrityError.
"""

from typing import Any, Dict, Sequence

from sqlalchemy import select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


async def insert_ignore(
    db: AsyncSession,
    model: Any,
    values: Dict[str, Any],
    conflict_keys: Sequence[str],
) -> None:
    """Insert ``values`` into ``model``'s table unless a row with the same
    ``conflict_keys`` already exists. Existing rows are never updated."""
    table = model.__table__
    dialect = db.get_bind().dialect.name

    if dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(
            index_elements=list(conflict_keys)
        )
    elif dialect == "postgresql":
        stmt = pg_insert(table).values(**values).on_conflict_do_nothing(
            index_elements=list(conflict_keys)
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql_insert(table).values(**values).prefix_with("IGNORE")
    else:
        # No native upsert: check then insert.
        criteria = [table.c[key] == values[key] for key in conflict_keys]
        existing = await db.execute(select(table).where(*criteria))
        if existing.first() is None:
            await db.execute(table.insert().values(**values))
        return

    await db.execute(stmt)
