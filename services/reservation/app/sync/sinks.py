from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import Table, delete, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine

from app.models.analytics import reservations_history

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlHistorySink:
    """Insert-or-replace into the analytics table keyed by ``id``."""

    def __init__(self, engine: Engine, table: Table = reservations_history) -> None:
        self._engine = engine
        self._table = table
        self._columns = {column.key for column in table.columns}

    def _shape(self, row: Mapping[str, Any]) -> dict:
        return {key: value for key, value in row.items() if key in self._columns}

    def upsert(self, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0
        shaped = [self._shape(row) for row in rows]
        dialect_insert = _UPSERT_DIALECTS.get(self._engine.dialect.name)

        with self._engine.begin() as conn:
            if dialect_insert is None:
                ids = [row["id"] for row in shaped]
                conn.execute(delete(self._table).where(self._table.c.id.in_(ids)))
                conn.execute(insert(self._table), shaped)
                return len(shaped)

            for row in shaped:
                stmt = dialect_insert(self._table).values(**row)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[self._table.c.id],
                    set_={key: stmt.excluded[key] for key in row if key != "id"},
                )
                conn.execute(stmt)
        return len(shaped)
