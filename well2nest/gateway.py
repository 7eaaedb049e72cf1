"""
Data access gateway – uniform reads and writes against named collections.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import Date, DateTime, delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from well2nest.errors import DataAccessError
from well2nest.models import Filter, ScopedQuery
from well2nest.schema import metadata


Row = Dict[str, Any]


def _coerce(column, value):
    """Accept ISO strings for date/time columns, as the web clients send them."""
    if value is None or not isinstance(value, str):
        return value
    if isinstance(column.type, DateTime):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
        # Columns are naive; an explicit offset is folded to UTC.
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    if isinstance(column.type, Date):
        return date.fromisoformat(value[:10])
    return value


class Gateway:
    """
    Thin pass-through to the backing store. Every failure is re-raised as
    DataAccessError; nothing is retried here.
    """

    def __init__(self, engine, tables=None):
        self.engine = engine
        self.tables = tables if tables is not None else metadata.tables

    # ── Helpers ──────────────────────────────────────────────────────

    def _table(self, collection: str):
        table = self.tables.get(collection)
        if table is None:
            raise DataAccessError(f"Unknown collection '{collection}'.", collection)
        return table

    def _column(self, table, name: str):
        if name not in table.c:
            raise DataAccessError(f"Unknown column '{name}' on '{table.name}'.", table.name)
        return table.c[name]

    def _where(self, table, filters: Iterable[Filter]) -> list:
        clauses = []
        for f in filters:
            col = self._column(table, f.column)
            try:
                if f.op == "in":
                    clauses.append(col.in_([_coerce(col, v) for v in f.value]))
                    continue
                value = _coerce(col, f.value)
            except ValueError as e:
                raise DataAccessError(f"Bad value for {table.name}.{f.column}: {e}", table.name) from e
            if f.op == "eq":
                clauses.append(col.is_(None) if value is None else col == value)
            elif f.op == "neq":
                clauses.append(col.is_not(None) if value is None else col != value)
            elif f.op == "gte":
                clauses.append(col >= value)
            elif f.op == "lte":
                clauses.append(col <= value)
        return clauses

    def _values(self, table, row: Row) -> Row:
        values = {}
        for key, value in row.items():
            col = self._column(table, key)
            try:
                values[key] = _coerce(col, value)
            except ValueError as e:
                raise DataAccessError(f"Bad value for {table.name}.{key}: {e}", table.name) from e
        return values

    # ── Reads ────────────────────────────────────────────────────────

    def select(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Tuple[str, bool]] = (),
        limit: Optional[int] = None,
        count_only: bool = False,
        columns: Optional[Sequence[str]] = None,
    ) -> Union[List[Row], int]:
        """Return matching rows (as dicts), or their count when count_only."""
        table = self._table(collection)
        where = self._where(table, filters)

        if count_only:
            stmt = select(func.count()).select_from(table).where(*where)
            try:
                with self.engine.connect() as conn:
                    return int(conn.execute(stmt).scalar_one())
            except SQLAlchemyError as e:
                raise DataAccessError(str(e), collection) from e

        cols = [self._column(table, c) for c in columns] if columns else [table]
        stmt = select(*cols).where(*where)
        for name, descending in order_by:
            col = self._column(table, name)
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            with self.engine.connect() as conn:
                return [dict(r) for r in conn.execute(stmt).mappings().all()]
        except SQLAlchemyError as e:
            raise DataAccessError(str(e), collection) from e

    def select_one(self, collection: str, filters: Sequence[Filter] = (), **kwargs) -> Row:
        """Exactly one matching row, or DataAccessError."""
        rows = self.select(collection, filters, limit=2, **kwargs)
        if len(rows) != 1:
            raise DataAccessError(
                f"Expected exactly one row from '{collection}', got {len(rows)}.", collection
            )
        return rows[0]

    def run(self, query: ScopedQuery, count_only: bool = False, columns=None):
        """Execute a ScopedQuery built by the RBAC layer."""
        return self.select(
            query.collection,
            filters=query.filters,
            order_by=query.order_by,
            limit=None if count_only else query.limit,
            count_only=count_only,
            columns=columns,
        )

    # ── Writes ───────────────────────────────────────────────────────

    def insert(self, collection: str, row: Row) -> Row:
        """Insert *row* and return it as stored, generated id included."""
        table = self._table(collection)
        values = self._values(table, row)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(insert(table).values(**values))
                pk = result.inserted_primary_key[0]
                stored = conn.execute(select(table).where(table.c.id == pk)).mappings().first()
        except SQLAlchemyError as e:
            raise DataAccessError(str(e), collection) from e
        return dict(stored)

    def update(self, collection: str, filters: Sequence[Filter], patch: Row) -> int:
        """Apply *patch* to every matching row; returns the matched row count."""
        table = self._table(collection)
        if not filters:
            raise DataAccessError("update requires at least one filter.", collection)
        stmt = update(table).where(*self._where(table, filters)).values(**self._values(table, patch))
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise DataAccessError(str(e), collection) from e

    def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        table = self._table(collection)
        if not filters:
            raise DataAccessError("delete requires at least one filter.", collection)
        stmt = delete(table).where(*self._where(table, filters))
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise DataAccessError(str(e), collection) from e
