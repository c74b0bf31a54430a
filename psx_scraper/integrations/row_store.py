from __future__ import annotations

import copy
import threading
from typing import Any


class InMemoryRowStore:
    """Table-of-rows store with single-row upsert semantics.

    Stands in for the hosted database; concurrent upserts to one key are
    last-write-wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: dict[str, dict[Any, dict]] = {}

    def upsert(
        self,
        table: str,
        row: dict,
        on_conflict: str = "symbol",
        ignore_duplicates: bool = False,
    ) -> dict:
        key = row[on_conflict]
        with self._lock:
            rows = self._tables.setdefault(table, {})
            existing = rows.get(key)
            if existing is not None and ignore_duplicates:
                return copy.deepcopy(existing)
            merged = dict(existing or {})
            merged.update(row)
            rows[key] = merged
            return copy.deepcopy(merged)

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._tables.get(table, {}).values()]

        for column, expected in (filters or {}).items():
            if isinstance(expected, (list, tuple, set)):
                allowed = set(expected)
                rows = [r for r in rows if r.get(column) in allowed]
            else:
                rows = [r for r in rows if r.get(column) == expected]

        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)))
        if limit is not None:
            rows = rows[:limit]
        return rows

    def search(self, table: str, columns: list[str], query: str, limit: int | None = None) -> list[dict]:
        needle = query.lower()
        out: list[dict] = []
        for row in self.select(table):
            if any(needle in str(row.get(c) or "").lower() for c in columns):
                out.append(row)
            if limit is not None and len(out) >= limit:
                break
        return out
