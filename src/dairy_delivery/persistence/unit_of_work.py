"""All-or-nothing write scopes over the Supabase client.

PostgREST has no client-side transactions, so each write registers a
compensating action. On failure the actions replay in reverse order.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from supabase import Client

from ..errors import DairyDeliveryError, PersistenceError

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, client: Client, label: str = "unit of work") -> None:
        self.client = client
        self.label = label
        self._undo: list[tuple[str, Callable[[], Any]]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self._undo.clear()
            return False
        self.rollback()
        if isinstance(exc, DairyDeliveryError):
            return False
        raise PersistenceError(f"{self.label} failed: {exc}") from exc

    def table(self, name: str):
        return self.client.table(name)

    def insert(self, table: str, rows: dict | Sequence[dict]) -> list[dict]:
        payload = [rows] if isinstance(rows, dict) else list(rows)
        if not payload:
            return []
        inserted = self.client.table(table).insert(payload).execute().data or []
        ids = [row["id"] for row in inserted if row.get("id")]
        if ids:
            self._undo.append(
                (f"delete {len(ids)} from {table}", lambda: self.client.table(table).delete().in_("id", ids).execute())
            )
        return inserted

    def update(self, table: str, values: dict, *, ids: Sequence[str]) -> list[dict]:
        ids = list(ids)
        if not ids:
            return []
        previous = self.client.table(table).select("*").in_("id", ids).execute().data or []
        updated = self.client.table(table).update(values).in_("id", ids).execute().data or []

        def restore() -> None:
            for row in previous:
                original = {column: row.get(column) for column in values}
                self.client.table(table).update(original).eq("id", row["id"]).execute()

        self._undo.append((f"restore {len(previous)} in {table}", restore))
        return updated

    def delete(self, table: str, *, ids: Sequence[str]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        previous = self.client.table(table).select("*").in_("id", ids).execute().data or []
        self.client.table(table).delete().in_("id", ids).execute()
        if previous:
            self._undo.append(
                (f"reinsert {len(previous)} into {table}", lambda: self.client.table(table).insert(previous).execute())
            )
        return len(previous)

    def on_rollback(self, description: str, action: Callable[[], Any]) -> None:
        """Register a custom compensating action for a write made outside insert/update/delete."""
        self._undo.append((description, action))

    def rollback(self) -> None:
        while self._undo:
            description, action = self._undo.pop()
            try:
                action()
            except Exception:
                logger.exception(f"Rollback step '{description}' failed for {self.label}")
        logger.warning(f"Rolled back {self.label}")
