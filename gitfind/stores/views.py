"""SQLite store for inspection views keyed by host and location."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..models import (
    Location,
    View,
    facts_from_dict,
    facts_to_dict,
    location_from_dict,
    location_to_dict,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS views (
    id INTEGER PRIMARY KEY,
    host TEXT NOT NULL,
    location TEXT NOT NULL,
    facts TEXT,
    updated_at TEXT NOT NULL,
    UNIQUE (host, location)
)
"""

_UPSERT = "INSERT OR REPLACE INTO views (host, location, facts, updated_at) VALUES (?, ?, ?, ?)"


class StoreError(RuntimeError):
    """Raised when a view cannot be written to or read from the store."""


class ViewStore:
    """Upserts views with replace semantics: one row per ``(host, location)``."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    @classmethod
    def connect(cls, path: Path | str) -> ViewStore:
        """Open (creating if needed) the database at ``path`` and apply the schema."""
        target = str(path)
        try:
            if target != ":memory:":
                Path(target).expanduser().parent.mkdir(parents=True, exist_ok=True)
                target = str(Path(target).expanduser())
            connection = sqlite3.connect(target)
            connection.execute(_SCHEMA)
            connection.commit()
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Failed to open view store at {path}: {exc}") from exc
        return cls(connection)

    def upsert(self, view: View) -> int:
        """Store ``view``, replacing any previous row for the same key, and return its row id."""
        params = _view_params(view)
        try:
            with self._conn:
                cursor = self._conn.execute(_UPSERT, params)
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to store view for {view.location}: {exc}") from exc
        return int(cursor.lastrowid or 0)

    def upsert_many(self, views: Iterable[View]) -> int:
        """Store several views in a single transaction and return how many were written."""
        rows = [_view_params(view) for view in views]
        try:
            with self._conn:
                self._conn.executemany(_UPSERT, rows)
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to store {len(rows)} views: {exc}") from exc
        return len(rows)

    def get(self, host: str, location: Location) -> Optional[View]:
        try:
            row = self._conn.execute(
                "SELECT host, location, facts FROM views WHERE host = ? AND location = ?",
                (host, _encode_location(location)),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read view for {location}: {exc}") from exc
        return _row_to_view(row) if row else None

    def iter_views(self, host: str | None = None) -> Iterator[View]:
        query = "SELECT host, location, facts FROM views"
        params: tuple[str, ...] = ()
        if host is not None:
            query += " WHERE host = ?"
            params = (host,)
        query += " ORDER BY host, location"
        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to list views: {exc}") from exc
        for row in rows:
            yield _row_to_view(row)

    def count(self) -> int:
        try:
            (total,) = self._conn.execute("SELECT COUNT(*) FROM views").fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to count views: {exc}") from exc
        return int(total)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> ViewStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _encode_location(location: Location) -> str:
    return json.dumps(location_to_dict(location), sort_keys=True)


def _view_params(view: View) -> tuple[str, str, str, str]:
    try:
        location = _encode_location(view.location)
        facts = json.dumps(facts_to_dict(view.facts), sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Failed to serialise view for {view.location}: {exc}") from exc
    updated_at = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    return view.host, location, facts, updated_at


def _row_to_view(row: tuple[str, str, Optional[str]]) -> View:
    host, location, facts = row
    try:
        return View(
            host=host,
            location=location_from_dict(json.loads(location)),
            facts=facts_from_dict(json.loads(facts)) if facts is not None else None,
        )
    except (ValueError, json.JSONDecodeError) as exc:
        raise StoreError(f"Corrupt view row for host {host}: {exc}") from exc


__all__ = ["StoreError", "ViewStore"]
