from __future__ import annotations

import json
import sqlite3
import time
import urllib.parse
from pathlib import Path
from typing import Optional

from texas_parcel_viewer.geometry import Bounds


class ViewerStateSQLite:
    """Viewer state kept between sessions: fitted bbox per parcel and the enter flag."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS bbox_cache (
                identifier TEXT PRIMARY KEY,
                bounds_json TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS viewer_flags (
                name TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def save_bbox(self, identifier: str, bounds: Bounds) -> None:
        (minx, miny), (maxx, maxy) = bounds
        self.conn.execute(
            "INSERT OR REPLACE INTO bbox_cache(identifier, bounds_json, updated_at) VALUES (?, ?, ?)",
            (str(identifier), json.dumps([[minx, miny], [maxx, maxy]]), time.time()),
        )
        self.conn.commit()

    def load_bbox(self, identifier: str) -> Optional[Bounds]:
        row = self.conn.execute(
            "SELECT bounds_json FROM bbox_cache WHERE identifier=?", (str(identifier),)
        ).fetchone()
        if not row:
            return None
        try:
            (minx, miny), (maxx, maxy) = json.loads(row["bounds_json"])
        except (TypeError, ValueError):
            return None
        return ((float(minx), float(miny)), (float(maxx), float(maxy)))

    def _get_flag(self, name: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM viewer_flags WHERE name=?", (name,)
        ).fetchone()
        return row["value"] if row else None

    def _set_flag(self, name: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO viewer_flags(name, value) VALUES (?, ?)", (name, value)
        )
        self.conn.commit()

    def is_entered(self) -> bool:
        return self._get_flag("pv-entered-v1") == "1"

    def set_entered(self, value: bool = True) -> None:
        self._set_flag("pv-entered-v1", "1" if value else "0")


class UrlState:
    """Bookmarkable viewer URL; only the `id` query parameter is managed."""

    def __init__(self, url: str = "http://localhost/") -> None:
        self.url = url

    def _parts(self):
        parts = urllib.parse.urlsplit(self.url)
        return parts, urllib.parse.parse_qsl(parts.query, keep_blank_values=True)

    def get_id(self) -> Optional[str]:
        _, query = self._parts()
        for key, value in query:
            if key == "id" and value:
                return value
        return None

    def _replace_query(self, query) -> None:
        parts, _ = self._parts()
        self.url = urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))

    def set_id(self, identifier) -> None:
        _, query = self._parts()
        query = [(k, v) for k, v in query if k != "id"]
        query.append(("id", str(identifier)))
        self._replace_query(query)

    def remove_id(self) -> None:
        _, query = self._parts()
        self._replace_query([(k, v) for k, v in query if k != "id"])
