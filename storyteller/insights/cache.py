# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
SQLite cache for generated track insights.

Keyed by the exact (track, artist, album) strings, one text per key,
last write wins, never evicted.  If the database cannot be opened the cache
degrades to "always miss" instead of failing its callers.
"""

import logging
import os
import sqlite3
from contextlib import closing
from typing import NamedTuple

from ..lib.config import config_dir
from ..lib.errors import CacheError

log = logging.getLogger(__name__)

DB_FILE = "SpotifyInsights.sqlite"


class InsightKey(NamedTuple):
    track: str
    artist: str
    album: str


class InsightCache:
    """Exact-match persistent store mapping InsightKey -> insight text."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or os.path.join(config_dir(), DB_FILE)
        self.available = False
        try:
            self._init_db()
            self.available = True
            log.info("Insight cache at %s", self.db_path)
        except CacheError as e:
            log.error("Insight cache disabled: %s", e)

    def _connect(self):
        try:
            return sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise CacheError(f"Could not open {self.db_path}: {e}") from e

    def _init_db(self):
        """Initialize database schema."""
        d = os.path.dirname(os.path.abspath(self.db_path))
        try:
            os.makedirs(d, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Could not create {d}: {e}") from e
        with closing(self._connect()) as conn:
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS TrackInsights (
                        track TEXT NOT NULL,
                        artist TEXT NOT NULL,
                        album TEXT NOT NULL,
                        insight TEXT NOT NULL,
                        PRIMARY KEY (track, artist, album)
                    )
                """)
                conn.commit()
            except sqlite3.Error as e:
                raise CacheError(f"Could not create schema: {e}") from e

    def get(self, key: InsightKey) -> str | None:
        """Return the cached insight for ``key``, or None."""
        if not self.available:
            return None
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    """SELECT insight FROM TrackInsights
                       WHERE track = ? AND artist = ? AND album = ?""",
                    tuple(key),
                ).fetchone()
        except (sqlite3.Error, CacheError) as e:
            log.warning("Error querying insights: %s", e)
            return None
        return row[0] if row else None

    def put(self, key: InsightKey, insight: str) -> None:
        """Insert or replace the insight for ``key``."""
        if not self.available:
            return
        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO TrackInsights
                       (track, artist, album, insight)
                       VALUES (?, ?, ?, ?)""",
                    (*key, insight),
                )
                conn.commit()
        except (sqlite3.Error, CacheError) as e:
            log.warning("Error saving insight: %s", e)

    def __len__(self):
        if not self.available:
            return 0
        try:
            with closing(self._connect()) as conn:
                return conn.execute("SELECT COUNT(*) FROM TrackInsights").fetchone()[0]
        except (sqlite3.Error, CacheError) as e:
            log.warning("Error counting insights: %s", e)
            return 0
