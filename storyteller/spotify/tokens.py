# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Atomic token storage for the Spotify session.

Stores access_token + refresh_token + expires_at in a JSON file.  Writes are
atomic (temp file + rename) so a crash mid-write never corrupts the file.

Default location: <config_dir>/spotify_tokens.json
"""

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from ..lib.config import config_dir

log = logging.getLogger(__name__)

TOKEN_FILE = "spotify_tokens.json"


@dataclass(frozen=True)
class Session:
    """An access/refresh token pair and the wall-clock time it expires."""

    access_token: str
    refresh_token: str
    expires_at: float

    def expires_within(self, margin: float, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now >= self.expires_at - margin

    def is_expired(self, now: float | None = None) -> bool:
        return self.expires_within(0, now)

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }


class TokenStore:
    """Persisted key-value store for a single Session."""

    def __init__(self, path: str | None = None):
        self.path = path or os.path.join(config_dir(), TOKEN_FILE)

    def load(self) -> Session | None:
        """Load the session from disk. Returns None if missing or unusable."""
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            log.warning("Could not read token file %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            log.warning("Token file %s is not an object, ignoring", self.path)
            return None
        try:
            session = Session(
                access_token=str(data["access_token"]),
                refresh_token=str(data["refresh_token"]),
                expires_at=float(data["expires_at"]),
            )
        except (KeyError, TypeError, ValueError):
            log.warning("Token file %s is incomplete, ignoring", self.path)
            return None
        if not session.access_token or not session.refresh_token:
            return None
        return session

    def save(self, session: Session) -> str:
        """Atomically save the session to disk. Returns the path written."""
        data = session.to_dict()
        data["updated_at"] = datetime.now(timezone.utc).isoformat()

        # Atomic write: temp file in same directory, then rename
        d = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(d, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=d, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp, self.path)
        except Exception:
            # Clean up temp file on failure
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

        return self.path

    def delete(self) -> str | None:
        """Delete the token file from disk. Returns the path deleted, or None."""
        if os.path.exists(self.path):
            os.unlink(self.path)
            return self.path
        return None
