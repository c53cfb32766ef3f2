# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Spotify Web API player endpoints (fetch playback + control commands)."""

import asyncio
import logging

import aiohttp

from ..lib.errors import PlaybackFetchError
from .media import PlaybackSnapshot

log = logging.getLogger(__name__)

API_BASE = "https://api.spotify.com/v1"


class SpotifyPlayerAPI:
    """Thin async client for /me/player.  Every call fetches a token from ``auth`` first."""

    def __init__(self, auth, session: aiohttp.ClientSession | None = None,
                 base_url=API_BASE, timeout=10):
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_session = session
        self._owns_session = session is None

    async def close(self):
        if self._http_session and self._owns_session:
            await self._http_session.close()
        self._http_session = None

    async def _request(self, method, path, params=None):
        """Send one request. Returns decoded JSON, or None for an empty body."""
        token = await self.auth.get_token()
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
            self._owns_session = True
        try:
            async with self._http_session.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text(errors="replace")
                    raise PlaybackFetchError(
                        f"{method} {path} failed (HTTP {resp.status}): {body[:200]}")
                if resp.status == 204:
                    return None
                body = await resp.read()
                if not body.strip():
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise PlaybackFetchError(f"{method} {path} returned invalid JSON") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PlaybackFetchError(f"{method} {path} failed: {e}") from e

    async def current_playback(self) -> PlaybackSnapshot:
        data = await self._request(
            "GET", "/me/player", params={"additional_types": "track,episode"})
        return PlaybackSnapshot.from_response(data)

    async def pause(self):
        await self._request("PUT", "/me/player/pause")

    async def resume(self):
        await self._request("PUT", "/me/player/play")

    async def skip_to_next(self):
        await self._request("POST", "/me/player/next")

    async def skip_to_previous(self):
        await self._request("POST", "/me/player/previous")

    async def set_volume(self, percent):
        await self._request("PUT", "/me/player/volume",
                            params={"volume_percent": str(int(percent))})
