# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
SpotyStoryTeller service — wires the core together and presents it on the console.

Connects to Spotify (stored session, or browser authorization on first run),
polls playback while connected and logs each new track with its insight.
"""

import asyncio
import logging
import signal

from .insights.cache import InsightCache
from .insights.generator import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT,
    InsightGenerator,
)
from .lib.config import cfg, secret
from .poller import POLL_INTERVAL, REFRESH_DELAY, PlaybackPoller
from .spotify.api import SpotifyPlayerAPI
from .spotify.auth import AuthCoordinator
from .spotify.media import format_duration
from .spotify.oauth import SpotifyAccounts
from .spotify.tokens import TokenStore

log = logging.getLogger('storyteller')


class StoryTellerService:
    """Headless presenter: owns the core components and renders their state to the log."""

    def __init__(self):
        host = cfg("spotify", "redirect_host", default="127.0.0.1")
        port = int(cfg("spotify", "redirect_port", default=8888))
        path = cfg("spotify", "redirect_path", default="/callback")

        self.accounts = SpotifyAccounts(
            secret("SPOTIFY_CLIENT_ID"),
            secret("SPOTIFY_CLIENT_SECRET"),
            f"http://{host}:{port}{path}",
        )
        self.auth = AuthCoordinator(self.accounts, TokenStore(),
                                    host=host, port=port, path=path)
        self.auth.subscribe(self._on_authorization_changed)
        self.api = SpotifyPlayerAPI(self.auth)
        self.cache = InsightCache(cfg("insights", "db_path"))
        self.generator = InsightGenerator(
            secret("OPENAI_API_KEY"),
            model=cfg("insights", "model", default=DEFAULT_MODEL),
            base_url=cfg("insights", "base_url", default=DEFAULT_BASE_URL),
            max_tokens=int(cfg("insights", "max_tokens", default=DEFAULT_MAX_TOKENS)),
            timeout=float(cfg("insights", "timeout", default=DEFAULT_TIMEOUT)),
        )
        self.poller = PlaybackPoller(
            self.auth, self.api, self.cache, self.generator,
            interval=float(cfg("poll", "interval", default=POLL_INTERVAL)),
            refresh_delay=float(cfg("poll", "refresh_delay", default=REFRESH_DELAY)),
            on_change=self._render,
        )
        self._shown_track = None
        self._shown_insight = None

    # -- Lifecycle --

    async def start(self):
        self.poller.attach()
        if await self.auth.restore():
            return
        if not await self.auth.authorize():
            log.error("Not connected to Spotify: %s", self.auth.last_error)

    async def stop(self):
        await self.poller.close()
        await self.auth.close()
        for client in (self.api, self.accounts, self.generator):
            await client.close()

    async def run(self):
        """Convenience entry-point: start + wait for signal + stop."""
        await self.start()
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def logout(self):
        await self.auth.logout()
        await self.stop()

    # -- Presentation --

    def status(self) -> dict:
        return {
            'auth_state': self.auth.state.value,
            'is_authorized': self.auth.is_authorized,
            'last_error': self.auth.last_error,
            'polling': self.poller.active,
            'cached_insights': len(self.cache),
            'now_playing': self.poller.now_playing(),
        }

    def _on_authorization_changed(self, authorized):
        if authorized:
            log.info("Connected to Spotify")
        else:
            log.warning("Not connected to Spotify%s",
                        f": {self.auth.last_error}" if self.auth.last_error else "")

    def _render(self, poller):
        now = poller.now_playing()
        track = (now['track'], now['artist'], now['album'])
        if track != self._shown_track:
            self._shown_track = track
            self._shown_insight = None
            if now['track'] is None:
                log.info("No track currently playing")
            else:
                duration = (f" [{format_duration(now['duration_ms'])}]"
                            if now['duration_ms'] is not None else "")
                log.info("%s %s - %s%s%s",
                         "▶" if now['is_playing'] else "⏸",
                         now['track'], now['artist'],
                         f" ({now['album']})" if now['album'] else "", duration)
        if not now['is_loading_insights'] and now['insight'] and now['insight'] != self._shown_insight:
            self._shown_insight = now['insight']
            log.info("AI Insights:\n%s", now['insight'])
