# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PlaybackPoller — mirrors Spotify playback while the user is authorized.

Every tick fetches /me/player and feeds the result through ``reduce()``, a
pure function that decides which side effects a new snapshot causes:

    reduce(previous, current) -> (next_snapshot, effects)

    same track id      -> ()
    changed track id   -> (ClearInsight(),)                     new item is None
                          (ClearInsight(), ResolveInsight(key))  otherwise

ResolveInsight looks the key up in the InsightCache within the tick and
starts a generation task on a miss.  Only the result for the key that is
still current gets displayed; every successful result is cached.

Ticks are sequential (fetch, then sleep), so two scheduled fetches never
overlap.  Control commands schedule one extra refresh shortly after they
succeed; responses are applied in arrival order.  Each start()/stop() bumps
an epoch and any fetch that completes under an older epoch is discarded.
"""

import asyncio
import logging
from dataclasses import dataclass

from .insights.cache import InsightKey
from .lib.errors import AuthorizationError, GenerationError, PlaybackFetchError
from .spotify.media import UNKNOWN_ALBUM, PlaybackSnapshot

log = logging.getLogger(__name__)

POLL_INTERVAL = 5.0  # seconds between now-playing polls
REFRESH_DELAY = 0.5  # seconds between a control command and its follow-up refresh
GENERATING_TEXT = "Generating insights..."


@dataclass(frozen=True)
class ClearInsight:
    pass


@dataclass(frozen=True)
class ResolveInsight:
    key: InsightKey


def insight_key(item) -> InsightKey:
    """Cache key for a media item: exact strings, album falls back to a placeholder."""
    return InsightKey(item.name, item.artist, item.album or UNKNOWN_ALBUM)


def reduce(previous: PlaybackSnapshot | None, current: PlaybackSnapshot):
    """Diff two snapshots by track id and return (next_snapshot, effects)."""
    previous_id = previous.track_id if previous is not None else None
    if current.track_id == previous_id:
        return current, ()
    effects = [ClearInsight()]
    if current.item is not None:
        effects.append(ResolveInsight(insight_key(current.item)))
    return current, tuple(effects)


class PlaybackPoller:
    """Timer-driven playback mirror with per-track insight resolution."""

    def __init__(self, auth, api, cache, generator, *,
                 interval=POLL_INTERVAL, refresh_delay=REFRESH_DELAY,
                 on_change=None):
        self.auth = auth
        self.api = api
        self.cache = cache
        self.generator = generator
        self.interval = interval
        self.refresh_delay = refresh_delay
        self.on_change = on_change

        self.snapshot: PlaybackSnapshot | None = None
        self.volume_percent: int | None = None
        self.insight_text = ""
        self.insight_key: InsightKey | None = None
        self.is_loading_insights = False

        self._active = False
        self._epoch = 0
        self._poll_task: asyncio.Task | None = None
        self._refresh_tasks: set[asyncio.Task] = set()
        self._generation_tasks: set[asyncio.Task] = set()
        self._unsubscribe = None

    @property
    def active(self):
        return self._active

    # -- Lifecycle --

    def attach(self):
        """Follow the authorization flag: poll while it is true."""
        if self._unsubscribe is None:
            self._unsubscribe = self.auth.subscribe(self._on_authorization_changed)
        if self.auth.is_authorized:
            self.start()

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.stop()

    def _on_authorization_changed(self, authorized):
        if authorized:
            self.start()
        else:
            self.stop()

    def start(self):
        if self._active:
            return
        self._active = True
        self._epoch += 1
        self._poll_task = asyncio.create_task(self._poll_loop())
        log.info("Playback polling started (every %ss)", self.interval)

    def stop(self):
        if not self._active:
            return
        self._active = False
        self._epoch += 1
        if self._poll_task:
            self._poll_task.cancel()
            self._poll_task = None
        for task in list(self._refresh_tasks):
            task.cancel()
        log.info("Playback polling stopped")

    async def close(self):
        self.detach()
        tasks = list(self._generation_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -- Polling --

    async def _poll_loop(self):
        try:
            while True:
                try:
                    await self.refresh()
                except Exception as e:
                    log.warning("Playback poll failed: %s", e)
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            return

    async def refresh(self):
        """Fetch playback once and apply it. Returns True if a snapshot was applied."""
        if not self._active:
            return False
        epoch = self._epoch
        try:
            snapshot = await self.api.current_playback()
        except (PlaybackFetchError, AuthorizationError) as e:
            log.warning("Error getting playback state: %s", e)
            return False
        if epoch != self._epoch:
            log.debug("Discarding playback response from a stopped poll session")
            return False
        self._apply(snapshot)
        return True

    def _apply(self, snapshot):
        self.snapshot, effects = reduce(self.snapshot, snapshot)
        if snapshot.volume_percent is not None:
            self.volume_percent = snapshot.volume_percent
        for effect in effects:
            if isinstance(effect, ClearInsight):
                self._clear_insight()
            elif isinstance(effect, ResolveInsight):
                log.info("Now playing: %s - %s", effect.key.track, effect.key.artist)
                self._resolve_insight(effect.key)
        self._notify()

    # -- Insights --

    def _clear_insight(self):
        self.insight_text = ""
        self.insight_key = None
        self.is_loading_insights = False

    def _resolve_insight(self, key):
        self.insight_key = key
        cached = self.cache.get(key)
        if cached is not None:
            log.info("Insight cache hit for %s", key.track)
            self.insight_text = cached
            return
        self._start_generation(key)

    def _start_generation(self, key):
        self.is_loading_insights = True
        self.insight_text = GENERATING_TEXT
        task = asyncio.create_task(self._generate(key))
        self._generation_tasks.add(task)
        task.add_done_callback(self._generation_tasks.discard)
        return task

    async def _generate(self, key):
        try:
            text = await self.generator.generate(key.track, key.artist, key.album)
        except GenerationError as e:
            log.warning("Error generating insights: %s", e)
            self._generation_failed(key, e)
            return
        except Exception as e:
            log.exception("Unexpected failure generating insights for %s", key.track)
            self._generation_failed(key, e)
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.cache.put, key, text)
        if key == self.insight_key:
            self.insight_text = text
            self.is_loading_insights = False
            self._notify()

    def _generation_failed(self, key, error):
        if key != self.insight_key:
            return
        self.insight_text = f"Error generating insights: {error}"
        self.is_loading_insights = False
        self._notify()

    def regenerate_insights(self):
        """Generate fresh insights for the current item, bypassing the cache.

        Returns the generation task, or None if nothing is playing or a
        generation is already running.
        """
        item = self.snapshot.item if self.snapshot else None
        if item is None or self.is_loading_insights:
            return None
        key = insight_key(item)
        self.insight_key = key
        task = self._start_generation(key)
        self._notify()
        return task

    # -- Control actions --

    async def toggle_play_pause(self):
        if self.snapshot is not None and self.snapshot.is_playing:
            return await self._command("Paused playback", self.api.pause)
        return await self._command("Resumed playback", self.api.resume)

    async def skip_to_next(self):
        return await self._command("Skipped to next track", self.api.skip_to_next)

    async def skip_to_previous(self):
        return await self._command("Skipped to previous track", self.api.skip_to_previous)

    async def set_volume(self, percent):
        percent = max(0, min(100, int(percent)))
        ok = await self._command(f"Set volume to {percent}%", self.api.set_volume, percent)
        if ok:
            self.volume_percent = percent
        return ok

    async def _command(self, description, call, *args):
        try:
            await call(*args)
        except (PlaybackFetchError, AuthorizationError) as e:
            log.warning("Command failed (%s): %s", description, e)
            return False
        log.info(description)
        self._schedule_refresh()
        return True

    def _schedule_refresh(self):
        if not self._active:
            return
        task = asyncio.create_task(self._delayed_refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _delayed_refresh(self):
        try:
            await asyncio.sleep(self.refresh_delay)
            await self.refresh()
        except asyncio.CancelledError:
            return
        except Exception as e:
            log.warning("Playback refresh failed: %s", e)

    # -- Presentation --

    def now_playing(self) -> dict:
        """Read-only view of the mirrored state for presenters."""
        item = self.snapshot.item if self.snapshot else None
        return {
            "is_playing": bool(self.snapshot and self.snapshot.is_playing),
            "track": item.name if item else None,
            "artist": item.artist if item else None,
            "album": item.album if item else "",
            "artwork_url": item.artwork_url if item else None,
            "duration_ms": item.duration_ms if item else None,
            "volume_percent": self.volume_percent,
            "insight": self.insight_text,
            "is_loading_insights": self.is_loading_insights,
        }

    def _notify(self):
        if self.on_change is None:
            return
        try:
            self.on_change(self)
        except Exception:
            log.exception("Playback change listener failed")
