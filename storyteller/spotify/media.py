# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Typed view of the Spotify "currently playing" payload.

The player endpoint returns either a track or a podcast episode under
``item``.  Both are parsed into explicit variants here so consumers never
probe raw dicts.  Missing fields are tolerated and become empty values.
"""

from dataclasses import dataclass
from typing import Union

UNKNOWN_ALBUM = "Unknown Album"


def _pick_image(images, prefer_medium=True):
    """Return an image URL from a Spotify images list (medium size if present)."""
    if not isinstance(images, list) or not images:
        return None
    image = images[1] if prefer_medium and len(images) > 1 else images[0]
    if isinstance(image, dict) and isinstance(image.get("url"), str):
        return image["url"]
    return None


def _str(value):
    return value if isinstance(value, str) else ""


def _int_or_none(value):
    return value if isinstance(value, int) and not isinstance(value, bool) else None


@dataclass(frozen=True)
class Track:
    id: str | None
    name: str
    artists: tuple = ()
    album_name: str = ""
    release_date: str = ""
    image_url: str | None = None
    duration_ms: int | None = None

    @property
    def artist(self):
        return ", ".join(self.artists)

    @property
    def album(self):
        return " ".join(p for p in (self.album_name, self.release_date) if p)

    @property
    def artwork_url(self):
        return self.image_url

    @classmethod
    def from_dict(cls, data):
        album = data.get("album") if isinstance(data.get("album"), dict) else {}
        artists = data.get("artists") if isinstance(data.get("artists"), list) else []
        return cls(
            id=data.get("id") if isinstance(data.get("id"), str) else None,
            name=_str(data.get("name")),
            artists=tuple(a["name"] for a in artists
                          if isinstance(a, dict) and isinstance(a.get("name"), str)),
            album_name=_str(album.get("name")),
            release_date=_str(album.get("release_date")),
            image_url=_pick_image(album.get("images")),
            duration_ms=_int_or_none(data.get("duration_ms")),
        )


@dataclass(frozen=True)
class Episode:
    id: str | None
    name: str
    show_name: str = ""
    publisher: str = ""
    image_url: str | None = None
    duration_ms: int | None = None

    @property
    def artist(self):
        return self.publisher or self.show_name

    @property
    def album(self):
        return self.show_name

    @property
    def artwork_url(self):
        return self.image_url

    @classmethod
    def from_dict(cls, data):
        show = data.get("show") if isinstance(data.get("show"), dict) else {}
        return cls(
            id=data.get("id") if isinstance(data.get("id"), str) else None,
            name=_str(data.get("name")),
            show_name=_str(show.get("name")),
            publisher=_str(show.get("publisher")),
            image_url=_pick_image(data.get("images"), prefer_medium=False)
            or _pick_image(show.get("images"), prefer_medium=False),
            duration_ms=_int_or_none(data.get("duration_ms")),
        )


MediaItem = Union[Track, Episode]


def parse_item(data) -> MediaItem | None:
    """Parse a player ``item`` dict into a Track or Episode, or None."""
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    if kind == "episode" or (kind is None and "show" in data):
        return Episode.from_dict(data)
    if kind == "track" or (kind is None and "album" in data):
        return Track.from_dict(data)
    return None


@dataclass(frozen=True)
class PlaybackSnapshot:
    """One point-in-time read of the player state."""

    track_id: str | None = None
    is_playing: bool = False
    volume_percent: int | None = None
    item: MediaItem | None = None
    progress_ms: int | None = None
    device_name: str | None = None

    @classmethod
    def from_response(cls, data):
        """Build a snapshot from GET /me/player. None (HTTP 204) means idle."""
        if not isinstance(data, dict):
            return cls()
        item = parse_item(data.get("item"))
        device = data.get("device") if isinstance(data.get("device"), dict) else {}
        return cls(
            track_id=item.id if item else None,
            is_playing=bool(data.get("is_playing", False)),
            volume_percent=_int_or_none(device.get("volume_percent")),
            item=item,
            progress_ms=_int_or_none(data.get("progress_ms")),
            device_name=device.get("name") if isinstance(device.get("name"), str) else None,
        )


def format_duration(milliseconds):
    """Format a duration in milliseconds as m:ss."""
    total_seconds = max(0, int(milliseconds)) // 1000
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"
