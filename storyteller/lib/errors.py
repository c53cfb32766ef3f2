# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Error types raised at component boundaries.

Each one is recovered by the component that owns the failing concern and
turned into observable state; none of them should reach the event loop.
"""


class StoryTellerError(Exception):
    """Base class for all recoverable SpotyStoryTeller errors."""


class AuthorizationError(StoryTellerError):
    """Port conflict, denied consent, state mismatch, exchange or refresh failure."""


class PlaybackFetchError(StoryTellerError):
    """Transient network/API failure talking to the Spotify player API."""


class GenerationError(StoryTellerError):
    """Failure calling the text-generation service."""


class CacheError(StoryTellerError):
    """Insight storage unavailable."""
