"""
Insights — generated commentary about the playing track.

  cache.py       SQLite (track, artist, album) -> text, last write wins
  generator.py   one chat-completion request per call, no retries
"""

from .cache import InsightCache, InsightKey
from .generator import InsightGenerator

__all__ = ["InsightCache", "InsightKey", "InsightGenerator"]
