"""
SpotyStoryTeller — mirrors Spotify playback and tells the story behind each track.

Layout:
  lib/         shared plumbing (config, errors, OAuth callback server)
  spotify/     session ownership and the Web API player client
  insights/    language-model insight generation and its SQLite cache
  poller.py    playback polling state machine
  service.py   wiring + console presenter
"""

__version__ = "1.0.0"
