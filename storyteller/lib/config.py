# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Shared configuration loader for SpotyStoryTeller.

Loads a single JSON config file per user.  Search order:
  1. $STORYTELLER_CONFIG_DIR/config.json   (default ~/.config/spotystoryteller)
  2. config.json                           (CWD, for local dev)

Secrets (SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, OPENAI_API_KEY) stay in
environment variables, optionally loaded from a .env file.

Usage:
    from storyteller.lib.config import cfg, secret

    port      = cfg("spotify", "redirect_port", default=8888)
    model     = cfg("insights", "model", default="gpt-4o")
    client_id = secret("SPOTIFY_CLIENT_ID")
"""

import json
import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_config: dict | None = None
_env_loaded = False

SECRET_NAMES = ("SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET", "OPENAI_API_KEY")


def config_dir() -> str:
    """Per-user directory holding config.json, the token file and the cache."""
    return os.getenv("STORYTELLER_CONFIG_DIR") or os.path.join(
        os.path.expanduser("~"), ".config", "spotystoryteller")


def _search_paths() -> list[str]:
    return [
        os.path.join(config_dir(), "config.json"),
        "config.json",
    ]


def _validate(config: dict, path: str) -> None:
    """Warn about suspicious config values."""
    spotify = config.get("spotify") or {}
    port = spotify.get("redirect_port")
    if port is not None and not isinstance(port, int):
        logger.warning("Config %s: spotify.redirect_port must be an integer", path)
    if spotify.get("redirect_host") not in (None, "127.0.0.1", "localhost"):
        logger.warning("Config %s: spotify.redirect_host is not a loopback address", path)
    poll = config.get("poll") or {}
    interval = poll.get("interval")
    if interval is not None and (not isinstance(interval, (int, float)) or interval <= 0):
        logger.warning("Config %s: poll.interval must be a positive number", path)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _search_paths():
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found, using defaults")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("insights")                      → config["insights"]
    cfg("spotify", "redirect_port")      → config["spotify"]["redirect_port"]
    cfg("poll", "interval", default=5)   → config["poll"]["interval"] or 5
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()


def load_env(path: str | None = None) -> None:
    """Load a .env file into the process environment (existing vars win)."""
    global _env_loaded
    if _env_loaded and path is None:
        return
    candidates = [path] if path else [
        os.path.join(config_dir(), ".env"),
        ".env",
    ]
    for candidate in candidates:
        if candidate and os.path.isfile(candidate):
            load_dotenv(candidate, override=False)
            logger.info("Environment loaded from %s", candidate)
    _env_loaded = True


def secret(name: str) -> str:
    """Read a secret from the environment. Returns "" when unset."""
    load_env()
    value = os.environ.get(name, "").strip()
    if not value:
        logger.warning("%s is not set", name)
    return value
