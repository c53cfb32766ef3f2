#!/usr/bin/env python3
# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
SpotyStoryTeller — Spotify now-playing mirror with AI track insights.

Usage:
    python -m storyteller             # connect (browser on first run) and follow playback
    python -m storyteller --logout    # forget the stored Spotify session
"""

import argparse
import asyncio
import logging

from .service import StoryTellerService


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="storyteller",
        description="Mirror Spotify playback and generate insights about each track")
    parser.add_argument("--logout", action="store_true",
                        help="delete the stored Spotify session and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='[%(levelname)s] %(message)s')

    service = StoryTellerService()
    if args.logout:
        asyncio.run(service.logout())
        return 0
    asyncio.run(service.run())
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
