# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
InsightGenerator — one chat-completion request per call, no retries.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint.  Every failure
(missing key, network, HTTP status, empty answer) surfaces as GenerationError.
"""

import asyncio
import logging

import aiohttp

from ..lib.errors import GenerationError

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 5000
DEFAULT_TIMEOUT = 90

SYSTEM_PROMPT = (
    "You are a knowledgeable music expert who provides interesting insights about songs."
)

PROMPT_TEMPLATE = """Find information about this music track: {track} - {artist} ({album}).
Cover the following:

1. Song details: what is the song about? Is there a general topic for the whole album?
   Quote lyrics where it helps set the plot and the context.
2. The music itself: highlight notable features of the arrangement and production.
3. The album cover artwork.
4. The album: is there a story behind writing the song or the album?
   What influence did the song or the album have?
5. Suggest up to 3 related songs or albums to listen to next."""


def build_prompt(track, artist, album):
    return PROMPT_TEMPLATE.format(track=track, artist=artist, album=album)


def _extract_text(payload):
    if not isinstance(payload, dict):
        raise GenerationError("Malformed response from the language model")
    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str) and content.strip():
            return content.strip()
    raise GenerationError("Couldn't generate insights for this track.")


class InsightGenerator:
    """Generates descriptive text about a track via a language model."""

    def __init__(self, api_key, model=DEFAULT_MODEL, base_url=DEFAULT_BASE_URL,
                 max_tokens=DEFAULT_MAX_TOKENS, timeout=DEFAULT_TIMEOUT,
                 session: aiohttp.ClientSession | None = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._http_session = session
        self._owns_session = session is None

    async def close(self):
        if self._http_session and self._owns_session:
            await self._http_session.close()
        self._http_session = None

    async def generate(self, track, artist, album) -> str:
        log.info("Generating insights for %s - %s (%s)", track, artist, album)
        return await self.generate_text(build_prompt(track, artist, album))

    async def generate_text(self, prompt) -> str:
        """Send ``prompt`` and return the model's answer. Raises GenerationError."""
        if not self.api_key:
            raise GenerationError("OPENAI_API_KEY is not set")
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
            self._owns_session = True

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
        }
        try:
            async with self._http_session.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status >= 400:
                    text = await resp.text(errors="replace")
                    raise GenerationError(
                        f"Language model request failed (HTTP {resp.status}): {text[:200]}")
                try:
                    payload = await resp.json(content_type=None)
                except ValueError as e:
                    raise GenerationError("Malformed response from the language model") from e
        except asyncio.TimeoutError as e:
            raise GenerationError("Language model request timed out") from e
        except aiohttp.ClientError as e:
            raise GenerationError(f"Language model request failed: {e}") from e
        return _extract_text(payload)
