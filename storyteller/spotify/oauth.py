# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Authorization Code flow helpers for the Spotify accounts service.

Uses the confidential-client variant: the client secret is sent with HTTP
Basic auth on the token endpoint.

Usage:
    accounts = SpotifyAccounts(client_id, client_secret, redirect_uri)
    state = generate_state()
    url = accounts.authorize_url(state)
    # ... user completes consent, browser hits the redirect URI ...
    session = await accounts.exchange_code(code)
    session = await accounts.refresh(session.refresh_token)
"""

import asyncio
import secrets
import time
import urllib.parse

import aiohttp

from ..lib.errors import AuthorizationError
from .tokens import Session

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

SCOPES = (
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
)


def generate_state(length=16):
    """Generate an anti-CSRF nonce for the authorization request."""
    return secrets.token_urlsafe(length)


def build_auth_url(client_id, redirect_uri, scopes, state=None, show_dialog=True):
    """Build the Spotify authorization URL."""
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "show_dialog": "true" if show_dialog else "false",
    }
    if state:
        params["state"] = state
    return f"{AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def session_from_response(payload, previous_refresh_token=None, now=None):
    """Convert a token endpoint response into a Session.

    Spotify may omit refresh_token on refresh; the previous one is kept.
    """
    if not isinstance(payload, dict):
        raise AuthorizationError("Token response was not an object")
    access_token = payload.get("access_token")
    if not access_token:
        raise AuthorizationError("Token response did not include an access token")
    refresh_token = payload.get("refresh_token") or previous_refresh_token
    if not refresh_token:
        raise AuthorizationError("No refresh token received")
    now = time.time() if now is None else now
    try:
        expires_in = float(payload.get("expires_in", 3600))
    except (TypeError, ValueError):
        expires_in = 3600.0
    return Session(
        access_token=str(access_token),
        refresh_token=str(refresh_token),
        expires_at=now + expires_in,
    )


class SpotifyAccounts:
    """Client for the Spotify accounts service (authorize URL + token endpoint)."""

    def __init__(self, client_id, client_secret, redirect_uri,
                 scopes=SCOPES, token_url=TOKEN_URL,
                 session: aiohttp.ClientSession | None = None, timeout=10):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = tuple(scopes)
        self.token_url = token_url
        self.timeout = timeout
        self._http_session = session
        self._owns_session = session is None

    @property
    def is_configured(self):
        return bool(self.client_id and self.client_secret)

    def authorize_url(self, state=None, show_dialog=True):
        return build_auth_url(self.client_id, self.redirect_uri, self.scopes,
                              state=state, show_dialog=show_dialog)

    async def exchange_code(self, code) -> Session:
        """Exchange an authorization code for access + refresh tokens."""
        payload = await self._post_form({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })
        return session_from_response(payload)

    async def refresh(self, refresh_token) -> Session:
        """Refresh the access token. Raises AuthorizationError on failure."""
        payload = await self._post_form({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        return session_from_response(payload, previous_refresh_token=refresh_token)

    async def close(self):
        if self._http_session and self._owns_session:
            await self._http_session.close()
        self._http_session = None

    async def _post_form(self, form) -> dict:
        if not self.is_configured:
            raise AuthorizationError(
                "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET are not set")
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
            self._owns_session = True
        try:
            async with self._http_session.post(
                self.token_url,
                data=form,
                auth=aiohttp.BasicAuth(self.client_id, self.client_secret),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                try:
                    payload = await resp.json(content_type=None)
                except ValueError:
                    payload = None
                if resp.status >= 400:
                    error = ""
                    if isinstance(payload, dict):
                        error = payload.get("error_description") or payload.get("error") or ""
                    raise AuthorizationError(
                        f"Token request failed (HTTP {resp.status}): {error or resp.reason}")
                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthorizationError(f"Token request failed: {e}") from e
