# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
AuthCoordinator — the ONE owner of the Spotify session.

State machine:

    UNAUTHENTICATED ─authorize()─▶ AUTHORIZING ─callback─▶ EXCHANGING_CODE ─▶ AUTHENTICATED
          ▲                            │                        │                  │
          └──────── any failure ───────┴────────────────────────┘◀── refresh fails ┘

Consumers read ``is_authorized`` and ``subscribe()`` to its transitions.
API clients call ``get_token()`` before every request; it refreshes the
access token when it is close to expiry.
"""

import asyncio
import enum
import logging
import time
import urllib.parse
import webbrowser
from dataclasses import dataclass

from ..lib.callback_server import CallbackServer
from ..lib.errors import AuthorizationError
from .oauth import generate_state
from .tokens import Session, TokenStore

log = logging.getLogger(__name__)

REFRESH_MARGIN = 300  # refresh this many seconds before the token expires

_KEEP = object()


class AuthState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZING = "authorizing"
    EXCHANGING_CODE = "exchanging_code"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthorizationRequest:
    state: str
    redirect_uri: str
    scopes: tuple


class AuthCoordinator:
    """Drives the authorization-code flow and owns the resulting Session."""

    def __init__(self, accounts, store: TokenStore, *,
                 open_url=webbrowser.open,
                 server_factory=CallbackServer,
                 host="127.0.0.1", port=8888, path="/callback",
                 clock=time.time, refresh_margin=REFRESH_MARGIN):
        self.accounts = accounts
        self.store = store
        self._open_url = open_url
        self._server_factory = server_factory
        self.host = host
        self.port = port
        self.path = path
        self._clock = clock
        self.refresh_margin = refresh_margin

        self.state = AuthState.UNAUTHENTICATED
        self.session: Session | None = None
        self.pending: AuthorizationRequest | None = None
        self.last_error: str | None = None
        self._server: CallbackServer | None = None
        self._listeners = []
        self._refresh_task: asyncio.Task | None = None

    # -- Observable state --

    @property
    def is_authorized(self):
        return (self.state is AuthState.AUTHENTICATED
                and self.session is not None
                and not self.session.is_expired(self._clock()))

    def subscribe(self, listener):
        """Call ``listener(flag)`` whenever ``is_authorized`` flips. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _set_state(self, state, session=_KEEP):
        """Apply a state (and optionally session) change, then notify on a flag flip."""
        was = self.is_authorized
        if state is not self.state:
            log.info("Auth state: %s -> %s", self.state.value, state.value)
        self.state = state
        if session is not _KEEP:
            self.session = session
        now = self.is_authorized
        if was != now:
            for listener in list(self._listeners):
                try:
                    listener(now)
                except Exception:
                    log.exception("Authorization listener failed")

    @property
    def redirect_uri(self):
        return f"http://{self.host}:{self.port}{self.path}"

    # -- Startup --

    async def restore(self):
        """Load a stored session. Returns True if it is usable."""
        session = self.store.load()
        if session is None:
            log.info("No stored Spotify session, authorization required")
            return False
        self._set_state(AuthState.AUTHENTICATED, session)
        if session.expires_within(self.refresh_margin, self._clock()):
            try:
                await self._refresh()
            except AuthorizationError:
                return False
        log.info("Spotify session restored")
        return self.is_authorized

    # -- Authorization flow --

    async def authorize(self):
        """Start a browser authorization attempt. Returns False if it could not start."""
        if self.state in (AuthState.AUTHORIZING, AuthState.EXCHANGING_CODE):
            self._reject("Authorization already in progress")
            return False
        if not self.accounts.is_configured:
            self._reject("SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET are not set")
            return False

        await self._stop_server()
        request = AuthorizationRequest(
            state=generate_state(),
            redirect_uri=self.redirect_uri,
            scopes=tuple(self.accounts.scopes),
        )
        server = self._server_factory(self.handle_callback,
                                      host=self.host, port=self.port, path=self.path)
        try:
            await server.start()
        except AuthorizationError as e:
            self._reject(str(e))
            return False

        self._server = server
        self.pending = request
        self.last_error = None
        self._set_state(AuthState.AUTHORIZING)

        url = self.accounts.authorize_url(state=request.state, show_dialog=True)
        log.info("OAuth: opening browser for Spotify consent (client_id: %s...)",
                 self.accounts.client_id[:8])
        loop = asyncio.get_running_loop()
        try:
            opened = await loop.run_in_executor(None, self._open_url, url)
        except Exception as e:
            log.warning("Could not open browser: %s", e)
            opened = False
        if opened is False:
            log.warning("Open this URL to connect Spotify: %s", url)
        return True

    async def cancel(self):
        """Abandon a pending authorization attempt."""
        if self.state is AuthState.AUTHORIZING:
            await self._stop_server()
            self.pending = None
            self._set_state(AuthState.UNAUTHENTICATED)

    async def handle_callback(self, url):
        """Process the redirect URL. Returns True if the session was established."""
        if self.state is not AuthState.AUTHORIZING or self.pending is None:
            log.warning("OAuth: ignoring callback with no authorization pending")
            return False

        query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
        error = query.get("error", [""])[0]
        code = query.get("code", [""])[0]
        state = query.get("state", [None])[0]

        if error:
            await self._abort(f"Spotify authorization failed: {error}")
            return False
        if not code:
            await self._abort("Callback did not include an authorization code")
            return False
        if state is not None and state != self.pending.state:
            await self._abort("Callback state does not match the issued nonce; rejecting untrusted callback")
            return False

        self._set_state(AuthState.EXCHANGING_CODE)
        try:
            log.info("OAuth: exchanging authorization code")
            session = await self.accounts.exchange_code(code)
        except AuthorizationError as e:
            await self._abort(str(e))
            return False

        self.pending = None
        self._set_state(AuthState.AUTHENTICATED, session)
        await self._persist(session)
        await self._stop_server()
        log.info("Successfully authorized with Spotify")
        return True

    # -- Tokens --

    async def get_token(self):
        """Return a valid access token, refreshing it first if it is about to expire."""
        if self.state is not AuthState.AUTHENTICATED or self.session is None:
            raise AuthorizationError("Not connected to Spotify")
        if self.session.expires_within(self.refresh_margin, self._clock()):
            await self._refresh()
        return self.session.access_token

    async def _refresh(self):
        # Concurrent callers share one in-flight refresh
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._do_refresh())
        await asyncio.shield(self._refresh_task)

    async def _do_refresh(self):
        session = self.session
        if session is None:
            raise AuthorizationError("Not connected to Spotify")
        try:
            new_session = await self.accounts.refresh(session.refresh_token)
        except AuthorizationError as e:
            self._fail(f"Token refresh failed: {e}")
            self.session = None
            raise
        if self.state is not AuthState.AUTHENTICATED:
            raise AuthorizationError("Session ended during token refresh")
        self._set_state(AuthState.AUTHENTICATED, new_session)
        await self._persist(new_session)
        log.info("Access token refreshed (expires in %ds)",
                 max(0, int(new_session.expires_at - self._clock())))

    async def _persist(self, session):
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.store.save, session)
            log.info("Spotify session saved")
        except OSError as e:
            log.warning("Could not save Spotify session (%s), keeping it in memory", e)

    # -- Teardown --

    async def logout(self):
        """Forget the session everywhere and return to UNAUTHENTICATED."""
        log.info("Logging out of Spotify")
        await self._stop_server()
        self.pending = None
        self._set_state(AuthState.UNAUTHENTICATED, None)
        try:
            path = await asyncio.get_running_loop().run_in_executor(
                None, self.store.delete)
            if path:
                log.info("Deleted token file: %s", path)
        except OSError as e:
            log.warning("Could not delete token file: %s", e)

    async def close(self):
        await self._stop_server()

    # -- Failure handling --

    def _reject(self, message):
        """An attempt could not start; the current state is kept."""
        log.error("Authorization not started: %s", message)
        self.last_error = message

    def _fail(self, message):
        log.error("Authorization failed: %s", message)
        self.last_error = message
        self.pending = None
        self._set_state(AuthState.UNAUTHENTICATED)

    async def _abort(self, message):
        self._fail(message)
        await self._stop_server()

    async def _stop_server(self):
        server, self._server = self._server, None
        if server is not None:
            await server.stop()
