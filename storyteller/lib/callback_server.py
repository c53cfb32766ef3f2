# SpotyStoryTeller
# Copyright (C) 2026 SpotyStoryTeller contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
CallbackServer — ephemeral loopback listener for the OAuth redirect.

Serves exactly one route.  Every request is answered with the same static
page; the reconstructed redirect URL is handed to the owner's handler in a
separate task so the handler is free to stop this server.

    server = CallbackServer(coordinator.handle_callback, port=8888)
    await server.start()      # raises AuthorizationError if the port is taken
    ...
    await server.stop()
"""

import asyncio
import errno
import logging

from aiohttp import web

from .errors import AuthorizationError

log = logging.getLogger(__name__)

SUCCESS_PAGE = '''<!DOCTYPE html><html><head>
<meta charset="UTF-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>SpotyStoryTeller - Spotify Authorization</title>
<style>
*{box-sizing:border-box;margin:0;padding:0}
body{font-family:-apple-system,BlinkMacSystemFont,sans-serif;text-align:center;padding-top:50px}
h1{color:#1DB954;font-weight:400;margin-bottom:16px}
p{color:#666}
</style></head><body>
<h1>Successfully Connected to Spotify!</h1>
<p>You can close this window and return to the application.</p>
</body></html>'''


class CallbackServer:
    """Single-route aiohttp listener bound to a loopback address."""

    def __init__(self, handler, host="127.0.0.1", port=8888, path="/callback"):
        self._handler = handler
        self.host = host
        self.port = port
        self.path = path
        self._runner: web.AppRunner | None = None
        self._tasks: set[asyncio.Task] = set()
        self.last_dispatch: asyncio.Task | None = None

    @property
    def redirect_uri(self):
        return f"http://{self.host}:{self.port}{self.path}"

    @property
    def running(self):
        return self._runner is not None

    async def start(self):
        """Bind and start listening. Raises AuthorizationError on bind failure."""
        if self._runner is not None:
            return
        app = web.Application()
        app.router.add_get(self.path, self._handle_callback)

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            if e.errno == errno.EADDRINUSE:
                raise AuthorizationError(
                    f"Port {self.port} is already in use; close the other "
                    f"application and try again") from e
            raise AuthorizationError(
                f"Could not listen on {self.host}:{self.port}: {e}") from e
        self._runner = runner
        log.info("Callback server listening on %s", self.redirect_uri)

    async def stop(self):
        """Stop listening. Safe to call when not running."""
        runner, self._runner = self._runner, None
        if runner is None:
            return
        await runner.cleanup()
        log.info("Callback server stopped")

    async def _handle_callback(self, request):
        url = self.redirect_uri
        if request.query_string:
            url = f"{url}?{request.query_string}"
        log.info("OAuth: callback received")

        task = asyncio.create_task(self._dispatch(url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.last_dispatch = task

        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    async def _dispatch(self, url):
        try:
            await self._handler(url)
        except Exception:
            log.exception("OAuth callback handler failed")
