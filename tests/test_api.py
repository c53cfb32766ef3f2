import unittest
from unittest.mock import AsyncMock, MagicMock

from aiohttp import web
from aiohttp.test_utils import TestServer

from storyteller.lib.errors import AuthorizationError, PlaybackFetchError
from storyteller.spotify.api import SpotifyPlayerAPI
from storyteller.spotify.media import Track

PLAYER_PAYLOAD = {
    "is_playing": True,
    "device": {"name": "Desk", "volume_percent": 30},
    "item": {
        "type": "track",
        "id": "trackX",
        "name": "Airbag",
        "artists": [{"name": "Radiohead"}],
        "album": {"name": "OK Computer", "release_date": "1997"},
    },
}


class TestSpotifyPlayerAPI(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.status = 200
        self.reply = PLAYER_PAYLOAD
        self.raw_body = None

        async def player(request):
            self.requests.append((request.method, request.path, dict(request.query),
                                  request.headers.get("Authorization")))
            if self.raw_body is not None:
                return web.Response(body=self.raw_body, status=self.status)
            if self.status == 204:
                return web.Response(status=204)
            return web.json_response(self.reply, status=self.status)

        async def command(request):
            self.requests.append((request.method, request.path, dict(request.query),
                                  request.headers.get("Authorization")))
            return web.Response(status=self.status if self.status >= 400 else 204)

        app = web.Application()
        app.router.add_get("/v1/me/player", player)
        app.router.add_put("/v1/me/player/pause", command)
        app.router.add_put("/v1/me/player/play", command)
        app.router.add_post("/v1/me/player/next", command)
        app.router.add_post("/v1/me/player/previous", command)
        app.router.add_put("/v1/me/player/volume", command)
        self.server = TestServer(app)
        await self.server.start_server()

        self.auth = MagicMock()
        self.auth.get_token = AsyncMock(return_value="tok")
        self.api = SpotifyPlayerAPI(self.auth, base_url=str(self.server.make_url("/v1")))

    async def asyncTearDown(self):
        await self.api.close()
        await self.server.close()

    async def test_current_playback(self):
        snapshot = await self.api.current_playback()
        self.assertEqual(snapshot.track_id, "trackX")
        self.assertIsInstance(snapshot.item, Track)
        self.assertEqual(snapshot.volume_percent, 30)

        method, path, query, authorization = self.requests[0]
        self.assertEqual((method, path), ("GET", "/v1/me/player"))
        self.assertEqual(query["additional_types"], "track,episode")
        self.assertEqual(authorization, "Bearer tok")

    async def test_nothing_playing(self):
        self.status = 204
        snapshot = await self.api.current_playback()
        self.assertIsNone(snapshot.track_id)
        self.assertIsNone(snapshot.item)

    async def test_server_error(self):
        self.status = 500
        self.reply = {"error": {"status": 500}}
        with self.assertRaises(PlaybackFetchError):
            await self.api.current_playback()

    async def test_undecodable_error_body(self):
        self.status = 502
        self.raw_body = b"\xff\xfe bad gateway"
        with self.assertRaises(PlaybackFetchError) as ctx:
            await self.api.current_playback()
        self.assertIn("502", str(ctx.exception))

    async def test_not_authorized_sends_nothing(self):
        self.auth.get_token.side_effect = AuthorizationError("Not connected to Spotify")
        with self.assertRaises(AuthorizationError):
            await self.api.current_playback()
        self.assertEqual(self.requests, [])

    async def test_control_commands(self):
        await self.api.pause()
        await self.api.resume()
        await self.api.skip_to_next()
        await self.api.skip_to_previous()
        await self.api.set_volume(55)
        self.assertEqual([(m, p) for m, p, _, _ in self.requests], [
            ("PUT", "/v1/me/player/pause"),
            ("PUT", "/v1/me/player/play"),
            ("POST", "/v1/me/player/next"),
            ("POST", "/v1/me/player/previous"),
            ("PUT", "/v1/me/player/volume"),
        ])
        self.assertEqual(self.requests[-1][2], {"volume_percent": "55"})

    async def test_command_failure(self):
        self.status = 403
        with self.assertRaises(PlaybackFetchError):
            await self.api.pause()


if __name__ == "__main__":
    unittest.main()
