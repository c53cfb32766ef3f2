import unittest

from storyteller.spotify.media import (
    Episode,
    PlaybackSnapshot,
    Track,
    format_duration,
    parse_item,
)

TRACK_PAYLOAD = {
    "is_playing": True,
    "progress_ms": 1000,
    "device": {"name": "Desk", "volume_percent": 42},
    "item": {
        "type": "track",
        "id": "trackX",
        "name": "Paranoid Android",
        "duration_ms": 383000,
        "artists": [{"name": "Radiohead"}, {"name": "Guest"}],
        "album": {
            "name": "OK Computer",
            "release_date": "1997-05-21",
            "images": [
                {"url": "https://img/large"},
                {"url": "https://img/medium"},
                {"url": "https://img/small"},
            ],
        },
    },
}

EPISODE_PAYLOAD = {
    "type": "episode",
    "id": "ep1",
    "name": "Episode One",
    "duration_ms": 60000,
    "images": [{"url": "https://img/episode"}],
    "show": {"name": "The Show", "publisher": "Some Network"},
}


class TestParseItem(unittest.TestCase):
    def test_track(self):
        item = parse_item(TRACK_PAYLOAD["item"])
        self.assertIsInstance(item, Track)
        self.assertEqual(item.artist, "Radiohead, Guest")
        self.assertEqual(item.album, "OK Computer 1997-05-21")
        self.assertEqual(item.artwork_url, "https://img/medium")
        self.assertEqual(item.duration_ms, 383000)

    def test_episode(self):
        item = parse_item(EPISODE_PAYLOAD)
        self.assertIsInstance(item, Episode)
        self.assertEqual(item.artist, "Some Network")
        self.assertEqual(item.album, "The Show")
        self.assertEqual(item.artwork_url, "https://img/episode")

    def test_untyped_shapes(self):
        self.assertIsInstance(parse_item({"id": "x", "name": "n", "album": {}}), Track)
        self.assertIsInstance(parse_item({"id": "x", "name": "n", "show": {}}), Episode)
        self.assertIsNone(parse_item({"id": "x", "type": "ad"}))
        self.assertIsNone(parse_item(None))

    def test_missing_fields_are_tolerated(self):
        item = parse_item({"type": "track", "id": "t", "album": {"images": []}})
        self.assertEqual(item.name, "")
        self.assertEqual(item.artist, "")
        self.assertEqual(item.album, "")
        self.assertIsNone(item.artwork_url)
        self.assertIsNone(item.duration_ms)

    def test_album_without_release_date(self):
        item = parse_item({"type": "track", "id": "t", "album": {"name": "Kid A"}})
        self.assertEqual(item.album, "Kid A")


class TestPlaybackSnapshot(unittest.TestCase):
    def test_from_response(self):
        snapshot = PlaybackSnapshot.from_response(TRACK_PAYLOAD)
        self.assertEqual(snapshot.track_id, "trackX")
        self.assertTrue(snapshot.is_playing)
        self.assertEqual(snapshot.volume_percent, 42)
        self.assertEqual(snapshot.device_name, "Desk")
        self.assertEqual(snapshot.progress_ms, 1000)

    def test_nothing_playing(self):
        snapshot = PlaybackSnapshot.from_response(None)
        self.assertIsNone(snapshot.track_id)
        self.assertIsNone(snapshot.item)
        self.assertFalse(snapshot.is_playing)

    def test_no_device_volume(self):
        snapshot = PlaybackSnapshot.from_response({"is_playing": False, "item": None, "device": {}})
        self.assertIsNone(snapshot.volume_percent)
        self.assertIsNone(snapshot.track_id)


class TestFormatDuration(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_duration(383000), "6:23")
        self.assertEqual(format_duration(5000), "0:05")
        self.assertEqual(format_duration(0), "0:00")


if __name__ == "__main__":
    unittest.main()
