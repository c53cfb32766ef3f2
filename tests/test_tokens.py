import json
import os
import tempfile
import unittest

from storyteller.spotify.tokens import Session, TokenStore


class TestSession(unittest.TestCase):
    def test_expires_within_margin(self):
        session = Session("a", "r", expires_at=1000.0)
        self.assertFalse(session.expires_within(300, now=600.0))
        self.assertTrue(session.expires_within(300, now=700.0))
        self.assertFalse(session.is_expired(now=999.0))
        self.assertTrue(session.is_expired(now=1000.0))


class TestTokenStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "nested", "spotify_tokens.json")
        self.store = TokenStore(self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_missing_returns_none(self):
        self.assertIsNone(self.store.load())

    def test_save_then_load(self):
        session = Session("access", "refresh", 1234.5)
        written = self.store.save(session)
        self.assertEqual(written, self.path)
        self.assertEqual(self.store.load(), session)

    def test_save_overwrites(self):
        self.store.save(Session("a1", "r1", 1.0))
        self.store.save(Session("a2", "r2", 2.0))
        self.assertEqual(self.store.load(), Session("a2", "r2", 2.0))
        # no temp files left behind
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["spotify_tokens.json"])

    def test_corrupt_file_returns_none(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("{not json")
        self.assertIsNone(self.store.load())

    def test_incomplete_file_returns_none(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            json.dump({"access_token": "a"}, f)
        self.assertIsNone(self.store.load())

    def test_non_object_returns_none(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            json.dump(["a", "r"], f)
        self.assertIsNone(self.store.load())

    def test_bad_expiry_returns_none(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            json.dump({"access_token": "a", "refresh_token": "r", "expires_at": "soon"}, f)
        self.assertIsNone(self.store.load())

    def test_delete(self):
        self.assertIsNone(self.store.delete())
        self.store.save(Session("a", "r", 1.0))
        self.assertEqual(self.store.delete(), self.path)
        self.assertIsNone(self.store.load())


if __name__ == "__main__":
    unittest.main()
