import os
import tempfile
import unittest

from storyteller.insights.cache import InsightCache, InsightKey

KEY = InsightKey("Paranoid Android", "Radiohead", "OK Computer 1997-05-21")


class TestInsightCache(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "insights.sqlite")
        self.cache = InsightCache(self.db_path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_miss(self):
        self.assertTrue(self.cache.available)
        self.assertIsNone(self.cache.get(KEY))

    def test_put_then_get(self):
        self.cache.put(KEY, "A song about paranoia.")
        self.assertEqual(self.cache.get(KEY), "A song about paranoia.")
        self.assertEqual(len(self.cache), 1)

    def test_last_write_wins(self):
        self.cache.put(KEY, "first")
        self.cache.put(KEY, "second")
        self.assertEqual(self.cache.get(KEY), "second")
        self.assertEqual(len(self.cache), 1)

    def test_keys_match_exactly(self):
        self.cache.put(KEY, "text")
        self.assertIsNone(self.cache.get(KEY._replace(track="paranoid android")))
        self.assertIsNone(self.cache.get(KEY._replace(artist="Radiohead ")))
        self.assertIsNone(self.cache.get(KEY._replace(album="OK Computer")))

    def test_persists_across_instances(self):
        self.cache.put(KEY, "kept")
        reopened = InsightCache(self.db_path)
        self.assertEqual(reopened.get(KEY), "kept")

    def test_unusable_path_always_misses(self):
        blocker = os.path.join(self.tmp.name, "not-a-dir")
        with open(blocker, "w") as f:
            f.write("x")
        cache = InsightCache(os.path.join(blocker, "insights.sqlite"))
        self.assertFalse(cache.available)
        cache.put(KEY, "ignored")
        self.assertIsNone(cache.get(KEY))
        self.assertEqual(len(cache), 0)


if __name__ == "__main__":
    unittest.main()
