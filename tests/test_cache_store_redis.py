import json
import unittest

from skycast.cache_store.redis import RedisCacheStore


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expires = {}
        self.sets = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expires[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def expire(self, key, ttl):
        self.expires[key] = ttl

    def sadd(self, key, member):
        self.sets.setdefault(key, set()).add(member)

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def delete(self, key):
        self.store.pop(key, None)
        self.sets.pop(key, None)
        self.expires.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store.keys()) + list(self.sets.keys()) if k.startswith(prefix)]


class TestRedisCacheStore(unittest.TestCase):
    def setUp(self):
        self.client = FakeRedis()
        self.cache = RedisCacheStore(self.client, prefix="test:")

    def test_miss_writes_json_with_ttl(self):
        value = self.cache.get("forecast_1/2", lambda: {"hourly": {"time": []}}, 600, tags=["loc"])
        self.assertEqual(value, {"hourly": {"time": []}})
        self.assertIn("test:forecast_1_2", self.client.store)
        self.assertEqual(self.client.expires["test:forecast_1_2"], 600)
        self.assertEqual(json.loads(self.client.store["test:forecast_1_2"]), {"hourly": {"time": []}})
        self.assertEqual(self.client.sets["test:tag:loc"], {"test:forecast_1_2"})

    def test_hit_skips_compute(self):
        calls = {"n": 0}

        def compute():
            calls["n"] += 1
            return [1, 2, 3]

        self.cache.get("k", compute, 60)
        self.assertEqual(self.cache.get("k", compute, 60), [1, 2, 3])
        self.assertEqual(calls["n"], 1)

    def test_invalidate_tag_deletes_members_and_set(self):
        self.cache.get("a", lambda: 1, 60, tags=["loc"])
        self.cache.get("b", lambda: 2, 60, tags=["loc"])
        self.cache.invalidate_tag("loc")
        self.assertNotIn("test:a", self.client.store)
        self.assertNotIn("test:b", self.client.store)
        self.assertNotIn("test:tag:loc", self.client.sets)

    def test_undecodable_entry_is_a_miss(self):
        self.client.store["test:k"] = b"\xff not json"
        self.assertEqual(self.cache.get("k", lambda: "fresh", 60), "fresh")

    def test_failed_compute_writes_nothing(self):
        def bad_payload():
            raise ValueError("bad")

        with self.assertRaises(ValueError):
            self.cache.get("k", bad_payload, 60)
        self.assertEqual(self.client.store, {})

    def test_clear_removes_prefixed_keys(self):
        self.cache.get("a", lambda: 1, 60)
        self.client.store["other:x"] = b"1"
        self.cache.clear()
        self.assertEqual(list(self.client.store), ["other:x"])


if __name__ == "__main__":
    unittest.main()
