import threading
import time
import unittest

from skycast.cache_store.base import sanitize_key
from skycast.cache_store.memory import InMemoryCacheStore


class _Counter:
    def __init__(self, value="v"):
        self.calls = 0
        self.value = value

    def __call__(self):
        self.calls += 1
        return self.value


class TestSanitizeKey(unittest.TestCase):
    def test_replaces_reserved_characters(self):
        self.assertEqual(sanitize_key("forecast_48.857_2.352_Europe/Paris"), "forecast_48.857_2.352_Europe_Paris")
        self.assertEqual(sanitize_key("geocode_fr_1_new york"), "geocode_fr_1_new_york")
        self.assertEqual(sanitize_key("a{b}c(d)e@f:g\\h"), "a_b_c_d_e_f_g_h")

    def test_safe_keys_unchanged(self):
        self.assertEqual(sanitize_key("forecast_1.000_-2.000_UTC"), "forecast_1.000_-2.000_UTC")


class TestInMemoryCacheStore(unittest.TestCase):
    def test_get_computes_once_within_ttl(self):
        store = InMemoryCacheStore()
        compute = _Counter({"a": 1})
        self.assertEqual(store.get("k", compute, 60), {"a": 1})
        self.assertEqual(store.get("k", compute, 60), {"a": 1})
        self.assertEqual(compute.calls, 1)

    def test_entry_expires_after_ttl(self):
        store = InMemoryCacheStore()
        compute = _Counter()
        store.get("k", compute, 0.3)
        time.sleep(0.4)
        store.get("k", compute, 0.3)
        self.assertEqual(compute.calls, 2)

    def test_failed_compute_stores_nothing(self):
        store = InMemoryCacheStore()

        def boom():
            raise RuntimeError("upstream down")

        with self.assertRaises(RuntimeError):
            store.get("k", boom, 60)
        compute = _Counter("fresh")
        self.assertEqual(store.get("k", compute, 60), "fresh")
        self.assertEqual(compute.calls, 1)

    def test_invalidate_tag_drops_all_tagged_keys(self):
        store = InMemoryCacheStore()
        first, second, other = _Counter(1), _Counter(2), _Counter(3)
        store.get("k1", first, 60, tags=["loc"])
        store.get("k2", second, 60, tags=["loc"])
        store.get("k3", other, 60, tags=["elsewhere"])

        store.invalidate_tag("loc")

        store.get("k1", first, 60, tags=["loc"])
        store.get("k2", second, 60, tags=["loc"])
        store.get("k3", other, 60, tags=["elsewhere"])
        self.assertEqual((first.calls, second.calls, other.calls), (2, 2, 1))

    def test_keys_are_sanitized_consistently(self):
        store = InMemoryCacheStore()
        compute = _Counter()
        store.get("a/b", compute, 60)
        store.get("a_b", compute, 60)
        self.assertEqual(compute.calls, 1)

    def test_delete_and_clear(self):
        store = InMemoryCacheStore()
        compute = _Counter()
        store.get("k", compute, 60)
        store.delete("k")
        store.get("k", compute, 60)
        store.clear()
        store.get("k", compute, 60)
        self.assertEqual(compute.calls, 3)

    def test_expired_entries_and_their_bookkeeping_are_purged(self):
        store = InMemoryCacheStore()
        for i in range(1000):
            store.get(f"k{i}", _Counter(i), 0, tags=["t"])
        time.sleep(0.01)

        store.get("other", _Counter(), 60, tags=["o"])

        self.assertEqual(set(store._entries), {"other"})
        self.assertEqual(store._tags, {"o": {"other"}})
        self.assertEqual(store._key_locks, {})

    def test_key_lock_released_after_failed_compute(self):
        store = InMemoryCacheStore()

        def boom():
            raise RuntimeError("upstream down")

        with self.assertRaises(RuntimeError):
            store.get("k", boom, 60, tags=["t"])
        self.assertEqual(store._key_locks, {})
        self.assertEqual(store._tags, {})

    def test_delete_drops_tag_membership(self):
        store = InMemoryCacheStore()
        store.get("k", _Counter(), 60, tags=["t"])
        store.delete("k")
        self.assertEqual(store._tags, {})

    def test_recompute_under_new_tags_replaces_old_membership(self):
        store = InMemoryCacheStore()
        store.get("k", _Counter(), 0, tags=["old"])
        time.sleep(0.01)
        store.get("k", _Counter(), 60, tags=["new"])
        self.assertEqual(store._tags, {"new": {"k"}})

    def test_concurrent_misses_compute_once(self):
        store = InMemoryCacheStore()
        calls = {"n": 0}
        lock = threading.Lock()

        def slow():
            with lock:
                calls["n"] += 1
            time.sleep(0.2)
            return "value"

        results = []
        threads = [threading.Thread(target=lambda: results.append(store.get("k", slow, 60))) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(calls["n"], 1)
        self.assertEqual(results, ["value"] * 5)


if __name__ == "__main__":
    unittest.main()
