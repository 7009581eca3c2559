import unittest

from drivedesk.cache import SummaryCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class SummaryCacheTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = SummaryCache(max_entries=3, ttl=30, clock=self.clock)

    def test_cache_key_skips_empty_parts(self):
        self.assertEqual(cache_key('billing_summary', 'src', 3, 'all'), 'billing_summary:src:3:all')
        self.assertEqual(cache_key('billing_summary', None, ''), 'billing_summary')

    def test_entries_expire(self):
        key = cache_key('billing_summary', 'src', 1, 'all')
        self.assertIsNone(self.cache.get(key))
        self.cache.put(key, {'ok': True}, ttl=5)
        self.assertEqual(self.cache.get(key), {'ok': True})
        self.clock.now += 5
        self.assertIsNone(self.cache.get(key))
        self.assertEqual(len(self.cache), 0)

    def test_get_or_compute_runs_once(self):
        calls = []

        def compute():
            calls.append(1)
            return len(calls)

        key = cache_key('billing_summary', 'src', 2, '2024-03')
        self.assertEqual(self.cache.get_or_compute(key, compute), 1)
        self.assertEqual(self.cache.get_or_compute(key, compute), 1)
        self.assertEqual(len(calls), 1)

    def test_least_recently_used_is_evicted(self):
        for version in (1, 2, 3):
            self.cache.put(cache_key('billing_summary', 'src', version), version)
        self.assertEqual(self.cache.get(cache_key('billing_summary', 'src', 1)), 1)
        self.cache.put(cache_key('billing_summary', 'src', 4), 4)
        self.assertIsNone(self.cache.get(cache_key('billing_summary', 'src', 2)))
        self.assertEqual(self.cache.get(cache_key('billing_summary', 'src', 1)), 1)
        self.assertEqual(len(self.cache), 3)

    def test_invalidate_prefix_only_hits_matching_source(self):
        self.cache.put(cache_key('billing_summary', 'a', 1, 'all'), 1)
        self.cache.put(cache_key('billing_summary', 'b', 1, 'all'), 2)
        self.assertEqual(self.cache.invalidate_prefix('billing_summary:a:'), 1)
        self.assertIsNone(self.cache.get(cache_key('billing_summary', 'a', 1, 'all')))
        self.assertEqual(self.cache.get(cache_key('billing_summary', 'b', 1, 'all')), 2)


if __name__ == '__main__':
    unittest.main()
