import unittest
from unittest import mock

from precalc.cache import DataCache, MemoryCacheBackend, cache_key
from precalc.metrics import LogMetricsExporter, MetricsExporter, flush_metrics, set_metrics_exporter


class _RecordingExporter(MetricsExporter):
    def __init__(self):
        self.minutes = []

    def export_minute(self, *, minute_start, counts):
        self.minutes.append(dict(counts))


class CacheTests(unittest.TestCase):
    def setUp(self):
        self.data = DataCache(db=None)

    def test_cache_key_joins_parts(self):
        self.assertEqual(cache_key('milestones', 'SP21', 2, 'A'), 'milestones:SP21:2:A')
        self.assertEqual(cache_key('term'), 'term')

    def test_loader_runs_once_per_key(self):
        calls = {'n': 0}

        def loader():
            calls['n'] += 1
            return ['row']

        self.assertEqual(self.data.get_or_load('registrations:1', loader), ['row'])
        self.assertEqual(self.data.get_or_load('registrations:1', loader), ['row'])
        self.assertEqual(calls['n'], 1)

    def test_none_is_memoized(self):
        calls = {'n': 0}

        def loader():
            calls['n'] += 1
            return None

        self.assertIsNone(self.data.get_or_load('course:M 999', loader))
        self.assertIsNone(self.data.get_or_load('course:M 999', loader))
        self.assertEqual(calls['n'], 1)

    def test_invalidate_prefix_only_drops_matching_keys(self):
        self.data.get_or_load('student_milestones:111:SP21', lambda: 'a')
        self.data.get_or_load('student_milestones:222:SP21', lambda: 'b')
        self.data.invalidate_prefix('student_milestones:111')
        self.assertEqual(self.data.get_or_load('student_milestones:111:SP21', lambda: 'fresh'), 'fresh')
        self.assertEqual(self.data.get_or_load('student_milestones:222:SP21', lambda: 'fresh'), 'b')

    def test_requests_do_not_share_memo(self):
        other = DataCache(db=None)
        self.data.get_or_load('term:active', lambda: 'first')
        self.assertEqual(other.get_or_load('term:active', lambda: 'second'), 'second')

    def test_memory_backend_expires_entries(self):
        backend = MemoryCacheBackend()
        with mock.patch('precalc.cache.time.monotonic', return_value=100.0):
            backend.set('k', 'v', ttl=5)
        with mock.patch('precalc.cache.time.monotonic', return_value=104.0):
            self.assertEqual(backend.get('k'), 'v')
        with mock.patch('precalc.cache.time.monotonic', return_value=105.0):
            self.assertIsNot(backend.get('k'), 'v')

    def test_cache_events_are_exported(self):
        exporter = _RecordingExporter()
        set_metrics_exporter(exporter)
        try:
            flush_metrics()
            exporter.minutes.clear()
            with mock.patch('precalc.metrics.time.time', return_value=6000.0):
                self.data.get_or_load('x', lambda: 1)
                self.data.get_or_load('x', lambda: 1)
                self.data.invalidate('x')
            flush_metrics()
        finally:
            set_metrics_exporter(LogMetricsExporter())
        self.assertEqual(exporter.minutes, [{'cache_miss': 1, 'cache_hit': 1, 'cache_invalidate': 1}])


if __name__ == '__main__':
    unittest.main()
