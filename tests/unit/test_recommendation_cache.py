import unittest
from datetime import datetime, timezone

from cinechronic.services.recommendation_cache import DailyRecommendationCache
from cinechronic.utils.timezone import day_key, local_hour


def at(day, hour, minute=0):
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


class TestDayHelpers(unittest.TestCase):
    def test_day_key_is_utc_date(self):
        self.assertEqual(day_key(at(4, 23, 59)), "2025-03-04")
        naive = datetime(2025, 3, 4, 1, 0)
        self.assertEqual(day_key(naive), "2025-03-04")

    def test_local_hour_in_named_zone(self):
        self.assertEqual(local_hour(at(4, 12), "UTC"), 12)

    def test_unknown_zone_warns_and_falls_back_to_utc(self):
        with self.assertLogs("cinechronic.utils.timezone", level="WARNING") as logs:
            self.assertEqual(local_hour(at(4, 12), "Nowhere/Atlantis"), 12)
        self.assertIn("Nowhere/Atlantis", logs.output[0])


class TestDailyRecommendationCache(unittest.TestCase):
    def setUp(self):
        self.cache = DailyRecommendationCache(generation_hour=5, tz_name="UTC")

    def test_empty_cache_always_regenerates(self):
        self.assertTrue(self.cache.should_regenerate(at(4, 1)))

    def test_same_day_is_served_from_cache(self):
        self.cache.replace([], now=at(4, 6))
        self.assertFalse(self.cache.should_regenerate(at(4, 23)))

    def test_next_day_waits_for_generation_hour(self):
        self.cache.replace([], now=at(4, 6))
        self.assertFalse(self.cache.should_regenerate(at(5, 4, 59)))
        self.assertTrue(self.cache.should_regenerate(at(5, 5, 0)))

    def test_replace_bumps_version_and_day(self):
        first = self.cache.replace([], now=at(4, 6))
        second = self.cache.replace([], now=at(5, 6))
        self.assertEqual((first.version, second.version), (1, 2))
        self.assertIs(self.cache.entry, second)
        self.assertEqual(second.generated_day_key, "2025-03-05")
        self.assertEqual(second.recommendations, ())

    def test_clear(self):
        self.cache.replace([], now=at(4, 6))
        self.cache.clear()
        self.assertIsNone(self.cache.entry)
        self.assertTrue(self.cache.should_regenerate(at(4, 7)))


if __name__ == "__main__":
    unittest.main()
