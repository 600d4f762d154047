import asyncio
import random
import unittest
from datetime import datetime, timedelta, timezone

from catalog_fakes import FakeCatalog, build_director

from cinechronic.schemas import DirectorCandidate
from cinechronic.services.cycle_describer import CycleDescriber
from cinechronic.services.director_discovery import DirectorDiscovery
from cinechronic.services.director_lookup import DirectorLookup
from cinechronic.services.movie_selection import MovieSelector
from cinechronic.services.recommendation_cache import DailyRecommendationCache
from cinechronic.services.recommendation_engine import (
    COME_BACK_LATER,
    RecommendationEngine,
    RecommendationUnavailable,
)

NOW = datetime(2025, 6, 10, 8, 0, tzinfo=timezone.utc)


class FixedDiscovery(DirectorDiscovery):
    name = "fixed"

    def __init__(self, candidates, error=None):
        self.candidates = candidates
        self.error = error
        self.calls = 0

    async def discover(self, count):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.candidates[:count]


def make_engine(catalog, candidates, **kwargs):
    discovery = FixedDiscovery(candidates)
    engine = RecommendationEngine(
        discovery=discovery,
        selector=MovieSelector(catalog),
        describer=CycleDescriber(generator=None, rng=random.Random(7)),
        lookup=DirectorLookup(catalog),
        **kwargs,
    )
    return engine, discovery


def candidates_for(catalog, *ids):
    return [DirectorCandidate(id=pid, name=catalog.people[pid]["name"]) for pid in ids]


class TestMovieCountBounds(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog()
        build_director(self.catalog, 1, "Five Films", 5)
        build_director(self.catalog, 2, "Three Films", 3)
        build_director(self.catalog, 3, "Four Films", 4)
        build_director(self.catalog, 4, "Six Films", 6)
        build_director(self.catalog, 5, "Eight Films", 8)
        self.candidates = candidates_for(self.catalog, 1, 2, 3, 4, 5)

    def test_minimum_of_four_skips_short_filmographies(self):
        engine, _ = make_engine(self.catalog, self.candidates, target_count=4, min_movies=4, max_movies=6)
        recommendations = asyncio.run(engine.build_daily_recommendations())

        self.assertEqual([r.director_id for r in recommendations], [1, 3, 4, 5])
        for rec in recommendations:
            self.assertGreaterEqual(len(rec.movies), 4)
            self.assertLessEqual(len(rec.movies), 6)
            self.assertEqual(len({m.id for m in rec.movies}), len(rec.movies))
            director_movies = {mid for mid, pid in self.catalog.directed_by.items() if pid == rec.director_id}
            self.assertTrue({m.id for m in rec.movies} <= director_movies)
            self.assertTrue(all(m.poster for m in rec.movies))
            self.assertGreaterEqual(rec.rating, 1)
            self.assertLessEqual(rec.rating, 10)
            self.assertEqual(len(rec.description.split("\n")), 2)

    def test_minimum_of_one_accepts_short_filmographies(self):
        engine, _ = make_engine(self.catalog, self.candidates, target_count=4, min_movies=1, max_movies=6)
        recommendations = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual([r.director_id for r in recommendations], [1, 2, 3, 4])
        self.assertEqual(len(recommendations[1].movies), 3)

    def test_movies_are_ranked_and_trimmed(self):
        engine, _ = make_engine(self.catalog, candidates_for(self.catalog, 5), target_count=1, max_movies=6)
        [rec] = asyncio.run(engine.build_daily_recommendations())
        popularity = [m.popularity for m in rec.movies]
        self.assertEqual(len(rec.movies), 6)
        self.assertEqual(popularity, sorted(popularity, reverse=True))

    def test_country_comes_from_place_of_birth(self):
        engine, _ = make_engine(self.catalog, candidates_for(self.catalog, 1), target_count=1)
        [rec] = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual(rec.director_country, "France")
        self.assertEqual(rec.place_of_birth, "Paris, France")

    def test_unknown_person_is_skipped(self):
        ghost = DirectorCandidate(id=77, name="Ghost")
        engine, _ = make_engine(self.catalog, [ghost] + candidates_for(self.catalog, 1), target_count=1)
        [rec] = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual(rec.director_id, 1)

    def test_empty_discovery_is_a_failure(self):
        engine, _ = make_engine(self.catalog, [], target_count=4)
        with self.assertRaises(RecommendationUnavailable):
            asyncio.run(engine.build_daily_recommendations())


class TestLatinAmericanQuota(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog()
        for pid in (1, 2, 3, 4):
            build_director(self.catalog, pid, f"French {pid}", 4, place_of_birth="Lyon, France")
        build_director(self.catalog, 5, "Mexican 5", 4, place_of_birth="Guadalajara, Jalisco, Mexico")

    def test_last_slot_goes_to_latin_american_director(self):
        engine, _ = make_engine(
            self.catalog, candidates_for(self.catalog, 1, 2, 3, 4, 5),
            target_count=4, require_latin_american=True,
        )
        recommendations = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual([r.director_id for r in recommendations], [1, 2, 3, 5])
        self.assertEqual(recommendations[-1].director_country, "Mexico")

    def test_quota_is_waived_when_pool_has_none(self):
        engine, _ = make_engine(
            self.catalog, candidates_for(self.catalog, 1, 2, 3, 4),
            target_count=4, require_latin_american=True,
        )
        with self.assertLogs("cinechronic.services.recommendation_engine", level="WARNING"):
            recommendations = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual([r.director_id for r in recommendations], [1, 2, 3, 4])

    def test_quota_off_keeps_discovery_order(self):
        engine, _ = make_engine(self.catalog, candidates_for(self.catalog, 1, 2, 3, 4, 5), target_count=4)
        recommendations = asyncio.run(engine.build_daily_recommendations())
        self.assertEqual([r.director_id for r in recommendations], [1, 2, 3, 4])


class TestDailyRecommendations(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog()
        build_director(self.catalog, 1, "Agnès Varda", 4)
        build_director(self.catalog, 2, "Wong Kar-wai", 4)
        self.cache = DailyRecommendationCache(generation_hour=5, tz_name="UTC")
        self.engine, self.discovery = make_engine(self.catalog, candidates_for(self.catalog, 1, 2), target_count=2)

    def test_second_call_same_day_is_cached(self):
        first = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW))
        second = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW + timedelta(hours=3)))

        self.assertIs(first, second)
        self.assertEqual(self.cache.regenerations, 1)
        self.assertEqual(self.discovery.calls, 1)

    def test_next_day_regenerates(self):
        asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW))
        entry = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW + timedelta(days=1)))
        self.assertEqual(entry.version, 2)
        self.assertEqual(self.cache.regenerations, 2)

    def test_failure_serves_previous_batch(self):
        previous = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW))
        self.discovery.error = RuntimeError("catalog down")

        entry = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW + timedelta(days=1)))

        self.assertIs(entry, previous)
        self.assertEqual(self.cache.regenerations, 2)

    def test_cold_start_failure_raises(self):
        self.discovery.error = RuntimeError("catalog down")
        with self.assertRaises(RecommendationUnavailable):
            asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW))
        self.assertIsNone(self.cache.entry)

    def test_concurrent_regeneration_last_write_wins(self):
        async def both():
            return await asyncio.gather(
                self.engine.get_daily_recommendations(self.cache, now=NOW),
                self.engine.get_daily_recommendations(self.cache, now=NOW),
            )

        asyncio.run(both())

        self.assertEqual(self.cache.regenerations, 2)
        self.assertEqual(self.cache.entry.version, 2)
        self.assertEqual(len(self.cache.entry.recommendations), 2)

    def test_response_shape(self):
        entry = asyncio.run(self.engine.get_daily_recommendations(self.cache, now=NOW))
        body = self.engine.to_response(entry)

        self.assertIsNone(body["message"])
        self.assertEqual(body["generatedAt"], NOW.isoformat())
        rec = body["recommendations"][0]
        for key in ("director", "directorId", "directorCountry", "placeOfBirth", "cycleName", "description", "rating", "movies"):
            self.assertIn(key, rec)

    def test_short_batch_asks_to_come_back(self):
        engine, _ = make_engine(self.catalog, candidates_for(self.catalog, 1, 2), target_count=4)
        entry = asyncio.run(engine.get_daily_recommendations(self.cache, now=NOW))
        self.assertEqual(len(entry.recommendations), 2)
        self.assertEqual(engine.to_response(entry)["message"], COME_BACK_LATER)


if __name__ == "__main__":
    unittest.main()
