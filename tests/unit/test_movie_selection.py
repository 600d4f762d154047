import asyncio
import unittest

import httpx

from catalog_fakes import FakeCatalog, build_director

from cinechronic.schemas import MovieRecord
from cinechronic.services.movie_selection import (
    MovieSelector,
    directed_candidates,
    normalize_movie_record,
    rank_movies,
)
from cinechronic.services.tmdb_client import TMDBClient


class TestNormalize(unittest.TestCase):
    def test_defaults_and_poster_url(self):
        record = normalize_movie_record({"id": 7, "name": "A Show", "poster_path": "/p.jpg", "first_air_date": "2001-02-03"})
        self.assertEqual(record.title, "A Show")
        self.assertEqual(record.poster, "https://image.tmdb.org/t/p/w500/p.jpg")
        self.assertEqual(record.release_date, "2001-02-03")
        self.assertEqual(record.overview, "Synopsis not available.")
        self.assertEqual(record.popularity, 0)

    def test_missing_id_is_dropped(self):
        self.assertIsNone(normalize_movie_record({"title": "No id"}))
        self.assertIsNone(normalize_movie_record(None))

    def test_untitled(self):
        self.assertEqual(normalize_movie_record({"id": 1}).title, "Untitled")


class TestRanking(unittest.TestCase):
    def test_popularity_then_release_date(self):
        ranked = rank_movies([
            MovieRecord(id=1, title="old", overview="", popularity=5, release_date="1990-01-01"),
            MovieRecord(id=2, title="new", overview="", popularity=5, release_date="2020-01-01"),
            MovieRecord(id=3, title="hit", overview="", popularity=50, release_date="1980-01-01"),
            MovieRecord(id=4, title="undated", overview="", popularity=5),
        ], limit=3)
        self.assertEqual([m.id for m in ranked], [3, 2, 1])

    def test_directed_candidates_filters_jobs_and_posters(self):
        crew = [
            {"id": 1, "job": "Director", "department": "Directing", "poster_path": "/a.jpg", "popularity": 1},
            {"id": 2, "job": "Writer", "department": "Writing", "poster_path": "/b.jpg"},
            {"id": 3, "job": "Director", "department": "Directing", "poster_path": None},
            {"id": 4, "job": "Director", "department": "Directing", "poster_path": "/d.jpg", "popularity": 9},
            {"id": 1, "job": "Director", "department": "Directing", "poster_path": "/a.jpg"},
        ]
        self.assertEqual([m["id"] for m in directed_candidates(crew, exclude={4})], [1])
        self.assertEqual([m["id"] for m in directed_candidates(crew, exclude=set())], [4, 1])


class TestMovieSelector(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog()
        build_director(self.catalog, 1, "Lucrecia Martel", 3, place_of_birth="Salta, Argentina")
        # Preferred movie credited to someone else must be rejected
        self.catalog.add_movie(900, "Not Hers", director_id=2)
        self.catalog.add_movie(901, "No Poster", director_id=1, poster_path=None)
        self.selector = MovieSelector(self.catalog, verify_concurrency=2)

    def test_only_verified_movies_with_posters(self):
        preferred = [self.catalog.movies[900], self.catalog.movies[901], self.catalog.movies[102]]
        selected = asyncio.run(self.selector.select(1, "Lucrecia Martel", preferred_movies=preferred, limit=12))

        ids = [m.id for m in selected]
        self.assertEqual(ids[0], 102)
        self.assertCountEqual(ids, [100, 101, 102])
        self.assertNotIn(900, ids)
        self.assertTrue(all(m.poster for m in selected))

    def test_limit_is_respected(self):
        selected = asyncio.run(self.selector.select(1, "Lucrecia Martel", limit=2))
        self.assertEqual(len(selected), 2)

    def test_filmography_failure_keeps_preferred(self):
        self.catalog.fail.add("person_movie_credits")
        selected = asyncio.run(self.selector.select(1, "Lucrecia Martel", preferred_movies=[self.catalog.movies[100]]))
        self.assertEqual([m.id for m in selected], [100])

    def test_verification_failure_counts_as_rejection(self):
        self.catalog.fail.add("movie_credits")
        self.assertFalse(asyncio.run(self.selector.is_directed_by(100, 1)))

    def test_unreadable_catalog_body_rejects_movie(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        selector = MovieSelector(TMDBClient(access_token="tok", transport=transport))

        selected = asyncio.run(selector.select(7, "Someone", preferred_movies=[{"id": 1, "poster_path": "/a.jpg"}]))

        self.assertEqual(selected, [])


if __name__ == "__main__":
    unittest.main()
