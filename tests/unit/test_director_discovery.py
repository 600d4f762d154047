import asyncio
import random
import unittest

from catalog_fakes import FakeCatalog, FakeGenerator, build_director

from cinechronic.services.director_discovery import (
    CrewMiningDiscovery,
    GenerativeDiscovery,
    TrendingDiscovery,
    build_discovery,
    parse_name_list,
)
from cinechronic.services.director_lookup import DirectorLookup, is_latin_american
from cinechronic.services.gemini_client import GenerationError


def catalog_with_directors():
    catalog = FakeCatalog()
    build_director(catalog, 1, "Alfonso Cuarón", 4, place_of_birth="Mexico City, Mexico")
    build_director(catalog, 2, "Céline Sciamma", 4, place_of_birth="Pontoise, Val-d'Oise, France")
    build_director(catalog, 3, "Kelly Reichardt", 4, place_of_birth="Miami, Florida, USA")
    catalog.add_person(9, "Famous Actor", department="Acting")
    catalog.trending = [1, 9, 2, 3]
    return catalog


class TestParseNameList(unittest.TestCase):
    def test_strips_numbering_and_bullets(self):
        text = "1. Agnès Varda\n2) Wong Kar-wai, - Lucrecia Martel\n* \"Jane Campion\".\nAgnès Varda"
        self.assertEqual(parse_name_list(text), ["Agnès Varda", "Wong Kar-wai", "Lucrecia Martel", "Jane Campion"])

    def test_empty(self):
        self.assertEqual(parse_name_list(""), [])
        self.assertEqual(parse_name_list(None), [])


class TestTrendingDiscovery(unittest.TestCase):
    def test_only_directors_are_returned(self):
        discovery = TrendingDiscovery(catalog_with_directors(), rng=random.Random(0))
        directors = asyncio.run(discovery.discover(10))
        self.assertCountEqual([d.id for d in directors], [1, 2, 3])

    def test_count_caps_result(self):
        discovery = TrendingDiscovery(catalog_with_directors(), rng=random.Random(0))
        self.assertEqual(len(asyncio.run(discovery.discover(2))), 2)

    def test_failed_pages_are_skipped(self):
        catalog = catalog_with_directors()
        catalog.fail.add("trending_people")
        self.assertEqual(asyncio.run(TrendingDiscovery(catalog).discover(4)), [])


class TestCrewMiningDiscovery(unittest.TestCase):
    def test_directors_come_from_movie_credits(self):
        catalog = catalog_with_directors()
        directors = asyncio.run(CrewMiningDiscovery(catalog).discover(2))
        self.assertEqual(len(directors), 2)
        for director in directors:
            self.assertIn(director.id, (1, 2, 3))
            self.assertEqual(len(director.known_for), 1)


class TestGenerativeDiscovery(unittest.TestCase):
    def setUp(self):
        self.catalog = catalog_with_directors()
        self.lookup = DirectorLookup(self.catalog)
        self.fallback = TrendingDiscovery(self.catalog, rng=random.Random(0))

    def test_suggested_names_are_resolved(self):
        generator = FakeGenerator("Alfonso Cuarón, Céline Sciamma, Kelly Reichardt, Unknown Person")
        discovery = GenerativeDiscovery(generator, self.lookup, self.fallback, suggestion_count=3)

        directors = asyncio.run(discovery.discover(3))

        self.assertEqual([d.id for d in directors], [1, 2, 3])
        self.assertEqual(directors[0].country, "Mexico")
        self.assertIn("Latin-American", generator.prompts[0])

    def test_generation_failure_uses_fallback(self):
        generator = FakeGenerator(GenerationError("request", "timeout"))
        discovery = GenerativeDiscovery(generator, self.lookup, self.fallback)
        directors = asyncio.run(discovery.discover(3))
        self.assertCountEqual([d.id for d in directors], [1, 2, 3])

    def test_short_answer_is_supplemented(self):
        discovery = GenerativeDiscovery(FakeGenerator("Kelly Reichardt"), self.lookup, self.fallback)
        directors = asyncio.run(discovery.discover(3))
        self.assertEqual(directors[0].id, 3)
        self.assertCountEqual([d.id for d in directors], [1, 2, 3])


class TestBuildDiscovery(unittest.TestCase):
    def test_generative_without_generator_degrades(self):
        self.assertEqual(build_discovery("generative", FakeCatalog()).name, "trending")

    def test_named_strategies(self):
        self.assertEqual(build_discovery("crew_mining", FakeCatalog()).name, "crew_mining")
        self.assertEqual(build_discovery("generative", FakeCatalog(), generator=FakeGenerator("x")).name, "generative")

    def test_unknown_strategy(self):
        with self.assertRaises(ValueError):
            build_discovery("astrology", FakeCatalog())


class PartialSearchCatalog(FakeCatalog):
    """Person search that also returns an entry TMDB sent without an id."""

    async def search_person(self, query, page=1):
        found = await super().search_person(query, page)
        return {"results": [{"name": query, "known_for_department": "Directing"}] + found["results"]}


class TestSearchByName(unittest.TestCase):
    def test_results_without_id_are_ignored(self):
        catalog = PartialSearchCatalog()
        build_director(catalog, 1, "Lucrecia Martel", 4, place_of_birth="Salta, Argentina")

        director = asyncio.run(DirectorLookup(catalog).search_by_name("Lucrecia Martel"))

        self.assertEqual(director["id"], 1)
        self.assertEqual(director["country"], "Argentina")

    def test_only_id_less_results_is_no_match(self):
        self.assertIsNone(asyncio.run(DirectorLookup(PartialSearchCatalog()).search_by_name("Nobody Known")))


class TestLatinAmerican(unittest.TestCase):
    def test_country_matching(self):
        self.assertTrue(is_latin_american("Mexico"))
        self.assertTrue(is_latin_american(" Argentina "))
        self.assertFalse(is_latin_american("France"))
        self.assertFalse(is_latin_american(None))


if __name__ == "__main__":
    unittest.main()
