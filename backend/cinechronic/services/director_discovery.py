"""
director_discovery.py

Strategies that propose the day's candidate directors.

- trending:    TMDB trending people whose department is Directing
- crew_mining: directors credited on popular and top-rated movies
- generative:  names suggested by Gemini, resolved through person search

All strategies return an ordered list of DirectorCandidate, deduplicated by
TMDB person id, never longer than the requested count.
"""
import logging
import random
import re
from typing import Dict, List, Optional

from cinechronic.schemas import DirectorCandidate
from cinechronic.services.director_lookup import DirectorLookup
from cinechronic.services.gemini_client import GeminiClient, GenerationError
from cinechronic.services.tmdb_client import CatalogError, TMDBClient, find_director, is_directing

logger = logging.getLogger(__name__)

MAX_SUGGESTED_NAMES = 6


class DirectorDiscovery:
    """Base class for discovery strategies."""

    name = "base"

    async def discover(self, count: int) -> List[DirectorCandidate]:
        raise NotImplementedError


def _merge(primary: List[DirectorCandidate], extra: List[DirectorCandidate], count: int) -> List[DirectorCandidate]:
    merged: Dict[int, DirectorCandidate] = {}
    for candidate in primary + extra:
        if len(merged) >= count:
            break
        merged.setdefault(candidate.id, candidate)
    return list(merged.values())


class TrendingDiscovery(DirectorDiscovery):
    name = "trending"

    def __init__(self, catalog: TMDBClient, rng: Optional[random.Random] = None, time_window: str = "week", pages: int = 3):
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.time_window = time_window
        self.pages = pages

    async def discover(self, count: int) -> List[DirectorCandidate]:
        found: Dict[int, DirectorCandidate] = {}
        for page in range(1, self.pages + 1):
            try:
                data = await self.catalog.trending_people(self.time_window, page=page)
            except CatalogError as e:
                logger.error(f"Trending people page {page} failed: {e}")
                continue
            for person in data.get("results") or []:
                if not person or not person.get("id") or not person.get("name"):
                    continue
                if is_directing(person) and person["id"] not in found:
                    found[person["id"]] = DirectorCandidate(
                        id=person["id"],
                        name=person["name"],
                        known_for=[m for m in person.get("known_for") or [] if m and m.get("media_type", "movie") == "movie"],
                    )

        directors = list(found.values())
        self.rng.shuffle(directors)
        logger.info(f"Trending discovery found {len(directors)} directors")
        return directors[:count]


class CrewMiningDiscovery(DirectorDiscovery):
    name = "crew_mining"

    def __init__(self, catalog: TMDBClient, fallback: Optional[DirectorDiscovery] = None, pages: int = 1):
        self.catalog = catalog
        self.fallback = fallback
        self.pages = pages

    async def _movie_pool(self) -> List[dict]:
        pool: List[dict] = []
        for fetch in (self.catalog.popular_movies, self.catalog.top_rated_movies):
            for page in range(1, self.pages + 1):
                try:
                    pool.extend((await fetch(page=page)).get("results") or [])
                except CatalogError as e:
                    logger.error(f"Movie list for crew mining failed: {e}")
        return pool

    async def discover(self, count: int) -> List[DirectorCandidate]:
        found: Dict[int, DirectorCandidate] = {}
        seen_movies = set()
        for movie in await self._movie_pool():
            if len(found) >= count:
                break
            if not movie or not movie.get("id") or movie["id"] in seen_movies:
                continue
            seen_movies.add(movie["id"])
            try:
                credits = await self.catalog.movie_credits(movie["id"])
            except CatalogError as e:
                logger.warning(f"Credits for movie {movie['id']} failed: {e}")
                continue
            member = find_director(credits.get("crew") or [])
            if member and member.get("id") and member["id"] not in found:
                found[member["id"]] = DirectorCandidate(id=member["id"], name=member.get("name") or "", known_for=[movie])

        directors = list(found.values())
        if len(directors) < count and self.fallback is not None:
            logger.info(f"Crew mining found {len(directors)}/{count} directors, supplementing from {self.fallback.name}")
            directors = _merge(directors, await self.fallback.discover(count), count)
        return directors[:count]


def parse_name_list(text: Optional[str]) -> List[str]:
    """Split a comma/newline separated answer into unique names, keeping order."""
    if not text:
        return []
    names: List[str] = []
    for item in re.split(r"[\n,]+", text.replace("\r", "\n")):
        cleaned = re.sub(r"^\s*(?:\d+[.)]|[-*•])\s*", "", item).strip().strip("\"'.").strip()
        if cleaned and cleaned not in names:
            names.append(cleaned)
    return names


class GenerativeDiscovery(DirectorDiscovery):
    name = "generative"

    PROMPT = (
        "Pick {count} contemporary or classic film directors who stand out for quality, influence or prestige.\n"
        "IMPORTANT:\n"
        "- At least 1 of the {count} must be an innovative pick (emerging, avant-garde or experimental directors).\n"
        "- At least 1 of the {count} must be a Latin-American director (Mexico, Argentina, Chile, Colombia, Brazil, etc.).\n"
        "Include auteur cinema, world cinema or innovative proposals.\n"
        "Reply only with a comma-separated list."
    )

    def __init__(
        self,
        generator: GeminiClient,
        lookup: DirectorLookup,
        fallback: DirectorDiscovery,
        suggestion_count: int = 4,
    ):
        self.generator = generator
        self.lookup = lookup
        self.fallback = fallback
        self.suggestion_count = suggestion_count

    async def suggest_names(self) -> List[str]:
        """Raises GenerationError when Gemini fails or returns no names."""
        text = await self.generator.generate(self.PROMPT.format(count=self.suggestion_count))
        names = parse_name_list(text)[:MAX_SUGGESTED_NAMES]
        if not names:
            raise GenerationError("director_names", "no names in response")
        return names

    async def discover(self, count: int) -> List[DirectorCandidate]:
        try:
            names = await self.suggest_names()
        except GenerationError as e:
            logger.warning(f"Generative discovery failed ({e}); using {self.fallback.name}")
            return await self.fallback.discover(count)

        resolved: Dict[int, DirectorCandidate] = {}
        for name in names:
            director = await self.lookup.search_by_name(name)
            if not director or director["id"] in resolved:
                continue
            resolved[director["id"]] = DirectorCandidate(
                id=director["id"],
                name=director["name"],
                country=director.get("country"),
                place_of_birth=director.get("placeOfBirth"),
                known_for=director.get("knownFor") or [],
            )
        directors = list(resolved.values())
        logger.info(f"Generative discovery resolved {len(directors)}/{len(names)} suggested directors")

        if len(directors) < count:
            directors = _merge(directors, await self.fallback.discover(count), count)
        return directors[:count]


def build_discovery(
    strategy: str,
    catalog: TMDBClient,
    generator: Optional[GeminiClient] = None,
    lookup: Optional[DirectorLookup] = None,
    rng: Optional[random.Random] = None,
    suggestion_count: int = 4,
) -> DirectorDiscovery:
    """Build the configured strategy; generative needs a generator and degrades to trending."""
    trending = TrendingDiscovery(catalog, rng=rng)
    strategy = (strategy or "").lower()
    if strategy == "trending":
        return trending
    if strategy == "crew_mining":
        return CrewMiningDiscovery(catalog, fallback=trending)
    if strategy == "generative":
        if generator is None:
            logger.info("Gemini not configured; generative discovery degrades to trending")
            return trending
        return GenerativeDiscovery(generator, lookup or DirectorLookup(catalog), fallback=trending, suggestion_count=suggestion_count)
    raise ValueError(f"Unknown discovery strategy: {strategy}")
