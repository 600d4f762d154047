"""
recommendation_engine.py

Daily director recommendations: discovery -> verified movie selection ->
cycle description -> cache replacement.

A recommendation is only kept once its movie set reaches ``min_movies``.
Generation failures fall back to the previous cache entry; only a cold start
with nothing cached surfaces as RecommendationUnavailable.
"""
import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cinechronic.core.config import settings
from cinechronic.schemas import DirectorCandidate, Recommendation
from cinechronic.services.cycle_describer import CycleDescriber
from cinechronic.services.director_discovery import DirectorDiscovery, build_discovery
from cinechronic.services.director_lookup import DirectorLookup, is_latin_american
from cinechronic.services.gemini_client import get_gemini_client
from cinechronic.services.movie_selection import MovieSelector, rank_movies
from cinechronic.services.recommendation_cache import CacheEntry, DailyRecommendationCache
from cinechronic.services.tmdb_client import get_tmdb_client
from cinechronic.utils.timezone import format_iso_utc

logger = logging.getLogger(__name__)

COME_BACK_LATER = "Check back later for more recommendations"


class RecommendationUnavailable(Exception):
    """No batch could be generated and nothing is cached."""


class RecommendationEngine:
    def __init__(
        self,
        discovery: DirectorDiscovery,
        selector: MovieSelector,
        describer: CycleDescriber,
        lookup: DirectorLookup,
        target_count: int = 4,
        pool_size: int = 8,
        min_movies: int = 4,
        max_movies: int = 6,
        movie_pool: int = 12,
        require_latin_american: bool = False,
    ):
        self.discovery = discovery
        self.selector = selector
        self.describer = describer
        self.lookup = lookup
        self.target_count = target_count
        self.pool_size = max(pool_size, target_count)
        self.min_movies = max(1, min_movies)
        self.max_movies = max(max_movies, self.min_movies)
        self.movie_pool = max(movie_pool, self.max_movies)
        self.require_latin_american = require_latin_american

    async def _build_one(self, candidate: DirectorCandidate, details: Dict[str, Any]) -> Optional[Recommendation]:
        movies = await self.selector.select(
            candidate.id,
            candidate.name,
            preferred_movies=candidate.known_for,
            limit=self.movie_pool,
        )
        selected = rank_movies(movies, self.max_movies)
        if len(selected) < self.min_movies:
            logger.warning(
                f"Director {candidate.name} has {len(selected)} verified movies, "
                f"below the minimum of {self.min_movies}; skipping"
            )
            return None

        described = await self.describer.describe(candidate.name, selected)
        return Recommendation(
            director=candidate.name,
            director_id=candidate.id,
            director_country=details.get("country") or candidate.country,
            place_of_birth=details.get("placeOfBirth") or candidate.place_of_birth,
            cycle_name=described.cycle_name,
            description=described.description,
            rating=described.rating,
            movies=selected,
        )

    def _slot_needs_latin_american(self, recommendations: List[Recommendation]) -> bool:
        if not self.require_latin_american:
            return False
        if any(is_latin_american(r.director_country) for r in recommendations):
            return False
        return len(recommendations) == self.target_count - 1

    async def build_daily_recommendations(self) -> List[Recommendation]:
        candidates = await self.discovery.discover(self.pool_size)
        if not candidates:
            raise RecommendationUnavailable("No director candidates were found")
        logger.info(f"Building recommendations from {len(candidates)} candidates via {self.discovery.name}")

        recommendations: List[Recommendation] = []
        deferred: List[Tuple[DirectorCandidate, Dict[str, Any]]] = []

        for candidate in candidates:
            if len(recommendations) >= self.target_count:
                break
            details = await self.lookup.details(candidate.id)
            if details is None:
                logger.warning(f"Could not get details for {candidate.name}; skipping")
                continue
            country = details.get("country") or candidate.country
            if self._slot_needs_latin_american(recommendations) and not is_latin_american(country):
                deferred.append((candidate, details))
                continue
            recommendation = await self._build_one(candidate, details)
            if recommendation is not None:
                recommendations.append(recommendation)

        if len(recommendations) < self.target_count and deferred:
            logger.warning("No Latin-American director available for the last slot; waiving the quota")
            for candidate, details in deferred:
                if len(recommendations) >= self.target_count:
                    break
                recommendation = await self._build_one(candidate, details)
                if recommendation is not None:
                    recommendations.append(recommendation)

        if not recommendations:
            raise RecommendationUnavailable("No director produced enough verified movies")
        if len(recommendations) < self.target_count:
            logger.warning(f"Only {len(recommendations)} of {self.target_count} recommendations were generated")
        return recommendations

    async def get_daily_recommendations(self, cache: DailyRecommendationCache, now: Optional[datetime] = None) -> CacheEntry:
        """Return the cached batch, regenerating first when the daily refresh is due."""
        if cache.should_regenerate(now):
            logger.info("Generating today's director recommendations")
            cache.regenerations += 1
            try:
                recommendations = await self.build_daily_recommendations()
            except Exception as e:
                logger.error(f"Error generating today's recommendations: {e}")
                if cache.entry is None:
                    raise RecommendationUnavailable("Could not generate recommendations right now") from e
                logger.warning("Serving the previous recommendations after a generation failure")
            else:
                entry = cache.replace(recommendations, now)
                logger.info(f"Generated {len(entry.recommendations)} recommendations (version {entry.version})")
        else:
            logger.debug("Serving cached recommendations")
        return cache.entry

    def to_response(self, entry: CacheEntry) -> Dict[str, Any]:
        return {
            "recommendations": [r.model_dump(by_alias=True) for r in entry.recommendations],
            "message": COME_BACK_LATER if len(entry.recommendations) < self.target_count else None,
            "generatedAt": format_iso_utc(entry.generated_at),
        }


_engine: Optional[RecommendationEngine] = None


def get_recommendation_engine() -> RecommendationEngine:
    """Get or create the engine wired from settings.

    Raises:
        CatalogConfigurationError: when TMDB credentials are missing
    """
    global _engine

    if _engine is None:
        catalog = get_tmdb_client()
        generator = get_gemini_client()
        rng = random.Random()
        lookup = DirectorLookup(catalog)
        _engine = RecommendationEngine(
            discovery=build_discovery(
                settings.discovery_strategy,
                catalog,
                generator=generator,
                lookup=lookup,
                rng=rng,
                suggestion_count=settings.recommendation_count,
            ),
            selector=MovieSelector(catalog, verify_concurrency=settings.verify_concurrency),
            describer=CycleDescriber(generator, rng=rng),
            lookup=lookup,
            target_count=settings.recommendation_count,
            pool_size=settings.director_pool_size,
            min_movies=settings.min_movies_per_recommendation,
            max_movies=settings.max_movies_per_recommendation,
            movie_pool=settings.director_movie_pool,
            require_latin_american=settings.require_latin_american_director,
        )

    return _engine
