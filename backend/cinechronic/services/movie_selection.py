"""
movie_selection.py

Builds a verified filmography for a director: every accepted movie has a poster
and a credits entry naming the director with job "Director".
"""
import asyncio
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from cinechronic.schemas import MovieRecord
from cinechronic.services.tmdb_client import CatalogError, TMDBClient, build_poster_url

logger = logging.getLogger(__name__)

FILMOGRAPHY_SCAN_LIMIT = 20


def normalize_movie_record(movie: Optional[Dict[str, Any]]) -> Optional[MovieRecord]:
    """Normalize a TMDB movie or tv payload into a MovieRecord."""
    if not movie or not movie.get("id"):
        return None
    return MovieRecord(
        id=movie["id"],
        title=movie.get("title") or movie.get("name") or "Untitled",
        poster=build_poster_url(movie.get("poster_path") or movie.get("poster")),
        release_date=movie.get("release_date") or movie.get("first_air_date") or None,
        overview=movie.get("overview") or "Synopsis not available.",
        popularity=movie.get("popularity") or 0,
    )


def popularity_then_recency(movie) -> tuple:
    """Sort key: popularity desc, then release date desc (ISO strings sort chronologically)."""
    if isinstance(movie, MovieRecord):
        popularity, release = movie.popularity, movie.release_date
    else:
        popularity, release = movie.get("popularity"), movie.get("release_date")
    return (-(popularity or 0), -_date_ordinal(release))


def _date_ordinal(value: Optional[str]) -> int:
    # Missing or malformed dates count as the epoch, so they sort last
    if not value:
        return 0
    try:
        return date.fromisoformat(value[:10]).toordinal()
    except ValueError:
        return 0


def rank_movies(movies: Iterable[MovieRecord], limit: int) -> List[MovieRecord]:
    return sorted(movies, key=popularity_then_recency)[:limit]


def directed_candidates(crew: List[Dict[str, Any]], exclude: Set[int]) -> List[Dict[str, Any]]:
    """Crew credits where the person directed the film and a poster exists, best first."""
    seen: Set[int] = set(exclude)
    picked = []
    for movie in crew or []:
        if not movie or not movie.get("id") or movie["id"] in seen:
            continue
        job = (movie.get("job") or "").lower()
        department = (movie.get("department") or "").lower()
        if job == "director" and department == "directing" and movie.get("poster_path"):
            seen.add(movie["id"])
            picked.append(movie)
    return sorted(picked, key=popularity_then_recency)


class MovieSelector:
    """Collects verified movies for one director at a time."""

    def __init__(self, catalog: TMDBClient, verify_concurrency: int = 4):
        self.catalog = catalog
        self.verify_concurrency = max(1, verify_concurrency)

    async def is_directed_by(self, movie_id: int, director_id: int) -> bool:
        """True when the movie's credits list the person as Director; any failure counts as no."""
        try:
            credits = await self.catalog.movie_credits(movie_id)
        except CatalogError as e:
            logger.warning(f"Could not verify director for movie {movie_id}: {e}")
            return False
        return any(
            member
            and member.get("id") == director_id
            and (member.get("job") or "").lower() == "director"
            for member in credits.get("crew") or []
        )

    async def _accept_verified(
        self,
        movies: List[Dict[str, Any]],
        director_id: int,
        accepted: List[MovieRecord],
        seen: Set[int],
        limit: int,
    ) -> None:
        pending = []
        for movie in movies:
            if not movie or not movie.get("id") or movie["id"] in seen:
                continue
            if not (movie.get("poster_path") or movie.get("poster")):
                continue
            seen.add(movie["id"])
            pending.append(movie)

        # Verify in small parallel batches; acceptance keeps the input order
        for start in range(0, len(pending), self.verify_concurrency):
            if len(accepted) >= limit:
                return
            batch = pending[start:start + self.verify_concurrency]
            verdicts = await asyncio.gather(*(self.is_directed_by(m["id"], director_id) for m in batch))
            for movie, verified in zip(batch, verdicts):
                if len(accepted) >= limit:
                    return
                if not verified:
                    logger.debug(f"Skipping {movie.get('title') or movie.get('name')}: not directed by {director_id}")
                    continue
                record = normalize_movie_record(movie)
                if record and record.poster:
                    accepted.append(record)

    async def select(
        self,
        director_id: int,
        director_name: str,
        preferred_movies: Optional[List[Dict[str, Any]]] = None,
        limit: int = 12,
    ) -> List[MovieRecord]:
        """Verified movies for the director, preferred movies first, then best of the filmography."""
        accepted: List[MovieRecord] = []
        seen: Set[int] = set()

        await self._accept_verified(preferred_movies or [], director_id, accepted, seen, limit)
        if len(accepted) >= limit:
            return accepted

        try:
            credits = await self.catalog.person_movie_credits(director_id)
        except CatalogError as e:
            logger.warning(f"Could not fetch filmography for {director_name}: {e}")
            return accepted

        candidates = directed_candidates(credits.get("crew") or [], exclude=seen)[:FILMOGRAPHY_SCAN_LIMIT]
        await self._accept_verified(candidates, director_id, accepted, seen, limit)

        if not accepted:
            logger.warning(f"Director {director_name} has no verified movies with a poster")
        return accepted
