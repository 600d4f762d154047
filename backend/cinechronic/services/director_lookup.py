"""
director_lookup.py

Director-centric TMDB lookups shared by the cycle routes and the recommendation
engine: name resolution, birthplace/country, profile photo, autocomplete and
filmography listings. Failures are logged and reported as None / empty lists.
"""
import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from cinechronic.services.movie_selection import directed_candidates
from cinechronic.services.tmdb_client import (
    CatalogError,
    TMDBClient,
    build_profile_url,
    extract_country_from_place,
    find_director,
    is_directing,
)

logger = logging.getLogger(__name__)

# Matched against the last segment of TMDB's place_of_birth
LATIN_AMERICAN_COUNTRIES = {
    "mexico", "méxico", "argentina", "chile", "colombia", "brazil", "brasil", "peru", "perú",
    "uruguay", "paraguay", "bolivia", "ecuador", "venezuela", "cuba", "puerto rico",
    "dominican republic", "república dominicana", "guatemala", "honduras", "el salvador",
    "nicaragua", "costa rica", "panama", "panamá",
}

_NAME_NOISE = re.compile(r"[^\w\s]", re.UNICODE)


def is_latin_american(country: Optional[str]) -> bool:
    return bool(country) and country.strip().lower() in LATIN_AMERICAN_COUNTRIES


def _with_ids(results: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return [person for person in results or [] if person and person.get("id")]


class DirectorLookup:
    """TMDB person lookups with an in-process cache for name searches."""

    def __init__(self, catalog: TMDBClient):
        self.catalog = catalog
        self._search_cache: Dict[str, Optional[Dict[str, Any]]] = {}

    async def profile_url(self, person_id: int) -> Optional[str]:
        """First profile image of the person, as a w185 URL."""
        if not person_id:
            return None
        try:
            data = await self.catalog.person_images(person_id)
        except CatalogError as e:
            logger.warning(f"Could not fetch images for person {person_id}: {e}")
            return None
        profiles = data.get("profiles") or []
        return build_profile_url(profiles[0].get("file_path")) if profiles else None

    async def details(self, person_id: int) -> Optional[Dict[str, Any]]:
        """Place of birth, derived country and profile photo; None when TMDB fails."""
        if not person_id:
            return None
        try:
            person = await self.catalog.person_details(person_id)
        except CatalogError as e:
            logger.warning(f"Could not fetch details for person {person_id}: {e}")
            return None
        place_of_birth = person.get("place_of_birth") or None
        return {
            "placeOfBirth": place_of_birth,
            "country": extract_country_from_place(place_of_birth),
            "profileUrl": await self.profile_url(person_id),
        }

    async def search_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Resolve a free-text director name to {id, name, country, placeOfBirth, profileUrl, knownFor}."""
        if not name or not name.strip():
            return None
        cache_key = name.strip().lower()
        if cache_key in self._search_cache:
            return self._search_cache[cache_key]

        cleaned = _NAME_NOISE.sub("", name.strip()).strip() or name.strip()
        try:
            results = _with_ids((await self.catalog.search_person(cleaned)).get("results"))
            if not results and cleaned != name.strip():
                results = _with_ids((await self.catalog.search_person(name.strip())).get("results"))
        except CatalogError as e:
            logger.error(f"Error searching director '{name}': {e}")
            return None

        if not results:
            logger.warning(f"No TMDB results for director '{name}'")
            self._search_cache[cache_key] = None
            return None

        match = next((person for person in results if is_directing(person)), results[0])
        details = await self.details(match["id"]) or {}
        director = {
            "id": match["id"],
            "name": match.get("name") or name,
            "country": details.get("country"),
            "placeOfBirth": details.get("placeOfBirth"),
            "profileUrl": details.get("profileUrl"),
            "knownFor": [
                item for item in match.get("known_for") or []
                if item and item.get("id") and item.get("media_type") in ("movie", "tv") and item.get("poster_path")
            ],
        }
        logger.info(f"Director found: '{name}' -> '{director['name']}' (ID: {director['id']})")
        self._search_cache[cache_key] = director
        return director

    async def movie_director(self, movie_id: int, with_profile: bool = True) -> Optional[Dict[str, Any]]:
        """Director of a movie as {id, name[, profileUrl]}."""
        try:
            credits = await self.catalog.movie_credits(movie_id)
        except CatalogError as e:
            logger.warning(f"Could not get director for movie {movie_id}: {e}")
            return None
        member = find_director(credits.get("crew") or [])
        if not member:
            return None
        director = {"id": member["id"], "name": member.get("name")}
        if with_profile:
            director["profileUrl"] = await self.profile_url(member["id"])
        return director

    async def autocomplete(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Directors by person name, topped up with the directors of matching movie titles."""
        found: Dict[int, Dict[str, Any]] = {}

        try:
            people = (await self.catalog.search_person(query)).get("results") or []
        except CatalogError as e:
            logger.error(f"Error searching directors for '{query}': {e}")
            people = []
        directing = [p for p in people if p.get("id") and is_directing(p)]
        photos = await asyncio.gather(*(self.profile_url(p["id"]) for p in directing))
        for person, photo in zip(directing, photos):
            found[person["id"]] = {"id": person["id"], "name": person.get("name"), "profileUrl": photo}

        if len(found) < 5:
            try:
                movies = (await self.catalog.search_movies(query)).get("results") or []
            except CatalogError as e:
                logger.error(f"Error searching movies for '{query}': {e}")
                movies = []
            directors = await asyncio.gather(*(self.movie_director(m["id"]) for m in movies[:3] if m.get("id")))
            for director in directors:
                if director and director.get("id") and len(found) < limit:
                    found.setdefault(director["id"], director)

        return list(found.values())[:limit]

    async def filmography(self, director_id: int, limit: int = 20, enrich: int = 5) -> List[Dict[str, Any]]:
        """Movies the person directed, best first; the first ``enrich`` carry runtime.

        Raises:
            CatalogError: when the filmography itself cannot be fetched
        """
        credits = await self.catalog.person_movie_credits(director_id)
        director_name = credits.get("name")
        movies = [
            {
                "id": movie["id"],
                "title": movie.get("title"),
                "poster_path": movie.get("poster_path"),
                "release_date": movie.get("release_date"),
                "vote_average": movie.get("vote_average"),
                "overview": movie.get("overview"),
                "genre_ids": movie.get("genre_ids") or [],
                "runtime": None,
                "director": {"id": director_id, "name": director_name},
            }
            for movie in directed_candidates(credits.get("crew") or [], exclude=set())[:limit]
        ]

        async def _with_runtime(movie):
            try:
                detail = await self.catalog.movie_details(movie["id"])
                return {**movie, "runtime": detail.get("runtime") or None}
            except CatalogError as e:
                logger.warning(f"Could not fetch details for movie {movie['id']}: {e}")
                return movie

        enriched = await asyncio.gather(*(_with_runtime(m) for m in movies[:enrich]))
        return list(enriched) + movies[enrich:]
