"""
TMDB client for CineChronic.
- Async httpx client, one request per call, no retries.
- Auth mode is fixed at construction: bearer token header if configured,
  otherwise the api_key query parameter.
- Non-2xx responses and non-JSON bodies raise CatalogError; callers decide whether that is fatal.
- No in-module caching; results cached by caller.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from cinechronic.core.config import settings

TMDB_BASE = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
PROFILE_BASE_URL = "https://image.tmdb.org/t/p/w185"
DEFAULT_LANGUAGE = "en-US"

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """TMDB answered with a non-2xx status or an unreadable body, or could not be reached."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"TMDB error ({self.status}): {self.message}" if self.status else f"TMDB error: {self.message}"


class CatalogConfigurationError(CatalogError):
    """Neither a bearer token nor an API key is configured."""

    def __init__(self):
        super().__init__(None, "TMDB authentication not configured. Add TMDB_ACCESS_TOKEN or TMDB_API_KEY")


class TMDBClient:
    """Async TMDB client with bearer-token or API-key authentication."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: str = TMDB_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not access_token and not api_key:
            raise CatalogConfigurationError()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.auth_mode = "bearer" if access_token else "api_key"
        self._headers = {"accept": "application/json"}
        self._auth_params: Dict[str, str] = {}
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"
        else:
            self._auth_params["api_key"] = api_key

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET ``path`` and return the parsed JSON body."""
        query = dict(self._auth_params)
        for key, value in (params or {}).items():
            if value is not None:
                query[key] = value
        url = f"{self.base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.get(url, params=query, headers=self._headers)
            except httpx.HTTPError as e:
                logger.warning(f"TMDB request to {path} failed: {e}")
                raise CatalogError(None, str(e)) from e

        if resp.status_code < 200 or resp.status_code >= 300:
            message = "TMDB API error"
            try:
                message = resp.json().get("status_message") or message
            except ValueError:
                pass
            logger.debug(f"TMDB {path} answered {resp.status_code}: {message}")
            raise CatalogError(resp.status_code, message)
        try:
            return resp.json()
        except ValueError as e:
            logger.warning(f"TMDB {path} answered {resp.status_code} with a non-JSON body")
            raise CatalogError(resp.status_code, "TMDB returned invalid JSON") from e

    # --- search -----------------------------------------------------------

    async def search_person(self, query: str, page: int = 1) -> Dict[str, Any]:
        return await self.get("search/person", {"query": query, "page": page, "language": DEFAULT_LANGUAGE})

    async def search_movies(self, query: str, page: int = 1) -> Dict[str, Any]:
        return await self.get("search/movie", {"query": query, "page": page, "language": DEFAULT_LANGUAGE})

    # --- people -----------------------------------------------------------

    async def person_details(self, person_id: int) -> Dict[str, Any]:
        return await self.get(f"person/{person_id}", {"language": DEFAULT_LANGUAGE})

    async def person_images(self, person_id: int) -> Dict[str, Any]:
        return await self.get(f"person/{person_id}/images")

    async def person_movie_credits(self, person_id: int) -> Dict[str, Any]:
        return await self.get(f"person/{person_id}/movie_credits", {"language": DEFAULT_LANGUAGE})

    async def trending_people(self, time_window: str = "week", page: int = 1) -> Dict[str, Any]:
        return await self.get(f"trending/person/{time_window}", {"page": page, "language": DEFAULT_LANGUAGE})

    async def popular_people(self, page: int = 1) -> Dict[str, Any]:
        return await self.get("person/popular", {"page": page, "language": DEFAULT_LANGUAGE})

    # --- movies -----------------------------------------------------------

    async def movie_details(self, movie_id: int) -> Dict[str, Any]:
        return await self.get(f"movie/{movie_id}", {"language": DEFAULT_LANGUAGE})

    async def movie_credits(self, movie_id: int) -> Dict[str, Any]:
        return await self.get(f"movie/{movie_id}/credits", {"language": DEFAULT_LANGUAGE})

    async def movie_watch_providers(self, movie_id: int, region: str) -> Dict[str, Any]:
        return await self.get(f"movie/{movie_id}/watch/providers", {"watch_region": region})

    async def popular_movies(self, page: int = 1) -> Dict[str, Any]:
        return await self.get("movie/popular", {"page": page, "language": DEFAULT_LANGUAGE})

    async def top_rated_movies(self, page: int = 1) -> Dict[str, Any]:
        return await self.get("movie/top_rated", {"page": page, "language": DEFAULT_LANGUAGE})


def build_poster_url(path: Optional[str]) -> Optional[str]:
    """Full poster URL for a TMDB relative path; absolute URLs pass through."""
    if not path:
        return None
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return f"{POSTER_BASE_URL}{path}"


def build_profile_url(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return f"{PROFILE_BASE_URL}{path}"


def extract_country_from_place(place_of_birth: Optional[str]) -> Optional[str]:
    """Country is the last comma-separated segment of TMDB's free-text place of birth."""
    if not place_of_birth or not isinstance(place_of_birth, str):
        return None
    parts = [segment.strip() for segment in place_of_birth.split(",") if segment.strip()]
    if not parts:
        return None
    return parts[-1]


def is_directing(person: Dict[str, Any]) -> bool:
    return (person.get("known_for_department") or "").lower() == "directing"


def find_director(crew: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """First crew member whose job is Director."""
    for member in crew or []:
        if member and (member.get("job") or "").lower() == "director":
            return member
    return None


_tmdb_client: Optional[TMDBClient] = None


def get_tmdb_client() -> TMDBClient:
    """Get or create the process-wide TMDB client.

    Raises:
        CatalogConfigurationError: when no TMDB credential is configured
    """
    global _tmdb_client

    if _tmdb_client is None:
        _tmdb_client = TMDBClient(
            access_token=settings.tmdb_access_token or None,
            api_key=settings.tmdb_api_key or None,
        )
        logger.info(f"TMDB client using {_tmdb_client.auth_mode} authentication")

    return _tmdb_client
