"""
deps.py

FastAPI dependencies for the external clients and the daily recommendation
cache. Tests replace these through ``app.dependency_overrides``.
"""
from fastapi import HTTPException, Request
from typing import Optional
import logging

from ..services.director_lookup import DirectorLookup
from ..services.recommendation_cache import DailyRecommendationCache
from ..services.recommendation_engine import RecommendationEngine, get_recommendation_engine
from ..services.tmdb_client import CatalogConfigurationError, TMDBClient, get_tmdb_client

logger = logging.getLogger(__name__)

_lookup: Optional[DirectorLookup] = None


def get_catalog() -> Optional[TMDBClient]:
    """The TMDB client, or None when no credential is configured."""
    try:
        return get_tmdb_client()
    except CatalogConfigurationError as e:
        logger.warning(str(e))
        return None


def require_catalog(catalog: Optional[TMDBClient]) -> TMDBClient:
    if catalog is None:
        raise HTTPException(status_code=500, detail=CatalogConfigurationError().message)
    return catalog


def get_director_lookup(catalog: Optional[TMDBClient]) -> Optional[DirectorLookup]:
    """Shared lookup per catalog client so name searches stay cached between requests."""
    global _lookup
    if catalog is None:
        return None
    if _lookup is None or _lookup.catalog is not catalog:
        _lookup = DirectorLookup(catalog)
    return _lookup


def get_recommendation_cache(request: Request) -> DailyRecommendationCache:
    return request.app.state.recommendation_cache


def get_engine() -> RecommendationEngine:
    try:
        return get_recommendation_engine()
    except CatalogConfigurationError as e:
        raise HTTPException(status_code=500, detail=e.message)
