"""
movies.py

Stored movies (the local copy of TMDB titles added to cycles) and public TMDB
proxy endpoints for search, details and watch providers.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
import asyncio
import logging

from ..core.config import settings
from ..core.database import get_db
from ..core.security import get_current_user, get_optional_user
from ..crud import movie_ratings, serialize_movie
from ..models import Movie, Rating, User
from ..schemas import MovieCreate
from ..services.director_lookup import DirectorLookup
from ..services.tmdb_client import CatalogError, TMDBClient
from .deps import get_catalog, get_director_lookup, require_catalog

router = APIRouter()
logger = logging.getLogger(__name__)

SEARCH_ENRICH_LIMIT = 10


@router.get("")
def list_movies(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        movies = db.query(Movie).order_by(Movie.created_at.desc(), Movie.id.desc()).all()
        return [serialize_movie(m) for m in movies]
    except Exception as e:
        logger.error(f"Error fetching movies: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching movies: {str(e)}")


@router.get("/top-rated")
def top_rated_movie(current_user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    """Highest average rating across all users; anonymous callers get 404."""
    if current_user is None:
        raise HTTPException(status_code=404, detail="No rated movies found")
    try:
        average = func.avg(Rating.rating).label("average_rating")
        count = func.count(Rating.id).label("rating_count")
        row = (
            db.query(Movie, average, count)
            .join(Rating, Rating.movie_id == Movie.id)
            .group_by(Movie.id)
            .order_by(average.desc(), count.desc())
            .first()
        )
        if not row:
            raise HTTPException(status_code=404, detail="No rated movies found")

        movie, average_rating, rating_count = row
        data = serialize_movie(movie)
        data["average_rating"] = float(average_rating)
        data["rating_count"] = int(rating_count)
        return data
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching top rated movie: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching top rated movie: {str(e)}")


@router.get("/search/tmdb")
async def search_tmdb(
    query: Optional[str] = Query(None),
    catalog: Optional[TMDBClient] = Depends(get_catalog),
):
    """TMDB movie search; the first results carry runtime and director."""
    if not query or len(query.strip()) < 2:
        raise HTTPException(status_code=400, detail="Query must be at least 2 characters")
    catalog = require_catalog(catalog)
    lookup: DirectorLookup = get_director_lookup(catalog)

    try:
        results = (await catalog.search_movies(query.strip())).get("results") or []
    except CatalogError as e:
        logger.error(f"Error searching TMDB: {e}")
        raise HTTPException(status_code=500, detail=e.message or "Error searching movies")

    async def _enrich(movie):
        runtime = None
        try:
            runtime = (await catalog.movie_details(movie["id"])).get("runtime")
        except CatalogError as e:
            logger.warning(f"Error fetching details for movie {movie.get('id')}: {e}")
        director = await lookup.movie_director(movie["id"], with_profile=False)
        return {**movie, "runtime": runtime, "director": director}

    head = [m for m in results[:SEARCH_ENRICH_LIMIT] if m and m.get("id")]
    enriched = await asyncio.gather(*(_enrich(m) for m in head))
    return list(enriched) + results[SEARCH_ENRICH_LIMIT:]


@router.get("/tmdb/{tmdb_id}")
async def tmdb_movie(tmdb_id: int, catalog: Optional[TMDBClient] = Depends(get_catalog)):
    catalog = require_catalog(catalog)
    try:
        return await catalog.movie_details(tmdb_id)
    except CatalogError as e:
        logger.error(f"Error fetching TMDB movie {tmdb_id}: {e}")
        return JSONResponse(status_code=e.status or 500, content={"detail": e.message or "Movie not found in TMDB"})


@router.get("/tmdb/{tmdb_id}/watch-providers")
async def watch_providers(tmdb_id: int, catalog: Optional[TMDBClient] = Depends(get_catalog)):
    """Streaming, rental and purchase offers for the configured region only."""
    catalog = require_catalog(catalog)
    region = settings.watch_region
    try:
        data = await catalog.movie_watch_providers(tmdb_id, region)
    except CatalogError as e:
        logger.error(f"Error fetching watch providers for {tmdb_id}: {e}")
        return JSONResponse(status_code=e.status or 500, content={"detail": e.message or "Watch providers not found"})

    providers = (data.get("results") or {}).get(region) or {}
    return {
        "link": providers.get("link"),
        "flatrate": providers.get("flatrate") or [],
        "rent": providers.get("rent") or [],
        "buy": providers.get("buy") or [],
    }


@router.get("/{movie_id}")
def get_movie(movie_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if not movie:
        raise HTTPException(status_code=404, detail="Movie not found")
    return serialize_movie(movie)


@router.get("/{movie_id}/ratings")
def get_movie_ratings(movie_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return movie_ratings(db, movie_id)
    except Exception as e:
        logger.error(f"Error fetching ratings: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching ratings: {str(e)}")


@router.post("", status_code=201)
def create_movie(payload: MovieCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Insert a TMDB title once; posting an already stored tmdbId returns the existing row."""
    try:
        existing = db.query(Movie).filter(Movie.tmdb_id == payload.tmdb_id).first()
        if existing:
            return JSONResponse(status_code=200, content=serialize_movie(existing))

        movie = Movie(
            tmdb_id=payload.tmdb_id,
            title=payload.title,
            poster=payload.poster,
            backdrop=payload.backdrop,
            synopsis=payload.synopsis,
            year=payload.year,
            duration=payload.duration,
            genre=payload.genre,
        )
        db.add(movie)
        db.commit()
        db.refresh(movie)
        logger.info(f"Stored movie {movie.id} (TMDB {movie.tmdb_id}): {movie.title}")
        return serialize_movie(movie)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating movie: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating movie: {str(e)}")
