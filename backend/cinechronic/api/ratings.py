"""
ratings.py

API endpoints for per-user movie ratings (integer scale 1-10, one per movie).
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import logging
import math

from ..core.database import get_db
from ..core.security import get_current_user
from ..models import Movie, Rating, User
from ..schemas import RatingCreate, RatingUpdate
from ..utils.timezone import format_iso_utc, utc_now

router = APIRouter()
logger = logging.getLogger(__name__)

INVALID_RATING = "Invalid rating. Must be between 1 and 10"


def normalize_rating(value: Optional[float]) -> int:
    """Round half-up to an integer in 1..10, else 400."""
    if value is None or not math.isfinite(value) or value < 1 or value > 10:
        raise HTTPException(status_code=400, detail=INVALID_RATING)
    rounded = math.floor(value + 0.5)
    if rounded < 1 or rounded > 10:
        raise HTTPException(status_code=400, detail=INVALID_RATING)
    return int(rounded)


def _serialize(rating: Rating) -> Dict[str, Any]:
    return {
        "id": rating.id,
        "user_id": rating.user_id,
        "movie_id": rating.movie_id,
        "rating": rating.rating,
        "created_at": format_iso_utc(rating.created_at),
        "updated_at": format_iso_utc(rating.updated_at),
    }


def _get_own_rating(db: Session, rating_id: int, user: User) -> Rating:
    rating = db.query(Rating).filter(Rating.id == rating_id, Rating.user_id == user.id).first()
    if not rating:
        raise HTTPException(status_code=404, detail="Rating not found")
    return rating


@router.get("")
def list_ratings(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The caller's ratings with the movie title, poster and year."""
    try:
        rows = (
            db.query(Rating, Movie)
            .join(Movie, Rating.movie_id == Movie.id)
            .filter(Rating.user_id == current_user.id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .all()
        )
        result = []
        for rating, movie in rows:
            item = _serialize(rating)
            item.update({"title": movie.title, "poster": movie.poster, "year": movie.year})
            result.append(item)
        return result
    except Exception as e:
        logger.error(f"Error fetching ratings: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching ratings: {str(e)}")


@router.post("")
def rate_movie(payload: RatingCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Create or replace the caller's rating of a stored movie."""
    if not payload.movie_id:
        raise HTTPException(status_code=400, detail="movieId is required")
    value = normalize_rating(payload.rating)

    try:
        if not db.query(Movie.id).filter(Movie.id == payload.movie_id).first():
            raise HTTPException(status_code=404, detail="Movie not found")

        rating = db.query(Rating).filter(
            Rating.user_id == current_user.id,
            Rating.movie_id == payload.movie_id,
        ).first()
        if rating:
            rating.rating = value
            rating.updated_at = utc_now()
        else:
            rating = Rating(user_id=current_user.id, movie_id=payload.movie_id, rating=value)
            db.add(rating)

        db.commit()
        db.refresh(rating)
        logger.info(f"User {current_user.id} rated movie {payload.movie_id}: {value}")
        return _serialize(rating)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating rating: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating rating: {str(e)}")


@router.get("/movie/{movie_id}")
def get_movie_rating(movie_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rating = db.query(Rating).filter(Rating.user_id == current_user.id, Rating.movie_id == movie_id).first()
    if not rating:
        raise HTTPException(status_code=404, detail="Rating not found")
    return _serialize(rating)


@router.put("/{rating_id}")
def update_rating(
    rating_id: int,
    payload: RatingUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    value = normalize_rating(payload.rating)
    try:
        rating = _get_own_rating(db, rating_id, current_user)
        rating.rating = value
        rating.updated_at = utc_now()
        db.commit()
        db.refresh(rating)
        return _serialize(rating)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating rating {rating_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating rating: {str(e)}")


@router.delete("/{rating_id}")
def delete_rating(rating_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        rating = _get_own_rating(db, rating_id, current_user)
        db.delete(rating)
        db.commit()
        return {"message": "Rating deleted"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting rating {rating_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting rating: {str(e)}")
