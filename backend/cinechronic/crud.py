"""
crud.py

Shared queries and JSON shaping for users, movies, playlists and festivals.
Column names are exposed as stored (snake_case); nested movie summaries carry
``tmdbId`` like the client expects.
"""
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
import logging

from . import models
from .utils.timezone import format_iso_utc

logger = logging.getLogger(__name__)


def _date(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_user(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "avatar": user.avatar,
        "created_at": format_iso_utc(user.created_at),
    }


def serialize_user_summary(user: Optional[models.User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "avatar": user.avatar}


def serialize_movie(movie: models.Movie) -> Dict[str, Any]:
    return {
        "id": movie.id,
        "tmdb_id": movie.tmdb_id,
        "title": movie.title,
        "poster": movie.poster,
        "backdrop": movie.backdrop,
        "synopsis": movie.synopsis,
        "year": movie.year,
        "duration": movie.duration,
        "genre": movie.genre or [],
        "created_at": format_iso_utc(movie.created_at),
    }


def movie_summary(movie: models.Movie) -> Dict[str, Any]:
    return {
        "id": movie.id,
        "tmdbId": movie.tmdb_id,
        "title": movie.title,
        "poster": movie.poster,
        "year": movie.year,
    }


def movie_ratings(db: Session, movie_id: int) -> List[Dict[str, Any]]:
    """Ratings of a stored movie with the rater's name, newest first."""
    rows = (
        db.query(models.Rating, models.User)
        .join(models.User, models.Rating.user_id == models.User.id)
        .filter(models.Rating.movie_id == movie_id)
        .order_by(models.Rating.created_at.desc())
        .all()
    )
    return [
        {
            "id": rating.id,
            "rating": rating.rating,
            "user_id": user.id,
            "username": user.username,
            "avatar": user.avatar,
            "createdAt": format_iso_utc(rating.created_at),
        }
        for rating, user in rows
    ]


def serialize_playlist(playlist: models.Playlist) -> Dict[str, Any]:
    """Playlist row plus its movies in order."""
    return {
        "id": playlist.id,
        "user_id": playlist.user_id,
        "name": playlist.name,
        "scheduled_date": _date(playlist.scheduled_date),
        "created_at": format_iso_utc(playlist.created_at),
        "movies": [movie_summary(entry.movie) for entry in playlist.entries if entry.movie is not None],
    }


def serialize_playlist_detail(db: Session, playlist: models.Playlist) -> Dict[str, Any]:
    """Full movie rows with their ratings, plus everyone who joined a festival of this playlist."""
    data = serialize_playlist(playlist)
    movies = []
    for entry in playlist.entries:
        if entry.movie is None:
            continue
        movie = movie_summary(entry.movie)
        movie.update({
            "backdrop": entry.movie.backdrop,
            "synopsis": entry.movie.synopsis,
            "duration": entry.movie.duration,
            "genre": entry.movie.genre or [],
            "ratings": movie_ratings(db, entry.movie.id),
        })
        movies.append(movie)
    data["movies"] = movies

    participants = (
        db.query(models.User)
        .join(models.FestivalParticipant, models.FestivalParticipant.user_id == models.User.id)
        .join(models.Festival, models.Festival.id == models.FestivalParticipant.festival_id)
        .filter(models.Festival.playlist_id == playlist.id)
        .distinct()
        .all()
    )
    data["participants"] = [serialize_user_summary(u) for u in participants]
    return data


def serialize_festival_row(festival: models.Festival) -> Dict[str, Any]:
    return {
        "id": festival.id,
        "playlist_id": festival.playlist_id,
        "date": _date(festival.date),
        "status": festival.status,
        "created_by": festival.created_by,
        "created_at": format_iso_utc(festival.created_at),
    }


def serialize_festival(festival: models.Festival, full_movies: bool = False) -> Dict[str, Any]:
    """Festival with its playlist, creator and participants."""
    data = serialize_festival_row(festival)
    playlist = festival.playlist
    movies = []
    for entry in playlist.entries if playlist else []:
        if entry.movie is None:
            continue
        movie = movie_summary(entry.movie)
        if full_movies:
            movie.update({
                "backdrop": entry.movie.backdrop,
                "synopsis": entry.movie.synopsis,
                "duration": entry.movie.duration,
                "genre": entry.movie.genre or [],
            })
        movies.append(movie)
    data["playlist"] = {
        "id": playlist.id,
        "name": playlist.name,
        "scheduled_date": _date(playlist.scheduled_date),
        "movies": movies,
    } if playlist else None
    data["created_by_user"] = serialize_user_summary(festival.creator)
    data["participants"] = [serialize_user_summary(p.user) for p in festival.participants if p.user is not None]
    return data


def get_owned_playlist(db: Session, playlist_id: int, user: models.User) -> models.Playlist:
    """404 when the playlist does not exist, 403 when it belongs to someone else."""
    playlist = db.query(models.Playlist).filter(models.Playlist.id == playlist_id).first()
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")
    if playlist.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return playlist


def next_order_index(db: Session, playlist_id: int) -> int:
    current = (
        db.query(func.max(models.PlaylistMovie.order_index))
        .filter(models.PlaylistMovie.playlist_id == playlist_id)
        .scalar()
    )
    return 0 if current is None else current + 1
