"""
playlists.py

Cycles: ordered, user-owned movie lists usually named after a director.
Responses carry a ``director`` block resolved from the cycle name through TMDB
(null when TMDB is unavailable or nothing matches), plus public director
search and filmography endpoints used while building a cycle.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import asyncio
import logging

from ..core.database import get_db
from ..core.security import get_current_user
from ..crud import (
    get_owned_playlist,
    next_order_index,
    serialize_playlist,
    serialize_playlist_detail,
    serialize_user_summary,
)
from ..models import Movie, Playlist, PlaylistMovie, User
from ..schemas import PlaylistCreate, PlaylistMovieAdd
from ..services.director_lookup import DirectorLookup
from ..services.tmdb_client import CatalogError, TMDBClient
from .deps import get_catalog, get_director_lookup, require_catalog

router = APIRouter()
logger = logging.getLogger(__name__)


async def _director_for(lookup: Optional[DirectorLookup], cycle_name: str) -> Optional[Dict[str, Any]]:
    if lookup is None or not cycle_name or not cycle_name.strip():
        return None
    try:
        director = await lookup.search_by_name(cycle_name)
    except Exception as e:
        logger.error(f"Error getting director for playlist '{cycle_name}': {e}")
        return None
    if not director:
        return None
    return {
        "id": director["id"],
        "name": director["name"],
        "country": director.get("country"),
        "placeOfBirth": director.get("placeOfBirth"),
        "profileUrl": director.get("profileUrl"),
    }


async def _with_directors(playlists, catalog: Optional[TMDBClient]):
    lookup = get_director_lookup(catalog)
    directors = await asyncio.gather(*(_director_for(lookup, p["name"]) for p in playlists))
    for playlist, director in zip(playlists, directors):
        playlist["director"] = director
    return playlists


@router.get("/search/directors")
async def search_directors(
    query: Optional[str] = Query(None),
    catalog: Optional[TMDBClient] = Depends(get_catalog),
):
    """Autocomplete: directors by name, topped up with directors of matching titles."""
    if not query or len(query) < 2:
        return []
    lookup = get_director_lookup(require_catalog(catalog))
    try:
        return await lookup.autocomplete(query, limit=10)
    except Exception as e:
        logger.error(f"Error in director search: {e}")
        raise HTTPException(status_code=500, detail="Error searching directors")


@router.get("/director/{director_id}/movies")
async def director_movies(director_id: int, catalog: Optional[TMDBClient] = Depends(get_catalog)):
    lookup = get_director_lookup(require_catalog(catalog))
    try:
        return await lookup.filmography(director_id, limit=20, enrich=5)
    except CatalogError as e:
        logger.error(f"Error fetching director movies: {e}")
        raise HTTPException(status_code=500, detail="Error fetching director movies")


@router.get("/scheduled")
async def scheduled_playlists(
    db: Session = Depends(get_db),
    catalog: Optional[TMDBClient] = Depends(get_catalog),
):
    """Every user's cycles that have a screening date, soonest first."""
    try:
        playlists = (
            db.query(Playlist)
            .filter(Playlist.scheduled_date.isnot(None))
            .order_by(Playlist.scheduled_date.asc(), Playlist.id.asc())
            .all()
        )
        data = []
        for playlist in playlists:
            item = serialize_playlist(playlist)
            item["created_by_user"] = serialize_user_summary(playlist.owner)
            data.append(item)
    except Exception as e:
        logger.error(f"Error fetching scheduled playlists: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching scheduled playlists: {str(e)}")
    return await _with_directors(data, catalog)


@router.get("")
async def list_playlists(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: Optional[TMDBClient] = Depends(get_catalog),
):
    try:
        playlists = (
            db.query(Playlist)
            .filter(Playlist.user_id == current_user.id)
            .order_by(Playlist.created_at.desc(), Playlist.id.desc())
            .all()
        )
        data = [serialize_playlist(p) for p in playlists]
    except Exception as e:
        logger.error(f"Error fetching playlists: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching playlists: {str(e)}")
    return await _with_directors(data, catalog)


@router.get("/{playlist_id}")
async def get_playlist(
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: Optional[TMDBClient] = Depends(get_catalog),
):
    """Playlist with full movie rows, their ratings and the festival participants."""
    try:
        playlist = db.query(Playlist).filter(Playlist.id == playlist_id).first()
        if not playlist:
            raise HTTPException(status_code=404, detail="Playlist not found")
        data = serialize_playlist_detail(db, playlist)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching playlist {playlist_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching playlist: {str(e)}")
    data["director"] = await _director_for(get_director_lookup(catalog), data["name"])
    return data


@router.post("", status_code=201)
def create_playlist(
    payload: PlaylistCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        playlist = Playlist(
            user_id=current_user.id,
            name=payload.name.strip(),
            scheduled_date=payload.date,
        )
        db.add(playlist)
        db.commit()
        db.refresh(playlist)
        logger.info(f"Created playlist {playlist.id}: {playlist.name}")
        return serialize_playlist(playlist)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating playlist: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating playlist: {str(e)}")


@router.post("/{playlist_id}/movies")
def add_movie(
    playlist_id: int,
    payload: PlaylistMovieAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Append a stored movie; adding a movie already in the playlist is a no-op."""
    try:
        playlist = get_owned_playlist(db, playlist_id, current_user)
        if not db.query(Movie.id).filter(Movie.id == payload.movie_id).first():
            raise HTTPException(status_code=404, detail="Movie not found")

        exists = db.query(PlaylistMovie).filter(
            PlaylistMovie.playlist_id == playlist.id,
            PlaylistMovie.movie_id == payload.movie_id,
        ).first()
        if not exists:
            db.add(PlaylistMovie(
                playlist_id=playlist.id,
                movie_id=payload.movie_id,
                order_index=next_order_index(db, playlist.id),
            ))
            db.commit()
            db.refresh(playlist)

        return serialize_playlist(playlist)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error adding movie to playlist {playlist_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding movie to playlist: {str(e)}")


@router.delete("/{playlist_id}/movies/{movie_id}")
def remove_movie(
    playlist_id: int,
    movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        playlist = get_owned_playlist(db, playlist_id, current_user)
        db.query(PlaylistMovie).filter(
            PlaylistMovie.playlist_id == playlist.id,
            PlaylistMovie.movie_id == movie_id,
        ).delete(synchronize_session=False)
        db.commit()
        return {"message": "Movie removed from playlist"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error removing movie from playlist {playlist_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error removing movie from playlist: {str(e)}")


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a playlist with its memberships, festivals and their participants."""
    try:
        playlist = get_owned_playlist(db, playlist_id, current_user)
        db.delete(playlist)  # Cascade removes entries, festivals and participants
        db.commit()
        logger.info(f"Deleted playlist {playlist_id}")
        return {"message": "Playlist deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting playlist {playlist_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting playlist: {str(e)}")
