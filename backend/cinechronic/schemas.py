"""
schemas.py

Pydantic schemas for request payloads and the transient recommendation records.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
import datetime


# Payloads

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    username: str = Field(..., min_length=3, max_length=100)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UpdateProfileRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v


class MovieCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tmdb_id: int = Field(..., alias="tmdbId")
    title: str = Field(..., min_length=1)
    poster: Optional[str] = None
    backdrop: Optional[str] = None
    synopsis: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[int] = None
    genre: List[str] = Field(default_factory=list)


class PlaylistCreate(BaseModel):
    name: Optional[str] = None
    date: Optional[datetime.date] = None


class PlaylistMovieAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    movie_id: int = Field(..., alias="movieId")


class FestivalCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    playlist_id: int = Field(..., alias="playlistId")
    date: datetime.date


class FestivalStatusUpdate(BaseModel):
    status: Optional[str] = None


class RatingCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    movie_id: Optional[int] = Field(None, alias="movieId")
    # The client slider sends decimals; the route rounds before persisting
    rating: Optional[float] = None


class RatingUpdate(BaseModel):
    rating: Optional[float] = None


# Recommendation records

class MovieRecord(BaseModel):
    id: int
    title: str
    poster: Optional[str] = None
    release_date: Optional[str] = None
    overview: str
    popularity: float = 0.0


class DirectorCandidate(BaseModel):
    id: int
    name: str
    country: Optional[str] = None
    place_of_birth: Optional[str] = None
    known_for: List[Dict[str, Any]] = Field(default_factory=list)


class Recommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    director: str
    director_id: int = Field(..., alias="directorId")
    director_country: Optional[str] = Field(None, alias="directorCountry")
    place_of_birth: Optional[str] = Field(None, alias="placeOfBirth")
    cycle_name: str = Field(..., alias="cycleName")
    description: str
    rating: float = Field(..., ge=1.0, le=10.0)
    movies: List[MovieRecord]
