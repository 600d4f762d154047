
"""
models.py

SQLAlchemy models for users, stored movies, cycles (playlists), festivals and ratings.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from cinechronic.utils.timezone import utc_now

Base = declarative_base()

FESTIVAL_STATUSES = ("scheduled", "active", "completed")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    playlists = relationship("Playlist", back_populates="owner", cascade="all, delete-orphan")


class Movie(Base):
    __tablename__ = "movies"
    id = Column(Integer, primary_key=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String(500), nullable=False)
    poster = Column(String(500))
    backdrop = Column(String(500))
    synopsis = Column(Text)
    year = Column(Integer)
    duration = Column(Integer)  # minutes
    genre = Column(JSON, default=list)
    created_at = Column(DateTime, default=utc_now)


class Playlist(Base):
    """A cycle: an ordered, user-curated list of movies, usually named after a director."""
    __tablename__ = "playlists"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    scheduled_date = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime, default=utc_now)

    owner = relationship("User", back_populates="playlists")
    entries = relationship(
        "PlaylistMovie",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistMovie.order_index",
    )
    festivals = relationship("Festival", back_populates="playlist", cascade="all, delete-orphan")


class PlaylistMovie(Base):
    __tablename__ = "playlist_movies"
    playlist_id = Column(Integer, ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    order_index = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime, default=utc_now)

    playlist = relationship("Playlist", back_populates="entries")
    movie = relationship("Movie")


class Festival(Base):
    __tablename__ = "festivals"
    id = Column(Integer, primary_key=True)
    playlist_id = Column(Integer, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    playlist = relationship("Playlist", back_populates="festivals")
    creator = relationship("User")
    participants = relationship("FestivalParticipant", back_populates="festival", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status IN ('scheduled', 'active', 'completed')", name="ck_festivals_status"),
    )


class FestivalParticipant(Base):
    __tablename__ = "festival_participants"
    festival_id = Column(Integer, ForeignKey("festivals.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    joined_at = Column(DateTime, default=utc_now)

    festival = relationship("Festival", back_populates="participants")
    user = relationship("User")


class Rating(Base):
    __tablename__ = "ratings"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1..10
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("User")
    movie = relationship("Movie")

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_ratings_user_movie"),
        CheckConstraint("rating >= 1 AND rating <= 10", name="ck_ratings_range"),
    )
