"""
festivals.py

Scheduled group screenings of a cycle. Only the playlist owner may schedule
one; anyone signed in may join.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session
import logging

from ..core.database import get_db
from ..core.security import get_current_user
from ..crud import get_owned_playlist, serialize_festival, serialize_festival_row
from ..models import FESTIVAL_STATUSES, Festival, FestivalParticipant, User
from ..schemas import FestivalCreate, FestivalStatusUpdate
from ..utils.timezone import utc_now

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_festival(db: Session, festival_id: int) -> Festival:
    festival = db.query(Festival).filter(Festival.id == festival_id).first()
    if not festival:
        raise HTTPException(status_code=404, detail="Festival not found")
    return festival


def _join(db: Session, festival_id: int, user_id: int) -> None:
    exists = db.query(FestivalParticipant).filter(
        FestivalParticipant.festival_id == festival_id,
        FestivalParticipant.user_id == user_id,
    ).first()
    if not exists:
        db.add(FestivalParticipant(festival_id=festival_id, user_id=user_id))


@router.get("")
def list_festivals(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Upcoming or unfinished festivals, soonest first."""
    try:
        festivals = (
            db.query(Festival)
            .filter(or_(Festival.date >= utc_now().date(), Festival.status != "completed"))
            .order_by(Festival.date.asc(), Festival.id.asc())
            .all()
        )
        return [serialize_festival(f) for f in festivals]
    except Exception as e:
        logger.error(f"Error fetching festivals: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching festivals: {str(e)}")


@router.get("/{festival_id}")
def get_festival(festival_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return serialize_festival(_get_festival(db, festival_id), full_movies=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching festival {festival_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching festival: {str(e)}")


@router.post("", status_code=201)
def create_festival(payload: FestivalCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        playlist = get_owned_playlist(db, payload.playlist_id, current_user)
        festival = Festival(playlist_id=playlist.id, date=payload.date, created_by=current_user.id)
        db.add(festival)
        db.flush()
        _join(db, festival.id, current_user.id)
        db.commit()
        db.refresh(festival)
        logger.info(f"Festival {festival.id} scheduled for playlist {playlist.id} on {festival.date}")
        return serialize_festival_row(festival)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating festival: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating festival: {str(e)}")


@router.post("/{festival_id}/join")
def join_festival(festival_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        festival = _get_festival(db, festival_id)
        _join(db, festival.id, current_user.id)
        db.commit()
        return {"message": "Joined festival successfully"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error joining festival {festival_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error joining festival: {str(e)}")


@router.patch("/{festival_id}/status")
def update_status(
    festival_id: int,
    payload: FestivalStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if payload.status not in FESTIVAL_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    try:
        festival = _get_festival(db, festival_id)
        festival.status = payload.status
        db.commit()
        db.refresh(festival)
        return serialize_festival_row(festival)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating festival status {festival_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating festival status: {str(e)}")
