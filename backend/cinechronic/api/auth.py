"""
auth.py

Registration, login and profile endpoints. Tokens are HS256 JWTs carrying the
user id; passwords are stored as bcrypt hashes only.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from ..core.database import get_db
from ..core.security import create_access_token, get_current_user, hash_password, verify_password
from ..crud import serialize_user
from ..models import User
from ..schemas import LoginRequest, RegisterRequest, UpdateProfileRequest
from ..utils.timezone import format_iso_utc

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        existing = db.query(User.id).filter(
            or_(User.email == payload.email, User.username == payload.username)
        ).first()
        if existing:
            raise HTTPException(status_code=400, detail="Email or username already exists")

        user = User(
            email=payload.email,
            username=payload.username,
            password_hash=hash_password(payload.password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Registered user {user.id} ({user.username})")
        return {
            "message": "User created successfully",
            "token": create_access_token(user.id),
            "user": serialize_user(user),
        }
    except HTTPException:
        raise
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.rollback()
        raise HTTPException(status_code=400, detail="Email or username already exists")
    except Exception as e:
        db.rollback()
        logger.error(f"Register error: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating user: {str(e)}")


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == payload.email).first()
        if not user or not verify_password(payload.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")

        return {
            "message": "Login successful",
            "token": create_access_token(user.id),
            "user": serialize_user(user),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=500, detail=f"Error during login: {str(e)}")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)


@router.put("/update")
def update_profile(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change username and/or password."""
    try:
        if not payload.username and not payload.password:
            raise HTTPException(status_code=400, detail="No fields to update")

        if payload.username:
            taken = db.query(User.id).filter(
                User.username == payload.username,
                User.id != current_user.id,
            ).first()
            if taken:
                raise HTTPException(status_code=400, detail="Username already exists")
            current_user.username = payload.username

        if payload.password:
            current_user.password_hash = hash_password(payload.password)

        db.commit()
        db.refresh(current_user)

        user = serialize_user(current_user)
        user["updated_at"] = format_iso_utc(current_user.updated_at)
        return {"message": "Profile updated successfully", "user": user}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Update profile error: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating profile: {str(e)}")
