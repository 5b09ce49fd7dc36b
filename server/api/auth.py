"""Auth endpoints: register, token, me."""

from __future__ import annotations

import logging
import uuid

import bcrypt
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from models.user import APIKey, UserProfile
from schemas.auth import MeResponse, RegisterRequest, TokenRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _verify_password(stored_hash: str, password: str) -> bool:
    """Verify password against stored bcrypt hash."""
    if not stored_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), stored_hash.encode())
    except (ValueError, UnicodeDecodeError):
        return False


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=201,
    responses={409: {"description": "Username or email already taken"}},
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    clauses = [UserProfile.username == payload.username]
    if payload.email:
        clauses.append(UserProfile.email == payload.email)
    if db.query(UserProfile).filter(or_(*clauses)).first() is not None:
        raise HTTPException(status_code=409, detail="Username or email already taken.")

    user = UserProfile(
        username=payload.username,
        password_hash=bcrypt.hashpw(payload.password.encode(), bcrypt.gensalt()).decode(),
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        has_truck=payload.has_truck,
    )
    db.add(user)
    db.flush()

    api_key = APIKey(user_id=user.id, key=str(uuid.uuid4()))
    db.add(api_key)
    db.commit()
    db.refresh(api_key)
    logger.info("Registered user %s", user.username)
    return {"key": api_key.key}


@router.post("/token", response_model=TokenResponse, responses={401: {"description": "Invalid credentials"}})
def obtain_token(payload: TokenRequest, db: Session = Depends(get_db)):
    user = db.query(UserProfile).filter(UserProfile.username == payload.username).first()
    if not user or not _verify_password(user.password_hash, payload.password):
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    api_key = db.query(APIKey).filter(APIKey.user_id == user.id).first()
    if api_key:
        api_key.key = str(uuid.uuid4())
    else:
        api_key = APIKey(user_id=user.id, key=str(uuid.uuid4()))
        db.add(api_key)
    db.commit()
    db.refresh(api_key)
    return {"key": api_key.key}


@router.get("/me", response_model=MeResponse)
def me(user: UserProfile = Depends(get_current_user)):
    return user
