"""Dump run endpoints: just enough to give a conversation something to hang off."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api._helpers import get_dump_run
from auth import get_current_user
from database import get_db
from models.dump_run import DumpRun
from models.user import UserProfile
from schemas.dump_run import DumpRunIn, DumpRunOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=DumpRunOut, status_code=201)
def create_dump_run(
    payload: DumpRunIn,
    db: Session = Depends(get_db),
    profile: UserProfile = Depends(get_current_user),
):
    run = DumpRun(
        title=payload.title,
        location=payload.location,
        description=payload.description,
        date=payload.date,
        max_participants=payload.max_participants,
        organizer_id=profile.id,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("User %s created dump run %d", profile.username, run.id)
    return run


@router.get("/{dump_run_id}", response_model=DumpRunOut)
def read_dump_run(dump_run_id: int, db: Session = Depends(get_db)):
    return get_dump_run(dump_run_id, db)
