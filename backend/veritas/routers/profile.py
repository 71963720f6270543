from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import storage
from ..db import get_db
from ..schemas import CreatorWatchSummary, InterestOut, SkillOut

router = APIRouter(tags=["profile"])


@router.get("/profile/{user_id}/interests", response_model=List[InterestOut])
def interests(user_id: str, db: Session = Depends(get_db)):
	"""Interest profile, highest score first."""
	return storage.list_interest_scores(db, user_id)


@router.get("/profile/{user_id}/skills", response_model=List[SkillOut])
def skills(user_id: str, db: Session = Depends(get_db)):
	return storage.list_skill_entries(db, user_id)


@router.get("/creators/{channel_id}/watch-stats", response_model=CreatorWatchSummary)
def creator_watch_stats(channel_id: str, db: Session = Depends(get_db)):
	return storage.get_creator_watch_totals(db, channel_id)
