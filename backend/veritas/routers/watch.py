from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..identity import resolve_user_id
from ..schemas import WatchProgressRequest, WatchProgressResult
from ..scoring import record_watch_progress

logger = logging.getLogger(__name__)

router = APIRouter(tags=["watch"])


@router.post("/watch-progress", response_model=WatchProgressResult)
def watch_progress(
	req: WatchProgressRequest,
	user_id: str = Depends(resolve_user_id),
	db: Session = Depends(get_db),
):
	if not req.videoId or req.currentTime is None or not req.duration:
		raise HTTPException(status_code=400, detail="videoId, currentTime, and duration are required")
	# Older players only send positions; fall back to the position delta
	if req.realWatchSeconds is not None:
		delta = req.realWatchSeconds
	else:
		delta = max(0.0, req.currentTime - (req.lastReportedTime or 0))
	result = record_watch_progress(
		db,
		user_id,
		req.videoId,
		req.currentTime,
		req.duration,
		delta,
		session_id=req.sessionId,
	)
	logger.debug("watch-progress for %s on %s: %s", user_id, req.videoId, result.message)
	return result
