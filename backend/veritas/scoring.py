"""Segment-aware interest scoring for watch-progress reports.

A video carries one or more topic tags, each tied to the percentage window of
the timeline where that topic is discussed. A report credits every tag whose
window the viewer has reached: full weight once past the window, a linear
share while inside it, nothing before it.

Topic scoring, creator credit and the audit event are independent side
effects. Each one commits or rolls back its own transaction so a storage
failure in one never blocks the others.
"""
from __future__ import annotations
import logging
import math
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from . import storage
from .schemas import ScoreDelta, TopicSegment, WatchProgressResult

logger = logging.getLogger(__name__)

VIDEO_VIEW_EVENT = "video_view"


def round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def watch_percentage(current_position: float, duration: float) -> float:
	return min(100.0, current_position / duration * 100)


def segment_delta(segment: TopicSegment, watch_pct: float) -> int:
	start = segment.segment_start_pct
	end = segment.segment_end_pct
	if watch_pct >= end:
		return segment.weight
	if watch_pct <= start:
		return 0
	return round_half_up(segment.weight * (watch_pct - start) / (end - start))


def score_deltas(segments: List[TopicSegment], watch_pct: float) -> List[ScoreDelta]:
	deltas = []
	for segment in segments:
		delta = segment_delta(segment, watch_pct)
		if delta > 0:
			deltas.append(ScoreDelta(tag=segment.tag, delta=delta))
	return deltas


def _apply_topic_scores(db: Session, user_id: str, video_id: str, watch_pct: float) -> tuple[List[ScoreDelta], str]:
	try:
		segments = storage.get_video_topic_segments(db, video_id)
	except Exception:
		db.rollback()
		logger.exception("Failed to fetch topic segments for video %s", video_id)
		return [], "Failed to fetch tags"
	if not segments:
		logger.info("No tags found for video %s, skipping scoring", video_id)
		return [], "No tags for this video"

	applied: List[ScoreDelta] = []
	for item in score_deltas(segments, watch_pct):
		try:
			storage.atomic_add_interest_score(db, user_id, item.tag, item.delta)
			db.commit()
			applied.append(item)
		except Exception:
			db.rollback()
			logger.exception("Failed to add %s to interest score %r for user %s", item.delta, item.tag, user_id)
	if not applied:
		return applied, "Watch time too short for any tags"
	logger.info(
		"Scoring user %s: %s", user_id, ", ".join(f"{s.tag}:+{s.delta}" for s in applied)
	)
	return applied, f"Scored {len(applied)} tags"


def _credit_creator(db: Session, user_id: str, video_id: str, real_watch_delta: float) -> int:
	if real_watch_delta <= 0:
		return 0
	seconds = round_half_up(real_watch_delta)
	if seconds <= 0:
		return 0
	try:
		channel_id = storage.get_video_channel(db, video_id)
		if not channel_id:
			return 0
		storage.atomic_add_watch_seconds(db, user_id, channel_id, seconds)
		db.commit()
		return seconds
	except Exception:
		db.rollback()
		logger.exception("Failed to credit %ss watch time for video %s", seconds, video_id)
		return 0


def _record_view_event(
	db: Session,
	user_id: str,
	video_id: str,
	watch_pct: float,
	current_position: float,
	duration: float,
	real_watch_delta: float,
	scores: List[ScoreDelta],
	session_id: Optional[str],
) -> None:
	payload = {
		"user_id": user_id,
		"watch_pct": round_half_up(watch_pct),
		"current_time": round_half_up(current_position),
		"duration": round_half_up(duration),
		"real_watch_seconds": real_watch_delta,
		"scores_applied": [s.model_dump() for s in scores],
		"timestamp": datetime.utcnow().isoformat(),
	}
	try:
		storage.append_audit_event(db, VIDEO_VIEW_EVENT, video_id, payload, session_id=session_id)
		db.commit()
	except Exception:
		db.rollback()
		logger.exception("Failed to record view event for video %s", video_id)


def record_watch_progress(
	db: Session,
	user_id: Optional[str],
	video_id: Optional[str],
	current_position: Optional[float],
	duration: Optional[float],
	real_watch_delta: float = 0,
	*,
	session_id: Optional[str] = None,
) -> WatchProgressResult:
	"""Apply one watch report: topic scores, creator credit, audit event.

	Returns a structured failure without touching storage when the identifiers
	are missing or position/duration are not positive.
	"""
	if not user_id or not video_id or not duration or duration <= 0 or not current_position or current_position <= 0:
		return WatchProgressResult(success=False, message="Missing required data")
	real_watch_delta = max(0.0, float(real_watch_delta or 0))

	watch_pct = watch_percentage(current_position, duration)
	scores, message = _apply_topic_scores(db, user_id, video_id, watch_pct)
	credited = _credit_creator(db, user_id, video_id, real_watch_delta)
	_record_view_event(
		db, user_id, video_id, watch_pct, current_position, duration, real_watch_delta, scores, session_id
	)
	return WatchProgressResult(
		success=True,
		message=message,
		watch_pct=watch_pct,
		scores=scores,
		credited_seconds=credited,
	)
