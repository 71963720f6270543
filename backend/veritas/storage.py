"""Persistence operations used by the scoring and quiz handlers.

Every function takes an open ``Session`` and leaves transaction control to the
caller, so a handler can commit or roll back each side effect on its own.
Counters shared between sessions (interest scores, creator watch time, skill
scores) are only ever changed with a single ``INSERT ... ON CONFLICT DO UPDATE``
that adds to the stored value, never by reading the row and writing it back.
"""
from __future__ import annotations
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import (
	AnalyticsEvent,
	CreatorWatchStat,
	InterestScore,
	QuizAttempt,
	QuizQuestion,
	SkillEntry,
	Video,
	VideoTopicSegment,
)
from .schemas import (
	CreatorWatchSummary,
	PortfolioItem,
	QuizAttemptIn,
	SkillOut,
	SkillState,
	TopicSegment,
)


MAX_QUESTIONS_PER_VIDEO = 6


def _dialect_insert(db: Session):
	name = db.get_bind().dialect.name
	if name == "postgresql":
		return postgresql.insert
	if name == "sqlite":
		return sqlite.insert
	return None


def _atomic_add(db: Session, model, keys: Dict[str, Any], column: str, amount: int, extra: Dict[str, Any]) -> None:
	insert = _dialect_insert(db)
	if insert is not None:
		stmt = insert(model).values(**keys, **{column: amount}, **extra)
		set_ = {column: getattr(model, column) + getattr(stmt.excluded, column)}
		set_.update({name: getattr(stmt.excluded, name) for name in extra})
		stmt = stmt.on_conflict_do_update(index_elements=list(keys), set_=set_)
		db.execute(stmt)
		return
	# Dialects without ON CONFLICT: in-database increment, insert on miss
	where = [getattr(model, k) == v for k, v in keys.items()]
	bump = update(model).where(*where).values({column: getattr(model, column) + amount, **extra})
	if db.execute(bump).rowcount:
		return
	try:
		with db.begin_nested():
			db.add(model(**keys, **{column: amount}, **extra))
	except IntegrityError:
		# Another writer inserted the row first
		db.execute(bump)


def _upsert(db: Session, model, keys: Dict[str, Any], values: Dict[str, Any]) -> None:
	insert = _dialect_insert(db)
	if insert is not None:
		stmt = insert(model).values(**keys, **values)
		stmt = stmt.on_conflict_do_update(
			index_elements=list(keys),
			set_={name: getattr(stmt.excluded, name) for name in values},
		)
		db.execute(stmt)
		return
	where = [getattr(model, k) == v for k, v in keys.items()]
	overwrite = update(model).where(*where).values(values)
	if db.execute(overwrite).rowcount:
		return
	try:
		with db.begin_nested():
			db.add(model(**keys, **values))
	except IntegrityError:
		db.execute(overwrite)


def get_video_topic_segments(db: Session, video_id: str) -> List[TopicSegment]:
	rows = db.execute(
		select(VideoTopicSegment).where(VideoTopicSegment.video_id == video_id).order_by(VideoTopicSegment.id)
	).scalars().all()
	return [TopicSegment.model_validate(r) for r in rows]


def get_video_channel(db: Session, video_id: str) -> Optional[str]:
	return db.execute(select(Video.channel_id).where(Video.id == video_id)).scalar_one_or_none()


def get_quiz_questions(db: Session, video_id: str) -> List[QuizQuestion]:
	return list(
		db.execute(
			select(QuizQuestion)
			.where(QuizQuestion.video_id == video_id)
			.order_by(QuizQuestion.lesson_number.asc())
			.limit(MAX_QUESTIONS_PER_VIDEO)
		).scalars()
	)


def atomic_add_interest_score(db: Session, user_id: str, tag: str, delta: int) -> None:
	_atomic_add(
		db,
		InterestScore,
		{"user_id": user_id, "tag": tag},
		"score",
		int(delta),
		{"last_updated": datetime.utcnow()},
	)


def atomic_add_watch_seconds(db: Session, user_id: str, channel_id: str, delta_seconds: int) -> None:
	_atomic_add(
		db,
		CreatorWatchStat,
		{"user_id": user_id, "channel_id": channel_id},
		"total_watch_seconds",
		int(delta_seconds),
		{"last_watched_at": datetime.utcnow()},
	)


def append_audit_event(
	db: Session,
	event_type: str,
	target_id: Optional[str],
	payload: Dict[str, Any],
	*,
	session_id: Optional[str] = None,
) -> AnalyticsEvent:
	row = AnalyticsEvent(
		event_type=event_type,
		target_id=target_id,
		session_id=session_id,
		payload_json=json.dumps(payload, default=str),
	)
	db.add(row)
	db.flush()
	return row


def append_quiz_attempt(db: Session, attempt: QuizAttemptIn) -> QuizAttempt:
	row = QuizAttempt(**attempt.model_dump())
	db.add(row)
	db.flush()
	return row


def _skill_state(row: SkillEntry) -> SkillState:
	try:
		items = json.loads(row.portfolio_json) if row.portfolio_json else []
	except ValueError:
		items = []
	return SkillState(
		quiz_score=row.quiz_score,
		tier=row.tier,
		portfolio=[PortfolioItem.model_validate(i) for i in items],
	)


def get_skill_entry(db: Session, user_id: str, topic_slug: str) -> Optional[SkillState]:
	# Core statements below bypass the identity map
	row = db.get(SkillEntry, (user_id, topic_slug), populate_existing=True)
	if row is None:
		return None
	return _skill_state(row)


def add_skill_score(db: Session, user_id: str, topic_slug: str, amount: int, cap: int) -> None:
	"""Add to a skill entry's score in the database, creating the entry on first use."""
	keys = {"user_id": user_id, "topic_slug": topic_slug}
	_atomic_add(db, SkillEntry, keys, "quiz_score", int(amount), {"updated_at": datetime.utcnow()})
	db.execute(
		update(SkillEntry)
		.where(SkillEntry.user_id == user_id, SkillEntry.topic_slug == topic_slug, SkillEntry.quiz_score > cap)
		.values(quiz_score=cap)
	)


def upsert_skill_entry(db: Session, user_id: str, topic_slug: str, entry: SkillState) -> None:
	_upsert(
		db,
		SkillEntry,
		{"user_id": user_id, "topic_slug": topic_slug},
		{
			"quiz_score": entry.quiz_score,
			"tier": entry.tier,
			"portfolio_json": json.dumps([p.model_dump() for p in entry.portfolio]),
			"updated_at": datetime.utcnow(),
		},
	)


def list_skill_entries(db: Session, user_id: str) -> List[SkillOut]:
	rows = db.execute(
		select(SkillEntry).where(SkillEntry.user_id == user_id).order_by(SkillEntry.quiz_score.desc(), SkillEntry.topic_slug)
	).scalars()
	return [SkillOut(topic_slug=r.topic_slug, **_skill_state(r).model_dump()) for r in rows]


def list_interest_scores(db: Session, user_id: str) -> List[InterestScore]:
	return list(
		db.execute(
			select(InterestScore).where(InterestScore.user_id == user_id).order_by(InterestScore.score.desc(), InterestScore.tag)
		).scalars()
	)


def list_quiz_attempts(db: Session, user_id: str, video_id: Optional[str] = None) -> List[QuizAttempt]:
	stmt = select(QuizAttempt).where(QuizAttempt.user_id == user_id)
	if video_id:
		stmt = stmt.where(QuizAttempt.video_id == video_id)
	stmt = stmt.order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc())
	return list(db.execute(stmt).scalars())


def get_creator_watch_totals(db: Session, channel_id: str) -> CreatorWatchSummary:
	total, viewers, last = db.execute(
		select(
			func.coalesce(func.sum(CreatorWatchStat.total_watch_seconds), 0),
			func.count(CreatorWatchStat.user_id),
			func.max(CreatorWatchStat.last_watched_at),
		).where(CreatorWatchStat.channel_id == channel_id)
	).one()
	return CreatorWatchSummary(
		channel_id=channel_id,
		total_watch_seconds=int(total or 0),
		viewers=int(viewers or 0),
		last_watched_at=last,
	)
