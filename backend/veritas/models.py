from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Float, Integer, Text, UniqueConstraint
from .db import Base


class Video(Base):
	__tablename__ = "videos"
	id = Column(String(64), primary_key=True)
	# Null until a creator claims the channel or the scraper resolves it
	channel_id = Column(String(128), nullable=True, index=True)
	title = Column(String(512), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VideoTopicSegment(Base):
	__tablename__ = "video_tags"
	__table_args__ = (UniqueConstraint("video_id", "tag", name="uq_video_tags_video_tag"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	video_id = Column(String(64), nullable=False, index=True)
	tag = Column(String(128), nullable=False)
	weight = Column(Integer, default=0, nullable=False)
	segment_start_pct = Column(Float, default=0, nullable=False)
	segment_end_pct = Column(Float, default=100, nullable=False)


class InterestScore(Base):
	__tablename__ = "user_interest_scores"
	user_id = Column(String(128), primary_key=True)
	tag = Column(String(128), primary_key=True)
	score = Column(Integer, default=0, nullable=False)
	last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class CreatorWatchStat(Base):
	__tablename__ = "creator_watch_stats"
	user_id = Column(String(128), primary_key=True)
	channel_id = Column(String(128), primary_key=True, index=True)
	total_watch_seconds = Column(Integer, default=0, nullable=False)
	last_watched_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class QuizQuestion(Base):
	__tablename__ = "video_quizzes"
	__table_args__ = (UniqueConstraint("video_id", "lesson_number", name="uq_video_quizzes_lesson"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	video_id = Column(String(64), nullable=False, index=True)
	lesson_number = Column(Integer, nullable=False)
	skill_tag = Column(String(128), nullable=False)
	question_text = Column(Text, nullable=False)


class QuizAttempt(Base):
	__tablename__ = "quiz_attempts"
	# Append-only ledger; rows are never updated or deleted
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False, index=True)
	video_id = Column(String(64), nullable=False, index=True)
	topic = Column(String(256), nullable=False)
	question = Column(Text, nullable=False)
	user_answer = Column(Text, nullable=False)
	ai_feedback = Column(Text, nullable=True)
	confidence = Column(String(8), default="low", nullable=False)
	passed = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SkillEntry(Base):
	__tablename__ = "skill_entries"
	user_id = Column(String(128), primary_key=True)
	topic_slug = Column(String(256), primary_key=True)
	quiz_score = Column(Integer, default=0, nullable=False)
	tier = Column(String(16), default="none", nullable=False)
	portfolio_json = Column(Text, nullable=True)  # JSON list, most recent first
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True)


class AnalyticsEvent(Base):
	__tablename__ = "analytics_events"
	id = Column(Integer, primary_key=True, autoincrement=True)
	event_type = Column(String(64), nullable=False, index=True)
	target_id = Column(String(128), nullable=True, index=True)
	session_id = Column(String(64), nullable=True)
	payload_json = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
