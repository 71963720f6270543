from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Confidence = Literal["low", "medium", "high"]


class TopicSegment(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	tag: str
	weight: int
	segment_start_pct: float
	segment_end_pct: float


class ScoreDelta(BaseModel):
	tag: str
	delta: int


class WatchProgressRequest(BaseModel):
	# Field names follow the player's JSON payload
	videoId: Optional[str] = None
	currentTime: Optional[float] = None
	duration: Optional[float] = None
	realWatchSeconds: Optional[float] = None
	lastReportedTime: Optional[float] = None
	sessionId: Optional[str] = None


class WatchProgressResult(BaseModel):
	success: bool
	message: str
	watch_pct: Optional[float] = None
	scores: List[ScoreDelta] = Field(default_factory=list)
	credited_seconds: int = 0


class QuizQuestionOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	lesson_number: int
	skill_tag: str
	question_text: str


class GradingVerdict(BaseModel):
	passed: bool
	confidence: Confidence
	feedback: str


class QuizSubmitRequest(BaseModel):
	user_id: Optional[str] = None
	video_id: Optional[str] = None
	topic: Optional[str] = None
	question: Optional[str] = None
	user_answer: Optional[str] = None


class QuizSubmitResponse(GradingVerdict):
	success: bool = True
	attempt_id: Optional[int] = None


class QuizAttemptIn(BaseModel):
	user_id: str
	video_id: str
	topic: str
	question: str
	user_answer: str
	ai_feedback: str
	confidence: Confidence
	passed: bool


class QuizAttemptOut(QuizAttemptIn):
	model_config = ConfigDict(from_attributes=True)

	id: int
	created_at: datetime


class PortfolioItem(BaseModel):
	video_id: str
	question: str
	user_answer: str
	ai_feedback: str


class SkillState(BaseModel):
	quiz_score: int = 0
	tier: str = "none"
	portfolio: List[PortfolioItem] = Field(default_factory=list)


class SkillOut(SkillState):
	topic_slug: str


class InterestOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	tag: str
	score: int
	last_updated: datetime


class CreatorWatchSummary(BaseModel):
	channel_id: str
	total_watch_seconds: int
	viewers: int
	last_watched_at: Optional[datetime] = None
