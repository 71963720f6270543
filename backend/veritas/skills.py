"""Per-topic skill ledger fed by passed quiz attempts.

A pass first adds one to the stored score in a single upsert statement, so
simultaneous passes on the same topic all count. The entry is then read back
and its tier and portfolio are rewritten inside the same transaction.
"""
from __future__ import annotations
import logging
import re
from typing import List

from sqlalchemy.orm import Session

from . import storage
from .schemas import PortfolioItem, QuizAttemptIn, SkillState

logger = logging.getLogger(__name__)

MAX_SCORE = 100
PORTFOLIO_SIZE = 3

# (lowest score, tier), checked from the top down
TIER_THRESHOLDS = [
	(100, "Mythical"),
	(76, "Legendary"),
	(51, "Epic"),
	(26, "Rare"),
	(1, "Uncommon"),
]
NO_TIER = "none"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def topic_slug(topic: str) -> str:
	return _NON_ALNUM.sub("_", (topic or "").lower()).strip("_")


def derive_tier(score: int) -> str:
	for floor, tier in TIER_THRESHOLDS:
		if score >= floor:
			return tier
	return NO_TIER


def add_to_portfolio(portfolio: List[PortfolioItem], attempt: QuizAttemptIn) -> List[PortfolioItem]:
	portfolio = list(portfolio)
	if attempt.confidence == "high":
		portfolio.insert(
			0,
			PortfolioItem(
				video_id=attempt.video_id,
				question=attempt.question,
				user_answer=attempt.user_answer,
				ai_feedback=attempt.ai_feedback,
			),
		)
		del portfolio[PORTFOLIO_SIZE:]
	return portfolio


def record_pass(db: Session, user_id: str, topic: str, attempt: QuizAttemptIn) -> SkillState:
	slug = topic_slug(topic)
	# The increment holds the entry's row lock until commit
	storage.add_skill_score(db, user_id, slug, 1, cap=MAX_SCORE)
	current = storage.get_skill_entry(db, user_id, slug)
	updated = SkillState(
		quiz_score=current.quiz_score,
		tier=derive_tier(current.quiz_score),
		portfolio=add_to_portfolio(current.portfolio, attempt),
	)
	storage.upsert_skill_entry(db, user_id, slug, updated)
	db.commit()
	logger.info("Quiz passed for %s: %s -> %s (%s)", user_id, slug, updated.quiz_score, updated.tier)
	return updated
