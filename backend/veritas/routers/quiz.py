from __future__ import annotations
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import storage
from ..db import get_db
from ..grading import GeminiGrader, get_grader
from ..schemas import (
	QuizAttemptIn,
	QuizAttemptOut,
	QuizQuestionOut,
	QuizSubmitRequest,
	QuizSubmitResponse,
)
from ..skills import record_pass

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["quiz"])


@router.get("/attempts", response_model=List[QuizAttemptOut])
def quiz_attempts(user_id: str, video_id: Optional[str] = None, db: Session = Depends(get_db)):
	return storage.list_quiz_attempts(db, user_id, video_id)


@router.get("/{video_id}/questions", response_model=List[QuizQuestionOut])
def quiz_questions(video_id: str, db: Session = Depends(get_db)):
	return storage.get_quiz_questions(db, video_id)


@router.post("/submit", response_model=QuizSubmitResponse)
async def submit(
	req: QuizSubmitRequest,
	db: Session = Depends(get_db),
	grader: GeminiGrader = Depends(get_grader),
):
	if not (req.user_id and req.video_id and req.topic and req.question and req.user_answer):
		raise HTTPException(status_code=400, detail="Missing required fields")

	verdict = await grader.grade(req.topic, req.question, req.user_answer)
	attempt = QuizAttemptIn(
		user_id=req.user_id,
		video_id=req.video_id,
		topic=req.topic,
		question=req.question,
		user_answer=req.user_answer,
		ai_feedback=verdict.feedback,
		confidence=verdict.confidence,
		passed=verdict.passed,
	)

	attempt_id: Optional[int] = None
	try:
		attempt_id = storage.append_quiz_attempt(db, attempt).id
		db.commit()
	except Exception:
		db.rollback()
		attempt_id = None
		logger.exception("Failed to save quiz attempt for %s on %s", req.user_id, req.video_id)

	if verdict.passed:
		try:
			record_pass(db, req.user_id, req.topic, attempt)
		except Exception:
			db.rollback()
			logger.exception("Failed to update skill entry for %s (%s)", req.user_id, req.topic)

	return QuizSubmitResponse(
		success=True,
		passed=verdict.passed,
		confidence=verdict.confidence,
		feedback=verdict.feedback,
		attempt_id=attempt_id,
	)
