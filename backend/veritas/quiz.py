"""Client-side quiz flow for one video.

Questions come in batches of three. Batch 0 loads when the quiz starts; the
second batch is opt-in once the first is complete and only when the video has
more than three questions.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from .grading import lenient_verdict
from .schemas import GradingVerdict, QuizQuestionOut

logger = logging.getLogger(__name__)

BATCH_SIZE = 3
MAX_BATCHES = 2

QuestionLoader = Callable[[str], Awaitable[List[QuizQuestionOut]]]
AnswerSubmitter = Callable[[str, str, str, str, str], Awaitable[GradingVerdict]]


class QuizPhase(str, Enum):
	CTA = "cta"
	LOADING = "loading"
	ACTIVE = "active"
	FEEDBACK = "feedback"
	COMPLETE = "complete"
	NO_QUESTIONS = "no-questions"


class QuizStateError(RuntimeError):
	pass


class QuizEngine:
	def __init__(
		self,
		user_id: str,
		video_id: str,
		*,
		load_questions: QuestionLoader,
		submit_answer: AnswerSubmitter,
	) -> None:
		self.user_id = user_id
		self.video_id = video_id
		self._load_questions = load_questions
		self._submit_answer = submit_answer
		self.phase = QuizPhase.CTA
		self.questions: List[QuizQuestionOut] = []
		self.batch_index = 0
		self.index_in_batch = 0
		self.passed_in_batch = 0
		self.last_verdict: Optional[GradingVerdict] = None
		self.submitting = False

	def _require(self, *phases: QuizPhase) -> None:
		if self.phase not in phases:
			raise QuizStateError(f"not allowed in phase {self.phase.value}")

	@property
	def absolute_index(self) -> int:
		return self.batch_index * BATCH_SIZE + self.index_in_batch

	@property
	def batch_length(self) -> int:
		start = self.batch_index * BATCH_SIZE
		return max(0, min(BATCH_SIZE, len(self.questions) - start))

	@property
	def current_question(self) -> Optional[QuizQuestionOut]:
		if self.phase not in (QuizPhase.ACTIVE, QuizPhase.FEEDBACK):
			return None
		return self.questions[self.absolute_index]

	@property
	def is_last_in_batch(self) -> bool:
		return self.index_in_batch >= self.batch_length - 1

	@property
	def can_load_more(self) -> bool:
		return (
			self.phase == QuizPhase.COMPLETE
			and self.batch_index + 1 < MAX_BATCHES
			and len(self.questions) > (self.batch_index + 1) * BATCH_SIZE
		)

	async def start(self) -> QuizPhase:
		self._require(QuizPhase.CTA)
		self.phase = QuizPhase.LOADING
		try:
			questions = await self._load_questions(self.video_id)
		except Exception as err:
			logger.warning("Could not load quiz for %s: %s", self.video_id, err)
			questions = []
		self.questions = list(questions)[: BATCH_SIZE * MAX_BATCHES]
		self.batch_index = 0
		self.index_in_batch = 0
		self.passed_in_batch = 0
		self.last_verdict = None
		self.phase = QuizPhase.ACTIVE if self.questions else QuizPhase.NO_QUESTIONS
		return self.phase

	async def submit(self, answer: str) -> GradingVerdict:
		self._require(QuizPhase.ACTIVE)
		question = self.current_question
		self.submitting = True
		try:
			verdict = await self._submit_answer(
				self.user_id, self.video_id, question.skill_tag, question.question_text, answer
			)
		except Exception as err:
			# Technical failures never count against the user
			logger.warning("Quiz submission failed, showing lenient verdict: %s", err)
			verdict = lenient_verdict()
		finally:
			self.submitting = False
		if verdict.passed:
			self.passed_in_batch += 1
		self.last_verdict = verdict
		self.phase = QuizPhase.FEEDBACK
		return verdict

	def advance(self) -> QuizPhase:
		self._require(QuizPhase.FEEDBACK)
		if self.is_last_in_batch:
			self.phase = QuizPhase.COMPLETE
		else:
			self.index_in_batch += 1
			self.phase = QuizPhase.ACTIVE
		self.last_verdict = None
		return self.phase

	def load_more(self) -> QuizPhase:
		if not self.can_load_more:
			raise QuizStateError("no further batch to load")
		self.batch_index += 1
		self.index_in_batch = 0
		self.passed_in_batch = 0
		self.phase = QuizPhase.ACTIVE
		return self.phase

	def reset(self) -> QuizPhase:
		self._require(QuizPhase.COMPLETE)
		self.phase = QuizPhase.CTA
		self.questions = []
		self.batch_index = 0
		self.index_in_batch = 0
		self.passed_in_batch = 0
		self.last_verdict = None
		return self.phase
