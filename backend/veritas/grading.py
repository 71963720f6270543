from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, Optional

from .gemini_client import GeminiClient
from .schemas import GradingVerdict
from .settings import settings

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = "Great effort! Keep building on this concept."
DEFAULT_FEEDBACK = "Keep going!"
CONFIDENCE_LEVELS = ("low", "medium", "high")

HARD_FAIL_WORDS = [
	"stupid", "fuck", "awful", "f you", "f u", "bitch", "shit", "asshole",
	"cunt", "dick", "idiot", "moron", "dumb", "fck", "fukk",
]
GIVE_UP_PHRASES = [
	"dont know", "don't know", "dunno", "who cares", "idk", "i have no idea",
	"no idea", "not sure", "whatever", "giving up", "give up",
]

_REPEATED_CHAR = re.compile(r"(.)\1{4,}")
_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def lenient_verdict() -> GradingVerdict:
	return GradingVerdict(passed=True, confidence="low", feedback=FALLBACK_FEEDBACK)


def is_hard_fail(answer: str) -> bool:
	trimmed = (answer or "").strip().lower()
	if len(trimmed) <= 1:
		return True
	if any(word in trimmed for word in HARD_FAIL_WORDS):
		return True
	if any(phrase in trimmed for phrase in GIVE_UP_PHRASES):
		return True
	# Keyboard mashing
	if _REPEATED_CHAR.search(trimmed):
		return True
	return any(len(word) > 20 for word in trimmed.split())


def build_grading_prompt(topic: str, question: str, user_answer: str, *, hard_fail: bool = False) -> str:
	header = (
		"You are the learning evaluator for Veritas, an educational video app.\n"
		"Assess a user's answer to a question about a video they just watched.\n\n"
		f"Topic: {topic}\n"
		f"Question: {question}\n"
		f"User's answer: {user_answer}\n\n"
	)
	if hard_fail:
		task = (
			"STATUS: the answer is not a genuine attempt.\n"
			"1. Set passed to false and confidence to \"low\".\n"
			"2. Give one useful tip on how to think about the QUESTION.\n"
			"Never explain why the answer failed and never mention the answer.\n\n"
		)
	else:
		task = (
			"Grade forgivingly, for effort and understanding rather than grammar.\n"
			"Fail only blank, spam, one-word or contradictory/off-topic answers.\n"
			"If passed: sentence 1 affirms (e.g. \"Spot on.\"), sentence 2 adds one concrete expansion.\n"
			"If failed: never explain why; give a useful tip about the QUESTION instead.\n"
			"Set confidence to how clearly the answer shows understanding: low, medium or high.\n\n"
		)
	return header + task + (
		"Feedback must be at most 3 sentences and 40 words.\n"
		"Return ONLY a JSON object with keys: passed (boolean), confidence (\"low\"|\"medium\"|\"high\"), feedback (string).\n"
		"No markdown, no extra commentary."
	)


def extract_json_object(text: str) -> Dict[str, Any]:
	try:
		data = json.loads(text)
		if isinstance(data, dict):
			return data
	except ValueError:
		pass
	block = _FENCE.search(text)
	if block:
		try:
			data = json.loads(block.group(1))
			if isinstance(data, dict):
				return data
		except ValueError:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last > first:
		data = json.loads(text[first : last + 1])
		if isinstance(data, dict):
			return data
	raise ValueError("model did not return a JSON object")


def parse_verdict(raw: str, *, hard_fail: bool = False) -> GradingVerdict:
	data = extract_json_object(raw)
	passed = data.get("passed")
	if isinstance(passed, str):
		passed = passed.strip().lower() == "true"
	elif passed is None:
		passed = True
	confidence = str(data.get("confidence") or "low").strip().lower()
	if confidence not in CONFIDENCE_LEVELS:
		confidence = "low"
	feedback = str(data.get("feedback") or "").strip() or DEFAULT_FEEDBACK
	if hard_fail:
		return GradingVerdict(passed=False, confidence="low", feedback=feedback)
	return GradingVerdict(passed=bool(passed), confidence=confidence, feedback=feedback)


class GeminiGrader:
	"""Grades free-text quiz answers, never letting a technical failure fail the user."""

	def __init__(self, model: Optional[str] = None) -> None:
		self.model = model or settings.gemini_model_quiz or settings.gemini_model

	async def _generate(self, prompt: str) -> str:
		async with GeminiClient(model=self.model) as client:
			return await client.generate(prompt)

	async def grade(self, topic: str, question: str, user_answer: str) -> GradingVerdict:
		hard_fail = is_hard_fail(user_answer)
		prompt = build_grading_prompt(topic, question, user_answer, hard_fail=hard_fail)
		try:
			raw = await self._generate(prompt)
			return parse_verdict(raw, hard_fail=hard_fail)
		except Exception as err:
			logger.warning("Grading failed for topic %r, using lenient verdict: %s", topic, err)
			return lenient_verdict()


def get_grader() -> GeminiGrader:
	return GeminiGrader()
