from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .schemas import GradingVerdict, QuizQuestionOut, QuizSubmitResponse
from .settings import settings


@dataclass
class WatchReport:
	video_id: str
	current_position: float
	duration: float
	real_watch_seconds: float
	session_id: Optional[str] = None

	def to_payload(self) -> Dict[str, Any]:
		payload: Dict[str, Any] = {
			"videoId": self.video_id,
			"currentTime": self.current_position,
			"duration": self.duration,
			"realWatchSeconds": self.real_watch_seconds,
		}
		if self.session_id:
			payload["sessionId"] = self.session_id
		return payload


class EngagementClient:
	"""Client-side transport for watch reports and quiz calls."""

	def __init__(
		self,
		base_url: Optional[str] = None,
		*,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self._client = httpx.AsyncClient(
			base_url=base_url or settings.api_base_url,
			timeout=timeout or settings.http_timeout_seconds,
			transport=transport,
		)

	async def __aenter__(self) -> "EngagementClient":
		return self

	async def __aexit__(self, *exc_info) -> None:
		await self.aclose()

	async def aclose(self) -> None:
		await self._client.aclose()

	async def post_watch_progress(self, report: WatchReport) -> Dict[str, Any]:
		r = await self._client.post("/watch-progress", json=report.to_payload())
		r.raise_for_status()
		return r.json()

	async def fetch_quiz_questions(self, video_id: str) -> List[QuizQuestionOut]:
		r = await self._client.get(f"/quiz/{video_id}/questions")
		r.raise_for_status()
		return [QuizQuestionOut.model_validate(q) for q in r.json()]

	async def submit_quiz_answer(
		self,
		user_id: str,
		video_id: str,
		topic: str,
		question: str,
		user_answer: str,
	) -> GradingVerdict:
		r = await self._client.post(
			"/quiz/submit",
			json={
				"user_id": user_id,
				"video_id": video_id,
				"topic": topic,
				"question": question,
				"user_answer": user_answer,
			},
		)
		r.raise_for_status()
		data = QuizSubmitResponse.model_validate(r.json())
		return GradingVerdict(passed=data.passed, confidence=data.confidence, feedback=data.feedback)
