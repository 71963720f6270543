"""Wall-clock watch accounting for one open video player.

Two values are tracked side by side and never derived from each other:

* the playback *position*, sampled from the player, used only for the
  percentage-based topic scoring on the server;
* the *watched seconds*, accumulated from the wall clock between play and
  pause/end transitions, used for the anti-noise floors and creator credit.

Seeking moves the position but cannot add watched seconds.
"""
from __future__ import annotations
import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable, Optional, Set

from .client import WatchReport
from .settings import settings

logger = logging.getLogger(__name__)


class PlayerState(IntEnum):
	UNSTARTED = -1
	ENDED = 0
	PLAYING = 1
	PAUSED = 2
	BUFFERING = 3
	CUED = 5


class CallbackCell:
	"""Holds the current handler; callers bound to the cell see every swap."""

	def __init__(self, fn: Optional[Callable[..., Any]] = None) -> None:
		self._fn = fn

	def set(self, fn: Optional[Callable[..., Any]]) -> None:
		self._fn = fn

	def __bool__(self) -> bool:
		return self._fn is not None

	def __call__(self, *args, **kwargs):
		if self._fn is None:
			return None
		return self._fn(*args, **kwargs)


@dataclass
class ViewingSession:
	video_id: Optional[str] = None
	session_id: Optional[str] = None
	last_known_position: float = 0.0
	last_known_duration: float = 0.0
	accumulated_watch_seconds: float = 0.0
	live_segment_started_at: Optional[float] = None
	last_reported_watch_seconds: float = 0.0

	@property
	def playing(self) -> bool:
		return self.live_segment_started_at is not None

	def real_watched(self, now: float) -> float:
		if self.live_segment_started_at is None:
			return self.accumulated_watch_seconds
		return self.accumulated_watch_seconds + max(0.0, now - self.live_segment_started_at)

	def open_segment(self, now: float) -> None:
		self.live_segment_started_at = now

	def close_segment(self, now: float) -> None:
		if self.live_segment_started_at is None:
			return
		self.accumulated_watch_seconds += max(0.0, now - self.live_segment_started_at)
		self.live_segment_started_at = None


ReportSender = Callable[[WatchReport], Awaitable[Any]]


class SessionActiveError(RuntimeError):
	pass


class WatchTimer:
	"""Seek-proof watch timer with periodic and final reporting.

	Must be driven from a running asyncio loop: pause/end schedule a report in
	the background and play starts the periodic reporter. Reports for one
	session go out one at a time, in order. Only one session is open at a
	time: ``open`` raises ``SessionActiveError`` until ``close`` has flushed
	the previous one.

	The high-water mark advances as soon as a send is attempted. A report lost
	to a network error is not retried.
	"""

	def __init__(
		self,
		send: Optional[ReportSender] = None,
		*,
		clock: Callable[[], float] = time.monotonic,
		min_total_seconds: Optional[float] = None,
		min_delta_seconds: Optional[float] = None,
		report_interval: Optional[float] = None,
	) -> None:
		self.clock = clock
		self.min_total_seconds = settings.watch_min_total_seconds if min_total_seconds is None else min_total_seconds
		self.min_delta_seconds = settings.watch_min_delta_seconds if min_delta_seconds is None else min_delta_seconds
		self.report_interval = settings.watch_report_interval_seconds if report_interval is None else report_interval
		self.send = CallbackCell(send)
		self.on_ended = CallbackCell()
		self.session = ViewingSession()
		self._lock = asyncio.Lock()
		self._ticker: Optional[asyncio.Task] = None
		self._pending: Set[asyncio.Task] = set()

	def configure(
		self,
		*,
		send: Optional[ReportSender] = None,
		on_ended: Optional[Callable[[str], Any]] = None,
	) -> None:
		if send is not None:
			self.send.set(send)
		if on_ended is not None:
			self.on_ended.set(on_ended)

	def open(self, video_id: str, duration: float = 0.0) -> ViewingSession:
		if self.session.video_id is not None:
			raise SessionActiveError(f"session for {self.session.video_id} is still open; close() it first")
		self.session = ViewingSession(video_id=video_id, session_id=uuid.uuid4().hex, last_known_duration=duration or 0.0)
		return self.session

	def update_position(self, position: float, duration: Optional[float] = None) -> None:
		self.session.last_known_position = position
		if duration is not None:
			self.session.last_known_duration = duration

	def real_watched(self) -> float:
		return self.session.real_watched(self.clock())

	def play(self) -> None:
		now = self.clock()
		# Re-entering play closes the open segment before starting a new one
		self.session.close_segment(now)
		self.session.open_segment(now)
		self._ensure_ticker()

	def pause(self) -> asyncio.Task:
		self.session.close_segment(self.clock())
		return self._schedule_report()

	def end(self) -> asyncio.Task:
		self.session.close_segment(self.clock())
		task = self._schedule_report()
		if self.session.video_id:
			self.on_ended(self.session.video_id)
		return task

	def buffer(self) -> None:
		# Stalls are not watch time; no report until the user pauses or the tick fires
		self.session.close_segment(self.clock())

	def on_state_change(self, state: int, position: Optional[float] = None, duration: Optional[float] = None) -> Optional[asyncio.Task]:
		if position is not None:
			self.update_position(position, duration)
		state = PlayerState(state)
		if state == PlayerState.PLAYING:
			self.play()
		elif state == PlayerState.PAUSED:
			return self.pause()
		elif state == PlayerState.ENDED:
			return self.end()
		elif state == PlayerState.BUFFERING:
			self.buffer()
		return None

	async def report(self) -> bool:
		"""Send the unreported watch delta if the session clears both floors."""
		async with self._lock:
			session = self.session
			duration = session.last_known_duration
			if not session.video_id or not duration or duration <= 0 or not self.send:
				return False
			current = session.real_watched(self.clock())
			if current < self.min_total_seconds:
				return False
			delta = current - session.last_reported_watch_seconds
			if delta < self.min_delta_seconds:
				return False
			report = WatchReport(
				video_id=session.video_id,
				current_position=session.last_known_position,
				duration=duration,
				real_watch_seconds=delta,
				session_id=session.session_id,
			)
			session.last_reported_watch_seconds = current
			try:
				await self.send(report)
			except Exception as err:
				logger.warning("Watch report for %s dropped: %s", session.video_id, err)
				return False
			return True

	async def close(self) -> bool:
		"""Tear down the session: close the segment, flush once, reset to zero."""
		self.session.close_segment(self.clock())
		ticker, self._ticker = self._ticker, None
		if ticker is not None:
			ticker.cancel()
			with contextlib.suppress(asyncio.CancelledError):
				await ticker
		if self._pending:
			await asyncio.gather(*self._pending, return_exceptions=True)
		sent = await self.report()
		self.session = ViewingSession()
		return sent

	def _schedule_report(self) -> asyncio.Task:
		task = asyncio.get_running_loop().create_task(self.report())
		self._pending.add(task)
		task.add_done_callback(self._pending.discard)
		return task

	def _ensure_ticker(self) -> None:
		if self.report_interval <= 0:
			return
		if self._ticker is None or self._ticker.done():
			self._ticker = asyncio.get_running_loop().create_task(self._tick())

	async def _tick(self) -> None:
		while True:
			await asyncio.sleep(self.report_interval)
			if self.session.playing:
				# Cancelling the loop leaves the send running in _pending
				await asyncio.shield(self._schedule_report())
