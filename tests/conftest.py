"""Pytest fixtures for the Veritas engagement engine tests."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from veritas.db import Base, get_db
from veritas.grading import get_grader
from veritas.main import app
from veritas.models import QuizQuestion, Video, VideoTopicSegment
from veritas.schemas import GradingVerdict


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeGrader:
    """Returns a fixed verdict and records every grading call."""

    def __init__(self, verdict=None):
        self.verdict = verdict or GradingVerdict(passed=True, confidence="high", feedback="Spot on. Try it with fog too.")
        self.calls = []

    async def grade(self, topic, question, user_answer):
        self.calls.append((topic, question, user_answer))
        return self.verdict


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    """In-memory SQLite shared across sessions of one test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_video(session_factory):
    """Insert a video, its topic segments and quiz questions."""

    def _seed(video_id="v1", channel_id="chan-1", segments=(), questions=0):
        with session_factory() as session:
            session.add(Video(id=video_id, channel_id=channel_id, title=f"Video {video_id}"))
            for tag, weight, start, end in segments:
                session.add(
                    VideoTopicSegment(
                        video_id=video_id,
                        tag=tag,
                        weight=weight,
                        segment_start_pct=start,
                        segment_end_pct=end,
                    )
                )
            # Insert in reverse to check ordering by lesson number
            for n in range(questions, 0, -1):
                session.add(
                    QuizQuestion(
                        video_id=video_id,
                        lesson_number=n,
                        skill_tag="Volumetric Lighting",
                        question_text=f"Question {n}?",
                    )
                )
            session.commit()

    return _seed


@pytest.fixture
def fake_grader():
    return FakeGrader()


@pytest.fixture
def client(session_factory, fake_grader):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_grader] = lambda: fake_grader
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
