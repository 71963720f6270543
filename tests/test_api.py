"""Tests for the HTTP surface."""

from jose import jwt

from veritas import storage
from veritas.identity import ANON_COOKIE, USER_COOKIE
from veritas.schemas import GradingVerdict
from veritas.settings import settings


def _report(**overrides):
    body = {"videoId": "v1", "currentTime": 300, "duration": 600, "realWatchSeconds": 40}
    body.update(overrides)
    return body


class TestHealth:
    def test_health_and_info(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        info = client.get("/info").json()
        assert info["status"] == "ok"
        assert "gemini_configured" in info


class TestWatchProgress:
    def test_missing_fields_rejected(self, client):
        r = client.post("/watch-progress", json={"videoId": "v1", "currentTime": 10})
        assert r.status_code == 400

    def test_user_cookie_identifies_caller(self, client, seed_video, session_factory):
        seed_video(segments=[("lighting", 10, 30, 70)])
        client.cookies.set(USER_COOKIE, "mission-7")
        r = client.post("/watch-progress", json=_report())

        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["scores"] == [{"tag": "lighting", "delta": 5}]
        assert body["credited_seconds"] == 40
        with session_factory() as db:
            assert [s.tag for s in storage.list_interest_scores(db, "mission-7")] == ["lighting"]

    def test_anonymous_caller_gets_cookie(self, client, seed_video, session_factory):
        seed_video(segments=[("lighting", 10, 0, 50)])
        r = client.post("/watch-progress", json=_report())

        anon_id = r.cookies.get(ANON_COOKIE)
        assert anon_id
        with session_factory() as db:
            assert storage.list_interest_scores(db, anon_id)[0].score == 10

    def test_bearer_subject_identifies_caller(self, client, seed_video, session_factory):
        seed_video(segments=[("lighting", 10, 0, 50)])
        token = jwt.encode({"sub": "user-42"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        r = client.post("/watch-progress", json=_report(), headers={"Authorization": f"Bearer {token}"})

        assert r.status_code == 200
        assert ANON_COOKIE not in r.cookies
        with session_factory() as db:
            assert storage.get_creator_watch_totals(db, "chan-1").total_watch_seconds == 40
            assert storage.list_interest_scores(db, "user-42")[0].tag == "lighting"

    def test_position_delta_fallback(self, client, seed_video, session_factory):
        seed_video(segments=[])
        client.cookies.set(USER_COOKIE, "u1")
        body = _report(currentTime=90, lastReportedTime=30)
        del body["realWatchSeconds"]
        r = client.post("/watch-progress", json=body)

        assert r.json()["credited_seconds"] == 60

    def test_zero_position_is_structured_failure(self, client):
        client.cookies.set(USER_COOKIE, "u1")
        r = client.post("/watch-progress", json=_report(currentTime=0))

        assert r.status_code == 200
        assert r.json()["success"] is False


class TestQuiz:
    def test_questions_are_ordered_and_capped(self, client, seed_video):
        seed_video(questions=6)
        r = client.get("/quiz/v1/questions")
        assert [q["lesson_number"] for q in r.json()] == [1, 2, 3, 4, 5, 6]
        assert r.json()[0]["question_text"] == "Question 1?"

    def test_submit_missing_fields(self, client):
        r = client.post("/quiz/submit", json={"user_id": "u1", "video_id": "v1"})
        assert r.status_code == 400

    def test_passed_submission_updates_ledgers(self, client, session_factory, fake_grader):
        body = {
            "user_id": "u1",
            "video_id": "v1",
            "topic": "Volumetric Lighting",
            "question": "Why add fog?",
            "user_answer": "Fog scatters light so beams show up.",
        }
        r = client.post("/quiz/submit", json=body)

        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert data["passed"] is True
        assert data["confidence"] == "high"
        assert data["attempt_id"]
        assert fake_grader.calls == [("Volumetric Lighting", "Why add fog?", "Fog scatters light so beams show up.")]

        skills = client.get("/profile/u1/skills").json()
        assert skills[0]["topic_slug"] == "volumetric_lighting"
        assert skills[0]["quiz_score"] == 1
        assert skills[0]["tier"] == "Uncommon"
        assert skills[0]["portfolio"][0]["user_answer"] == body["user_answer"]

        attempts = client.get("/quiz/attempts", params={"user_id": "u1", "video_id": "v1"}).json()
        assert len(attempts) == 1
        assert attempts[0]["ai_feedback"] == fake_grader.verdict.feedback

    def test_failed_submission_is_recorded_without_skill(self, client, session_factory, fake_grader):
        fake_grader.verdict = GradingVerdict(passed=False, confidence="low", feedback="Think about density.")
        body = {"user_id": "u1", "video_id": "v1", "topic": "Lumen", "question": "Why?", "user_answer": "idk"}
        data = client.post("/quiz/submit", json=body).json()

        assert data["passed"] is False
        with session_factory() as db:
            assert storage.list_skill_entries(db, "u1") == []
            assert storage.list_quiz_attempts(db, "u1")[0].passed is False


class TestProfile:
    def test_interests_sorted_by_score(self, client, seed_video):
        seed_video(segments=[("lighting", 10, 0, 50), ("audio", 3, 0, 10), ("vfx", 20, 0, 50)])
        client.cookies.set(USER_COOKIE, "u1")
        client.post("/watch-progress", json=_report())

        interests = client.get("/profile/u1/interests").json()
        assert [(i["tag"], i["score"]) for i in interests] == [("vfx", 20), ("lighting", 10), ("audio", 3)]

    def test_creator_watch_stats(self, client, seed_video):
        seed_video(segments=[])
        for user in ("u1", "u2", "u1"):
            client.cookies.set(USER_COOKIE, user)
            client.post("/watch-progress", json=_report(realWatchSeconds=30))

        stats = client.get("/creators/chan-1/watch-stats").json()
        assert stats["total_watch_seconds"] == 90
        assert stats["viewers"] == 2
        assert stats["last_watched_at"]

    def test_unknown_channel_is_empty(self, client):
        stats = client.get("/creators/nobody/watch-stats").json()
        assert stats == {"channel_id": "nobody", "total_watch_seconds": 0, "viewers": 0, "last_watched_at": None}
