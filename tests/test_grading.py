"""Tests for answer grading and the lenient fallback."""

import asyncio

import pytest

from veritas import grading
from veritas.grading import GeminiGrader, build_grading_prompt, is_hard_fail, parse_verdict


class TestHardFail:
    @pytest.mark.parametrize(
        "answer",
        ["", " a ", "idk", "I don't know", "whatever man", "aaaaaaa", "supercalifragilisticexpialidocious", "this is stupid"],
    )
    def test_flags_non_attempts(self, answer):
        assert is_hard_fail(answer)

    def test_accepts_genuine_answer(self):
        assert not is_hard_fail("Fog scatters light so the beams become visible in the scene.")


class TestParseVerdict:
    def test_plain_json(self):
        verdict = parse_verdict('{"passed": false, "confidence": "medium", "feedback": "Think about density."}')
        assert verdict.passed is False
        assert verdict.confidence == "medium"
        assert verdict.feedback == "Think about density."

    def test_fenced_json(self):
        raw = 'Sure!\n```json\n{"passed": true, "confidence": "high", "feedback": "Spot on."}\n```'
        verdict = parse_verdict(raw)
        assert verdict.passed is True
        assert verdict.confidence == "high"

    def test_missing_fields_default_generously(self):
        verdict = parse_verdict('{"confidence": "extreme"}')
        assert verdict.passed is True
        assert verdict.confidence == "low"
        assert verdict.feedback == grading.DEFAULT_FEEDBACK

    def test_hard_fail_forces_failure(self):
        verdict = parse_verdict('{"passed": true, "confidence": "high", "feedback": "Consider the light source."}', hard_fail=True)
        assert verdict.passed is False
        assert verdict.confidence == "low"
        assert verdict.feedback == "Consider the light source."

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_verdict("I think they did well")


class TestPrompt:
    def test_mentions_limits_and_inputs(self):
        prompt = build_grading_prompt("Lumen", "Why use Lumen?", "Dynamic GI")
        assert "Why use Lumen?" in prompt
        assert "Dynamic GI" in prompt
        assert "40 words" in prompt

    def test_hard_fail_prompt_requests_tip(self):
        prompt = build_grading_prompt("Lumen", "Why use Lumen?", "idk", hard_fail=True)
        assert "passed to false" in prompt


class TestGeminiGrader:
    """Grading never surfaces a technical failure to the user."""

    def test_model_error_yields_lenient_verdict(self, monkeypatch):
        async def broken(self, prompt):
            raise RuntimeError("503 from model")

        monkeypatch.setattr(GeminiGrader, "_generate", broken)
        verdict = asyncio.run(GeminiGrader(model="test").grade("Lumen", "Why?", "Because GI"))
        assert verdict.passed is True
        assert verdict.confidence == "low"
        assert verdict.feedback

    def test_unparseable_output_yields_lenient_verdict(self, monkeypatch):
        async def chatty(self, prompt):
            return "Great answer, well done!"

        monkeypatch.setattr(GeminiGrader, "_generate", chatty)
        verdict = asyncio.run(GeminiGrader(model="test").grade("Lumen", "Why?", "Because GI"))
        assert verdict == grading.lenient_verdict()

    def test_missing_api_key_yields_lenient_verdict(self, monkeypatch):
        monkeypatch.setattr(grading.settings, "gemini_api_key", None)
        verdict = asyncio.run(GeminiGrader(model="test").grade("Lumen", "Why?", "Because GI"))
        assert verdict == grading.lenient_verdict()

    def test_model_verdict_passes_through(self, monkeypatch):
        async def model(self, prompt):
            return '{"passed": false, "confidence": "medium", "feedback": "Think about bounce light."}'

        monkeypatch.setattr(GeminiGrader, "_generate", model)
        verdict = asyncio.run(GeminiGrader(model="test").grade("Lumen", "Why?", "Because it is blue"))
        assert verdict.passed is False
        assert verdict.confidence == "medium"
