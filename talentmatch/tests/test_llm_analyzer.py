"""
Unit tests for the external analyzer adapter and its heuristic fallback.

The language model is replaced by in-process stub backends; no network
access is needed.
"""

import os
import json
import asyncio
import unittest
import logging
from unittest.mock import patch
from talentmatch.config import AI_CONFIDENCE, LLM_CONFIG, Settings, get_settings
from talentmatch.heuristic_matcher import HeuristicMatcher
from talentmatch.llm_analyzer import (
    ExternalAnalyzerAdapter,
    default_backend,
    extract_json_from_response,
    get_model_config,
    merge_match_results,
    parse_analyzer_response,
)
from talentmatch.models import MatchResult, PartialMatchResult
from talentmatch.reference import DEFAULT_DATA_DIR

# Configure logging for tests
logging.basicConfig(level=logging.INFO)


# Sample data
SAMPLE_RESUME = "Senior engineer with 5 years experience with React and Node.js building web apps."
SAMPLE_JOB = "Looking for a developer skilled in React, Node.js, AWS"

SAMPLE_EXTRACTION_RESUME = """
Full Stack Developer at Globex | 06/2016 - 12/2019
Built React front ends and Node.js services on AWS.
"""


class StubBackend:
    """Backend returning canned responses (or raising) in order."""

    def __init__(self, *responses, delay=0.0):
        self.responses = list(responses)
        self.delay = delay
        self.calls = 0

    async def complete(self, prompt):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses[min(self.calls, len(self.responses)) - 1]
        if isinstance(response, BaseException):
            raise response
        return response


def adapter_with(backend, **kwargs):
    return ExternalAnalyzerAdapter(backend=backend, matcher=HeuristicMatcher(), **kwargs)


class TestResponseParsing(unittest.TestCase):
    """Test response parsing and merging."""

    def test_extract_json_variants(self):
        """Test plain, fenced and prose-wrapped JSON."""
        self.assertEqual(extract_json_from_response('{"score": 80}'), {"score": 80})
        self.assertEqual(extract_json_from_response('```json\n{"score": 80}\n```'), {"score": 80})
        self.assertEqual(extract_json_from_response('Here you go: {"score": 80} Thanks!'), {"score": 80})
        self.assertIsNone(extract_json_from_response("I cannot help with that."))
        self.assertIsNone(extract_json_from_response(""))

    def test_malformed_fields_dropped(self):
        """Test that fields with the wrong type are dropped individually."""
        partial = parse_analyzer_response(
            json.dumps({"score": "high", "strengths": "not a list", "confidence": 60}),
            SAMPLE_RESUME, SAMPLE_JOB,
        )
        self.assertIsNone(partial.score)
        self.assertIsNone(partial.strengths)
        self.assertEqual(partial.confidence, 60)

    def test_fractional_confidence(self):
        """Test that a 0-1 confidence is rescaled to 0-100."""
        partial = parse_analyzer_response('{"confidence": 0.8}', SAMPLE_RESUME, SAMPLE_JOB)
        self.assertEqual(partial.confidence, 80)

    def test_out_of_range_score_clamped(self):
        """Test that scores are clamped to 0-100."""
        partial = parse_analyzer_response('{"score": 150}', SAMPLE_RESUME, SAMPLE_JOB)
        self.assertEqual(partial.score, 100)

    def test_non_numeric_percentages_dropped(self):
        """Test that list, object and infinite percentages are dropped, not raised."""
        partial = parse_analyzer_response(
            '{"score": [80], "confidence": {"v": 1}, "strengths": ["React"]}', SAMPLE_RESUME, SAMPLE_JOB,
        )
        self.assertIsNone(partial.score)
        self.assertIsNone(partial.confidence)
        self.assertEqual(partial.strengths, ["React"])

        partial = parse_analyzer_response('{"score": 1e999, "confidence": 60}', SAMPLE_RESUME, SAMPLE_JOB)
        self.assertIsNone(partial.score)
        self.assertEqual(partial.confidence, 60)

    def test_unsupported_skills_removed(self):
        """Test that skills not present in the texts are filtered."""
        partial = parse_analyzer_response(
            json.dumps({"matchingSkills": ["React", "Kubernetes"], "missingSkills": ["AWS", "React", "Go"]}),
            SAMPLE_RESUME, SAMPLE_JOB,
        )
        self.assertEqual(partial.matching_skills, ["React"])
        self.assertEqual(partial.missing_skills, ["AWS"])

    def test_merge_overrides_supplied_fields(self):
        """Test that supplied fields win and absent fields keep heuristic values."""
        heuristic = MatchResult(score=75, strengths=["heuristic strength"], confidence=60)
        merged = merge_match_results(PartialMatchResult(score=88), heuristic)

        self.assertEqual(merged.score, 88)
        self.assertEqual(merged.strengths, ["heuristic strength"])
        self.assertEqual(merged.confidence, AI_CONFIDENCE)

    def test_merge_keeps_supplied_confidence(self):
        """Test that a supplied confidence is not replaced by the default."""
        heuristic = MatchResult(score=75, confidence=60)
        merged = merge_match_results(PartialMatchResult(confidence=40), heuristic)
        self.assertEqual(merged.score, 75)
        self.assertEqual(merged.confidence, 40)


class TestAnalysis(unittest.IsolatedAsyncioTestCase):
    """Test the two-tier analysis path."""

    async def asyncSetUp(self):
        self.heuristic = HeuristicMatcher().match(SAMPLE_RESUME, SAMPLE_JOB)

    async def test_no_backend_uses_heuristic(self):
        """Test that a missing backend falls back to the heuristic result."""
        outcome = await adapter_with(None).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.result, self.heuristic)

    async def test_full_response(self):
        """Test that a complete response replaces the heuristic values."""
        response = json.dumps({
            "score": 88,
            "strengths": ["Strong React background"],
            "weaknesses": ["No AWS"],
            "suggestions": ["Get AWS certified"],
            "technicalGaps": ["Cloud infrastructure"],
            "matchingSkills": ["React", "Node.js"],
            "missingSkills": ["AWS"],
            "clientExperience": "No named clients",
            "confidence": 77,
        })
        backend = StubBackend(response)
        outcome = await adapter_with(backend).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(backend.calls, 1)
        self.assertEqual(outcome.result.score, 88)
        self.assertEqual(outcome.result.matching_skills, ["React", "Node.js"])
        self.assertEqual(outcome.result.technical_gaps, ["Cloud infrastructure"])
        self.assertEqual(outcome.result.confidence, 77)

    async def test_partial_response(self):
        """Test that only supplied fields override the heuristic result."""
        outcome = await adapter_with(StubBackend('{"score": 70}')).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(outcome.result.score, 70)
        self.assertEqual(outcome.result.strengths, self.heuristic.strengths)
        self.assertEqual(outcome.result.missing_skills, self.heuristic.missing_skills)
        self.assertEqual(outcome.result.confidence, AI_CONFIDENCE)

    async def test_unusable_response(self):
        """Test that a response without JSON falls back."""
        outcome = await adapter_with(StubBackend("Sorry, I can't do that.")).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertIn("JSON", outcome.reason)
        self.assertEqual(outcome.result, self.heuristic)

    async def test_timeout_retried_then_falls_back(self):
        """Test that a slow backend is retried and then abandoned."""
        backend = StubBackend('{"score": 99}', delay=1.0)
        adapter = adapter_with(backend, timeout_seconds=0.01, max_retries=1)
        outcome = await adapter.run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(backend.calls, 2)
        self.assertEqual(outcome.result.score, self.heuristic.score)

    async def test_transient_error_retried(self):
        """Test that a connection error is retried."""
        backend = StubBackend(ConnectionError("reset by peer"), '{"score": 81}')
        outcome = await adapter_with(backend, max_retries=1).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(backend.calls, 2)
        self.assertEqual(outcome.result.score, 81)

    async def test_unexpected_error_not_retried(self):
        """Test that a non-transient error falls back immediately."""
        backend = StubBackend(ValueError("bad request"))
        outcome = await adapter_with(backend, max_retries=3).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(backend.calls, 1)
        self.assertIn("unexpected error", outcome.reason)

    async def test_cancelled_call_falls_back(self):
        """Test that a cancelled external call falls back."""
        backend = StubBackend(asyncio.CancelledError())
        outcome = await adapter_with(backend).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.reason, "external call cancelled")

    async def test_insufficient_input_skips_backend(self):
        """Test that a too-short resume never reaches the backend."""
        backend = StubBackend('{"score": 99}')
        outcome = await adapter_with(backend).run_analysis("React dev", SAMPLE_JOB)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.reason, "insufficient input")
        self.assertEqual(backend.calls, 0)
        self.assertEqual(outcome.result.score, 0)

    async def test_analyze_never_raises(self):
        """Test that analyze returns a result for every failure mode."""
        for response in [RuntimeError("boom"), "not json", '{"unknown": 1}']:
            result = await adapter_with(StubBackend(response)).analyze(SAMPLE_RESUME, SAMPLE_JOB)
            self.assertEqual(result, self.heuristic)

    async def test_malformed_percentages_fall_back(self):
        """Test that non-numeric or infinite score and confidence values never escape analyze."""
        for response in ['{"score": [80]}', '{"score": 1e999}', '{"confidence": {}}']:
            outcome = await adapter_with(StubBackend(response)).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)
            self.assertTrue(outcome.is_fallback)
            self.assertEqual(outcome.result, self.heuristic)

    async def test_malformed_score_keeps_other_fields(self):
        """Test that a malformed score keeps the heuristic score and the supplied fields."""
        response = '{"score": [80], "strengths": ["Strong React background"]}'
        outcome = await adapter_with(StubBackend(response)).run_analysis(SAMPLE_RESUME, SAMPLE_JOB)

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(outcome.result.score, self.heuristic.score)
        self.assertEqual(outcome.result.strengths, ["Strong React background"])

    async def test_zero_timeout_kept(self):
        """Test that an explicit zero timeout is not replaced by the default."""
        backend = StubBackend('{"score": 99}', delay=0.05)
        adapter = adapter_with(backend, timeout_seconds=0, max_retries=0)
        self.assertEqual(adapter.timeout_seconds, 0)

        outcome = await adapter.run_analysis(SAMPLE_RESUME, SAMPLE_JOB)
        self.assertTrue(outcome.is_fallback)


class TestExtraction(unittest.IsolatedAsyncioTestCase):
    """Test the two-tier extraction path."""

    async def test_supplied_lists_override_regex(self):
        """Test that well-formed lists override the regex extraction."""
        response = json.dumps({"clientNames": ["Globex Corporation"], "skills": "React"})
        outcome = await adapter_with(StubBackend(response)).run_extraction(SAMPLE_EXTRACTION_RESUME, "cv.docx")

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(outcome.result.client_names, ["Globex Corporation"])
        # malformed skills dropped; regex skills kept
        self.assertIn("React", outcome.result.skills)
        self.assertIn("Node.js", outcome.result.skills)
        self.assertEqual(outcome.result.relevant_dates, ["06/2016 - 12/2019"])
        self.assertEqual(outcome.result.file_name, "cv.docx")

    async def test_no_backend_uses_regex(self):
        """Test that extraction without a backend returns the regex result."""
        result = await adapter_with(None).extract(SAMPLE_EXTRACTION_RESUME)
        self.assertEqual(result.client_names, ["Globex"])
        self.assertEqual(result.job_titles, ["Full Stack Developer"])


class TestConfiguration(unittest.TestCase):
    """Test settings and backend configuration."""

    def test_model_config(self):
        """Test temperature and JSON mode support by model."""
        config = get_model_config("gpt-4o", temperature=0)
        self.assertEqual(config["temperature"], 0)
        self.assertEqual(config["response_format"], {"type": "json_object"})
        self.assertNotIn("temperature", get_model_config("o1-mini"))

    def test_no_api_key_disables_backend(self):
        """Test that no backend is built without an API key."""
        self.assertIsNone(default_backend(Settings(openai_api_key=None)))

    def test_adapter_from_settings(self):
        """Test building an adapter from explicit settings."""
        settings = Settings(data_dir=str(DEFAULT_DATA_DIR), request_timeout_seconds=5, max_retries=0)
        adapter = ExternalAnalyzerAdapter.from_settings(settings)
        self.assertIsNone(adapter.backend)
        self.assertEqual(adapter.timeout_seconds, 5)
        self.assertEqual(adapter.max_retries, 0)

    def test_settings_from_environment(self):
        """Test that settings are read from environment variables."""
        env = {
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_MODEL": "gpt-4o-mini",
            "ANALYZER_TIMEOUT_SECONDS": "12.5",
            "ANALYZER_MAX_RETRIES": "2",
        }
        with patch.dict(os.environ, env):
            settings = get_settings()
        self.assertEqual(settings.openai_api_key, "sk-test")
        self.assertEqual(settings.model_name, "gpt-4o-mini")
        self.assertEqual(settings.request_timeout_seconds, 12.5)
        self.assertEqual(settings.max_retries, 2)

    def test_invalid_numeric_settings_use_defaults(self):
        """Test that non-numeric timeout and retry values fall back to the defaults."""
        env = {"ANALYZER_TIMEOUT_SECONDS": "soon", "ANALYZER_MAX_RETRIES": "a few"}
        with patch.dict(os.environ, env):
            settings = get_settings()
            adapter = ExternalAnalyzerAdapter.from_settings()
        self.assertEqual(settings.request_timeout_seconds, LLM_CONFIG["timeout_seconds"])
        self.assertEqual(settings.max_retries, LLM_CONFIG["max_retries"])
        self.assertEqual(adapter.timeout_seconds, LLM_CONFIG["timeout_seconds"])


if __name__ == "__main__":
    unittest.main()
