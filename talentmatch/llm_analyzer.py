"""
External Analyzer Module

Uses PhiData + an OpenAI model to analyze a resume against a job
description (and to extract resume facts), with a deterministic fallback:
any failure of the external call degrades to the heuristic result, and
fields the model does return override the heuristic values.
"""

import re
import json
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union
from pydantic import ValidationError
from openai import APIConnectionError
from phi.agent import Agent
from phi.model.openai import OpenAIChat
from .config import AI_CONFIDENCE, EXTRACTION, LLM_CONFIG, Settings, get_settings
from .heuristic_matcher import HeuristicMatcher
from .models import MatchResult, PartialMatchResult, ResumeExtraction
from .reference import load_reference_tables
from .text_extractor import TextExtractor, clean_text, term_pattern

logger = logging.getLogger(__name__)

# Errors worth a second attempt
TRANSIENT_ERRORS = (asyncio.TimeoutError, APIConnectionError, ConnectionError, OSError)

EXTRACTION_FIELDS = ["clientNames", "jobTitles", "relevantDates", "skills", "education"]


class AnalyzerError(Exception):
    """Base class for external analyzer failures (always recovered internally)."""


class AnalyzerUnavailableError(AnalyzerError):
    """No external analyzer is configured."""


class AnalyzerResponseError(AnalyzerError):
    """The analyzer answered, but not with usable JSON."""


class AnalyzerBackend(Protocol):
    async def complete(self, prompt: str) -> str:
        ...


@dataclass(frozen=True)
class PrimaryOutcome:
    """The external analyzer answered; result is its response merged over the heuristic one."""
    result: Union[MatchResult, ResumeExtraction]
    external: Dict[str, Any]
    is_fallback = False


@dataclass(frozen=True)
class FallbackOutcome:
    """The external analyzer was skipped or failed; result is the heuristic one."""
    result: Union[MatchResult, ResumeExtraction]
    reason: str
    is_fallback = True


AnalysisOutcome = Union[PrimaryOutcome, FallbackOutcome]


def get_model_config(model_name: str, temperature: float = 0) -> Dict[str, Any]:
    """
    Get model configuration with temperature support check.
    Some models don't support custom temperature.
    """
    config = {"id": model_name}

    # Models that don't support temperature customization
    models_without_temperature = ["o1", "o3", "o4-mini", "gpt-5"]

    model_lower = model_name.lower()
    if not any(model_lower.startswith(no_temp) for no_temp in models_without_temperature):
        config["temperature"] = temperature

    # JSON mode support
    if "gpt-4" in model_lower:
        config["response_format"] = {"type": "json_object"}

    return config


def extract_json_from_response(text: str) -> Optional[Any]:
    """Extract JSON from LLM response, handling markdown fences and surrounding prose."""
    if not text:
        return None

    text = text.strip()
    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Outermost {...} span
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return None


def response_text(response: Any) -> str:
    """Text content of a phi RunResponse (or anything with .content / .messages)."""
    if hasattr(response, "content") and response.content is not None:
        return str(response.content)
    if hasattr(response, "messages") and response.messages:
        last_msg = response.messages[-1]
        return str(last_msg.content if hasattr(last_msg, "content") else last_msg)
    return str(response)


class PhiAgentBackend:
    """
    Analyzer backend built on a PhiData agent.

    A new agent (and OpenAI client) is built for every call, so concurrent
    calls share no client state.
    """

    def __init__(self, api_key: str, model_name: Optional[str] = None, temperature: Optional[float] = None):
        self.api_key = api_key
        self.model_name = model_name or LLM_CONFIG["model"]
        self.temperature = LLM_CONFIG["temperature"] if temperature is None else temperature

    def _build_agent(self) -> Agent:
        model_config = get_model_config(self.model_name, temperature=self.temperature)
        return Agent(
            name="Resume Analyzer",
            role="Evaluate resumes against job descriptions and extract employment facts",
            model=OpenAIChat(api_key=self.api_key, **model_config),
            instructions=[
                "Respond with a single JSON object and no additional text or markdown.",
                "Only report facts that are present in the supplied texts.",
            ],
            show_tool_calls=False,
            markdown=False,
        )

    async def complete(self, prompt: str) -> str:
        agent = self._build_agent()
        response = await agent.arun(prompt)
        text = response_text(response)
        logger.debug(f"Raw analyzer response: {text[:500]}...")
        return text


def default_backend(settings: Optional[Settings] = None) -> Optional[PhiAgentBackend]:
    """PhiAgentBackend from settings, or None when no API key is configured."""
    settings = settings or get_settings()
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - external analyzer disabled, using heuristic matching only")
        return None
    return PhiAgentBackend(api_key=settings.openai_api_key, model_name=settings.model_name)


def build_match_prompt(resume_text: str, job_text: str) -> str:
    return f"""Analyze how well the resume matches the job description.

Return ONLY a valid JSON object with exactly these fields:
- score: integer 0-100, overall match
- strengths: array of strings
- weaknesses: array of strings
- suggestions: array of strings, concrete improvements for the candidate
- technicalGaps: array of strings, at most 5 missing technical areas
- matchingSkills: array of skills that appear in BOTH the resume and the job description
- missingSkills: array of skills in the job description that do not appear in the resume
- clientExperience: string, summary of the candidate's relevant client/employer experience
- confidence: integer 0-100, how confident you are in this assessment

Job Description:
{job_text}

Resume:
{resume_text}
"""


def build_extraction_prompt(resume_text: str) -> str:
    return f"""Extract employment facts from the resume.

Return ONLY a valid JSON object with these fields:
- clientNames: array of employer/client company names, most recent first
- jobTitles: array of job titles, aligned by index with clientNames
- relevantDates: array of employment date ranges, aligned by index with clientNames
- skills: array of technical skills
- education: array of degrees, institutions and certifications

Resume:
{resume_text}
"""


def _mentions(text: str, term: str) -> bool:
    return term_pattern(term).search(text) is not None


def parse_analyzer_response(text: str, resume_text: str, job_text: str) -> PartialMatchResult:
    """
    Validate an analyzer response into a PartialMatchResult.

    Fields with the wrong type are dropped; skills not supported by the
    texts are removed from matchingSkills/missingSkills.

    Raises:
        AnalyzerResponseError: If no usable field remains
    """
    data = extract_json_from_response(text)
    if not isinstance(data, dict):
        raise AnalyzerResponseError("Could not extract a JSON object from analyzer response")

    fields: Dict[str, Any] = {}
    for name, field in PartialMatchResult.model_fields.items():
        key = field.alias or name
        value = data.get(key, data.get(name))
        if value is None:
            continue
        # 0-1 confidence scale
        if name == "confidence" and isinstance(value, float) and 0 < value <= 1:
            value = value * 100
        try:
            PartialMatchResult.model_validate({name: value})
        except ValidationError:
            logger.warning(f"Dropping malformed '{key}' from analyzer response: {str(value)[:80]}")
            continue
        fields[name] = value

    if not fields:
        raise AnalyzerResponseError("Analyzer response contained none of the expected fields")

    if "matching_skills" in fields:
        kept = [s for s in fields["matching_skills"]
                if isinstance(s, str) and _mentions(resume_text, s) and _mentions(job_text, s)]
        if len(kept) != len(fields["matching_skills"]):
            logger.warning(f"Removed {len(fields['matching_skills']) - len(kept)} matching skills "
                           f"not present in both texts")
        fields["matching_skills"] = kept

    if "missing_skills" in fields:
        kept = [s for s in fields["missing_skills"]
                if isinstance(s, str) and _mentions(job_text, s) and not _mentions(resume_text, s)]
        if len(kept) != len(fields["missing_skills"]):
            logger.warning(f"Removed {len(fields['missing_skills']) - len(kept)} missing skills "
                           f"inconsistent with the texts")
        fields["missing_skills"] = kept

    return PartialMatchResult(**fields)


def merge_match_results(external: PartialMatchResult, heuristic: MatchResult) -> MatchResult:
    """
    Merge an external response over the heuristic result.

    Any field the external response supplies overrides the heuristic value;
    absent fields are kept from the heuristic result. Confidence defaults to
    the AI-derived convention when the response omits it.
    """
    supplied = external.supplied_fields()
    supplied.setdefault("confidence", AI_CONFIDENCE)
    return MatchResult(**{**heuristic.model_dump(), **supplied})


def parse_extraction_response(text: str) -> Dict[str, List[str]]:
    """Lists from an extraction response, keyed by attribute name."""
    data = extract_json_from_response(text)
    if not isinstance(data, dict):
        raise AnalyzerResponseError("Could not extract a JSON object from analyzer response")

    fields = {}
    for name, field in ResumeExtraction.model_fields.items():
        if field.alias not in EXTRACTION_FIELDS:
            continue
        value = data.get(field.alias, data.get(name))
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            fields[name] = value
        elif value is not None:
            logger.warning(f"Dropping malformed '{field.alias}' from extraction response")

    if not fields:
        raise AnalyzerResponseError("Extraction response contained none of the expected fields")
    return fields


class ExternalAnalyzerAdapter:
    """
    Two-tier analyzer: external language model first, heuristic fallback.

    Usage:
        adapter = ExternalAnalyzerAdapter.from_settings()
        result = await adapter.analyze(resume_text, job_text)
    """

    def __init__(
        self,
        backend: Optional[AnalyzerBackend] = None,
        matcher: Optional[HeuristicMatcher] = None,
        extractor: Optional[TextExtractor] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        self.backend = backend
        self.matcher = matcher or HeuristicMatcher(extractor=extractor)
        self.extractor = extractor or self.matcher.extractor
        self.timeout_seconds = LLM_CONFIG["timeout_seconds"] if timeout_seconds is None else timeout_seconds
        self.max_retries = LLM_CONFIG["max_retries"] if max_retries is None else max_retries

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "ExternalAnalyzerAdapter":
        settings = settings or get_settings()
        if settings.data_dir and "matcher" not in kwargs:
            kwargs["matcher"] = HeuristicMatcher(load_reference_tables(settings.data_dir))
        return cls(
            backend=default_backend(settings),
            timeout_seconds=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
            **kwargs,
        )

    async def _complete(self, prompt: str) -> str:
        """Call the backend with a timeout, retrying transient failures."""
        if self.backend is None:
            raise AnalyzerUnavailableError("No external analyzer configured")

        attempts = 1 + self.max_retries
        for attempt in range(attempts):
            try:
                logger.info(f"Analyzer attempt {attempt + 1}/{attempts}")
                return await asyncio.wait_for(self.backend.complete(prompt), timeout=self.timeout_seconds)
            except TRANSIENT_ERRORS as e:
                logger.warning(f"Analyzer attempt {attempt + 1} failed: {type(e).__name__}: {e}")
                if attempt == attempts - 1:
                    raise AnalyzerError(f"Analyzer failed after {attempts} attempts: {e}") from e

        raise AnalyzerError("Analyzer call failed")

    async def _attempt(self, prompt: str) -> Tuple[Optional[str], Optional[str]]:
        """Run one external call; returns (response text, None) or (None, failure reason)."""
        try:
            return await self._complete(prompt), None
        except AnalyzerError as e:
            return None, str(e)
        except asyncio.CancelledError:
            return None, "external call cancelled"
        except Exception as e:
            logger.error(f"Unexpected analyzer error: {e}", exc_info=True)
            return None, f"unexpected error: {e}"

    async def run_analysis(self, resume_text: str, job_text: str) -> AnalysisOutcome:
        """Match a resume to a job, reporting which branch produced the result."""
        heuristic = self.matcher.match(resume_text, job_text)

        if len(clean_text(resume_text or "")) < EXTRACTION["min_text_length"] or not clean_text(job_text or ""):
            return FallbackOutcome(result=heuristic, reason="insufficient input")

        raw, reason = await self._attempt(build_match_prompt(resume_text, job_text))
        if raw is not None:
            try:
                partial = parse_analyzer_response(raw, resume_text, job_text)
                result = merge_match_results(partial, heuristic)
                logger.info(f"External analysis succeeded: score {result.score}, "
                            f"overrides {sorted(partial.supplied_fields())}")
                return PrimaryOutcome(result=result, external=partial.supplied_fields())
            except AnalyzerResponseError as e:
                reason = str(e)
            except Exception as e:
                logger.error(f"Unusable analyzer response: {e}", exc_info=True)
                reason = f"unusable response: {e}"

        logger.warning(f"Falling back to heuristic match: {reason}")
        return FallbackOutcome(result=heuristic, reason=reason)

    async def analyze(self, resume_text: str, job_text: str) -> MatchResult:
        """Match a resume to a job. Never raises; degrades to the heuristic result."""
        outcome = await self.run_analysis(resume_text, job_text)
        return outcome.result

    async def run_extraction(self, resume_text: str, file_name: Optional[str] = None) -> AnalysisOutcome:
        """Extract resume facts, reporting which branch produced the result."""
        heuristic = self.extractor.extract(resume_text, file_name)

        if len(clean_text(resume_text or "")) < EXTRACTION["min_text_length"]:
            return FallbackOutcome(result=heuristic, reason="insufficient input")

        raw, reason = await self._attempt(build_extraction_prompt(resume_text))
        if raw is not None:
            try:
                supplied = parse_extraction_response(raw)
                result = ResumeExtraction(**{**heuristic.model_dump(), **supplied})
                logger.info(f"External extraction succeeded: overrides {sorted(supplied)}")
                return PrimaryOutcome(result=result, external=supplied)
            except AnalyzerResponseError as e:
                reason = str(e)
            except Exception as e:
                logger.error(f"Unusable analyzer response: {e}", exc_info=True)
                reason = f"unusable response: {e}"

        logger.warning(f"Falling back to regex extraction: {reason}")
        return FallbackOutcome(result=heuristic, reason=reason)

    async def extract(self, resume_text: str, file_name: Optional[str] = None) -> ResumeExtraction:
        """Extract resume facts. Never raises; degrades to the regex extraction."""
        outcome = await self.run_extraction(resume_text, file_name)
        return outcome.result
