"""
Main Matcher Module

Entry points used by the service layer:
1. Extract structured facts from resume text
2. Match a resume to one or many job descriptions (AI first, heuristic fallback)
3. Recommend candidates for a job
4. Compare two versions of a candidate's resume
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence
from .comparison import ResumeVersionComparator
from .config import RECOMMENDATION_THRESHOLDS
from .llm_analyzer import ExternalAnalyzerAdapter
from .models import (
    CandidateProfile, CandidateRecommendation, ComparisonResult,
    JobRequirement, MatchResult, ResumeExtraction
)
from .recommendation import CandidateJobScorer
from .text_extractor import extract_resume

logger = logging.getLogger(__name__)


def analyze_resume_text(text: str, file_name: Optional[str] = None) -> ResumeExtraction:
    """Extract employers, titles, dates, skills and education from resume text."""
    return extract_resume(text, file_name)


async def match_resume_to_job(
    resume_text: str,
    job_description: str,
    analyzer: Optional[ExternalAnalyzerAdapter] = None,
) -> MatchResult:
    """
    Match a resume against a job description.

    Uses the external analyzer when one is configured and falls back to the
    deterministic heuristic matcher on any failure. Never raises.

    Args:
        resume_text: Plain resume text
        job_description: Plain job description text
        analyzer: Optional adapter (defaults to one built from environment settings)

    Returns:
        MatchResult with score and confidence in 0-100

    Example:
        >>> result = await match_resume_to_job(resume_text, job_desc)
        >>> print(f"Match: {result.score}% (confidence {result.confidence})")
    """
    analyzer = analyzer or ExternalAnalyzerAdapter.from_settings()

    logger.info("=" * 80)
    logger.info("STARTING RESUME-JOB MATCHING")
    logger.info("=" * 80)

    outcome = await analyzer.run_analysis(resume_text, job_description)
    if outcome.is_fallback:
        logger.info(f"Heuristic result used ({outcome.reason})")

    logger.info("=" * 80)
    logger.info(f"MATCHING COMPLETE - Score: {outcome.result.score}%")
    logger.info("=" * 80)
    return outcome.result


async def match_multiple_jobs(
    job_descriptions: Sequence[str],
    resume_text: str,
    analyzer: Optional[ExternalAnalyzerAdapter] = None,
) -> List[Dict]:
    """
    Match a resume against multiple job descriptions concurrently.

    Returns:
        List of {"job_index": int, "result": MatchResult}, best score first
    """
    analyzer = analyzer or ExternalAnalyzerAdapter.from_settings()
    logger.info(f"Matching resume against {len(job_descriptions)} jobs")

    results = await asyncio.gather(*[
        analyzer.analyze(resume_text, job_desc) for job_desc in job_descriptions
    ])

    ranked = [{"job_index": i, "result": result} for i, result in enumerate(results)]
    ranked.sort(key=lambda x: x["result"].score, reverse=True)

    if ranked:
        logger.info(f"Completed matching {len(ranked)} jobs, top match: {ranked[0]['result'].score}%")
    return ranked


def find_recommended_candidates(
    job: JobRequirement,
    candidates: Sequence[CandidateProfile],
    limit: Optional[int] = RECOMMENDATION_THRESHOLDS["default_limit"],
    scorer: Optional[CandidateJobScorer] = None,
) -> List[CandidateRecommendation]:
    """Rank candidates for a job, best first, excluding weak and flagged candidates."""
    scorer = scorer or CandidateJobScorer()
    return scorer.rank(job, candidates, limit=limit)


def compare_resume_versions(previous: ResumeExtraction, current: ResumeExtraction) -> ComparisonResult:
    """Diff a resubmitted resume against the stored extraction and rate the risk."""
    result = ResumeVersionComparator().compare(previous, current)
    if result.overall_risk in ("medium", "high"):
        logger.warning(f"Resume resubmission flagged with {result.overall_risk} risk: "
                       f"removed {result.removed_employers}, added {result.new_employers}")
    return result
