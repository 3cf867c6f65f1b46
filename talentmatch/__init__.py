"""
Candidate Matching and Resume Integrity Engine

This package provides:
1. Regex extraction of employment facts, skills and education from resume text
2. Resume-to-job matching (PhiData + OpenAI first, deterministic heuristic fallback)
3. Candidate recommendation for a job (title, skills, location, client experience)
4. Resume resubmission comparison and cross-candidate history screening

Usage:
    from talentmatch import analyze_resume_text, match_resume_to_job

    extraction = analyze_resume_text(resume_text)
    result = await match_resume_to_job(resume_text, job_description)
    print(f"Match: {result.score}%")
"""

from .matcher import (
    analyze_resume_text,
    match_resume_to_job,
    match_multiple_jobs,
    find_recommended_candidates,
    compare_resume_versions,
)
from .models import (
    ResumeExtraction, JobRequirement, JobLocation, MatchResult, CandidateProfile,
    CandidateRecommendation, ComparisonResult, ClientExperienceMatch
)
from .text_extractor import TextExtractor
from .heuristic_matcher import HeuristicMatcher
from .llm_analyzer import ExternalAnalyzerAdapter, merge_match_results
from .industry import IndustryClassifier
from .client_experience import ClientExperienceScorer
from .recommendation import CandidateJobScorer
from .comparison import ResumeVersionComparator
from .history_validator import EmploymentHistoryValidator, validate_employment_history

__all__ = [
    "analyze_resume_text",
    "match_resume_to_job",
    "match_multiple_jobs",
    "find_recommended_candidates",
    "compare_resume_versions",
    "validate_employment_history",
    "ResumeExtraction",
    "JobRequirement",
    "JobLocation",
    "MatchResult",
    "CandidateProfile",
    "CandidateRecommendation",
    "ComparisonResult",
    "ClientExperienceMatch",
    "TextExtractor",
    "HeuristicMatcher",
    "ExternalAnalyzerAdapter",
    "merge_match_results",
    "IndustryClassifier",
    "ClientExperienceScorer",
    "CandidateJobScorer",
    "ResumeVersionComparator",
    "EmploymentHistoryValidator",
]
__version__ = "1.0.0"
