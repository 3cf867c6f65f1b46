"""
Deterministic Heuristic Matcher

Scores a resume against a job description by technical-term overlap.
All scoring is deterministic - same inputs produce same outputs.
No AI/LLM or network access is used in this module.
"""

import re
import logging
from typing import Dict, List, Optional, Set
from .config import HEURISTIC_SCORING, HEURISTIC_CONFIDENCE, STOP_TERMS, EXTRACTION
from .models import MatchResult
from .reference import ReferenceTables, load_reference_tables
from .text_extractor import TextExtractor, clean_text, term_pattern

logger = logging.getLogger(__name__)

# Capitalized words and dotted/hyphenated tokens, e.g. "Kubernetes", "ASP.NET", "CI-CD"
AUTO_TERM_PATTERN = re.compile(
    r"(?<![A-Za-z0-9_])(?:[A-Z][A-Za-z0-9+#]*(?:[.-][A-Za-z0-9+#]+)*|[a-z0-9]+(?:[.-][A-Za-z0-9]+)+)"
)


def extract_auto_terms(job_text: str) -> Set[str]:
    """Candidate technical terms from job text (lowercased, length > 2, stop words removed)."""
    terms = set()
    for match in AUTO_TERM_PATTERN.finditer(job_text or ""):
        term = match.group(0).rstrip(".-").lower()
        if len(term) > 2 and term not in STOP_TERMS and not term.isdigit():
            terms.add(term)
    return terms


def word_overlap_ratio(resume_text: str, job_text: str) -> float:
    """|common words| / |job words|, counting only words longer than 3 characters."""
    min_len = HEURISTIC_SCORING["word_min_length"]
    job_words = {w for w in re.findall(r"[a-z0-9]+", job_text.lower()) if len(w) >= min_len}
    if not job_words:
        return 0.0
    resume_words = {w for w in re.findall(r"[a-z0-9]+", resume_text.lower()) if len(w) >= min_len}
    return len(job_words & resume_words) / len(job_words)


def tier_score(match_rate: float) -> int:
    """Map a skill match rate to the fixed score tiers (last threshold cleared stands)."""
    score = HEURISTIC_SCORING["base_score"]
    for threshold, tier in HEURISTIC_SCORING["tiers"]:
        if match_rate > threshold:
            score = tier
    return score


def insufficient_data_result(reason: str) -> MatchResult:
    return MatchResult(
        score=0,
        weaknesses=[reason],
        suggestions=["Provide a complete resume and job description for an accurate match"],
        client_experience="No client experience could be determined",
        confidence=0,
    )


class HeuristicMatcher:
    """
    Offline resume/job matcher.

    Usage:
        matcher = HeuristicMatcher()
        result = matcher.match(resume_text, job_text)
        print(result.score, result.matching_skills)
    """

    def __init__(
        self,
        reference: Optional[ReferenceTables] = None,
        extractor: Optional[TextExtractor] = None,
    ):
        self.reference = reference or load_reference_tables()
        self.extractor = extractor or TextExtractor(self.reference)
        # lowercase term -> pattern; lexicon names and aliases
        self._lexicon: Dict[str, "re.Pattern"] = {}
        for entry in self.reference.skills:
            for term in entry.terms:
                self._lexicon.setdefault(term.lower(), term_pattern(term, entry.case_sensitive))

    def _vocabulary(self, job_text: str) -> Dict[str, "re.Pattern"]:
        vocabulary = dict(self._lexicon)
        for term in extract_auto_terms(job_text):
            vocabulary.setdefault(term, term_pattern(term))
        return vocabulary

    def match(self, resume_text: str, job_text: str) -> MatchResult:
        """
        Score a resume against a job description (0-100).

        Formula:
        - No technical terms in job: word overlap ratio, floored at 75, capped at 95
        - Otherwise: match rate = |matching| / |job terms|, mapped to tiers 75/80/85/90/95
        """
        resume = clean_text(resume_text or "")
        job = clean_text(job_text or "")

        if len(resume) < EXTRACTION["min_text_length"]:
            logger.info("Resume text too short for heuristic matching")
            return insufficient_data_result("Resume does not contain enough information to evaluate")
        if not job:
            logger.info("Job description empty, cannot match")
            return insufficient_data_result("Job description does not contain enough information to evaluate")

        vocabulary = self._vocabulary(job)
        job_terms = sorted(term for term, pattern in vocabulary.items() if pattern.search(job))
        matching = [term for term in job_terms if vocabulary[term].search(resume)]
        missing = [term for term in job_terms if term not in set(matching)]
        job_skills_count = len(job_terms)

        if job_skills_count == 0:
            ratio = word_overlap_ratio(resume, job)
            score = int(round(ratio * 100))
            score = max(HEURISTIC_SCORING["word_overlap_floor"], min(HEURISTIC_SCORING["word_overlap_cap"], score))
            confidence = HEURISTIC_CONFIDENCE["word_overlap"]
            logger.debug(f"No technical terms in job; word overlap {ratio:.2f} -> {score}")
        else:
            match_rate = len(matching) / job_skills_count
            score = tier_score(match_rate)
            confidence = min(
                HEURISTIC_CONFIDENCE["cap"],
                HEURISTIC_CONFIDENCE["base"] + HEURISTIC_CONFIDENCE["per_job_skill"] * job_skills_count,
            )
            logger.debug(f"Skill match rate {len(matching)}/{job_skills_count} = {match_rate:.2f} -> {score}")

        extraction = self.extractor.extract(resume)

        result = MatchResult(
            score=score,
            strengths=self._strengths(matching, extraction.client_names),
            weaknesses=self._weaknesses(missing, job_skills_count),
            suggestions=self._suggestions(missing),
            technical_gaps=[
                f"No demonstrated experience with {term}"
                for term in missing[:HEURISTIC_SCORING["max_technical_gaps"]]
            ],
            matching_skills=matching,
            missing_skills=missing,
            client_experience=self._client_summary(extraction.client_names),
            confidence=confidence,
        )
        logger.info(f"Heuristic match score: {result.score} "
                    f"({len(matching)} matching, {len(missing)} missing terms)")
        return result

    @staticmethod
    def _strengths(matching: List[str], clients: List[str]) -> List[str]:
        strengths = []
        if matching:
            strengths.append(f"Has experience with {len(matching)} of the technologies in the job: "
                             f"{', '.join(matching[:8])}")
        if clients:
            strengths.append(f"Prior client experience with {', '.join(clients[:3])}")
        if not strengths:
            strengths.append("General background overlaps with the job description")
        return strengths

    @staticmethod
    def _weaknesses(missing: List[str], job_skills_count: int) -> List[str]:
        if not missing:
            return []
        weaknesses = [f"Missing {len(missing)} of {job_skills_count} technologies required: "
                      f"{', '.join(missing[:8])}"]
        if len(missing) * 2 > job_skills_count:
            weaknesses.append("Less than half of the job's technical requirements are evident in the resume")
        return weaknesses

    @staticmethod
    def _suggestions(missing: List[str]) -> List[str]:
        suggestions = [f"Highlight any hands-on work with {term}" for term in missing[:3]]
        if missing:
            suggestions.append("Quantify results on projects that used the required technologies")
        else:
            suggestions.append("Emphasize measurable outcomes from recent projects")
        return suggestions

    @staticmethod
    def _client_summary(clients: List[str]) -> str:
        if not clients:
            return "No client experience identified in resume"
        return f"Worked with {len(clients)} client(s): {', '.join(clients)}"


_default_matcher: Optional[HeuristicMatcher] = None


def heuristic_match(resume_text: str, job_text: str) -> MatchResult:
    """Match with a shared matcher built from the packaged reference tables."""
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = HeuristicMatcher()
    return _default_matcher.match(resume_text, job_text)
