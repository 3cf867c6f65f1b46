"""
Candidate Recommendation Module

Ranks candidates for a job by a weighted composite of title similarity,
skill overlap, location fit and client experience. Deterministic: the same
job and candidates always produce the same ranking.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from .config import (
    RECOMMENDATION_WEIGHTS, RECOMMENDATION_THRESHOLDS, TITLE_SIMILARITY,
    SKILL_MATCH, LOCATION_SCORES
)
from .client_experience import ClientExperienceScorer
from .industry import names_overlap
from .models import (
    CandidateProfile, CandidateRecommendation, ClientExperienceMatch,
    JobLocation, JobRequirement, ResumeExtraction
)
from .reference import ReferenceTables, load_reference_tables
from .text_extractor import term_pattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationMatch:
    score: float
    description: str


@dataclass(frozen=True)
class SkillMatch:
    score: float
    matched_skills: List[str]


def _normalize(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (text or "").lower()).strip()


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """1.0 for equal strings, 0.8 for containment, else shared words / words in the longer string."""
    s1, s2 = _normalize(a), _normalize(b)
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return TITLE_SIMILARITY["exact"]
    if s1 in s2 or s2 in s1:
        return TITLE_SIMILARITY["contains"]

    words1, words2 = s1.split(), s2.split()
    common = len(set(words1) & set(words2))
    return common / max(len(words1), len(words2))


def score_title(job_title: str, extraction: Optional[ResumeExtraction]) -> Tuple[float, Optional[str]]:
    """Best similarity between the job title and any extracted title."""
    best, best_title = 0.0, None
    for title in (extraction.job_titles if extraction else []):
        similarity = string_similarity(job_title, title)
        if similarity > best:
            best, best_title = similarity, title
    return best, best_title


def score_skills(job: JobRequirement, extraction: Optional[ResumeExtraction]) -> SkillMatch:
    """
    Calculate skill match score (0-1).

    Formula:
    - matched: candidate skills found in the description or the client focus
    - weighted = matched + client-focus matches (focus counts twice)
    - expected skills = min(10, max(5, description words // 50))
    - score = min(1.0, weighted / expected)
    """
    if not extraction or not extraction.skills:
        return SkillMatch(0.0, [])

    description = job.description or ""
    desc_words = [w for w in re.findall(r"[a-z0-9+#]+", description.lower())
                  if len(w) >= SKILL_MATCH["token_min_length"]]
    desc_tokens = set(desc_words)
    focus = [_normalize(f) for f in job.client_focus if _normalize(f)]

    matched, focus_matched = [], []
    for skill in extraction.skills:
        skill_lower = _normalize(skill)
        in_focus = any(names_overlap(skill_lower, f) for f in focus)
        in_description = skill_lower in desc_tokens or term_pattern(skill).search(description) is not None
        if in_focus or in_description:
            matched.append(skill)
        if in_focus:
            focus_matched.append(skill)

    weighted = len(matched) + (SKILL_MATCH["focus_weight"] - 1) * len(focus_matched)
    expected = min(
        SKILL_MATCH["max_expected"],
        max(SKILL_MATCH["min_expected"], len(desc_words) // SKILL_MATCH["words_per_skill"]),
    )
    score = min(1.0, weighted / expected)
    logger.debug(f"Skill match: {len(matched)} matched ({len(focus_matched)} focus), "
                 f"expected {expected} -> {score:.2f}")
    return SkillMatch(score, matched)


class CandidateJobScorer:
    """
    Rank candidates for a job.

    Usage:
        scorer = CandidateJobScorer()
        recommendations = scorer.rank(job, candidates, limit=10)
    """

    def __init__(
        self,
        reference: Optional[ReferenceTables] = None,
        client_scorer: Optional[ClientExperienceScorer] = None,
    ):
        self.reference = reference or load_reference_tables()
        self.client_scorer = client_scorer or ClientExperienceScorer(self.reference)

    def _state_code(self, token: Optional[str]) -> Optional[str]:
        value = re.sub(r"\s*\d{5}(?:-\d{4})?$", "", (token or "").strip()).strip(" .")
        if not value:
            return None
        if len(value) == 2 and value.upper() in self.reference.state_codes:
            return value.upper()
        return self.reference.us_states.get(value.lower())

    def parse_location(self, location: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Split "City, ST" into (city, state code).

        A lone state name or code is treated as a state; states are
        normalized to two-letter codes when recognised.
        """
        parts = [p.strip() for p in (location or "").split(",") if p.strip()]
        if not parts:
            return None, None
        if len(parts) == 1:
            state = self._state_code(parts[0])
            if state:
                return None, state
            return _normalize(parts[0]), None
        state = self._state_code(parts[1]) or _normalize(parts[1])
        return _normalize(parts[0]), state

    def score_location(self, job_location: JobLocation, candidate_location: Optional[str]) -> LocationMatch:
        if job_location.job_type == "remote":
            return LocationMatch(LOCATION_SCORES["remote"], "Remote position")

        cand_city, cand_state = self.parse_location(candidate_location)
        if not cand_city and not cand_state:
            return LocationMatch(LOCATION_SCORES["no_location"], "No location data")

        job_city = _normalize(job_location.city) or None
        job_state = self._state_code(job_location.state) or (_normalize(job_location.state) or None)
        if not job_city and not job_state:
            return LocationMatch(LOCATION_SCORES["other"], "Job location not specified")

        states_conflict = bool(job_state and cand_state and job_state != cand_state)
        if job_city and cand_city == job_city and not states_conflict:
            return LocationMatch(LOCATION_SCORES["same_city"], f"Located in {job_location.city}")

        if job_state and cand_state == job_state:
            if job_location.job_type == "hybrid":
                return LocationMatch(LOCATION_SCORES["same_state_hybrid"], f"Same state ({job_state}), hybrid position")
            return LocationMatch(LOCATION_SCORES["same_state"], f"Same state ({job_state})")

        if job_location.job_type == "hybrid":
            return LocationMatch(LOCATION_SCORES["hybrid_other"], "Different city, hybrid position")
        if job_location.job_type == "onsite":
            return LocationMatch(LOCATION_SCORES["onsite_mismatch"], "Onsite position in a different location")
        return LocationMatch(LOCATION_SCORES["other"], "Different location")

    def score_candidate(self, job: JobRequirement, candidate: CandidateProfile) -> Tuple[float, ClientExperienceMatch, SkillMatch, CandidateRecommendation]:
        extraction = candidate.extraction
        title_score, matched_title = score_title(job.title, extraction)
        skill = score_skills(job, extraction)
        location = self.score_location(job.location, candidate.location)
        client = self.client_scorer.score(job.client_name, extraction.client_names if extraction else [])

        composite = (
            RECOMMENDATION_WEIGHTS["title"] * title_score
            + RECOMMENDATION_WEIGHTS["skill"] * skill.score
            + RECOMMENDATION_WEIGHTS["location"] * location.score
            + (RECOMMENDATION_WEIGHTS["client"] if client.has_experience else 0.0)
        )

        reasons = []
        if title_score > RECOMMENDATION_THRESHOLDS["title_reason"] and matched_title:
            reasons.append(f"Similar job title: {matched_title}")
        if skill.matched_skills:
            reasons.append(f"Matches {len(skill.matched_skills)} required skills")
        if location.score > RECOMMENDATION_THRESHOLDS["location_reason"]:
            reasons.append(location.description)
        if client.has_experience and client.client_name:
            reasons.append(f"Previous experience with {client.client_name}")

        recommendation = CandidateRecommendation(
            candidate_id=candidate.candidate_id,
            candidate_name=candidate.candidate_name,
            location=candidate.location,
            match_score=round(composite * 100),
            match_reasons=reasons,
            skill_matches=skill.matched_skills,
            location_match=location.description,
            client_experience=client.client_name if client.has_experience else None,
        )
        logger.debug(f"Candidate {candidate.candidate_id}: title={title_score:.2f} skill={skill.score:.2f} "
                     f"location={location.score:.2f} client={client.score:.2f} -> {composite:.3f}")
        return composite, client, skill, recommendation

    def rank(
        self,
        job: JobRequirement,
        candidates: Sequence[CandidateProfile],
        limit: Optional[int] = None,
    ) -> List[CandidateRecommendation]:
        """
        Rank candidates for a job, best first.

        Candidates below the composite threshold and flagged (unreal)
        candidates are excluded. Ties are broken by unrounded composite,
        client score, skill score, then candidate id.
        """
        logger.info(f"Ranking {len(candidates)} candidates for '{job.title}'")

        scored = []
        for candidate in candidates:
            if candidate.is_unreal:
                logger.debug(f"Skipping flagged candidate {candidate.candidate_id}")
                continue
            composite, client, skill, recommendation = self.score_candidate(job, candidate)
            if composite < RECOMMENDATION_THRESHOLDS["min_composite"]:
                continue
            scored.append((composite, client, skill, recommendation))

        scored.sort(key=lambda item: str(item[3].candidate_id))
        scored.sort(
            key=lambda item: (item[3].match_score, item[0], item[1].score, item[2].score),
            reverse=True,
        )

        recommendations = [item[3] for item in scored]
        if limit is not None:
            recommendations = recommendations[:max(0, limit)]

        logger.info(f"Recommended {len(recommendations)} of {len(candidates)} candidates")
        return recommendations
