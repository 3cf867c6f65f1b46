"""
Employment History Validation

Screens a candidate's employment history against other candidates'
extractions. Near-identical histories (same employers in the same order
with the same dates) are a common sign of fabricated resumes.
"""

import logging
from typing import List, Mapping, Optional, Sequence, Union
from .config import HISTORY_VALIDATION
from .dates import date_parts
from .models import (
    HistoryValidationReport, ResumeExtraction, SimilarHistoryMatch, SuspiciousPattern
)

logger = logging.getLogger(__name__)

CandidateId = Union[int, str]


def _company_key(name: str) -> str:
    """Company part of a name, dropping any ", City" suffix."""
    return name.split(",")[0].strip().lower()


def _company_first_word(name: str) -> str:
    key = _company_key(name)
    return key.split()[0] if key else ""


def _dates_match(date: str, other: str) -> bool:
    """Exact (case-insensitive) match, or every part of date appears in other."""
    if date.strip().lower() == other.strip().lower():
        return True
    parts = date_parts(date)
    other_parts = set(date_parts(other))
    return bool(parts) and all(p in other_parts for p in parts)


def similarity_score(
    client_names: Sequence[str],
    relevant_dates: Sequence[str],
    other: ResumeExtraction,
    candidate_id: CandidateId = 0,
) -> SimilarHistoryMatch:
    """
    Calculate history similarity (0-100).

    Formula: round(100 * (matched companies + matched dates) / (companies + dates))
    """
    other_keys = {_company_key(c) for c in other.client_names}
    matched_companies = [c for c in client_names if _company_key(c) in other_keys]
    matched_dates = [d for d in relevant_dates if any(_dates_match(d, o) for o in other.relevant_dates)]

    total = len(client_names) + len(relevant_dates)
    score = round(100 * (len(matched_companies) + len(matched_dates)) / total) if total else 0
    return SimilarHistoryMatch(
        candidate_id=candidate_id,
        similarity_score=score,
        matched_companies=matched_companies,
        matched_dates=matched_dates,
    )


def has_identical_chronology(
    client_names: Sequence[str],
    relevant_dates: Sequence[str],
    other: ResumeExtraction,
) -> bool:
    """
    Same employers (by first word of the company name) and the same dates.

    At least 90% of companies must be shared; when both sides list dates, at
    least 80% of dates must match, a date matching when 80% of its parts do.
    """
    keys = [_company_first_word(c) for c in client_names]
    other_keys = {_company_first_word(c) for c in other.client_names}
    matching = [k for k in keys if k and k in other_keys]
    company_ratio = len(matching) / max(len(keys), 1)
    if company_ratio < HISTORY_VALIDATION["identical_company_ratio"]:
        return False

    if not relevant_dates or not other.relevant_dates:
        return True

    other_parts = [set(date_parts(d)) for d in other.relevant_dates]
    matching_dates = 0
    for date in relevant_dates:
        parts = date_parts(date)
        if not parts:
            continue
        best = max(sum(1 for p in parts if p in op) for op in other_parts)
        if best / len(parts) >= HISTORY_VALIDATION["date_part_ratio"]:
            matching_dates += 1

    return matching_dates / len(relevant_dates) >= HISTORY_VALIDATION["identical_date_ratio"]


class EmploymentHistoryValidator:
    def find_similar_histories(
        self,
        client_names: Sequence[str],
        relevant_dates: Sequence[str],
        others: Mapping[CandidateId, ResumeExtraction],
        exclude_candidate_id: Optional[CandidateId] = None,
    ) -> List[SimilarHistoryMatch]:
        """Candidates sharing any employer or date, most similar first."""
        matches = []
        for candidate_id, extraction in others.items():
            if exclude_candidate_id is not None and candidate_id == exclude_candidate_id:
                continue
            match = similarity_score(client_names, relevant_dates, extraction, candidate_id)
            if match.similarity_score > 0:
                matches.append(match)

        matches.sort(key=lambda m: str(m.candidate_id))
        matches.sort(key=lambda m: m.similarity_score, reverse=True)
        logger.info(f"Found {len(matches)} candidates with similar employment histories "
                    f"out of {len(others)} compared")
        return matches

    def validate(
        self,
        client_names: Sequence[str],
        relevant_dates: Sequence[str],
        others: Mapping[CandidateId, ResumeExtraction],
        exclude_candidate_id: Optional[CandidateId] = None,
    ) -> HistoryValidationReport:
        client_names = [c for c in client_names if c and c.strip()]
        relevant_dates = [d for d in relevant_dates if d and d.strip()]
        if not client_names:
            return HistoryValidationReport(message="No employment history to validate")

        similar = self.find_similar_histories(client_names, relevant_dates, others, exclude_candidate_id)
        high = [m for m in similar if m.similarity_score >= HISTORY_VALIDATION["high_similarity"]]
        identical = [
            m for m in similar
            if has_identical_chronology(client_names, relevant_dates, others[m.candidate_id])
        ]

        patterns = []
        if identical:
            patterns.append(SuspiciousPattern(
                type="IDENTICAL_CHRONOLOGY",
                severity="HIGH",
                message=f"{len(identical)} other candidate(s) have identical employer sequence and dates",
                detail="Same companies in the same order with matching employment dates; "
                       "require additional verification before submitting this candidate.",
                candidate_ids=[m.candidate_id for m in identical],
            ))
        if high:
            patterns.append(SuspiciousPattern(
                type="HIGH_SIMILARITY",
                severity="MEDIUM",
                message=f"{len(high)} other candidate(s) have >{HISTORY_VALIDATION['high_similarity']}% "
                        f"matching employment histories",
                detail="Very similar work histories may indicate a templated or fabricated resume; "
                       "compare the specific details.",
                candidate_ids=[m.candidate_id for m in high],
            ))

        if identical:
            message = (f"CRITICAL: Found {len(identical)} candidates with identical job chronology. "
                       f"This is a high fraud risk pattern.")
            logger.warning(message)
        elif high:
            message = (f"WARNING: Found {len(high)} candidates with >{HISTORY_VALIDATION['high_similarity']}% "
                       f"similar employment history. Review carefully.")
            logger.warning(message)
        else:
            message = "Employment history validation complete"

        return HistoryValidationReport(
            similar_candidates=similar,
            high_similarity_count=len(high),
            identical_chronology_count=len(identical),
            suspicious_patterns=patterns,
            message=message,
        )


def validate_employment_history(
    client_names: Sequence[str],
    relevant_dates: Sequence[str],
    others: Mapping[CandidateId, ResumeExtraction],
    exclude_candidate_id: Optional[CandidateId] = None,
) -> HistoryValidationReport:
    return EmploymentHistoryValidator().validate(client_names, relevant_dates, others, exclude_candidate_id)
