"""
Resume Version Comparison

Diffs two extractions of the same candidate's resume (previous upload vs
resubmission) and rates how suspicious the changes are.
"""

import logging
from typing import Dict, List, Optional
from .config import COMPARISON_RISK
from .dates import normalize_date_range, normalize_whitespace
from .industry import normalize_company_name
from .models import ComparisonResult, FieldChange, ResumeExtraction

logger = logging.getLogger(__name__)


def _employer_key(name: str) -> str:
    return normalize_company_name(name) or normalize_whitespace(name).lower()


def _index_by_employer(names: List[str]) -> Dict[str, int]:
    """Employer key -> index of its first occurrence."""
    index: Dict[str, int] = {}
    for i, name in enumerate(names):
        index.setdefault(_employer_key(name), i)
    return index


def _at(values: List[str], index: int) -> Optional[str]:
    return values[index] if 0 <= index < len(values) else None


def assess_risk(
    new_employers: List[str],
    removed_employers: List[str],
    changed_dates: List[FieldChange],
    changed_titles: List[FieldChange],
) -> str:
    """
    Risk policy:
    - none: nothing changed
    - high: employers both removed and added, or more than 2 date changes
    - medium: any employer removed, or more than 1 date change
    - low: anything else
    """
    if not (new_employers or removed_employers or changed_dates or changed_titles):
        return "none"
    if (removed_employers and new_employers) or len(changed_dates) > COMPARISON_RISK["high_changed_dates"]:
        return "high"
    if removed_employers or len(changed_dates) > COMPARISON_RISK["medium_changed_dates"]:
        return "medium"
    return "low"


class ResumeVersionComparator:
    def compare(self, previous: ResumeExtraction, current: ResumeExtraction) -> ComparisonResult:
        """
        Compare two extractions. removedEmployers is relative to previous,
        newEmployers to current.
        """
        prev_index = _index_by_employer(previous.client_names)
        curr_index = _index_by_employer(current.client_names)

        new_employers = [current.client_names[i] for key, i in curr_index.items() if key not in prev_index]
        removed_employers = [previous.client_names[i] for key, i in prev_index.items() if key not in curr_index]

        changed_titles: List[FieldChange] = []
        changed_dates: List[FieldChange] = []

        for key, prev_i in prev_index.items():
            if key not in curr_index:
                continue
            curr_i = curr_index[key]
            employer = current.client_names[curr_i]

            old_title = _at(previous.job_titles, prev_i)
            new_title = _at(current.job_titles, curr_i)
            if old_title and new_title and normalize_whitespace(old_title).lower() != normalize_whitespace(new_title).lower():
                changed_titles.append(FieldChange(employer=employer, old=old_title, new=new_title))

            old_dates = _at(previous.relevant_dates, prev_i)
            new_dates = _at(current.relevant_dates, curr_i)
            if old_dates and new_dates and normalize_date_range(old_dates) != normalize_date_range(new_dates):
                changed_dates.append(FieldChange(employer=employer, old=old_dates, new=new_dates))

        risk = assess_risk(new_employers, removed_employers, changed_dates, changed_titles)
        result = ComparisonResult(
            has_changes=risk != "none",
            new_employers=new_employers,
            removed_employers=removed_employers,
            changed_dates=changed_dates,
            changed_titles=changed_titles,
            overall_risk=risk,
        )

        if result.has_changes:
            logger.info(f"Resume changes detected (risk={risk}): {len(new_employers)} new, "
                        f"{len(removed_employers)} removed employers, {len(changed_dates)} date "
                        f"and {len(changed_titles)} title changes")
        return result
