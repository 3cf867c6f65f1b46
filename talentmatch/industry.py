"""
Industry classification of client/company names using the reference
industry→company table.
"""

import re
import logging
from typing import List, Optional
from .reference import ReferenceTables, load_reference_tables

logger = logging.getLogger(__name__)

# Legal suffixes removed before comparing company names
LEGAL_SUFFIX_PATTERN = re.compile(
    r"\b(?:Inc\.?|Incorporated|Corp\.?|Corporation|LLC|Ltd\.?|Limited|Group|Holdings|Company|Co\.)(?![A-Za-z])",
    re.IGNORECASE,
)


def normalize_company_name(name: Optional[str]) -> str:
    """
    Normalize a company name for comparison.

    Removes legal suffixes, punctuation and extra whitespace, lowercases.
    "Acme Holdings, Inc." -> "acme"
    """
    if not name:
        return ""
    normalized = LEGAL_SUFFIX_PATTERN.sub(" ", name)
    normalized = re.sub(r"[^\w\s&]", " ", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip().lower()


def _contains_words(haystack: str, needle: str) -> bool:
    return re.search(r"(?<!\w)" + re.escape(needle) + r"(?!\w)", haystack) is not None


def names_overlap(a: str, b: str) -> bool:
    """
    Containment in either direction on normalized, non-empty names.

    Containment is on word boundaries so "ge" does not match "orange".
    """
    if not a or not b:
        return False
    return _contains_words(b, a) or _contains_words(a, b)


class IndustryClassifier:
    def __init__(self, reference: Optional[ReferenceTables] = None):
        self.reference = reference or load_reference_tables()
        # industry -> normalized company names, table order preserved
        self._normalized = [
            (industry, [normalize_company_name(c) for c in companies])
            for industry, companies in self.reference.company_industries.items()
        ]

    def industry_of(self, company_name: Optional[str]) -> Optional[str]:
        """Industry of a company: exact normalized match first, then containment."""
        normalized = normalize_company_name(company_name)
        if not normalized:
            return None

        for industry, companies in self._normalized:
            if normalized in companies:
                logger.debug(f"'{company_name}' -> {industry} (exact)")
                return industry

        for industry, companies in self._normalized:
            if any(names_overlap(normalized, c) for c in companies):
                logger.debug(f"'{company_name}' -> {industry} (partial)")
                return industry

        return None

    def domains_of(self, industry: Optional[str]) -> List[str]:
        if not industry:
            return []
        return list(self.reference.industry_domains.get(industry, ()))

    def is_regulated(self, industry: Optional[str]) -> bool:
        return bool(industry) and industry in self.reference.regulated_industries
