"""
Date Range Normalization

Best-effort parsing of the employment date ranges found in resumes, so two
snapshots written in different formats ("01/2020 - 03/2022" vs
"January 2020 - March 2022") can be compared by meaning.
"""

import re
import logging
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PRESENT = "Present"

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

MONTH_NAME_PATTERN = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?"
)

PRESENT_PATTERN = r"(?:Present|Current|Now|Today|Date)"

RANGE_SEPARATOR = re.compile(
    r"\s*[–—]\s*|\s+-\s+|\s+(?:to|until|through)\s+"
    r"|(?<=\d{4})-(?=(?:\d{4}|\d{1,2}/\d{4}|[A-Za-z]))",
    re.IGNORECASE,
)

YearMonth = Tuple[int, Optional[int]]


def parse_date_token(token: str) -> Optional[Union[YearMonth, str]]:
    """
    Parse a single date endpoint.

    Returns (year, month) with month None when unknown, the PRESENT
    sentinel for open-ended ranges, or None when the token is not a date.
    """
    if not token:
        return None
    value = token.strip().strip(".,;()")
    if not value:
        return None

    if re.fullmatch(PRESENT_PATTERN, value, re.IGNORECASE):
        return PRESENT

    # MM/DD/YYYY; swap when the first number cannot be a month
    m = re.fullmatch(r"(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})", value)
    if m:
        first, second, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        month = first
        if first > 12 and second <= 12:
            logger.debug(f"Ambiguous date '{value}': treating {second} as month")
            month = second
        return (year, month) if 1 <= month <= 12 else (year, None)

    # MM/YYYY
    m = re.fullmatch(r"(\d{1,2})[/.-](\d{4})", value)
    if m:
        month, year = int(m.group(1)), int(m.group(2))
        return (year, month) if 1 <= month <= 12 else (year, None)

    # YYYY-MM or YYYY/MM
    m = re.fullmatch(r"(\d{4})[/-](\d{1,2})", value)
    if m:
        year, month = int(m.group(1)), int(m.group(2))
        return (year, month) if 1 <= month <= 12 else (year, None)

    # Month YYYY / Month, YYYY / Month 'YY is not supported
    m = re.fullmatch(r"([A-Za-z]+)\.?,?\s+(\d{4})", value)
    if m:
        name = m.group(1).lower()
        month = MONTHS.get(name[:3])
        if month:
            return (int(m.group(2)), month)
        return None

    # YYYY
    m = re.fullmatch(r"(\d{4})", value)
    if m:
        return (int(m.group(1)), None)

    return None


def _format_endpoint(parsed: Union[YearMonth, str]) -> str:
    if parsed == PRESENT:
        return PRESENT
    year, month = parsed
    return f"{year:04d}-{month:02d}" if month else f"{year:04d}"


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def normalize_date_range(text: str) -> str:
    """
    Canonicalize a date range to 'YYYY-MM - YYYY-MM' (or 'YYYY', or 'Present').

    Unparseable input is returned whitespace-normalized, never raised.
    """
    cleaned = normalize_whitespace(text)
    if not cleaned:
        return ""

    parts = [p for p in RANGE_SEPARATOR.split(cleaned) if p.strip()]
    if not parts or len(parts) > 2:
        return cleaned

    parsed = [parse_date_token(p) for p in parts]
    if any(p is None for p in parsed):
        return cleaned

    return " - ".join(_format_endpoint(p) for p in parsed)


def date_parts(text: str) -> List[str]:
    """Lowercase alphanumeric parts of a date string (e.g. ['jan', '2020', 'present'])."""
    return [p for p in re.split(r"[^a-z0-9]+", (text or "").lower()) if p]
