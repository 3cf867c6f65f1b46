"""
Resume Text Extraction Module

Deterministic, regex-based extraction of employment facts (employers, job
titles, date ranges), technical skills and education from plain resume
text. No AI/LLM is used in this module.
"""

import re
import html
import logging
from typing import Dict, List, Optional, Tuple
from .config import EXTRACTION, CERTIFICATION_ACRONYMS
from .dates import MONTH_NAME_PATTERN, PRESENT_PATTERN, normalize_whitespace
from .models import ResumeExtraction, unique_ordered
from .reference import ReferenceTables, load_reference_tables

logger = logging.getLogger(__name__)

# Role nouns that end a job title
ROLE_NOUNS = (
    r"(?:Developer|Engineer|Architect|Analyst|Manager|Consultant|Lead|Administrator|"
    r"Designer|Specialist|Scientist|Director|Programmer|Tester|Coordinator|Officer|"
    r"Intern|Owner|Strategist|Technician|Associate)"
)

# A run of capitalized words, e.g. "Acme Data Systems" or "AT&T"
COMPANY = r"[A-Z][A-Za-z0-9&'.-]*(?: (?:& )?[A-Z0-9][A-Za-z0-9&'.-]*){0,5}"

LEGAL_SUFFIX = r"(?:Inc\.?|Incorporated|Corp\.?|Corporation|LLC|L\.L\.C\.|Ltd\.?|Limited|LLP|Co\.)"

EMPLOYER_PATTERNS = [
    # client: Acme Corp
    re.compile(r"(?i:\bclient)\s*:\s*(?P<name>[^\n,;|()]+)"),
    # worked for Acme Corp as ... / worked at Acme from ...
    re.compile(
        r"(?i:\bworked\s+(?:for|at))\s+(?P<name>" + COMPANY + r")"
        r"(?=\s+(?i:as|from|since|in|on|between|during)\b|\s*[,.;:(|]|\s*$)",
        re.MULTILINE,
    ),
    # project with Acme / engagement for Acme
    re.compile(r"(?i:\b(?:project|engagement)\s+(?:with|for))\s+(?P<name>" + COMPANY + r")"),
    # Senior Developer at Acme
    re.compile(ROLE_NOUNS + r"\s+(?:at|@)\s+(?P<name>" + COMPANY + r")"),
    # Acme Corp / Globex, Inc.
    re.compile(r"(?P<name>" + COMPANY + r",? " + LEGAL_SUFFIX + r")(?![A-Za-z])"),
]

MONTH_WORDS = {
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
}

NOT_EMPLOYER_WORDS = MONTH_WORDS | {"present", "current", "now", "resume", "experience"}

DATE_SEPARATOR = r"\s*(?:-|–|—|\bto\b|\buntil\b)\s*"
YEAR = r"(?:19|20)\d{2}"
NUMERIC_DATE = r"\d{1,2}/(?:\d{1,2}/)?" + YEAR
MONTH_DATE = MONTH_NAME_PATTERN + r",?\s+" + YEAR

# Most specific family first; overlapping matches keep the earlier family
DATE_PATTERNS = [
    re.compile(
        r"(?<![\d/])" + NUMERIC_DATE + DATE_SEPARATOR
        + r"(?:" + NUMERIC_DATE + r"|" + PRESENT_PATTERN + r")(?![\d/])",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b" + MONTH_DATE + DATE_SEPARATOR
        + r"(?:" + MONTH_DATE + r"|" + PRESENT_PATTERN + r")\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?<![\d/])" + YEAR + DATE_SEPARATOR
        + r"(?:" + YEAR + r"|" + PRESENT_PATTERN + r")\b",
        re.IGNORECASE,
    ),
]

TITLE = r"(?:[A-Z][A-Za-z/&+#.]*(?:-[A-Za-z]+)? ){0,4}" + ROLE_NOUNS + r"s?"

TITLE_PATTERNS = [
    # title-case role at line start or after a field separator
    re.compile(
        r"(?:^|(?<=\|)|(?<=,)|(?<=–)|(?<=\s-))\s*(?P<title>" + TITLE + r")"
        r"(?=\s*(?:$|[|,(–@]|-\s|at\s))",
        re.MULTILINE,
    ),
    # Title: Senior Developer
    re.compile(r"(?i:\b(?:title|position|role|designation))\s*:\s*(?P<title>[^\n|,;()]+)"),
    # as a senior software engineer
    re.compile(
        r"\b(?i:as\s+an?)\s+(?P<title>(?:[A-Za-z][A-Za-z/&+#.-]* ){0,3}?(?i:" + ROLE_NOUNS + r"))\b"
    ),
]

DEGREE = (
    r"(?:Bachelor(?:'s)?|Master(?:'s)?|Doctorate|Doctor|Associate(?:'s)?|"
    r"Ph\.?D\.?|MBA|M\.B\.A\.|B\.S\.|B\.A\.|M\.S\.|M\.A\.|B\.Sc\.?|M\.Sc\.?|"
    r"B\.E\.|B\.Tech\.?|M\.Tech\.?|MCA)"
)
FIELD = r"[A-Z][A-Za-z&]*(?: (?:(?:of|and|in|&) )?[A-Z][A-Za-z&]*)*"
BARE_DEGREE_WORDS = {"bachelor", "bachelor's", "master", "master's", "doctor", "associate", "associate's"}

DEGREE_PATTERN = re.compile(
    r"(?<![A-Za-z])(?P<degree>" + DEGREE + r")(?![A-Za-z])"
    r"(?P<degree_word> [Dd]egree)?"
    r"(?: (?:[Dd]egree )?(?:of|in) (?P<field>" + FIELD + r"))?"
)

INSTITUTION_WORD = r"[A-Z][A-Za-z&.'-]*"
INSTITUTION_PATTERNS = [
    re.compile(
        r"(?:" + INSTITUTION_WORD + r" ){1,5}(?:University|College|Institute|Polytechnic)"
        r"(?: of " + INSTITUTION_WORD + r"(?: (?:(?:and|&) )?" + INSTITUTION_WORD + r"){0,3})?"
    ),
    re.compile(
        r"(?:University|College|Institute) of " + INSTITUTION_WORD
        + r"(?: (?:(?:and|&|at) )?" + INSTITUTION_WORD + r"){0,3}"
    ),
]

CERTIFICATION_PATTERNS = [
    re.compile(
        r"(?:(?:AWS|Microsoft|Google|Azure|Oracle|Salesforce|Cisco) )?Certified"
        r"(?: [A-Z][A-Za-z+#.-]*){1,5}"
    ),
    re.compile(
        r"(?<![A-Za-z0-9])(?:" + "|".join(re.escape(c) for c in CERTIFICATION_ACRONYMS) + r")(?![A-Za-z0-9])"
    ),
]

# Lines that list certifications rather than job titles
CERTIFICATION_LINE = re.compile(r"\bcertifi(?:ed|cation)", re.IGNORECASE)

# Skills whose version number is worth reporting ("Java 8", "Python 3.11")
VERSIONED_CATEGORIES = {"language", "framework", "database"}
VERSION_SUFFIX = r"\s+v?(?P<version>\d{1,2}(?:\.\d+)*)(?!\.?\d|\s*\+|\s*(?:years?|yrs?|months?)\b)"


def clean_text(text: str) -> str:
    """Strip markup, normalize line endings and whitespace, drop blank lines."""
    if not text:
        return ""
    cleaned = re.sub(r"<\?xml[^>]*\?>|<!DOCTYPE[^>]*>|<!--.*?-->", " ", text, flags=re.IGNORECASE | re.DOTALL)
    cleaned = re.sub(r"<(?:br|/p|/div|/li|/h\d|/tr)\b[^>]*>", "\n", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"<[^>]+>", " ", cleaned)
    cleaned = html.unescape(cleaned)
    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n")

    lines = []
    for line in cleaned.split("\n"):
        line = re.sub(r"[ \t\f\v\u00a0]+", " ", line).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def term_pattern(term: str, case_sensitive: bool = False) -> "re.Pattern":
    """Whole-word pattern for a lexicon term (works for C++, C#, .NET, Node.js)."""
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(r"(?<![A-Za-z0-9_])" + re.escape(term) + r"(?![A-Za-z0-9_])", flags)


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset)


def _clean_employer(name: str) -> str:
    name = normalize_whitespace(name)
    name = re.split(r"\s+(?:-|–|—|\|)\s+", name)[0]
    name = name.strip(" ,;:-|")
    if name.endswith(".") and not re.search(r"(?:Inc|Corp|Ltd|Co)\.$", name):
        name = name.rstrip(".")
    return name


def _is_plausible_employer(name: str) -> bool:
    if len(name) < 2 or not re.search(r"[A-Za-z]", name):
        return False
    words = [w.strip(".,").lower() for w in name.split()]
    return not any(w in NOT_EMPLOYER_WORDS for w in words)


def _clean_title(title: str) -> str:
    title = normalize_whitespace(title)
    title = re.split(r"\s+(?:at|@|-|–|\|)\s+", title)[0]
    return title.strip(" ,;:-|.")


def _drop_contained(items: List[str]) -> List[str]:
    """Remove entries that are case-insensitive substrings of another entry."""
    lowered = [i.lower() for i in items]
    return [
        item for idx, item in enumerate(items)
        if not any(idx != j and lowered[idx] in other and lowered[idx] != other
                   for j, other in enumerate(lowered))
    ]


class TextExtractor:
    """
    Extract a ResumeExtraction from plain resume text.

    Usage:
        extractor = TextExtractor()
        extraction = extractor.extract(resume_text, file_name="resume.pdf")
    """

    def __init__(self, reference: Optional[ReferenceTables] = None):
        self.reference = reference or load_reference_tables()
        self._skill_patterns = [
            (entry, [term_pattern(term, entry.case_sensitive) for term in entry.terms])
            for entry in self.reference.skills
        ]
        self._version_patterns = [
            (entry, re.compile(
                r"(?<![A-Za-z0-9_])" + re.escape(entry.name) + VERSION_SUFFIX,
                0 if entry.case_sensitive else re.IGNORECASE,
            ))
            for entry in self.reference.skills
            if entry.category in VERSIONED_CATEGORIES
        ]
        self._title_table = [(title, term_pattern(title)) for title in self.reference.job_titles]

    def extract(self, text: str, file_name: Optional[str] = None) -> ResumeExtraction:
        """
        Extract employment facts, skills and education.

        Never raises: insufficient or malformed input yields an extraction
        with all lists empty and extractedText set to the cleaned input.
        """
        cleaned = ""
        try:
            cleaned = clean_text(text or "")
            sample = cleaned[:EXTRACTION["extracted_text_limit"]]

            if len(cleaned) < EXTRACTION["min_text_length"]:
                logger.info(f"Resume text too short for extraction ({len(cleaned)} chars)")
                return ResumeExtraction.empty(sample, file_name)

            employers = self.find_employers(cleaned)
            dates = self.find_date_ranges(cleaned)
            titles = self.find_job_titles(cleaned)

            employer_lines = [line for _, line in employers]
            aligned_dates = self._align(employer_lines, dates)
            aligned_titles = self._align(employer_lines, titles)

            extraction = ResumeExtraction(
                client_names=[name for name, _ in employers],
                job_titles=aligned_titles,
                relevant_dates=aligned_dates,
                skills=self.find_skills(cleaned),
                education=self.find_education(cleaned),
                extracted_text=sample,
                file_name=file_name,
            )

            logger.info(f"Extracted {len(extraction.client_names)} employers, "
                        f"{len(extraction.job_titles)} titles, "
                        f"{len(extraction.relevant_dates)} date ranges, "
                        f"{len(extraction.skills)} skills, "
                        f"{len(extraction.education)} education entries")
            return extraction

        except Exception as e:
            logger.error(f"Resume extraction failed, returning empty extraction: {e}", exc_info=True)
            return ResumeExtraction.empty(cleaned[:EXTRACTION["extracted_text_limit"]], file_name)

    def find_employers(self, text: str) -> List[Tuple[str, int]]:
        """Employer names with the line of their first mention, longest name first."""
        first_seen: Dict[str, Tuple[str, int, int]] = {}

        for pattern in EMPLOYER_PATTERNS:
            for match in pattern.finditer(text):
                name = _clean_employer(match.group("name"))
                if not _is_plausible_employer(name):
                    logger.debug(f"Discarding employer candidate '{name}'")
                    continue
                key = name.lower().rstrip(".")
                offset = match.start("name")
                if key not in first_seen or offset < first_seen[key][2]:
                    # keep the spelling from the earliest mention
                    first_seen[key] = (name, _line_of(text, offset), offset)

        ordered = sorted(first_seen.values(), key=lambda item: item[2])
        ordered = sorted(ordered, key=lambda item: len(item[0]), reverse=True)
        return [(name, line) for name, line, _ in ordered]

    def find_date_ranges(self, text: str) -> List[Tuple[str, int]]:
        """Every date range occurrence in order of appearance, with its line number."""
        candidates = []
        for priority, pattern in enumerate(DATE_PATTERNS):
            for match in pattern.finditer(text):
                candidates.append((match.start(), match.end(), priority, match.group(0)))

        # earliest first, then most specific family
        candidates.sort(key=lambda c: (c[0], c[2]))
        accepted = []
        last_end = -1
        for start, end, _, value in candidates:
            if start < last_end:
                continue
            last_end = end
            accepted.append((normalize_whitespace(value), _line_of(text, start)))
        return accepted

    def find_job_titles(self, text: str) -> List[Tuple[str, int]]:
        """Every job title occurrence in order of appearance, with its line number."""
        lines = text.split("\n")
        found: List[Tuple[int, str, int]] = []

        for pattern in TITLE_PATTERNS:
            for match in pattern.finditer(text):
                offset = match.start("title")
                line = _line_of(text, offset)
                if CERTIFICATION_LINE.search(lines[line]):
                    continue
                title = _clean_title(match.group("title"))
                if not title or len(title.split()) > 6 or re.search(r"\d", title):
                    continue
                if title.islower():
                    title = title.title()
                found.append((offset, title, line))

        found_lower = {t.lower() for _, t, _ in found}
        for title, pattern in self._title_table:
            # "Software Engineer" inside an already found "Senior Software Engineer"
            if any(title.lower() in existing for existing in found_lower):
                continue
            for match in pattern.finditer(text):
                line = _line_of(text, match.start())
                if CERTIFICATION_LINE.search(lines[line]):
                    continue
                found.append((match.start(), title, line))
                found_lower.add(title.lower())

        found.sort(key=lambda item: item[0])
        return [(title, line) for _, title, line in found]

    def find_skills(self, text: str) -> List[str]:
        """Lexicon skills (canonical names), versioned skills and cloud-service acronyms."""
        skills = []
        for entry, patterns in self._skill_patterns:
            if any(p.search(text) for p in patterns):
                skills.append(entry.name)

        for entry, pattern in self._version_patterns:
            for match in pattern.finditer(text):
                skills.append(f"{entry.name} {match.group('version')}")

        return unique_ordered(skills)

    def find_education(self, text: str) -> List[str]:
        """Degrees, institutions and certifications."""
        education = []

        for match in DEGREE_PATTERN.finditer(text):
            degree = match.group("degree")
            field = match.group("field")
            if degree.lower() in BARE_DEGREE_WORDS and not field and not match.group("degree_word"):
                # "Scrum Master", "Associate" as a job level
                continue
            education.append(normalize_whitespace(match.group(0)))

        for pattern in INSTITUTION_PATTERNS:
            education.extend(normalize_whitespace(m.group(0)) for m in pattern.finditer(text))

        for pattern in CERTIFICATION_PATTERNS:
            education.extend(normalize_whitespace(m.group(0)) for m in pattern.finditer(text))

        return _drop_contained(unique_ordered(education))

    def _align(self, employer_lines: List[int], occurrences: List[Tuple[str, int]]) -> List[str]:
        """
        Place each employer's nearest occurrence (within a small line window)
        at the employer's index, closest pairs first. On equal distance the
        occurrence at or below the employer line wins; occurrences above the
        first employer mention (a header title) are never paired. Alignment
        stops at the first employer without one; the remaining distinct values
        follow in order of appearance.
        """
        window = EXTRACTION["alignment_line_window"]
        first_line = min(employer_lines, default=0)
        pairs = sorted(
            (abs(line - employer_line), line < employer_line, e_idx, o_idx)
            for e_idx, employer_line in enumerate(employer_lines)
            for o_idx, (_, line) in enumerate(occurrences)
            if line >= first_line and abs(line - employer_line) <= window
        )

        assigned: Dict[int, int] = {}
        used = set()
        for _, _, e_idx, o_idx in pairs:
            if e_idx in assigned or o_idx in used:
                continue
            assigned[e_idx] = o_idx
            used.add(o_idx)

        aligned = []
        for e_idx in range(len(employer_lines)):
            if e_idx not in assigned:
                break
            aligned.append(occurrences[assigned[e_idx]][0])

        seen = {value.lower() for value in aligned}
        for value, _ in occurrences:
            if value.lower() not in seen:
                seen.add(value.lower())
                aligned.append(value)
        return aligned


_default_extractor: Optional[TextExtractor] = None


def extract_resume(text: str, file_name: Optional[str] = None) -> ResumeExtraction:
    """Extract with a shared extractor built from the packaged reference tables."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = TextExtractor()
    return _default_extractor.extract(text, file_name)
