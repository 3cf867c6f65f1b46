"""
Configuration for the candidate matching and resume integrity engine.
Adjust thresholds, weights and tier scores here.
"""

import os
import logging
from typing import Optional
from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Heuristic (offline) match scoring.
# Business-calibrated constants: the tiers below are a product decision,
# not a derived formula. Change them together.
HEURISTIC_SCORING = {
    "base_score": 75,
    # (ratio strictly above, score) applied in ascending order, last match stands
    "tiers": [
        (0.25, 80),
        (0.5, 85),
        (0.7, 90),
        (0.9, 95),
    ],
    "word_overlap_floor": 75,
    "word_overlap_cap": 95,
    "word_min_length": 4,  # words longer than 3 chars count for overlap
    "max_technical_gaps": 5,
}

# Heuristic confidence (0-100)
HEURISTIC_CONFIDENCE = {
    "word_overlap": 50,
    "base": 50,
    "per_job_skill": 5,
    "cap": 85,
}

# Terms never treated as skills when auto-extracted from job text
STOP_TERMS = {
    "the", "and", "for", "with", "our", "you", "your", "we", "are", "will",
    "this", "that", "from", "have", "has", "who", "about", "team", "teams",
    "role", "job", "position", "candidate", "candidates", "requirements",
    "required", "requirement", "preferred", "responsibilities",
    "qualifications", "skills", "experience", "years", "year", "plus",
    "bonus", "strong", "excellent", "good", "great", "ability", "knowledge",
    "must", "should", "nice", "work", "working", "company", "client",
    "location", "remote", "hybrid", "onsite", "senior", "junior", "lead",
    "principal", "staff", "engineer", "developer", "manager", "analyst",
    "looking", "seeking", "join", "help", "build", "design", "develop",
    "benefits", "salary", "equal", "opportunity", "employer", "apply",
    "description", "summary", "overview", "duties", "degree",
    "bachelor", "master", "etc", "using", "including", "new", "all",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
    "monday", "friday", "inc", "llc", "corp", "ltd",
}

# Candidate recommendation weights (must sum to 1.0)
RECOMMENDATION_WEIGHTS = {
    "title": 0.25,
    "skill": 0.35,
    "location": 0.15,
    "client": 0.25,
}

RECOMMENDATION_THRESHOLDS = {
    "min_composite": 0.4,  # candidates below this are not recommended
    "title_reason": 0.6,
    "location_reason": 0.5,
    "default_limit": 10,
}

# Title similarity
TITLE_SIMILARITY = {
    "exact": 1.0,
    "contains": 0.8,
}

# Skill match normalization: expected required skills = min(max, max(min, words // per))
SKILL_MATCH = {
    "focus_weight": 2,
    "token_min_length": 4,
    "min_expected": 5,
    "max_expected": 10,
    "words_per_skill": 50,
}

LOCATION_SCORES = {
    "remote": 1.0,
    "no_location": 0.0,
    "same_city": 1.0,
    "same_state_hybrid": 0.9,
    "same_state": 0.7,
    "hybrid_other": 0.5,
    "onsite_mismatch": 0.1,
    "other": 0.2,
}

# Client experience tier scores (0-1)
CLIENT_MATCH_SCORES = {
    "exact": 1.0,
    "partial": 0.9,
    "industry": 0.7,
    "regulated": 0.5,
    "none": 0.0,
}

# Text extraction limits
EXTRACTION = {
    "min_text_length": 50,
    "extracted_text_limit": 5000,
    "alignment_line_window": 2,
}

# Certification acronyms recognised in education sections
CERTIFICATION_ACRONYMS = [
    "PMP", "CISSP", "CISM", "CISA", "CCNA", "CCNP", "CCIE", "CPA", "CFA",
    "CSM", "PSM", "SAFe", "ITIL", "CEH", "OSCP", "CKA", "CKAD", "RHCE",
    "RHCSA", "MCSE", "MCSA", "Six Sigma",
]

# Confidence reported on the external analyzer path when the model omits it
AI_CONFIDENCE = 90

# LLM configuration
LLM_CONFIG = {
    "temperature": 0,  # For maximum consistency
    "model": "gpt-4o",  # Default model
    "timeout_seconds": 30.0,
    "max_retries": 1,
}

# Resume comparison risk policy
COMPARISON_RISK = {
    "high_changed_dates": 2,  # strictly more than this many date changes
    "medium_changed_dates": 1,
}

# Cross-candidate employment history screening
HISTORY_VALIDATION = {
    "high_similarity": 80,
    "identical_company_ratio": 0.9,
    "identical_date_ratio": 0.8,
    "date_part_ratio": 0.8,
}


class Settings(BaseModel):
    """Runtime settings resolved from the environment."""
    model_config = ConfigDict(protected_namespaces=())

    openai_api_key: Optional[str] = None
    model_name: str = LLM_CONFIG["model"]
    request_timeout_seconds: float = LLM_CONFIG["timeout_seconds"]
    max_retries: int = LLM_CONFIG["max_retries"]
    data_dir: Optional[str] = None


def _env_number(name: str, cast, default):
    """Read a numeric environment variable, keeping the default when unset or invalid."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


def get_settings() -> Settings:
    """Load settings from environment variables (and a local .env file)."""
    load_dotenv()

    settings = Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        model_name=os.getenv("OPENAI_MODEL", LLM_CONFIG["model"]),
        request_timeout_seconds=_env_number("ANALYZER_TIMEOUT_SECONDS", float, LLM_CONFIG["timeout_seconds"]),
        max_retries=_env_number("ANALYZER_MAX_RETRIES", int, LLM_CONFIG["max_retries"]),
        data_dir=os.getenv("TALENTMATCH_DATA_DIR") or None,
    )
    logger.debug(f"Settings loaded: model={settings.model_name}, "
                 f"timeout={settings.request_timeout_seconds}s, "
                 f"api_key={'set' if settings.openai_api_key else 'missing'}")
    return settings
