from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, validator
from pydantic.alias_generators import to_camel


def unique_ordered(values: Any) -> List[str]:
    """Deduplicate strings case-insensitively, keeping the first spelling seen."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    seen = set()
    result = []
    for value in values:
        if not isinstance(value, str):
            continue
        cleaned = value.strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


def clamp_percentage(value: Any) -> int:
    """Coerce a numeric value to an integer in [0, 100]."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{type(value).__name__} is not a valid percentage")
    number = float(value)
    if number != number:  # NaN
        return 0
    if not math.isfinite(number):
        raise ValueError("percentage must be finite")
    return int(max(0, min(100, round(number))))


class WireModel(BaseModel):
    """Base for every model exchanged with collaborators (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ResumeExtraction(WireModel):
    client_names: List[str] = Field(default_factory=list)
    job_titles: List[str] = Field(default_factory=list)
    relevant_dates: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)
    extracted_text: str = ""
    file_name: Optional[str] = None

    @validator("skills", "education", pre=True)
    def dedupe_sets(cls, v):
        return unique_ordered(v)

    @validator("client_names", "job_titles", "relevant_dates", pre=True)
    def clean_ordered(cls, v):
        if v is None:
            return []
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]

    @classmethod
    def empty(cls, text: str = "", file_name: Optional[str] = None) -> "ResumeExtraction":
        return cls(extracted_text=text or "", file_name=file_name)

    @property
    def is_empty(self) -> bool:
        return not (self.client_names or self.job_titles or self.relevant_dates
                    or self.skills or self.education)

    def to_dict(self) -> Dict[str, Any]:
        exclude = {"file_name"} if self.file_name is None else None
        return self.model_dump(by_alias=True, exclude=exclude)


class JobLocation(WireModel):
    city: Optional[str] = None
    state: Optional[str] = None
    job_type: Literal["onsite", "hybrid", "remote"] = "onsite"

    @validator("job_type", pre=True)
    def normalize_job_type(cls, v):
        if v is None:
            return "onsite"
        value = str(v).strip().lower().replace("-", "")
        return {"onsite": "onsite", "on site": "onsite", "office": "onsite"}.get(value, value)


class JobRequirement(WireModel):
    title: str = ""
    description: str = ""
    client_name: Optional[str] = None
    client_focus: List[str] = Field(default_factory=list)
    location: JobLocation = Field(default_factory=JobLocation)

    @validator("client_focus", pre=True)
    def split_focus(cls, v):
        # accepted as a comma-separated string or a list
        if isinstance(v, str):
            v = v.split(",")
        return unique_ordered(v)


class MatchResult(WireModel):
    score: int = 0
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    technical_gaps: List[str] = Field(default_factory=list)
    matching_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    client_experience: str = ""
    confidence: int = 0

    @validator("score", "confidence", pre=True)
    def clamp(cls, v):
        return clamp_percentage(v)

    @validator("matching_skills", "missing_skills", pre=True)
    def dedupe_skills(cls, v):
        return unique_ordered(v)


class PartialMatchResult(WireModel):
    """A MatchResult where every field may be absent (validated external response)."""
    score: Optional[int] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    suggestions: Optional[List[str]] = None
    technical_gaps: Optional[List[str]] = None
    matching_skills: Optional[List[str]] = None
    missing_skills: Optional[List[str]] = None
    client_experience: Optional[str] = None
    confidence: Optional[int] = None

    @validator("score", "confidence", pre=True)
    def clamp(cls, v):
        return None if v is None else clamp_percentage(v)

    def supplied_fields(self) -> Dict[str, Any]:
        """Fields the external response actually provided, keyed by attribute name."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


class CandidateProfile(WireModel):
    candidate_id: Union[int, str]
    candidate_name: str = ""
    location: Optional[str] = None
    extraction: Optional[ResumeExtraction] = None
    is_unreal: bool = False


class CandidateRecommendation(WireModel):
    candidate_id: Union[int, str]
    candidate_name: str = ""
    location: Optional[str] = None
    match_score: int = 0
    match_reasons: List[str] = Field(default_factory=list)
    skill_matches: List[str] = Field(default_factory=list)
    location_match: str = ""
    client_experience: Optional[str] = None

    @validator("match_score", pre=True)
    def clamp(cls, v):
        return clamp_percentage(v)


class FieldChange(WireModel):
    employer: str
    old: Optional[str] = None
    new: Optional[str] = None


class ComparisonResult(WireModel):
    has_changes: bool = False
    new_employers: List[str] = Field(default_factory=list)
    removed_employers: List[str] = Field(default_factory=list)
    changed_dates: List[FieldChange] = Field(default_factory=list)
    changed_titles: List[FieldChange] = Field(default_factory=list)
    overall_risk: Literal["none", "low", "medium", "high"] = "none"


class ClientExperienceMatch(WireModel):
    has_experience: bool = False
    client_name: Optional[str] = None
    industry_match: bool = False
    industry_name: Optional[str] = None
    is_regulated: bool = False
    domain_experience: List[str] = Field(default_factory=list)
    score: float = 0.0


class SimilarHistoryMatch(WireModel):
    candidate_id: Union[int, str]
    similarity_score: int
    matched_companies: List[str] = Field(default_factory=list)
    matched_dates: List[str] = Field(default_factory=list)


class SuspiciousPattern(WireModel):
    type: Literal["IDENTICAL_CHRONOLOGY", "HIGH_SIMILARITY"]
    severity: Literal["HIGH", "MEDIUM"]
    message: str
    detail: str = ""
    candidate_ids: List[Union[int, str]] = Field(default_factory=list)


class HistoryValidationReport(WireModel):
    similar_candidates: List[SimilarHistoryMatch] = Field(default_factory=list)
    high_similarity_count: int = 0
    identical_chronology_count: int = 0
    suspicious_patterns: List[SuspiciousPattern] = Field(default_factory=list)
    message: str = ""

    @property
    def is_suspicious(self) -> bool:
        return bool(self.suspicious_patterns)
