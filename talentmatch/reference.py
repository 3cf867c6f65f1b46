"""
Reference Data Module

Loads the lexicons the extraction and scoring components depend on
(technical skills, job titles, company/industry tables, US states) from
CSV files shipped in ``talentmatch/data``. Tables are loaded once per
directory and cached.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple
import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent / "data"

# Cache of loaded tables, keyed by resolved data directory
_tables_cache: Dict[Path, "ReferenceTables"] = {}


@dataclass(frozen=True)
class SkillEntry:
    name: str
    category: str
    aliases: Tuple[str, ...] = ()
    case_sensitive: bool = False

    @property
    def terms(self) -> Tuple[str, ...]:
        """Canonical name followed by its aliases."""
        return (self.name,) + self.aliases


@dataclass(frozen=True)
class ReferenceTables:
    """Immutable bundle of lexicons passed into the extraction and scoring components."""
    skills: Tuple[SkillEntry, ...] = ()
    job_titles: Tuple[str, ...] = ()
    # industry -> companies, in file order (first matching industry wins)
    company_industries: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    industry_domains: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    regulated_industries: FrozenSet[str] = frozenset()
    # lowercase state name -> two-letter code
    us_states: Dict[str, str] = field(default_factory=dict)

    @property
    def state_codes(self) -> FrozenSet[str]:
        return frozenset(self.us_states.values())


def _read_table(path: Path) -> pd.DataFrame:
    """Read a reference CSV as strings, keeping empty cells as ''."""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _load_skills(path: Path) -> Tuple[SkillEntry, ...]:
    df = _read_table(path)
    entries = []
    for row in df.itertuples(index=False):
        aliases = tuple(a.strip() for a in row.aliases.split("|") if a.strip())
        entries.append(SkillEntry(
            name=row.skill.strip(),
            category=row.category.strip(),
            aliases=aliases,
            case_sensitive=row.case_sensitive.strip().lower() == "true",
        ))
    return tuple(entries)


def _group_by_industry(df: pd.DataFrame, value_column: str) -> Dict[str, Tuple[str, ...]]:
    """Group rows by industry while preserving the order rows appear in the file."""
    grouped: Dict[str, list] = {}
    for row in df.itertuples(index=False):
        grouped.setdefault(row.industry.strip(), []).append(getattr(row, value_column).strip())
    return {industry: tuple(values) for industry, values in grouped.items()}


def load_reference_tables(data_dir: Optional[str] = None) -> ReferenceTables:
    """
    Load all reference tables from ``data_dir`` (defaults to the packaged data).

    Tables are cached per directory; subsequent calls return the same object.

    Raises:
        FileNotFoundError: If a required CSV file is missing
    """
    base = Path(data_dir).resolve() if data_dir else DEFAULT_DATA_DIR.resolve()

    if base in _tables_cache:
        return _tables_cache[base]

    logger.info(f"Loading reference tables from {base}")

    skills = _load_skills(base / "skills.csv")
    job_titles = tuple(t.strip() for t in _read_table(base / "job_titles.csv")["title"] if t.strip())
    company_industries = _group_by_industry(_read_table(base / "company_industries.csv"), "company")
    industry_domains = _group_by_industry(_read_table(base / "industry_domains.csv"), "domain")
    regulated = frozenset(
        i.strip() for i in _read_table(base / "regulated_industries.csv")["industry"] if i.strip()
    )
    states_df = _read_table(base / "us_states.csv")
    us_states = {
        row.name.strip().lower(): row.code.strip().upper()
        for row in states_df.itertuples(index=False)
    }

    tables = ReferenceTables(
        skills=skills,
        job_titles=job_titles,
        company_industries=company_industries,
        industry_domains=industry_domains,
        regulated_industries=regulated,
        us_states=us_states,
    )

    logger.info(f"Loaded {len(skills)} skills, {len(job_titles)} job titles, "
                f"{sum(len(c) for c in company_industries.values())} companies "
                f"across {len(company_industries)} industries")

    _tables_cache[base] = tables
    return tables


def clear_reference_cache() -> None:
    """Drop cached tables (useful after editing the CSV files)."""
    _tables_cache.clear()
