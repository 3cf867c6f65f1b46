"""
Client Experience Scoring

Scores how closely a candidate's past clients relate to a job's client:
direct name match, same industry, or regulated-industry background.
"""

import logging
from typing import List, Optional, Sequence
from .config import CLIENT_MATCH_SCORES
from .industry import IndustryClassifier, names_overlap, normalize_company_name
from .models import ClientExperienceMatch
from .reference import ReferenceTables

logger = logging.getLogger(__name__)

NO_MATCH = ClientExperienceMatch(score=CLIENT_MATCH_SCORES["none"])


class ClientExperienceScorer:
    def __init__(
        self,
        reference: Optional[ReferenceTables] = None,
        classifier: Optional[IndustryClassifier] = None,
    ):
        self.classifier = classifier or IndustryClassifier(reference)

    def _direct_match(self, client_name: str, score: float) -> ClientExperienceMatch:
        industry = self.classifier.industry_of(client_name)
        return ClientExperienceMatch(
            has_experience=True,
            client_name=client_name,
            industry_match=industry is not None,
            industry_name=industry,
            is_regulated=self.classifier.is_regulated(industry),
            domain_experience=self.classifier.domains_of(industry),
            score=score,
        )

    def score(
        self,
        job_client_name: Optional[str],
        candidate_client_names: Optional[Sequence[str]],
    ) -> ClientExperienceMatch:
        """
        Resolve client experience in tiers, first match wins:
        exact name (1.0), containment (0.9), same industry (0.7),
        regulated-to-regulated (0.5), otherwise no experience (0).
        """
        candidates: List[str] = [c for c in (candidate_client_names or []) if c and c.strip()]
        job_normalized = normalize_company_name(job_client_name)

        if not job_normalized or not candidates:
            return NO_MATCH

        normalized = [(c, normalize_company_name(c)) for c in candidates]

        for client, norm in normalized:
            if norm and norm == job_normalized:
                logger.debug(f"Exact client match: {client}")
                return self._direct_match(client, CLIENT_MATCH_SCORES["exact"])

        for client, norm in normalized:
            if names_overlap(norm, job_normalized):
                logger.debug(f"Partial client match: {client} ~ {job_client_name}")
                return self._direct_match(client, CLIENT_MATCH_SCORES["partial"])

        job_industry = self.classifier.industry_of(job_client_name)
        if job_industry is None:
            return NO_MATCH

        candidate_industries = [(client, self.classifier.industry_of(client)) for client in candidates]

        for client, industry in candidate_industries:
            if industry == job_industry:
                logger.debug(f"Industry match via {client}: {industry}")
                return ClientExperienceMatch(
                    has_experience=True,
                    client_name=client,
                    industry_match=True,
                    industry_name=industry,
                    is_regulated=self.classifier.is_regulated(industry),
                    domain_experience=self.classifier.domains_of(industry),
                    score=CLIENT_MATCH_SCORES["industry"],
                )

        if self.classifier.is_regulated(job_industry):
            for client, industry in candidate_industries:
                if self.classifier.is_regulated(industry):
                    logger.debug(f"Regulated industry experience via {client}: {industry}")
                    return ClientExperienceMatch(
                        has_experience=True,
                        client_name=client,
                        industry_match=False,
                        industry_name=industry,
                        is_regulated=True,
                        domain_experience=[],
                        score=CLIENT_MATCH_SCORES["regulated"],
                    )

        return NO_MATCH
