"""
Analysis client: one GET per (category, topic), normalized into an
OrganizationAnalysis whatever endpoint answered.
"""
import logging
from typing import Awaitable, Callable

import httpx

from .categories import AnalysisCategory, ResponseShape
from .decoding import EnvelopeFields, decode_envelope
from .errors import UnsupportedCategory
from .financial import FinancialClient
from .models import FINANCIAL_DATA_LABEL, FinancialContributionsAnalysis, OrganizationAnalysis
from .transport import ServiceClient, require_topic, topic_path

logger = logging.getLogger(__name__)

Handler = Callable[[AnalysisCategory, str], Awaitable[OrganizationAnalysis]]


class AnalysisClient(ServiceClient):
    """
    Fetches analyses for every selectable category.

    No retries and no de-duplication: each call to fetch() issues exactly one
    request, and callers decide whether to try again.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(base_url, timeout, transport)
        self.financial = FinancialClient(self.base_url, self.timeout, transport)
        self._handlers: dict[AnalysisCategory, Handler] = {
            AnalysisCategory.POLITICAL_LEANING: self._fetch_leaning,
            AnalysisCategory.DEI_FRIENDLINESS: self._fetch_score,
            AnalysisCategory.WOKENESS: self._fetch_score,
            AnalysisCategory.ENVIRONMENTAL_IMPACT: self._fetch_score,
            AnalysisCategory.IMMIGRATION_SUPPORT: self._fetch_score,
            AnalysisCategory.TECHNOLOGY_INNOVATION: self._fetch_score,
            AnalysisCategory.FINANCIAL_CONTRIBUTIONS: self._fetch_financial,
        }

    @property
    def handled_categories(self) -> frozenset[AnalysisCategory]:
        return frozenset(self._handlers)

    async def fetch(self, category: AnalysisCategory, topic: str) -> OrganizationAnalysis:
        """
        Fetch and normalize one analysis.
        Raises a FetchError subclass on failure; never returns a partial record.
        """
        require_topic(topic)
        handler = self._handlers.get(category)
        if handler is None:
            raise UnsupportedCategory(f"No endpoint for category {category.value!r}")
        analysis = await handler(category, topic)
        logger.info("Fetched %s for %r: %s (%d)", category.value, topic, analysis.lean_or_label, analysis.rating)
        return analysis

    async def _fetch_envelope(self, category: AnalysisCategory, topic: str) -> EnvelopeFields:
        payload = await self._get_json(topic_path(category.endpoint, topic))
        return decode_envelope(payload, category.shape or ResponseShape.SCORE)

    async def _fetch_leaning(self, category: AnalysisCategory, topic: str) -> OrganizationAnalysis:
        fields = await self._fetch_envelope(category, topic)
        return OrganizationAnalysis(
            topic=fields.topic or topic,
            lean_or_label=fields.lean,
            rating=fields.rating,
            description=fields.context,
            category=category,
            has_financial_contributions=fields.created_with_financial_contributions_info,
        )

    async def _fetch_score(self, category: AnalysisCategory, topic: str) -> OrganizationAnalysis:
        fields = await self._fetch_envelope(category, topic)
        return OrganizationAnalysis(
            topic=fields.topic or topic,
            lean_or_label=category.rating_label(fields.rating),
            rating=fields.rating,
            description=fields.context,
            category=category,
            has_financial_contributions=fields.created_with_financial_contributions_info,
        )

    async def _fetch_financial(self, category: AnalysisCategory, topic: str) -> OrganizationAnalysis:
        financial = await self.financial.fetch_financial(topic)
        return OrganizationAnalysis(
            topic=topic,
            lean_or_label=FINANCIAL_DATA_LABEL,
            rating=0,  # no scalar rating for financial data
            description=financial.summary_text or "",
            category=category,
            has_financial_contributions=True,
            financial_contributions_text=financial.summary_text,
            financial_analysis=financial,
        )

    async def fetch_financial(self, topic: str) -> FinancialContributionsAnalysis:
        """Financial sub-graph only, without wrapping it in an OrganizationAnalysis."""
        return await self.financial.fetch_financial(topic)
