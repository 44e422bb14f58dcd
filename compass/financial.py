"""
Financial-contributions client and ranking helpers.

The financial endpoint returns FEC-derived data instead of a single rating:
a summary, the committee/PAC behind it, a party split, and two lists
(recipient totals, contributions by people in company leadership).
"""
import logging
from typing import Iterable

from .categories import AnalysisCategory
from .decoding import FinancialContributionsResponse, decode_financial, parse_amount
from .models import ContributionTotal, FinancialContributionsAnalysis, LeadershipContribution
from .transport import ServiceClient, require_topic, topic_path

logger = logging.getLogger(__name__)


def to_financial_analysis(response: FinancialContributionsResponse) -> FinancialContributionsAnalysis:
    # A missing list means "no data of that kind", not an error
    return FinancialContributionsAnalysis(
        summary_text=response.fec_financial_contributions_summary_text,
        committee_name=response.committee_name,
        committee_id=response.committee_id,
        percent_contributions=response.percent_contributions,
        contribution_totals=response.contribution_totals or [],
        leadership_contributions=response.leadership_contributors_to_committee or [],
    )


class FinancialClient(ServiceClient):
    endpoint = AnalysisCategory.FINANCIAL_CONTRIBUTIONS.endpoint

    async def fetch_financial_response(self, topic: str) -> FinancialContributionsResponse:
        """Raw decoded response, including the metadata the canonical record drops."""
        require_topic(topic)
        payload = await self._get_json(topic_path(self.endpoint, topic))
        return decode_financial(payload)

    async def fetch_financial(self, topic: str) -> FinancialContributionsAnalysis:
        response = await self.fetch_financial_response(topic)
        analysis = to_financial_analysis(response)
        logger.info(
            "Financial data for %r: %d recipient totals, %d leadership contributions",
            topic,
            len(analysis.contribution_totals),
            len(analysis.leadership_contributions),
        )
        return analysis


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
# Lists are delivered in response order. Consumers that need a ranking sort
# them with these helpers: amount descending, ties kept in response order.

def rank_contribution_totals(
    items: Iterable[ContributionTotal], limit: int | None = None
) -> list[ContributionTotal]:
    ranked = sorted(items, key=lambda c: c.total_contribution_amount or 0, reverse=True)
    return ranked if limit is None else ranked[:limit]


def rank_leadership_contributions(
    items: Iterable[LeadershipContribution], limit: int | None = None
) -> list[LeadershipContribution]:
    ranked = sorted(items, key=lambda c: parse_amount(c.transaction_amount), reverse=True)
    return ranked if limit is None else ranked[:limit]


def format_usd(amount: float | int | None) -> str:
    """Whole-dollar currency string, e.g. 1234.4 -> "$1,234"."""
    value = round(amount or 0)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,}"
