"""
Look up an organization's analysis from the command line.

Usage:
  python scripts/lookup.py "Acme Corp"
  python scripts/lookup.py "Acme Corp" --category financial-contributions --top 10
  python scripts/lookup.py "Acme Corp" --category wokeness --save

Set COMPASS_BASE_URL to override the API (default: https://compass-ai-internal-api.com)
"""
import argparse
import asyncio
import sys

from compass.categories import AnalysisCategory
from compass.client import AnalysisClient
from compass.config import get_settings
from compass.decoding import parse_amount
from compass.errors import FetchError, StoreError
from compass.financial import format_usd, rank_contribution_totals, rank_leadership_contributions
from compass.models import OrganizationAnalysis
from compass.store import AnalysisStore


def print_analysis(analysis: OrganizationAnalysis, top: int):
    print(f"{analysis.topic} | {analysis.category.value}")
    if analysis.shows_rating_scale:
        print(f"  {analysis.lean_or_label} ({analysis.rating}/5, "
              f"{analysis.low_rating_label} → {analysis.high_rating_label})")
    print(f"  {analysis.description}")

    financial = analysis.financial_analysis
    if not analysis.has_financial_data_to_display or financial is None:
        return

    if financial.committee_name or financial.committee_id:
        print(f"  Committee: {financial.committee_name or '-'} ({financial.committee_id or '-'})")

    pc = financial.percent_contributions
    if pc is not None:
        print(f"  Total: {format_usd(pc.total_contributions)}")
        print(f"  To Republicans: {format_usd(pc.total_to_republicans)} ({pc.percent_to_republicans:.2f}%)")
        print(f"  To Democrats: {format_usd(pc.total_to_democrats)} ({pc.percent_to_democrats:.2f}%)")

    if financial.contribution_totals:
        print("  Top recipients:")
        for r in rank_contribution_totals(financial.contribution_totals, limit=top):
            print(f"    {r.recipient_name or r.recipient_id or 'Unknown'}: "
                  f"{format_usd(r.total_contribution_amount)} ({r.number_of_contributions or 0} contributions)")

    if financial.leadership_contributions:
        print("  Contributors in company leadership:")
        for c in rank_leadership_contributions(financial.leadership_contributions, limit=top):
            print(f"    {c.name}, {c.occupation} at {c.employer}: {format_usd(parse_amount(c.transaction_amount))}")


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {value}")
    return number


def main():
    parser = argparse.ArgumentParser(description="Fetch a Compass analysis for an organization")
    parser.add_argument("topic", help="Organization name, e.g. 'Acme Corp'")
    parser.add_argument(
        "--category",
        default=AnalysisCategory.POLITICAL_LEANING.slug,
        choices=[c.slug for c in AnalysisCategory.selectable()],
    )
    parser.add_argument("--save", action="store_true", help="Save the result to local history")
    parser.add_argument("--top", type=non_negative_int, default=get_settings().max_contributions_displayed)
    args = parser.parse_args()

    category = AnalysisCategory.from_slug(args.category)
    try:
        analysis = asyncio.run(AnalysisClient().fetch(category, args.topic))
    except FetchError as e:
        print(f"❌  {e.message}")
        sys.exit(1)
    except ValueError as e:
        print(f"❌  {e}")
        sys.exit(1)

    print_analysis(analysis, args.top)

    if args.save:
        try:
            AnalysisStore().upsert(args.topic, analysis)
        except StoreError as e:
            print(f"❌  Could not save: {e}")
            sys.exit(1)
        print(f"✅  Saved '{args.topic}'")


if __name__ == "__main__":
    main()
