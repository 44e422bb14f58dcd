"""
Schema-tolerant decoding of analysis-service responses.

The service is inconsistent in two ways:
  - numeric fields (notably `rating`) arrive as 3 or as "3";
  - the scalar fields are either at the top level of the body or nested one
    level down under a "response" key, for the same logical endpoint.

Envelopes are decoded by trying an ordered list of candidate decoders; the
first one that yields a structurally valid result wins.
"""
import logging
import math
import re
from typing import Annotated, Any, Callable

from pydantic import BaseModel, BeforeValidator, ConfigDict, StrictBool, StrictStr, ValidationError

from .categories import ResponseShape
from .errors import DecodeError, TypeMismatch
from .models import ContributionTotal, LeadershipContribution, PercentContributions

logger = logging.getLogger(__name__)

_INT_STRING = re.compile(r"[+-]?\d+")

CORE_FIELDS = ("rating", "lean", "context", "created_with_financial_contributions_info")


def decode_flexible_int(raw: Any) -> int:
    """Accept an integer or a string holding only an integer."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and _INT_STRING.fullmatch(raw):
        return int(raw)
    raise TypeMismatch(f"Expected Int or String that can be converted to Int, got {raw!r}")


FlexibleInt = Annotated[int, BeforeValidator(decode_flexible_int)]


def parse_amount(text: str | None) -> float:
    """Numeric value of an amount string; anything unparsable counts as 0."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------

class DebugInfo(BaseModel):
    persisted_response: bool | None = None
    newly_generated: bool | None = None


class ResponseErrorInfo(BaseModel):
    error: bool | None = None
    message: str | None = None


class EnvelopeFields(BaseModel):
    """Fields shared by the leaning and score endpoints, whatever the envelope."""

    model_config = ConfigDict(extra="ignore")

    rating: FlexibleInt
    lean: StrictStr | None = None  # only the leaning endpoint sends it
    context: StrictStr
    created_with_financial_contributions_info: StrictBool

    # Only present in the top-level shape
    timestamp: float | str | None = None
    normalized_topic_name: str | None = None
    topic: str | None = None
    citation: str | None = None
    upvote_count: int | None = None
    downvote_count: int | None = None
    query_type: str | None = None
    debug: DebugInfo | None = None
    response_error: ResponseErrorInfo | None = None


class FinancialDebugInfo(BaseModel):
    model_used: str | None = None
    automated_entry: bool | None = None
    date_generated: str | None = None
    truncated_data: bool | None = None
    precent_of_data_within_time_range: int | None = None  # sic, upstream spelling
    persisted_response: bool | None = None
    newly_generated: bool | None = None


class FinancialContributionsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    topic: StrictStr
    fec_financial_contributions_summary_text: StrictStr
    normalized_topic_name: str | None = None
    timestamp: float | str | None = None
    committee_id: str | None = None
    committee_name: str | None = None
    individual_id: int | None = None
    upvote_count: int | None = None
    downvote_count: int | None = None
    time_range_of_data: str | None = None
    cycle_end_year: str | None = None
    query_type: str | None = None
    debug: FinancialDebugInfo | None = None
    percent_contributions: PercentContributions | None = None
    contribution_totals: list[ContributionTotal] | None = None
    leadership_contributors_to_committee: list[LeadershipContribution] | None = None


# ---------------------------------------------------------------------------
# Envelope candidates
# ---------------------------------------------------------------------------

def _nested_envelope(payload: dict) -> EnvelopeFields:
    nested = payload.get("response")
    if not isinstance(nested, dict):
        raise ValueError("no nested 'response' object")
    return EnvelopeFields.model_validate({k: nested[k] for k in CORE_FIELDS if k in nested})


def _top_level_envelope(payload: dict) -> EnvelopeFields:
    return EnvelopeFields.model_validate(payload)


ENVELOPE_CANDIDATES: tuple[tuple[str, Callable[[dict], EnvelopeFields]], ...] = (
    ("nested", _nested_envelope),
    ("top-level", _top_level_envelope),
)


def decode_envelope(payload: Any, shape: ResponseShape = ResponseShape.SCORE) -> EnvelopeFields:
    """
    Decode a leaning/score response body.
    Raises DecodeError when no candidate accepts the payload.
    """
    if not isinstance(payload, dict):
        raise DecodeError("Failed to decode response: body is not a JSON object")

    last_error: Exception | None = None
    for name, candidate in ENVELOPE_CANDIDATES:
        try:
            fields = candidate(payload)
        except ValueError as e:  # includes pydantic ValidationError and TypeMismatch
            logger.debug("%s envelope rejected: %s", name, e)
            last_error = e
            continue
        if shape is ResponseShape.LEANING and fields.lean is None:
            last_error = ValueError(f"{name} envelope has no 'lean'")
            continue
        return fields

    raise DecodeError(f"Failed to decode response: {last_error}") from last_error


def decode_financial(payload: Any) -> FinancialContributionsResponse:
    if not isinstance(payload, dict):
        raise DecodeError("Failed to decode response: body is not a JSON object")
    try:
        return FinancialContributionsResponse.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Failed to decode financial response: {e.error_count()} error(s)") from e
