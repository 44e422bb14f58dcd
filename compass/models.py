from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .categories import AnalysisCategory

FINANCIAL_DATA_LABEL = "Financial Data"


class PercentContributions(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_to_democrats: int = Field(ge=0)
    total_to_republicans: int = Field(ge=0)
    percent_to_democrats: float = Field(ge=0, le=100)
    percent_to_republicans: float = Field(ge=0, le=100)
    total_contributions: int = Field(ge=0)

    @model_validator(mode="after")
    def _total_covers_each_party(self):
        if self.total_contributions < max(self.total_to_democrats, self.total_to_republicans):
            raise ValueError("total_contributions is smaller than a single party's total")
        return self


class ContributionTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    recipient_id: str | None = None
    recipient_name: str | None = None
    number_of_contributions: int | None = None
    total_contribution_amount: int | None = None


class LeadershipContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    occupation: str
    name: str
    employer: str
    transaction_amount: str  # numeric string, parsed only when ranking


class FinancialContributionsAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary_text: str | None = None
    committee_name: str | None = None  # committee or PAC
    committee_id: str | None = None
    percent_contributions: PercentContributions | None = None
    contribution_totals: list[ContributionTotal] = []
    leadership_contributions: list[LeadershipContribution] = []


class OrganizationAnalysis(BaseModel):
    """Canonical analysis record, identical in shape for every category."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(min_length=1)
    lean_or_label: str
    rating: int
    description: str
    category: AnalysisCategory = AnalysisCategory.POLITICAL_LEANING
    has_financial_contributions: bool = False
    financial_contributions_text: str | None = None
    financial_analysis: FinancialContributionsAnalysis | None = None

    @model_validator(mode="after")
    def _financial_records_have_no_rating(self):
        if self.category is AnalysisCategory.FINANCIAL_CONTRIBUTIONS:
            if self.rating != 0 or self.lean_or_label != FINANCIAL_DATA_LABEL:
                raise ValueError(
                    f"financial analyses carry rating 0 and label {FINANCIAL_DATA_LABEL!r}"
                )
        return self

    @property
    def low_rating_label(self) -> str:
        return self.category.low_rating_label

    @property
    def high_rating_label(self) -> str:
        return self.category.high_rating_label

    @property
    def shows_rating_scale(self) -> bool:
        return self.category is not AnalysisCategory.FINANCIAL_CONTRIBUTIONS

    @property
    def has_financial_data_to_display(self) -> bool:
        return (
            self.category is AnalysisCategory.FINANCIAL_CONTRIBUTIONS
            and self.financial_analysis is not None
        )


class SavedAnalysisSummary(BaseModel):
    """History row: enough to list saved analyses without loading their graphs."""
    topic: str
    category: AnalysisCategory
    lean_or_label: str
    rating: int
    saved_at: datetime


class CategoryInfo(BaseModel):
    slug: str
    name: str
    prompt: str
    icon: str
    low_rating_label: str
    high_rating_label: str


class SaveRequest(BaseModel):
    analysis: OrganizationAnalysis
    topic: str | None = None  # defaults to analysis.topic
