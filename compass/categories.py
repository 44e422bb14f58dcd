"""
Category registry: the closed set of analysis kinds and everything the engine
needs to know about each one (endpoint, prompt, icon, rating scale).
"""
from dataclasses import dataclass
from enum import Enum


class ResponseShape(str, Enum):
    LEANING = "leaning"      # lean text + rating, envelope may be nested
    SCORE = "score"          # rating only, lean derived from the scale
    FINANCIAL = "financial"  # FEC summary + percent split + ranked lists


class AnalysisCategory(str, Enum):
    POLITICAL_LEANING = "Political Leaning"
    DEI_FRIENDLINESS = "DEI Friendliness"
    WOKENESS = "Wokeness"
    ENVIRONMENTAL_IMPACT = "Environmental Impact"
    IMMIGRATION_SUPPORT = "Immigration Support"
    TECHNOLOGY_INNOVATION = "Technology Innovation"
    FINANCIAL_CONTRIBUTIONS = "Financial Contributions"
    UNDEFINED = "Undefined"

    @classmethod
    def from_persisted(cls, value: str | None) -> "AnalysisCategory":
        """Recover a category from a stored string; anything unknown is UNDEFINED."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNDEFINED

    @classmethod
    def from_slug(cls, slug: str) -> "AnalysisCategory":
        for category in cls:
            if category.slug == slug:
                return category
        raise ValueError(f"Unknown category slug: {slug!r}")

    @classmethod
    def selectable(cls) -> list["AnalysisCategory"]:
        return [c for c in cls if c is not cls.UNDEFINED]

    @property
    def entry(self) -> "CategoryEntry":
        return REGISTRY[self]

    @property
    def short_name(self) -> str:
        return self.value

    @property
    def slug(self) -> str:
        return self.entry.slug

    @property
    def prompt(self) -> str:
        return self.entry.prompt

    @property
    def icon(self) -> str:
        return self.entry.icon

    @property
    def endpoint(self) -> str:
        return self.entry.endpoint

    @property
    def shape(self) -> ResponseShape | None:
        return self.entry.shape

    @property
    def low_rating_label(self) -> str:
        return self.entry.low_label

    @property
    def high_rating_label(self) -> str:
        return self.entry.high_label

    def rating_label(self, rating: int) -> str:
        return self.entry.rating_label(rating)


@dataclass(frozen=True)
class CategoryEntry:
    slug: str
    prompt: str
    icon: str
    endpoint: str
    shape: ResponseShape | None
    low_label: str
    high_label: str
    scale: tuple[str, ...] = ()   # labels for ratings 1..5
    fixed_label: str | None = None

    def rating_label(self, rating: int) -> str:
        if self.fixed_label is not None:
            return self.fixed_label
        if 1 <= rating <= len(self.scale):
            return self.scale[rating - 1]
        return "Unknown"


REGISTRY: dict[AnalysisCategory, CategoryEntry] = {
    AnalysisCategory.POLITICAL_LEANING: CategoryEntry(
        slug="political-leaning",
        prompt="What organization do you want to find the political leaning of?",
        icon="building.columns",
        endpoint="/getPoliticalLeaning",
        shape=ResponseShape.LEANING,
        low_label="Liberal",
        high_label="Conservative",
        scale=("Very Liberal", "Liberal", "Moderate", "Conservative", "Very Conservative"),
    ),
    AnalysisCategory.DEI_FRIENDLINESS: CategoryEntry(
        slug="dei-friendliness",
        prompt="What organization do you want to evaluate for DEI friendliness?",
        icon="person.3",
        endpoint="/getDEIFriendlinessScore",
        shape=ResponseShape.SCORE,
        low_label="Not DEI Friendly",
        high_label="Very DEI Friendly",
        scale=(
            "Not DEI Friendly",
            "Slightly DEI Friendly",
            "Moderately DEI Friendly",
            "DEI Friendly",
            "Very DEI Friendly",
        ),
    ),
    AnalysisCategory.WOKENESS: CategoryEntry(
        slug="wokeness",
        prompt="What organization do you want to assess for wokeness?",
        icon="eye",
        endpoint="/getWokenessScore",
        shape=ResponseShape.SCORE,
        low_label="Not Woke",
        high_label="Very Woke",
        scale=("Not Woke", "Slightly Woke", "Moderately Woke", "Woke", "Very Woke"),
    ),
    AnalysisCategory.ENVIRONMENTAL_IMPACT: CategoryEntry(
        slug="environmental-impact",
        prompt="What organization do you want to analyze for environmental impact?",
        icon="leaf",
        endpoint="/getEnvironmentalImpactScore",
        shape=ResponseShape.SCORE,
        low_label="Poor",
        high_label="Excellent",
        scale=(
            "Poor Environmental Record",
            "Below Average",
            "Average",
            "Good Environmental Record",
            "Excellent Environmental Record",
        ),
    ),
    AnalysisCategory.IMMIGRATION_SUPPORT: CategoryEntry(
        slug="immigration-support",
        prompt="What organization do you want to evaluate for immigration support?",
        icon="globe.americas",
        endpoint="/getImmigrationSupportScore",
        shape=ResponseShape.SCORE,
        low_label="Anti-Immigration",
        high_label="Pro-Immigration",
        scale=(
            "Anti-Immigration",
            "Immigration Skeptic",
            "Moderate on Immigration",
            "Pro-Immigration",
            "Strongly Pro-Immigration",
        ),
    ),
    AnalysisCategory.TECHNOLOGY_INNOVATION: CategoryEntry(
        slug="technology-innovation",
        prompt="What organization do you want to assess for technology innovation?",
        icon="lightbulb",
        endpoint="/getTechnologyInnovationScore",
        shape=ResponseShape.SCORE,
        low_label="Not Innovative",
        high_label="Highly Innovative",
        scale=(
            "Not Innovative",
            "Slightly Innovative",
            "Moderately Innovative",
            "Innovative",
            "Highly Innovative",
        ),
    ),
    AnalysisCategory.FINANCIAL_CONTRIBUTIONS: CategoryEntry(
        slug="financial-contributions",
        prompt="What organization do you want to review financial contributions for?",
        icon="dollarsign.circle",
        endpoint="/getFinancialContributionsOverview",
        shape=ResponseShape.FINANCIAL,
        low_label="Democrat",
        high_label="Republican",
        fixed_label="See Details",
    ),
    AnalysisCategory.UNDEFINED: CategoryEntry(
        slug="undefined",
        prompt="",
        icon="",
        endpoint="",
        shape=None,
        low_label="",
        high_label="",
        fixed_label="",
    ),
}
