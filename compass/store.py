"""
Saved-analysis store.

One row per topic in `saved_analyses`, owning at most one financial overview,
which in turn owns its party split and two ordered lists. Saving a topic that
already exists deletes the whole graph and recreates it in the same
transaction, so a reload never sees children from an older save.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError
from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from .categories import AnalysisCategory
from .config import get_settings
from .errors import AnalysisNotFound, StoreIOError
from .models import (
    ContributionTotal,
    FinancialContributionsAnalysis,
    LeadershipContribution,
    OrganizationAnalysis,
    PercentContributions,
    SavedAnalysisSummary,
)

logger = logging.getLogger(__name__)

# sqlite3 raises OverflowError itself when binding an int wider than 64 bits
STORAGE_ERRORS = (SQLAlchemyError, OverflowError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class SavedAnalysisRow(Base):
    __tablename__ = "saved_analyses"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic: Mapped[str] = mapped_column(String(512), unique=True, index=True, nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lean_or_label: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    has_financial_contributions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    financial_contributions_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    saved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    financial_overview: Mapped["FinancialOverviewRow | None"] = relationship(
        back_populates="analysis", cascade="all, delete-orphan"
    )


class FinancialOverviewRow(Base):
    __tablename__ = "financial_overviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    analysis_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("saved_analyses.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    summary_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    committee_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    committee_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    analysis: Mapped[SavedAnalysisRow] = relationship(back_populates="financial_overview")
    percent_contributions: Mapped["PercentContributionsRow | None"] = relationship(
        cascade="all, delete-orphan"
    )
    contribution_totals: Mapped[list["ContributionTotalRow"]] = relationship(
        order_by="ContributionTotalRow.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
    leadership_contributions: Mapped[list["LeadershipContributionRow"]] = relationship(
        order_by="LeadershipContributionRow.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )


class PercentContributionsRow(Base):
    __tablename__ = "percent_contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    overview_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("financial_overviews.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    total_to_democrats: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_to_republicans: Mapped[int] = mapped_column(BigInteger, nullable=False)
    percent_to_democrats: Mapped[float] = mapped_column(Float, nullable=False)
    percent_to_republicans: Mapped[float] = mapped_column(Float, nullable=False)
    total_contributions: Mapped[int] = mapped_column(BigInteger, nullable=False)


class ContributionTotalRow(Base):
    __tablename__ = "contribution_totals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    overview_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("financial_overviews.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recipient_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    number_of_contributions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_contribution_amount: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class LeadershipContributionRow(Base):
    __tablename__ = "leadership_contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    overview_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("financial_overviews.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    occupation: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    employer: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_amount: Mapped[str] = mapped_column(String(64), nullable=False)


# ---------------------------------------------------------------------------
# Row <-> model mapping
# ---------------------------------------------------------------------------

def _to_row(topic: str, analysis: OrganizationAnalysis) -> SavedAnalysisRow:
    row = SavedAnalysisRow(
        topic=topic,
        category=analysis.category.value,
        lean_or_label=analysis.lean_or_label,
        rating=analysis.rating,
        description=analysis.description,
        has_financial_contributions=analysis.has_financial_contributions,
        financial_contributions_text=analysis.financial_contributions_text,
        saved_at=utc_now(),
    )
    financial = analysis.financial_analysis
    if financial is not None:
        overview = FinancialOverviewRow(
            summary_text=financial.summary_text,
            committee_name=financial.committee_name,
            committee_id=financial.committee_id,
        )
        if financial.percent_contributions is not None:
            overview.percent_contributions = PercentContributionsRow(
                **financial.percent_contributions.model_dump()
            )
        for item in financial.contribution_totals:
            overview.contribution_totals.append(ContributionTotalRow(**item.model_dump()))
        for item in financial.leadership_contributions:
            overview.leadership_contributions.append(LeadershipContributionRow(**item.model_dump()))
        row.financial_overview = overview
    return row


def _to_financial(overview: FinancialOverviewRow) -> FinancialContributionsAnalysis:
    percent = None
    if overview.percent_contributions is not None:
        pc = overview.percent_contributions
        percent = PercentContributions(
            total_to_democrats=pc.total_to_democrats,
            total_to_republicans=pc.total_to_republicans,
            percent_to_democrats=pc.percent_to_democrats,
            percent_to_republicans=pc.percent_to_republicans,
            total_contributions=pc.total_contributions,
        )
    return FinancialContributionsAnalysis(
        summary_text=overview.summary_text,
        committee_name=overview.committee_name,
        committee_id=overview.committee_id,
        percent_contributions=percent,
        contribution_totals=[
            ContributionTotal(
                recipient_id=c.recipient_id,
                recipient_name=c.recipient_name,
                number_of_contributions=c.number_of_contributions,
                total_contribution_amount=c.total_contribution_amount,
            )
            for c in overview.contribution_totals
        ],
        leadership_contributions=[
            LeadershipContribution(
                occupation=c.occupation,
                name=c.name,
                employer=c.employer,
                transaction_amount=c.transaction_amount,
            )
            for c in overview.leadership_contributions
        ],
    )


def _to_analysis(row: SavedAnalysisRow) -> OrganizationAnalysis:
    return OrganizationAnalysis(
        topic=row.topic,
        lean_or_label=row.lean_or_label,
        rating=row.rating,
        description=row.description,
        category=AnalysisCategory.from_persisted(row.category),
        has_financial_contributions=row.has_financial_contributions,
        financial_contributions_text=row.financial_contributions_text,
        financial_analysis=_to_financial(row.financial_overview) if row.financial_overview else None,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(url: str) -> Engine:
    sa_url = make_url(url)
    kwargs = {}
    is_sqlite = sa_url.get_backend_name() == "sqlite"
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if sa_url.database in (None, "", ":memory:"):
            # one shared connection, otherwise every thread sees its own empty db
            kwargs["poolclass"] = StaticPool
        else:
            Path(sa_url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(sa_url, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class AnalysisStore:
    """
    Persisted history of analyses, keyed by exact (case-sensitive) topic.

    Every operation runs in its own transaction under a per-instance lock, so
    an upsert and a remove for the same topic never interleave.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        self.engine = engine or create_store_engine(url or get_settings().database_url)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("Could not initialise analysis store: %s", e)
            raise StoreIOError(f"Could not initialise analysis store: {e}") from e
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        with self._lock:
            session = self._sessions()
            try:
                yield session
                session.commit()
            except STORAGE_ERRORS as e:
                session.rollback()
                logger.error("Failed to %s: %s", action, e)
                raise StoreIOError(f"Failed to {action}: {e}") from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @staticmethod
    def _find(session: Session, topic: str) -> SavedAnalysisRow | None:
        return session.scalar(select(SavedAnalysisRow).where(SavedAnalysisRow.topic == topic))

    def upsert(self, topic: str, analysis: OrganizationAnalysis) -> bool:
        """Save `analysis` under `topic`, replacing any previous save. Returns whether a save occurred."""
        if not topic or not topic.strip():
            logger.warning("Refusing to save an analysis without a topic")
            return False
        with self._transaction(f"save analysis for {topic!r}") as session:
            existing = self._find(session, topic)
            if existing is not None:
                session.delete(existing)
                session.flush()
            session.add(_to_row(topic, analysis))
        logger.info("Saved %s analysis for %r", analysis.category.value, topic)
        return True

    def remove(self, topic: str) -> bool:
        """Delete the saved analysis and its financial graph. Missing topics are a no-op."""
        with self._transaction(f"remove analysis for {topic!r}") as session:
            existing = self._find(session, topic)
            if existing is None:
                return False
            session.delete(existing)
        logger.info("Removed saved analysis for %r", topic)
        return True

    def exists(self, topic: str) -> bool:
        with self._transaction(f"look up {topic!r}") as session:
            return self._find(session, topic) is not None

    def list(self) -> list[SavedAnalysisSummary]:
        """Newest first. Financial children are not loaded."""
        with self._transaction("list saved analyses") as session:
            rows = session.scalars(
                select(SavedAnalysisRow).order_by(SavedAnalysisRow.saved_at.desc(), SavedAnalysisRow.id.desc())
            ).all()
            return [
                SavedAnalysisSummary(
                    topic=row.topic,
                    category=AnalysisCategory.from_persisted(row.category),
                    lean_or_label=row.lean_or_label,
                    rating=row.rating,
                    saved_at=row.saved_at,
                )
                for row in rows
            ]

    def load(self, topic: str) -> OrganizationAnalysis:
        """Rehydrate the full record, lists in the order they were saved."""
        with self._transaction(f"load analysis for {topic!r}") as session:
            row = self._find(session, topic)
            if row is None:
                raise AnalysisNotFound(topic)
            try:
                return _to_analysis(row)
            except ValidationError as e:
                logger.error("Saved analysis for %r is unreadable: %s", topic, e)
                raise StoreIOError(f"Saved analysis for {topic!r} is unreadable") from e
