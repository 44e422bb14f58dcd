import threading

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from compass import store as store_module
from compass.categories import AnalysisCategory
from compass.errors import AnalysisNotFound, StoreIOError
from compass.models import (
    ContributionTotal,
    FinancialContributionsAnalysis,
    LeadershipContribution,
    OrganizationAnalysis,
    PercentContributions,
)
from compass.store import (
    AnalysisStore,
    ContributionTotalRow,
    FinancialOverviewRow,
    LeadershipContributionRow,
    PercentContributionsRow,
    SavedAnalysisRow,
)


def make_leaning(topic="Acme Corp", rating=4, label="Conservative"):
    return OrganizationAnalysis(
        topic=topic,
        lean_or_label=label,
        rating=rating,
        description="Most PAC money goes to Republican candidates.",
        category=AnalysisCategory.POLITICAL_LEANING,
        has_financial_contributions=True,
    )


def make_financial(topic="Acme Corp"):
    financial = FinancialContributionsAnalysis(
        summary_text="Acme's PAC leans Republican.",
        committee_name="ACME CORP PAC",
        committee_id="C00123456",
        percent_contributions=PercentContributions(
            total_to_democrats=100,
            total_to_republicans=300,
            percent_to_democrats=25.0,
            percent_to_republicans=75.0,
            total_contributions=400,
        ),
        contribution_totals=[
            ContributionTotal(recipient_id="C1", recipient_name="Smith", total_contribution_amount=150),
            ContributionTotal(recipient_id="C2", recipient_name="Jones", total_contribution_amount=250),
            ContributionTotal(recipient_name="Doe"),
        ],
        leadership_contributions=[
            LeadershipContribution(occupation="CFO", name="Pat Lee", employer="Acme", transaction_amount="500"),
            LeadershipContribution(occupation="CEO", name="Sam Roe", employer="Acme", transaction_amount="2500.00"),
        ],
    )
    return OrganizationAnalysis(
        topic=topic,
        lean_or_label="Financial Data",
        rating=0,
        description=financial.summary_text,
        category=AnalysisCategory.FINANCIAL_CONTRIBUTIONS,
        has_financial_contributions=True,
        financial_contributions_text=financial.summary_text,
        financial_analysis=financial,
    )


def count(store, row_type):
    with Session(store.engine) as session:
        return session.scalar(select(func.count()).select_from(row_type))


def test_financial_round_trip(store):
    analysis = make_financial()

    assert store.upsert("Acme Corp", analysis) is True
    loaded = store.load("Acme Corp")

    assert loaded == analysis
    assert [c.recipient_id for c in loaded.financial_analysis.contribution_totals] == ["C1", "C2", None]
    assert [c.name for c in loaded.financial_analysis.leadership_contributions] == ["Pat Lee", "Sam Roe"]


def test_plain_round_trip(store):
    analysis = make_leaning()
    store.upsert("Acme Corp", analysis)

    assert store.load("Acme Corp") == analysis


def test_replacing_financial_save_leaves_no_orphans(store):
    store.upsert("Acme Corp", make_financial())
    replacement = make_leaning()

    store.upsert("Acme Corp", replacement)

    assert store.load("Acme Corp") == replacement
    assert store.load("Acme Corp").financial_analysis is None
    assert count(store, SavedAnalysisRow) == 1
    for row_type in (FinancialOverviewRow, PercentContributionsRow, ContributionTotalRow, LeadershipContributionRow):
        assert count(store, row_type) == 0


def test_replacing_financial_with_financial_replaces_children(store):
    store.upsert("Acme Corp", make_financial())
    store.upsert("Acme Corp", make_financial())

    assert count(store, FinancialOverviewRow) == 1
    assert count(store, ContributionTotalRow) == 3
    assert count(store, LeadershipContributionRow) == 2


def test_topic_keys_are_case_sensitive(store):
    store.upsert("Acme Corp", make_leaning(rating=4))
    store.upsert("acme corp", make_leaning(topic="acme corp", rating=2, label="Liberal"))

    assert store.load("Acme Corp").rating == 4
    assert store.load("acme corp").rating == 2


def test_save_key_can_differ_from_record_topic(store):
    store.upsert("ACME", make_leaning(topic="Acme Corporation"))

    assert store.exists("ACME")
    assert not store.exists("Acme Corporation")
    assert store.load("ACME").topic == "ACME"


@pytest.mark.parametrize("topic", ["", "   "])
def test_blank_topic_is_not_saved(store, topic):
    assert store.upsert(topic, make_leaning()) is False
    assert store.list() == []


def test_remove(store):
    store.upsert("Acme Corp", make_financial())

    assert store.remove("Acme Corp") is True
    assert not store.exists("Acme Corp")
    assert count(store, FinancialOverviewRow) == 0
    assert count(store, ContributionTotalRow) == 0


def test_remove_missing_topic_is_a_no_op(store):
    store.upsert("Acme Corp", make_leaning())

    assert store.remove("Never Saved") is False
    assert store.exists("Acme Corp")


def test_load_missing_topic(store):
    with pytest.raises(AnalysisNotFound) as exc_info:
        store.load("Never Saved")
    assert exc_info.value.topic == "Never Saved"


def test_list_is_newest_first(store):
    store.upsert("T1", make_leaning(topic="T1"))
    store.upsert("T2", make_financial(topic="T2"))

    summaries = store.list()

    assert [s.topic for s in summaries] == ["T2", "T1"]
    assert summaries[0].category is AnalysisCategory.FINANCIAL_CONTRIBUTIONS
    assert summaries[0].lean_or_label == "Financial Data"
    assert summaries[1].rating == 4


def test_resaving_moves_topic_to_the_top(store):
    store.upsert("T1", make_leaning(topic="T1"))
    store.upsert("T2", make_leaning(topic="T2"))
    store.upsert("T1", make_leaning(topic="T1", rating=1, label="Very Liberal"))

    assert [s.topic for s in store.list()] == ["T1", "T2"]


def test_unknown_persisted_category_loads_as_undefined(store):
    store.upsert("Acme Corp", make_leaning())
    with Session(store.engine) as session:
        session.execute(update(SavedAnalysisRow).values(category="Retired Category"))
        session.commit()

    loaded = store.load("Acme Corp")

    assert loaded.category is AnalysisCategory.UNDEFINED
    assert loaded.lean_or_label == "Conservative"
    assert store.list()[0].category is AnalysisCategory.UNDEFINED


def test_failed_save_keeps_previous_record(store, monkeypatch):
    original = make_financial()
    store.upsert("Acme Corp", original)

    def broken_to_row(topic, analysis):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(store_module, "_to_row", broken_to_row)

    with pytest.raises(StoreIOError):
        store.upsert("Acme Corp", make_leaning())

    assert store.load("Acme Corp") == original


def test_storage_failures_surface_as_store_errors(store):
    store_module.Base.metadata.drop_all(store.engine)

    with pytest.raises(StoreIOError):
        store.list()
    with pytest.raises(StoreIOError):
        store.upsert("Acme Corp", make_leaning())
    with pytest.raises(StoreIOError):
        store.remove("Acme Corp")


def test_file_backed_store_persists_between_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'nested' / 'analyses.db'}"
    first = AnalysisStore(url)
    first.upsert("Acme Corp", make_financial())
    first.engine.dispose()

    second = AnalysisStore(url)
    try:
        assert second.load("Acme Corp") == make_financial()
    finally:
        second.engine.dispose()


def test_oversized_rating_is_a_store_error(store):
    original = make_leaning()
    store.upsert("Acme Corp", original)

    with pytest.raises(StoreIOError):
        store.upsert("Acme Corp", make_leaning(rating=99999999999999999999, label="Unknown"))

    assert store.load("Acme Corp") == original


def test_resave_gets_a_fresh_row_id(store):
    store.upsert("T1", make_leaning(topic="T1"))
    store.upsert("T2", make_leaning(topic="T2"))
    store.remove("T2")
    store.upsert("T1", make_leaning(topic="T1"))

    with Session(store.engine) as session:
        (row_id,) = session.scalars(select(SavedAnalysisRow.id)).all()
    assert row_id == 3


def test_concurrent_writes_to_one_topic(tmp_path):
    store = AnalysisStore(f"sqlite:///{tmp_path / 'analyses.db'}")
    records = [make_leaning(rating=n % 5 + 1, label=f"label {n}") for n in range(8)]
    errors = []

    def writer(analysis):
        try:
            for _ in range(5):
                store.upsert("Acme Corp", analysis)
                store.remove("Acme Corp")
                store.upsert("Acme Corp", analysis)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(r,)) for r in records]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    try:
        assert errors == []
        assert count(store, SavedAnalysisRow) == 1
        assert store.load("Acme Corp") in records
    finally:
        store.engine.dispose()
