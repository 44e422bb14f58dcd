"""Shared fixtures: a fake analysis API and an in-memory store."""
import httpx
import pytest

from compass.client import AnalysisClient
from compass.store import AnalysisStore

BASE_URL = "https://compass.test"


class FakeAnalysisAPI:
    """Routes decoded request paths to canned responses and records every request."""

    def __init__(self):
        self.routes: dict[str, httpx.Response | Exception] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, json=None, status_code: int = 200, content: bytes | None = None):
        if content is not None:
            self.routes[path] = httpx.Response(status_code, content=content)
        else:
            self.routes[path] = httpx.Response(status_code, json=json)

    def fail(self, path: str, error: Exception):
        self.routes[path] = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"detail": "not found"})
        if isinstance(route, Exception):
            raise route
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def api():
    return FakeAnalysisAPI()


@pytest.fixture
def client(api):
    return AnalysisClient(base_url=BASE_URL, timeout=5, transport=api.transport)


@pytest.fixture
def store():
    store = AnalysisStore("sqlite://")
    yield store
    store.engine.dispose()


@pytest.fixture
def financial_payload():
    return {
        "topic": "Acme Corp",
        "normalized_topic_name": "acme corp",
        "timestamp": "2025-09-01T12:00:00Z",
        "committee_id": "C00123456",
        "committee_name": "ACME CORP PAC",
        "individual_id": "42",
        "fec_financial_contributions_summary_text": "Acme's PAC leans Republican.",
        "percent_contributions": {
            "total_to_democrats": 100,
            "total_to_republicans": 300,
            "percent_to_democrats": 25.0,
            "percent_to_republicans": 75.0,
            "total_contributions": 400,
        },
        "contribution_totals": [
            {"recipient_id": "C1", "recipient_name": "Smith for Senate",
             "number_of_contributions": 2, "total_contribution_amount": 150},
            {"recipient_id": "C2", "recipient_name": "Jones for Congress",
             "number_of_contributions": 5, "total_contribution_amount": 250},
            {"recipient_name": "Doe 2026"},
        ],
        "leadership_contributors_to_committee": [
            {"occupation": "CFO", "name": "Pat Lee", "employer": "Acme", "transaction_amount": "500"},
            {"occupation": "CEO", "name": "Sam Roe", "employer": "Acme", "transaction_amount": "2500.00"},
        ],
        "debug": {"model_used": "gpt", "persisted_response": True, "newly_generated": False},
    }
