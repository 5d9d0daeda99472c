"""
NicheNav Backend: Shared Test Fixtures

Provides mocked versions of external services (LLM, DB) and sample model
payloads for deterministic, fast unit tests.
"""

import json
import os
import sys
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure nichenav module is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# -----------------------------------------------------------------------------
# Environment Setup (before importing nichenav modules)
# -----------------------------------------------------------------------------

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-supabase-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")
os.environ.setdefault("ADMIN_USER_IDS", "admin-1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

TEST_USER_ID = "user-1"
ADMIN_USER_ID = "admin-1"
TOKEN_PREFIX = "token-"


# -----------------------------------------------------------------------------
# Mock Response Classes
# -----------------------------------------------------------------------------


@dataclass
class MockLLMMessage:
    """Mock message from LLM response."""
    content: str
    reasoning_content: Optional[str] = None


@dataclass
class MockLLMChoice:
    """Mock choice from LLM response."""
    message: MockLLMMessage


@dataclass
class MockLLMUsage:
    """Mock usage stats from LLM response."""
    total_tokens: int = 100
    prompt_tokens: int = 50
    completion_tokens: int = 50


@dataclass
class MockLLMResponse:
    """Mock LLM completion response."""
    choices: list[MockLLMChoice]
    usage: MockLLMUsage = None

    def __post_init__(self):
        if self.usage is None:
            self.usage = MockLLMUsage()


def create_mock_llm_response(content: str) -> MockLLMResponse:
    """Create a mock LLM response with given content."""
    return MockLLMResponse(
        choices=[MockLLMChoice(message=MockLLMMessage(content=content))]
    )


class SequenceRandom:
    """Deterministic stand-in for random.Random: cycles through fixed values."""

    def __init__(self, values: list[float]):
        self.values = values
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


# -----------------------------------------------------------------------------
# Sample Payloads
# -----------------------------------------------------------------------------


def make_micro_niche_payload(index: int = 1, **overrides) -> dict:
    payload = {
        "name": f"Zero-waste kitchen swaps for renters {index}",
        "description": "Renters who want to cut kitchen waste without permanent fixtures; low-cost swaps sell well.",
        "searchVolume": 8000 + index * 500,
        "competition": "low",
        "monetizationScore": 78,
        "validationScore": 81,
        "examples": ["Reusable beeswax wraps kit ($24)", "Package Free Shop"],
    }
    payload.update(overrides)
    return payload


def make_analysis_payload(count: int = 5, **overrides) -> dict:
    payload = {
        "overallSearchVolume": 165000,
        "overallCompetition": "medium",
        "monetizationPotential": 72,
        "microNiches": [make_micro_niche_payload(i) for i in range(1, count + 1)],
    }
    payload.update(overrides)
    return payload


def make_report_payload(**overrides) -> dict:
    payload = {
        "profitabilityScore": 74,
        "audienceSize": 250000,
        "competitors": [
            {
                "name": "Going Zero Waste",
                "website": "https://www.goingzerowaste.com",
                "followers": 410000,
                "engagement": 3.8,
                "strengths": ["Large loyal audience", "Strong SEO"],
                "weaknesses": ["Little renter-specific content"],
            },
            {
                "name": "Package Free Shop",
                "followers": "125,000",
                "engagement": "5.1%",
                "strengths": ["Curated products"],
                "weaknesses": ["Premium pricing"],
            },
        ],
        "contentGaps": ["Renter-safe kitchen swaps", "Budget zero-waste starter plans"],
        "monetizationStrategies": ["Starter kit at $39-$59", "Affiliate links to refill shops"],
        "riskFactors": ["Seasonal interest dips after January"],
        "timeToMarket": "2-3 months for MVP",
        "successRoadmap": {
            "phase1": {
                "timeline": "Months 1-3",
                "budget": "$500-$1,500",
                "objectives": ["Publish 20 guides"],
                "keyActions": ["Keyword research", "Launch newsletter"],
            },
            "phase2": {
                "timeline": "Months 4-6",
                "budget": "$2,000-$4,000",
                "objectives": ["Launch starter kit"],
                "keyActions": ["Source suppliers"],
            },
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def analysis_payload() -> dict:
    return make_analysis_payload()


@pytest.fixture
def report_payload() -> dict:
    return make_report_payload()


@pytest.fixture
def model_config():
    from nichenav.config import DEFAULT_MODEL_CONFIG
    from nichenav.models import ModelConfig
    return ModelConfig(**DEFAULT_MODEL_CONFIG)


@pytest.fixture
def micro_niche():
    from nichenav.models import MicroNiche
    return MicroNiche(
        name="Zero-waste kitchen swaps for renters",
        description="Renters who want to cut kitchen waste without permanent fixtures.",
        search_volume=8500,
        competition="low",
        monetization_score=78,
        validation_score=81,
        examples=["Reusable beeswax wraps kit ($24)"],
    )


# -----------------------------------------------------------------------------
# LLM Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_llm_with_text(monkeypatch):
    """
    Factory fixture to mock litellm with a raw text response.

    Usage:
        def test_example(mock_llm_with_text):
            mock = mock_llm_with_text("Sure! ```json {...} ```")
    """
    def _create_mock(text: str):
        mock = AsyncMock(return_value=create_mock_llm_response(text))
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_with_response(mock_llm_with_text):
    """Factory fixture to mock litellm with a JSON-encoded dict response."""
    def _create_mock(response_data: dict):
        return mock_llm_with_text(json.dumps(response_data))

    return _create_mock


@pytest.fixture
def mock_llm_failure(monkeypatch):
    """Mock litellm to simulate the provider failing."""
    async def mock_acompletion(*args, **kwargs):
        raise Exception("429 quota exceeded")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


# -----------------------------------------------------------------------------
# Database Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_db(monkeypatch):
    """
    Mock all database operations with in-memory storage.

    Returns the storage dict for inspection.
    """
    storage = {
        "niche_analyses": {},
        "validation_reports": {},
        "users": {},
        "model_settings": {},
    }
    counters = {"niche": 0, "report": 0}

    async def mock_create_niche_analysis(record: dict) -> str:
        counters["niche"] += 1
        analysis_id = f"niche-{counters['niche']}"
        storage["niche_analyses"][analysis_id] = {**record, "id": analysis_id}
        return analysis_id

    async def mock_list_niche_analyses(user_id: str) -> list[dict]:
        rows = [r for r in storage["niche_analyses"].values() if r["user_id"] == user_id]
        return sorted(rows, key=lambda r: r["timestamp"], reverse=True)

    async def mock_get_niche_analysis(analysis_id: str) -> Optional[dict]:
        return storage["niche_analyses"].get(analysis_id)

    async def mock_create_validation_report(record: dict) -> str:
        counters["report"] += 1
        report_id = f"report-{counters['report']:06d}"
        storage["validation_reports"][report_id] = {**record, "id": report_id}
        return report_id

    async def mock_list_validation_reports(user_id: str) -> list[dict]:
        rows = [r for r in storage["validation_reports"].values() if r["user_id"] == user_id]
        return sorted(rows, key=lambda r: r["generated_at"], reverse=True)

    async def mock_get_validation_report(report_id: str) -> Optional[dict]:
        return storage["validation_reports"].get(report_id)

    async def mock_get_user(user_id: str) -> Optional[dict]:
        return storage["users"].get(user_id)

    async def mock_create_user(user_id: str, email: str | None = None) -> Optional[dict]:
        row = {"id": user_id, "email": email, "plan": "free", "reports_used": 0, "reports_limit": 2}
        storage["users"][user_id] = row
        return row

    async def mock_increment_reports_used(user_id: str) -> Optional[int]:
        row = storage["users"].get(user_id)
        if row is None:
            return None
        row["reports_used"] += 1
        return row["reports_used"]

    async def mock_list_users() -> list[dict]:
        rows = list(storage["users"].values())
        return sorted(rows, key=lambda r: r.get("created_at", ""), reverse=True)

    async def mock_verify_access_token(token: str) -> Optional[dict]:
        if not token.startswith(TOKEN_PREFIX):
            return None
        return {"id": token[len(TOKEN_PREFIX):], "email": None}

    async def mock_update_user_plan(user_id: str, plan: str) -> Optional[dict]:
        row = storage["users"].get(user_id)
        if row is None:
            return None
        row["plan"] = plan
        row["reports_limit"] = 999999 if plan == "premium" else 2
        return row

    async def mock_get_usage_stats() -> dict:
        users = list(storage["users"].values())
        premium = sum(1 for u in users if u["plan"] == "premium")
        return {
            "total_users": len(users),
            "free_users": len(users) - premium,
            "premium_users": premium,
            "total_reports": sum(u["reports_used"] for u in users),
        }

    async def mock_get_model_settings() -> dict:
        return dict(storage["model_settings"])

    async def mock_update_model_settings(values: dict) -> bool:
        storage["model_settings"] = dict(values)
        return True

    monkeypatch.setattr("nichenav.db.create_niche_analysis", AsyncMock(side_effect=mock_create_niche_analysis))
    monkeypatch.setattr("nichenav.db.list_niche_analyses", AsyncMock(side_effect=mock_list_niche_analyses))
    monkeypatch.setattr("nichenav.db.get_niche_analysis", AsyncMock(side_effect=mock_get_niche_analysis))
    monkeypatch.setattr("nichenav.db.create_validation_report", AsyncMock(side_effect=mock_create_validation_report))
    monkeypatch.setattr("nichenav.db.list_validation_reports", AsyncMock(side_effect=mock_list_validation_reports))
    monkeypatch.setattr("nichenav.db.get_validation_report", AsyncMock(side_effect=mock_get_validation_report))
    monkeypatch.setattr("nichenav.db.get_user", AsyncMock(side_effect=mock_get_user))
    monkeypatch.setattr("nichenav.db.create_user", AsyncMock(side_effect=mock_create_user))
    monkeypatch.setattr("nichenav.db.increment_reports_used", AsyncMock(side_effect=mock_increment_reports_used))
    monkeypatch.setattr("nichenav.db.list_users", AsyncMock(side_effect=mock_list_users))
    monkeypatch.setattr("nichenav.db.verify_access_token", AsyncMock(side_effect=mock_verify_access_token))
    monkeypatch.setattr("nichenav.db.update_user_plan", AsyncMock(side_effect=mock_update_user_plan))
    monkeypatch.setattr("nichenav.db.get_usage_stats", AsyncMock(side_effect=mock_get_usage_stats))
    monkeypatch.setattr("nichenav.db.get_model_settings", AsyncMock(side_effect=mock_get_model_settings))
    monkeypatch.setattr("nichenav.db.update_model_settings", AsyncMock(side_effect=mock_update_model_settings))

    return storage


# -----------------------------------------------------------------------------
# Fake Supabase Client (drives nichenav.db itself)
# -----------------------------------------------------------------------------


@dataclass
class FakeResponse:
    """Mock postgrest response."""
    data: list


class FakeQuery:
    """One chained postgrest call: filters, ordering and limit applied on execute()."""

    def __init__(self, client: "FakeSupabase", table: str, op: str, payload=None, **options):
        self.client = client
        self.table = table
        self.op = op
        self.payload = payload
        self.options = options
        self.columns = "*"
        self.filters: list[tuple[str, object]] = []
        self.order_by: tuple[str, bool] | None = None
        self.row_limit: int | None = None

    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def eq(self, column: str, value):
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    def _project(self, row: dict) -> dict:
        if self.columns == "*":
            return dict(row)
        return {c.strip(): row.get(c.strip()) for c in self.columns.split(",")}

    def execute(self) -> FakeResponse:
        self.client.calls.append((self.table, self.op, self.payload))
        if (self.table, self.op) in self.client.failing or self.op in self.client.failing:
            raise RuntimeError("connection reset")
        rows = self.client.tables.setdefault(self.table, [])

        if self.op == "select":
            found = [r for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda r: r.get(column) or "", reverse=desc)
            if self.row_limit is not None:
                found = found[:self.row_limit]
            return FakeResponse([self._project(r) for r in found])

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", f"{self.table}-{len(rows) + 1}")
            rows.append(row)
            return FakeResponse([dict(row)])

        if self.op == "upsert":
            key = self.options.get("on_conflict") or "id"
            existing = next((r for r in rows if r.get(key) == self.payload.get(key)), None)
            if existing is None:
                rows.append(dict(self.payload))
                return FakeResponse([dict(self.payload)])
            if self.options.get("ignore_duplicates"):
                return FakeResponse([])
            existing.update(self.payload)
            return FakeResponse([dict(existing)])

        if self.op == "update":
            if self.client.before_update:
                hook, self.client.before_update = self.client.before_update, None
                hook(rows)
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return FakeResponse(updated)

        raise AssertionError(f"unsupported op {self.op}")


class FakeTable:
    def __init__(self, client: "FakeSupabase", name: str):
        self.client = client
        self.name = name

    def select(self, columns: str = "*") -> FakeQuery:
        return FakeQuery(self.client, self.name, "select").select(columns)

    def insert(self, data: dict) -> FakeQuery:
        return FakeQuery(self.client, self.name, "insert", data)

    def upsert(self, data: dict, on_conflict: str = "", ignore_duplicates: bool = False) -> FakeQuery:
        return FakeQuery(self.client, self.name, "upsert", data,
                         on_conflict=on_conflict, ignore_duplicates=ignore_duplicates)

    def update(self, data: dict) -> FakeQuery:
        return FakeQuery(self.client, self.name, "update", data)


class FakeAuth:
    """Mock supabase.auth: known tokens resolve to users, anything else raises."""

    def __init__(self):
        self.tokens: dict[str, SimpleNamespace] = {}

    def get_user(self, token: str):
        if token not in self.tokens:
            raise Exception("invalid JWT: token is expired")
        return SimpleNamespace(user=self.tokens[token])


class FakeSupabase:
    """
    In-memory stand-in for the supabase Client.

    Set `failing` to {"select"} or {("users", "select")} to make those calls raise.
    Set `before_update` to a callable(rows) that runs once before the next update.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failing: set = set()
        self.before_update = None
        self.calls: list[tuple] = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)


@pytest.fixture
def fake_supabase(monkeypatch):
    """Route nichenav.db through an in-memory FakeSupabase client."""
    fake = FakeSupabase()
    monkeypatch.setattr("nichenav.db.get_supabase", lambda: fake)
    return fake


# -----------------------------------------------------------------------------
# HTTP Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
async def client():
    """Async HTTP client for testing FastAPI endpoints."""
    from nichenav.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user_id: str = TEST_USER_ID) -> dict:
    """Bearer header that mock_db resolves back to user_id."""
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{user_id}"}
