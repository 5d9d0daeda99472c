"""
Single source of truth for all Pydantic models (domain records, requests, responses).
Backend types live here; the frontend's types mirror these definitions.
"""

from __future__ import annotations

from datetime import date as Date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Competition = Literal["low", "medium", "high"]
Plan = Literal["free", "premium"]

FREE_REPORTS_LIMIT = 2
PREMIUM_REPORTS_LIMIT = 999999


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Model Configuration
# -----------------------------------------------------------------------------


class ModelConfig(BaseModel):
    """Generative model settings handed to every LLM call. Immutable per call."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model: str
    temperature: float = Field(0.1, ge=0.0, le=2.0)
    top_p: float = Field(0.7, gt=0.0, le=1.0)
    top_k: int = Field(10, ge=1)
    max_tokens: int = Field(8192, ge=256)
    system_instruction: str
    api_key: Optional[str] = None


class ModelConfigUpdate(BaseModel):
    """Admin update: any field left out keeps its current value."""

    model_config = ConfigDict(protected_namespaces=())

    model: Optional[str] = Field(None, min_length=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(None, gt=0.0, le=1.0)
    top_k: Optional[int] = Field(None, ge=1)
    max_tokens: Optional[int] = Field(None, ge=256)
    system_instruction: Optional[str] = Field(None, min_length=1)
    api_key: Optional[str] = None


class ModelConfigView(BaseModel):
    """ModelConfig as shown to admins: the api key is never echoed back."""

    model_config = ConfigDict(protected_namespaces=())

    model: str
    temperature: float
    top_p: float
    top_k: int
    max_tokens: int
    system_instruction: str
    api_key_set: bool

    @classmethod
    def from_config(cls, config: ModelConfig) -> "ModelConfigView":
        data = config.model_dump(exclude={"api_key"})
        return cls(**data, api_key_set=bool(config.api_key))


# -----------------------------------------------------------------------------
# Niche Analysis
# -----------------------------------------------------------------------------


class NicheQuery(BaseModel):
    topic: str
    user_id: str


class TrendPoint(BaseModel):
    date: Date
    search_volume: int = Field(..., ge=0)
    engagement: float = Field(..., ge=1.0, le=15.0)
    mentions: int = Field(..., ge=1)


class MicroNiche(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    search_volume: int = Field(..., gt=0)
    competition: Competition = "medium"
    monetization_score: int = Field(70, ge=1, le=100)
    validation_score: int = Field(75, ge=1, le=100)
    examples: list[str] = Field(..., min_length=1)
    trends: list[TrendPoint] = []


class NicheAnalysisResult(BaseModel):
    id: str = ""
    topic: str
    micro_niches: list[MicroNiche] = Field(..., min_length=1, max_length=7)
    search_volume: int
    competition: Competition = "medium"
    monetization_potential: int = Field(70, ge=1, le=100)
    timestamp: datetime = Field(default_factory=_utcnow)
    user_id: str


# -----------------------------------------------------------------------------
# Validation Report
# -----------------------------------------------------------------------------


class CompetitorRecord(BaseModel):
    name: str = Field(..., min_length=1)
    website: Optional[str] = None
    social_media: Optional[str] = None
    followers: int = Field(0, ge=0)
    engagement: float = 0.0
    strengths: list[str] = []
    weaknesses: list[str] = []


class RoadmapPhase(BaseModel):
    timeline: str = ""
    budget: str = ""
    objectives: list[str] = []
    key_actions: list[str] = []


class SuccessRoadmap(BaseModel):
    phase1: Optional[RoadmapPhase] = None
    phase2: Optional[RoadmapPhase] = None
    phase3: Optional[RoadmapPhase] = None

    def phases(self) -> list[tuple[int, RoadmapPhase]]:
        """Present phases in order, numbered 1-3."""
        return [
            (number, phase)
            for number, phase in enumerate((self.phase1, self.phase2, self.phase3), start=1)
            if phase is not None
        ]


class ValidationReport(BaseModel):
    id: str = ""
    niche_id: str
    user_id: str
    micro_niche_name: str = ""
    profitability_score: int = Field(70, ge=1, le=100)
    audience_size: int = Field(0, ge=0)
    competitor_analysis: list[CompetitorRecord] = []
    content_gaps: list[str] = []
    monetization_strategies: list[str] = []
    risk_factors: list[str] = []
    time_to_market: str = "Not specified"
    success_roadmap: Optional[SuccessRoadmap] = None
    generated_at: datetime = Field(default_factory=_utcnow)


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


class UserAccount(BaseModel):
    id: str
    email: Optional[str] = None
    plan: Plan = "free"
    reports_used: int = Field(0, ge=0)
    reports_limit: int = FREE_REPORTS_LIMIT
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def can_generate_report(self) -> bool:
        return self.plan == "premium" or self.reports_used < self.reports_limit


class UsageStats(BaseModel):
    total_users: int = 0
    free_users: int = 0
    premium_users: int = 0
    total_reports: int = 0


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200, description="Broad market topic to break into micro-niches")

    @field_validator("topic")
    @classmethod
    def strip_topic(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be blank")
        return value


class ReportRequest(BaseModel):
    niche_id: str = Field(..., min_length=1, description="Analysis the micro-niche came from (back-reference only)")
    micro_niche: MicroNiche
    topic: Optional[str] = Field(None, max_length=200)


class PlanUpdateRequest(BaseModel):
    plan: Plan


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class NicheListResponse(BaseModel):
    niches: list[NicheAnalysisResult]


class ReportListResponse(BaseModel):
    reports: list[ValidationReport]
