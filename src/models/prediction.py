"""Pydantic models for scoring output, sentiment assessments and run traces."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PredictionType(str, Enum):
    """Discrete future customer actions the engine predicts."""

    DEVICE_UPGRADE = "device_upgrade"
    PLAN_CHANGE = "plan_change"
    ADD_SERVICE = "add_service"
    CHURN_PREVENTION = "churn_prevention"


class ConfidenceTier(str, Enum):
    """How strongly a raw score clears its thresholds."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScoreFactor(BaseModel):
    """A single contribution to a raw score, kept for explanation."""

    name: str
    magnitude: float
    detail: dict = Field(default_factory=dict)


class RuleScore(BaseModel):
    """Raw output of one scoring rule."""

    prediction_type: PredictionType
    raw_score: float = Field(ge=0)
    factors: List[ScoreFactor] = Field(default_factory=list)

    def dominant_factor(self) -> Optional[ScoreFactor]:
        """Largest contribution; the earliest factor wins ties."""
        dominant: Optional[ScoreFactor] = None
        for factor in self.factors:
            if dominant is None or factor.magnitude > dominant.magnitude:
                dominant = factor
        return dominant


class CalibrationDecision(BaseModel):
    """Emit/suppress verdict for one rule score."""

    prediction_type: PredictionType
    raw_score: float
    emit: bool
    probability: Optional[float] = None
    confidence: ConfidenceTier = ConfidenceTier.LOW


class Prediction(BaseModel):
    """Emitted prediction, persisted as one row per scoring run."""

    id: str
    customer_id: str
    prediction_type: PredictionType
    probability_score: float = Field(gt=0, le=0.99)
    confidence: ConfidenceTier
    reasoning: str
    recommended_actions: List[str] = Field(default_factory=list)
    factors: List[ScoreFactor] = Field(default_factory=list)
    created_at: datetime


class SentimentStatus(str, Enum):
    """How a dissatisfaction index was obtained."""

    ANALYZED = "analyzed"
    NO_RECENT_CONTACT = "no_recent_contact"
    SUMMARIES_PENDING = "summaries_pending"
    DEGRADED = "degraded"


class SentimentAssessment(BaseModel):
    """Dissatisfaction index (0 = very positive, 100 = angry) with provenance."""

    score: int = Field(ge=0, le=100)
    reasoning: str
    status: SentimentStatus
    conversation_count: int = 0
    degraded_reason: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.status == SentimentStatus.DEGRADED


class SentimentModelOutput(BaseModel):
    """Shape the classification prompt asks the model to return."""

    score: float = Field(allow_inf_nan=False)
    reasoning: str = ""


class PersistenceReport(BaseModel):
    """Outcome of writing one prediction."""

    prediction_id: str
    prediction_type: PredictionType
    saved: bool
    error: Optional[str] = None


class AnalysisTrace(BaseModel):
    """Per-stage latency trace for one run."""

    fetch_latency_ms: int
    sentiment_latency_ms: int
    scoring_latency_ms: int
    persistence_latency_ms: int
    total_latency_ms: int
    started_at: datetime
    correlation_id: str


class AnalysisResult(BaseModel):
    """Everything one pipeline run produced."""

    customer_id: str
    predictions: List[Prediction] = Field(default_factory=list)
    sentiment: SentimentAssessment
    suppressed: List[CalibrationDecision] = Field(default_factory=list)
    persistence: List[PersistenceReport] = Field(default_factory=list)
    trace: AnalysisTrace
