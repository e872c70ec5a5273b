"""Pydantic models for customer signals and prediction output."""

from models.prediction import (  # noqa: F401
    AnalysisResult,
    AnalysisTrace,
    CalibrationDecision,
    ConfidenceTier,
    PersistenceReport,
    Prediction,
    PredictionType,
    RuleScore,
    ScoreFactor,
    SentimentAssessment,
    SentimentStatus,
)
from models.signals import (  # noqa: F401
    ConversationSignal,
    CustomerProfile,
    DeviceRecord,
    FamilyMember,
    PurchaseEvent,
    SignalBundle,
)
