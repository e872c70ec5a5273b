"""
Purchase-intent prediction pipeline.

fetch signals -> aggregate sentiment -> score four rules -> calibrate ->
compose reasoning -> persist. Only DataUnavailableError escapes a run; every
other failure is recovered or reported per item.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from config.scoring import DEFAULT_POLICY, ScoringPolicy
from config.settings import Settings
from models.prediction import (
    AnalysisResult,
    AnalysisTrace,
    CalibrationDecision,
    Prediction,
    RuleScore,
)
from repositories.prediction_repository import PredictionRepository
from repositories.signal_repository import SignalRepository
from services.calibration import calibrate
from services.reasoning import compose_reasoning, recommended_actions
from services.scoring_rules import build_rules
from services.sentiment_service import SentimentService
from utils.logging_config import get_logger

logger = get_logger(__name__)


class PredictionService:
    """Sequential pipeline; each run is isolated and holds no shared state."""

    def __init__(
        self,
        signals: Optional[SignalRepository] = None,
        sentiment: Optional[SentimentService] = None,
        predictions: Optional[PredictionRepository] = None,
        settings: Optional[Settings] = None,
        policy: ScoringPolicy = DEFAULT_POLICY,
    ) -> None:
        self.settings = settings or Settings.from_environment()
        self.signals = signals or SignalRepository(settings=self.settings)
        self.sentiment = sentiment or SentimentService(settings=self.settings)
        self.predictions = predictions or PredictionRepository(settings=self.settings)
        self.policy = policy
        self.rules = build_rules(policy)

    def run(
        self,
        customer_id: str,
        correlation_id: Optional[str] = None,
        as_of: Optional[datetime] = None,
    ) -> AnalysisResult:
        """Full pipeline with a per-stage latency trace."""
        correlation_id = correlation_id or str(uuid.uuid4())
        started_at = datetime.now(timezone.utc)

        f_start = time.perf_counter()
        bundle = self.signals.fetch_bundle(customer_id, as_of=as_of or started_at)
        f_latency = int((time.perf_counter() - f_start) * 1000)

        s_start = time.perf_counter()
        assessment = self.sentiment.aggregate(bundle)
        s_latency = int((time.perf_counter() - s_start) * 1000)

        c_start = time.perf_counter()
        emitted: List[Prediction] = []
        suppressed: List[CalibrationDecision] = []
        for rule in self.rules:
            score: RuleScore = rule.evaluate(bundle, assessment, self.policy)
            decision = calibrate(score, rule.emission_floor, self.policy)
            if not decision.emit:
                suppressed.append(decision)
                logger.info(
                    "Prediction suppressed",
                    extra={
                        "customer_id": customer_id,
                        "prediction_type": rule.prediction_type.value,
                        "raw_score": score.raw_score,
                    },
                )
                continue
            emitted.append(self._build_prediction(customer_id, score, decision))
        c_latency = int((time.perf_counter() - c_start) * 1000)

        p_start = time.perf_counter()
        reports = self.predictions.save_all(emitted) if emitted else []
        p_latency = int((time.perf_counter() - p_start) * 1000)

        trace = AnalysisTrace(
            fetch_latency_ms=f_latency,
            sentiment_latency_ms=s_latency,
            scoring_latency_ms=c_latency,
            persistence_latency_ms=p_latency,
            total_latency_ms=f_latency + s_latency + c_latency + p_latency,
            started_at=started_at,
            correlation_id=correlation_id,
        )

        logger.info(
            "Purchase intent analysis complete",
            extra={
                "customer_id": customer_id,
                "correlation_id": correlation_id,
                "emitted": [p.prediction_type.value for p in emitted],
                "sentiment_status": assessment.status.value,
                "persist_failures": sum(1 for r in reports if not r.saved),
                "duration_ms": trace.total_latency_ms,
            },
        )

        return AnalysisResult(
            customer_id=customer_id,
            predictions=emitted,
            sentiment=assessment,
            suppressed=suppressed,
            persistence=reports,
            trace=trace,
        )

    def analyze_purchase_intent(self, customer_id: str) -> List[Prediction]:
        """Entry point: emitted predictions for one customer, possibly empty."""
        return self.run(customer_id).predictions

    def _build_prediction(
        self, customer_id: str, score: RuleScore, decision: CalibrationDecision
    ) -> Prediction:
        return Prediction(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            prediction_type=score.prediction_type,
            probability_score=decision.probability,
            confidence=decision.confidence,
            reasoning=compose_reasoning(score),
            recommended_actions=recommended_actions(score.prediction_type),
            factors=score.factors,
            created_at=datetime.now(timezone.utc),
        )
