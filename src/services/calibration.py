"""Confidence calibration: emission floor, probability clamp and tier."""

from __future__ import annotations

from config.scoring import DEFAULT_POLICY, ScoringPolicy
from models.prediction import CalibrationDecision, ConfidenceTier, RuleScore


def calibrate(
    score: RuleScore, emission_floor: float, policy: ScoringPolicy = DEFAULT_POLICY
) -> CalibrationDecision:
    """
    Decide whether a raw score becomes a prediction.

    Scores under the type's emission floor are suppressed (tier ``low``);
    at or above the uniform high-confidence floor the tier is ``high``,
    otherwise ``medium``. Probability is the raw score capped below 1.
    """
    raw = score.raw_score
    if raw <= 0 or raw < emission_floor:
        return CalibrationDecision(
            prediction_type=score.prediction_type,
            raw_score=raw,
            emit=False,
            confidence=ConfidenceTier.LOW,
        )

    confidence = (
        ConfidenceTier.HIGH if raw >= policy.high_confidence_floor else ConfidenceTier.MEDIUM
    )
    return CalibrationDecision(
        prediction_type=score.prediction_type,
        raw_score=raw,
        emit=True,
        probability=min(raw, policy.max_probability),
        confidence=confidence,
    )
