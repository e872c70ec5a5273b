"""
Per-type scoring rules.

Each rule is a pure function of the signal bundle (and optionally the
dissatisfaction index) that returns a raw score and the factors behind it.
Rules never raise on missing data; an absent signal contributes nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from config.scoring import (
    DEFAULT_PLAN_CAP_GB,
    DEFAULT_POLICY,
    UNLIMITED_PLAN_CAP_GB,
    UNLIMITED_PLAN_MARKERS,
    ScoringPolicy,
)
from models.prediction import PredictionType, RuleScore, ScoreFactor, SentimentAssessment
from models.signals import (
    ConversationCategory,
    CustomerTier,
    SignalBundle,
)

_CAP_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*GB", re.IGNORECASE)

Evaluator = Callable[[SignalBundle, Optional[SentimentAssessment], ScoringPolicy], RuleScore]


def plan_cap_gb(plan_name: str) -> float:
    """Nominal monthly allowance for a plan name."""
    name = (plan_name or "").lower()
    if any(marker in name for marker in UNLIMITED_PLAN_MARKERS):
        return UNLIMITED_PLAN_CAP_GB
    match = _CAP_PATTERN.search(name)
    if match:
        return float(match.group(1))
    return DEFAULT_PLAN_CAP_GB


def usage_ratio(bundle: SignalBundle) -> Optional[float]:
    """Average usage over plan cap; None when the cap is unusable."""
    cap = plan_cap_gb(bundle.profile.current_plan_name)
    if cap <= 0:
        return None
    return bundle.profile.average_monthly_usage_gb / cap


def _finish(prediction_type: PredictionType, factors: List[ScoreFactor]) -> RuleScore:
    kept = [f for f in factors if f.magnitude > 0]
    # Rounded so float noise cannot flip a threshold comparison.
    total = round(sum(f.magnitude for f in kept), 4)
    return RuleScore(prediction_type=prediction_type, raw_score=total, factors=kept)


def score_device_upgrade(
    bundle: SignalBundle,
    sentiment: Optional[SentimentAssessment] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RuleScore:
    rules = policy.device_upgrade
    factors: List[ScoreFactor] = []
    device = bundle.current_device

    if device is not None:
        age = device.age_in_months(bundle.as_of)
        if age >= rules.age_months:
            factors.append(
                ScoreFactor(name="device_age", magnitude=rules.age_weight, detail={"age_months": age})
            )
        if age >= rules.extended_age_months:
            factors.append(
                ScoreFactor(
                    name="extended_device_age",
                    magnitude=rules.extended_age_weight,
                    detail={"age_months": age},
                )
            )
        battery = device.battery_health_percent
        if battery is not None and battery < rules.battery_floor_percent:
            factors.append(
                ScoreFactor(
                    name="battery_health",
                    magnitude=rules.battery_weight,
                    detail={"battery_health_percent": battery},
                )
            )
        if device.condition is not None and device.condition.value in rules.worn_conditions:
            factors.append(
                ScoreFactor(
                    name="device_condition",
                    magnitude=rules.condition_weight,
                    detail={"condition": device.condition.value},
                )
            )

    device_talks = bundle.conversations_in_category(ConversationCategory.DEVICE_UPGRADE.value)
    factors.append(
        ScoreFactor(
            name="device_conversations",
            magnitude=rules.conversation_weight * len(device_talks),
            detail={"count": len(device_talks)},
        )
    )
    return _finish(PredictionType.DEVICE_UPGRADE, factors)


def score_plan_change(
    bundle: SignalBundle,
    sentiment: Optional[SentimentAssessment] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RuleScore:
    rules = policy.plan_change
    factors: List[ScoreFactor] = []

    ratio = usage_ratio(bundle)
    if ratio is not None:
        detail = {
            "usage_ratio": round(ratio, 2),
            "usage_gb": bundle.profile.average_monthly_usage_gb,
            "plan_cap_gb": plan_cap_gb(bundle.profile.current_plan_name),
        }
        if ratio > rules.near_cap_ratio:
            factors.append(
                ScoreFactor(name="near_plan_limit", magnitude=rules.near_cap_weight, detail=detail)
            )
        if ratio < rules.overpaying_ratio:
            factors.append(
                ScoreFactor(
                    name="usage_below_capacity", magnitude=rules.overpaying_weight, detail=detail
                )
            )

    plan_talks = bundle.conversations_in_category(ConversationCategory.PLAN_CHANGE.value)
    factors.append(
        ScoreFactor(
            name="plan_conversations",
            magnitude=rules.conversation_weight * len(plan_talks),
            detail={"count": len(plan_talks)},
        )
    )

    complaints = [
        c
        for c in bundle.conversations_in_category(ConversationCategory.BILLING_INQUIRY.value)
        if c.is_negative
    ]
    factors.append(
        ScoreFactor(
            name="billing_complaints",
            magnitude=rules.billing_complaint_weight * len(complaints),
            detail={"count": len(complaints)},
        )
    )
    return _finish(PredictionType.PLAN_CHANGE, factors)


def score_add_service(
    bundle: SignalBundle,
    sentiment: Optional[SentimentAssessment] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RuleScore:
    rules = policy.add_service
    factors: List[ScoreFactor] = []

    unlined = [m for m in bundle.family_members if m.is_adult and not m.has_mobile_line]
    factors.append(
        ScoreFactor(
            name="unlined_adults",
            magnitude=rules.unlined_adult_weight * len(unlined),
            detail={"count": len(unlined)},
        )
    )

    usage = bundle.profile.average_monthly_usage_gb
    has_sharing = any(
        term in p.product_name.lower()
        for p in bundle.purchases
        for term in rules.data_sharing_products
    )
    if usage > rules.heavy_usage_gb and not has_sharing:
        factors.append(
            ScoreFactor(name="heavy_usage", magnitude=rules.heavy_usage_weight, detail={"usage_gb": usage})
        )

    service_talks = bundle.conversations_in_category(ConversationCategory.ADD_SERVICE.value)
    factors.append(
        ScoreFactor(
            name="service_conversations",
            magnitude=rules.conversation_weight * len(service_talks),
            detail={"count": len(service_talks)},
        )
    )

    if bundle.profile.customer_tier == CustomerTier.VIP:
        factors.append(ScoreFactor(name="vip_tier", magnitude=rules.vip_weight))
    return _finish(PredictionType.ADD_SERVICE, factors)


def _mentions_departure(keywords: List[str], vocabulary) -> bool:
    lowered = [k.lower() for k in keywords]
    return any(term in keyword for keyword in lowered for term in vocabulary)


def score_churn_prevention(
    bundle: SignalBundle,
    sentiment: Optional[SentimentAssessment] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RuleScore:
    rules = policy.churn
    factors: List[ScoreFactor] = []

    negative = [c for c in bundle.conversations if c.is_negative]
    factors.append(
        ScoreFactor(
            name="negative_conversations",
            magnitude=rules.negative_conversation_weight * len(negative),
            detail={"count": len(negative)},
        )
    )

    departures = [
        c for c in bundle.conversations if _mentions_departure(c.keywords, rules.departure_vocabulary)
    ]
    factors.append(
        ScoreFactor(
            name="departure_keywords",
            magnitude=rules.departure_keyword_weight * len(departures),
            detail={"count": len(departures)},
        )
    )

    if bundle.conversations:
        last_contact = max(c.occurred_at for c in bundle.conversations)
        days_since = (bundle.as_of - last_contact).days
        if days_since > rules.dormant_days:
            factors.append(
                ScoreFactor(
                    name="dormant_contact",
                    magnitude=rules.dormant_weight,
                    detail={"days_since_contact": days_since},
                )
            )

    if sentiment is not None and rules.dissatisfaction_weight > 0:
        factors.append(
            ScoreFactor(
                name="recent_dissatisfaction",
                magnitude=rules.dissatisfaction_weight * sentiment.score / 100,
                detail={"dissatisfaction_index": sentiment.score},
            )
        )
    return _finish(PredictionType.CHURN_PREVENTION, factors)


@dataclass(frozen=True)
class ScoringRule:
    """One prediction type's rubric and its emission floor."""

    prediction_type: PredictionType
    emission_floor: float
    evaluator: Evaluator

    def evaluate(
        self,
        bundle: SignalBundle,
        sentiment: Optional[SentimentAssessment] = None,
        policy: ScoringPolicy = DEFAULT_POLICY,
    ) -> RuleScore:
        return self.evaluator(bundle, sentiment, policy)


def build_rules(policy: ScoringPolicy = DEFAULT_POLICY) -> List[ScoringRule]:
    """All four rules, iterated uniformly by the pipeline."""
    return [
        ScoringRule(
            PredictionType.DEVICE_UPGRADE, policy.device_upgrade.emission_floor, score_device_upgrade
        ),
        ScoringRule(PredictionType.PLAN_CHANGE, policy.plan_change.emission_floor, score_plan_change),
        ScoringRule(PredictionType.ADD_SERVICE, policy.add_service.emission_floor, score_add_service),
        ScoringRule(
            PredictionType.CHURN_PREVENTION, policy.churn.emission_floor, score_churn_prevention
        ),
    ]
