"""
Reasoning and action composer.

Turns a rule's factor breakdown into one sentence plus a fixed action list.
Templates are keyed by the dominant factor, so identical inputs always give
identical text.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from models.prediction import PredictionType, RuleScore, ScoreFactor

ACTION_CATALOG: Dict[PredictionType, List[str]] = {
    PredictionType.DEVICE_UPGRADE: [
        "Send device discount coupon",
        "Notify of new model release",
        "Invite to store visit",
    ],
    PredictionType.PLAN_CHANGE: [
        "Recommend a tailored plan",
        "Offer additional data discount",
        "Connect to a plan consultation call",
    ],
    PredictionType.ADD_SERVICE: [
        "Introduce family data sharing",
        "Present membership benefits",
        "Offer add-on service free trial",
    ],
    PredictionType.CHURN_PREVENTION: [
        "Run a satisfaction survey",
        "Offer VIP retention benefits",
        "Schedule an urgent care call",
    ],
}

_TEMPLATES: Dict[Tuple[PredictionType, str], str] = {
    (PredictionType.DEVICE_UPGRADE, "device_age"): (
        "Current device is {age_months} months old{battery_clause}, so an upgrade is likely."
    ),
    (PredictionType.DEVICE_UPGRADE, "extended_device_age"): (
        "Current device is {age_months} months old{battery_clause}, so an upgrade is likely."
    ),
    (PredictionType.DEVICE_UPGRADE, "battery_health"): (
        "Battery health has dropped to {battery_health_percent:.0f}%, "
        "which usually precedes a device upgrade."
    ),
    (PredictionType.DEVICE_UPGRADE, "device_condition"): (
        "Device is in {condition} condition, which makes an upgrade likely."
    ),
    (PredictionType.DEVICE_UPGRADE, "device_conversations"): (
        "Customer asked about new devices in {count} recent conversation(s)."
    ),
    (PredictionType.PLAN_CHANGE, "near_plan_limit"): (
        "Data usage of {usage_gb:.0f}GB is near the plan limit of {plan_cap_gb:.0f}GB, "
        "so a larger plan may be needed."
    ),
    (PredictionType.PLAN_CHANGE, "usage_below_capacity"): (
        "Data usage of {usage_gb:.0f}GB is far below the plan capacity of {plan_cap_gb:.0f}GB, "
        "so a cheaper plan would save money."
    ),
    (PredictionType.PLAN_CHANGE, "plan_conversations"): (
        "Customer discussed changing plans in {count} recent conversation(s)."
    ),
    (PredictionType.PLAN_CHANGE, "billing_complaints"): (
        "Customer raised {count} negative billing inquiry(ies), suggesting the plan is a poor fit."
    ),
    (PredictionType.ADD_SERVICE, "unlined_adults"): (
        "{count} adult household member(s) have no mobile line, "
        "so data sharing or an extra line is worth offering."
    ),
    (PredictionType.ADD_SERVICE, "heavy_usage"): (
        "High data usage of {usage_gb:.0f}GB without a data sharing service "
        "suggests interest in add-on services."
    ),
    (PredictionType.ADD_SERVICE, "service_conversations"): (
        "Customer asked about add-on services in {count} recent conversation(s)."
    ),
    (PredictionType.ADD_SERVICE, "vip_tier"): (
        "VIP tier customers frequently adopt add-on services."
    ),
    (PredictionType.CHURN_PREVENTION, "negative_conversations"): (
        "{count} negative support conversation(s) indicate a high risk of leaving."
    ),
    (PredictionType.CHURN_PREVENTION, "departure_keywords"): (
        "Customer mentioned switching carriers or cancelling in {count} conversation(s), "
        "indicating a high risk of leaving."
    ),
    (PredictionType.CHURN_PREVENTION, "dormant_contact"): (
        "No contact for {days_since_contact} days alongside other warning signs "
        "indicates a high risk of leaving."
    ),
    (PredictionType.CHURN_PREVENTION, "recent_dissatisfaction"): (
        "Recent dissatisfaction index of {dissatisfaction_index}/100 indicates a high risk of leaving."
    ),
}

_GENERIC = "Combined customer signals indicate a likely {label}."


def _slots(score: RuleScore, factor: ScoreFactor) -> dict:
    slots = dict(factor.detail)
    if score.prediction_type == PredictionType.DEVICE_UPGRADE:
        battery = next(
            (f.detail.get("battery_health_percent") for f in score.factors if f.name == "battery_health"),
            None,
        )
        slots["battery_clause"] = (
            f" with battery health at {battery:.0f}%" if battery is not None else ""
        )
    return slots


def _plan_direction_factor(score: RuleScore) -> Optional[ScoreFactor]:
    """Plan reasoning always states which way usage points when it is known."""
    for name in ("near_plan_limit", "usage_below_capacity"):
        for factor in score.factors:
            if factor.name == name:
                return factor
    return None


def compose_reasoning(score: RuleScore) -> str:
    """One sentence parameterized by the dominant contributing factor."""
    factor = None
    if score.prediction_type == PredictionType.PLAN_CHANGE:
        factor = _plan_direction_factor(score)
    factor = factor or score.dominant_factor()

    label = score.prediction_type.value.replace("_", " ")
    if factor is None:
        return _GENERIC.format(label=label)

    template = _TEMPLATES.get((score.prediction_type, factor.name))
    if template is None:
        return _GENERIC.format(label=label)

    try:
        sentence = template.format(**_slots(score, factor))
    except (KeyError, ValueError):
        sentence = _GENERIC.format(label=label)

    return sentence


def recommended_actions(prediction_type: PredictionType) -> List[str]:
    return list(ACTION_CATALOG[prediction_type])
