"""
Hand-tuned scoring weights and thresholds.

The values are heuristics authored by the retention team, not fitted to
outcome data. Change them here only; the rule functions read nothing else.
"""

from dataclasses import dataclass, field
from typing import Tuple

# Usage-ratio denominator for plans sold as "unlimited" (policy choice).
UNLIMITED_PLAN_CAP_GB = 200.0
# Plan-name markers (store data is Korean) that select the unlimited cap.
UNLIMITED_PLAN_MARKERS = ("unlimited", "무제한")
# Cap assumed when the plan name carries no recognisable allowance.
DEFAULT_PLAN_CAP_GB = 50.0

# Uniform across prediction types.
HIGH_CONFIDENCE_FLOOR = 0.7
MAX_PROBABILITY = 0.99

DEVICE_AGE_MONTH_DAYS = 30


@dataclass(frozen=True)
class DeviceUpgradePolicy:
    """Weights for the device_upgrade rubric."""

    age_months: int = 24
    age_weight: float = 0.3
    extended_age_months: int = 30
    extended_age_weight: float = 0.2
    battery_floor_percent: float = 80.0
    battery_weight: float = 0.15
    conversation_weight: float = 0.2
    worn_conditions: Tuple[str, ...] = ("fair", "poor")
    condition_weight: float = 0.1
    emission_floor: float = 0.6


@dataclass(frozen=True)
class PlanChangePolicy:
    """Weights for the plan_change rubric."""

    near_cap_ratio: float = 0.9
    near_cap_weight: float = 0.3
    overpaying_ratio: float = 0.3
    overpaying_weight: float = 0.25
    conversation_weight: float = 0.2
    billing_complaint_weight: float = 0.15
    emission_floor: float = 0.5


@dataclass(frozen=True)
class AddServicePolicy:
    """Weights for the add_service rubric."""

    unlined_adult_weight: float = 0.2
    heavy_usage_gb: float = 100.0
    heavy_usage_weight: float = 0.25
    conversation_weight: float = 0.2
    vip_weight: float = 0.1
    data_sharing_products: Tuple[str, ...] = (
        "data sharing",
        "data-sharing",
        "datashare",
        "데이터 쉐어링",
        "데이터쉐어링",
    )
    emission_floor: float = 0.5


@dataclass(frozen=True)
class ChurnPolicy:
    """Weights for the churn_prevention rubric."""

    negative_conversation_weight: float = 0.3
    departure_keyword_weight: float = 0.4
    departure_vocabulary: Tuple[str, ...] = (
        "competitor",
        "other carrier",
        "switch carrier",
        "number portability",
        "port out",
        "port my number",
        "cancel",
        "terminate contract",
        "타사",
        "번호이동",
        "해지",
    )
    dormant_days: int = 90
    dormant_weight: float = 0.2
    # Off by default so the rubric matches the published weights.
    dissatisfaction_weight: float = 0.0
    emission_floor: float = 0.7


@dataclass(frozen=True)
class ScoringPolicy:
    """All rubric weights bundled for injection into the rules."""

    device_upgrade: DeviceUpgradePolicy = field(default_factory=DeviceUpgradePolicy)
    plan_change: PlanChangePolicy = field(default_factory=PlanChangePolicy)
    add_service: AddServicePolicy = field(default_factory=AddServicePolicy)
    churn: ChurnPolicy = field(default_factory=ChurnPolicy)
    high_confidence_floor: float = HIGH_CONFIDENCE_FLOOR
    max_probability: float = MAX_PROBABILITY


DEFAULT_POLICY = ScoringPolicy()
