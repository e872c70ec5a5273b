"""Pydantic models for the customer signals read by one scoring pass."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from config.scoring import DEVICE_AGE_MONTH_DAYS


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps from the store as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_list(value) -> list:
    """Accept JSON-encoded arrays (SQLite/text columns) as well as real lists."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return [value] if value.strip() else []
        return decoded if isinstance(decoded, list) else []
    return list(value)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CustomerTier(str, Enum):
    """Loyalty tiers."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    VIP = "vip"


class DeviceCondition(str, Enum):
    """Physical condition buckets recorded for a device."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class PurchaseType(str, Enum):
    """Kinds of purchase history entries."""

    DEVICE = "device"
    PLAN_CHANGE = "plan_change"
    ADD_SERVICE = "add_service"
    ACCESSORY = "accessory"


class ConversationSentiment(str, Enum):
    """Sentiment label attached to a conversation summary."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ConversationCategory(str, Enum):
    """Category tags produced by the conversation summarizer."""

    PLAN_CHANGE = "plan_change"
    DEVICE_UPGRADE = "device_upgrade"
    BILLING_INQUIRY = "billing_inquiry"
    TECHNICAL_SUPPORT = "technical_support"
    ADD_SERVICE = "add_service"
    CANCEL_SERVICE = "cancel_service"
    GENERAL_INQUIRY = "general_inquiry"


class CustomerProfile(BaseModel):
    """Demographic and plan snapshot for one customer."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    age_bracket: Optional[str] = None
    occupation: Optional[str] = None
    income_bracket: Optional[str] = None
    customer_tier: CustomerTier = CustomerTier.BRONZE
    subscription_start_date: Optional[UtcDatetime] = None
    current_plan_name: str = ""
    current_plan_price: float = 0.0
    average_monthly_usage_gb: float = Field(default=0.0, ge=0)

    @field_validator("customer_tier", mode="before")
    @classmethod
    def normalize_tier(cls, value):
        """Unknown or missing tiers are scored as bronze."""
        if isinstance(value, str) and value.lower() in {t.value for t in CustomerTier}:
            return value.lower()
        if isinstance(value, CustomerTier):
            return value
        return CustomerTier.BRONZE

    @field_validator("current_plan_name", mode="before")
    @classmethod
    def default_plan_name(cls, value):
        return value or ""


class DeviceRecord(BaseModel):
    """One device owned by the customer."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_name: str
    manufacturer: Optional[str] = None
    purchase_date: UtcDatetime
    is_current: bool = False
    condition: Optional[DeviceCondition] = None
    battery_health_percent: Optional[float] = None

    @field_validator("condition", mode="before")
    @classmethod
    def normalize_condition(cls, value):
        if isinstance(value, str) and value.lower() in {c.value for c in DeviceCondition}:
            return value.lower()
        if isinstance(value, DeviceCondition):
            return value
        return None

    def age_in_months(self, as_of: datetime) -> int:
        """Whole 30-day months since purchase, never negative."""
        days = (_as_utc(as_of) - self.purchase_date).days
        return max(0, days // DEVICE_AGE_MONTH_DAYS)


class PurchaseEvent(BaseModel):
    """Append-only purchase history entry."""

    model_config = ConfigDict(frozen=True)

    purchase_type: PurchaseType
    product_name: str
    price: float = 0.0
    purchase_date: UtcDatetime
    contract_months: Optional[int] = None
    metadata: dict = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def decode_metadata(cls, value):
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                return {}
            return decoded if isinstance(decoded, dict) else {}
        return value


class FamilyMember(BaseModel):
    """Household line record."""

    model_config = ConfigDict(frozen=True)

    relationship: str
    age_bracket: str
    has_mobile_line: bool = False
    line_type: Optional[str] = None
    usage_level: Optional[str] = None

    @property
    def is_adult(self) -> bool:
        return self.age_bracket.lower() != "child"


class ConversationSignal(BaseModel):
    """One support conversation with its generated summary, if any."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    occurred_at: UtcDatetime
    category: Optional[str] = None
    summary: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    sentiment: Optional[ConversationSentiment] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def decode_keywords(cls, value):
        return [str(k) for k in _as_list(value)]

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, value):
        if isinstance(value, str) and value.lower() in {s.value for s in ConversationSentiment}:
            return value.lower()
        if isinstance(value, ConversationSentiment):
            return value
        return None

    @property
    def has_summary(self) -> bool:
        return bool(self.summary and self.summary.strip())

    @property
    def is_negative(self) -> bool:
        return self.sentiment == ConversationSentiment.NEGATIVE


class SignalBundle(BaseModel):
    """Read-only snapshot of everything one scoring pass looks at."""

    model_config = ConfigDict(frozen=True)

    profile: CustomerProfile
    current_device: Optional[DeviceRecord] = None
    purchases: List[PurchaseEvent] = Field(default_factory=list)
    family_members: List[FamilyMember] = Field(default_factory=list)
    conversations: List[ConversationSignal] = Field(
        default_factory=list, description="Newest first"
    )
    as_of: UtcDatetime

    @property
    def customer_id(self) -> str:
        return self.profile.customer_id

    def conversations_in_category(self, category: str) -> List[ConversationSignal]:
        return [c for c in self.conversations if c.category == category]
