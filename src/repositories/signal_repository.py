"""
Signal repository.

Read-only access to the customer facts one scoring pass needs: demographics,
current device, purchase history, household lines and summarized
conversations. Only a missing profile is an error; every other relation
degrades to an empty collection.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.engine import Engine

from config.settings import Settings
from models.signals import (
    ConversationSignal,
    CustomerProfile,
    DeviceRecord,
    FamilyMember,
    PurchaseEvent,
    SignalBundle,
)
from repositories.postgres_repo import PostgresRepository, get_db_engine
from utils.error_handling import DataUnavailableError
from utils.logging_config import get_logger

logger = get_logger(__name__)


PROFILE_QUERY = """
    SELECT session_id, age_range, occupation, income_range, customer_tier,
           subscription_start_date, current_plan_type, current_plan_price,
           average_monthly_usage_gb
    FROM customer_demographics
    WHERE session_id = :customer_id
"""

CURRENT_DEVICE_QUERY = """
    SELECT model_name, manufacturer, purchase_date, is_current, condition,
           battery_health_percent
    FROM customer_devices
    WHERE session_id = :customer_id AND is_current = :is_current
    ORDER BY purchase_date DESC
    LIMIT 1
"""

PURCHASE_HISTORY_QUERY = """
    SELECT purchase_type, product_name, price, purchase_date, contract_months, metadata
    FROM purchase_history
    WHERE session_id = :customer_id
    ORDER BY purchase_date DESC
    LIMIT :limit
"""

FAMILY_QUERY = """
    SELECT relationship, age_range, has_mobile_line, line_type, data_usage_level
    FROM family_members
    WHERE session_id = :customer_id
"""

CONVERSATIONS_QUERY = """
    SELECT c.id AS conversation_id, c.started_at, s.summary, s.category,
           s.keywords, s.sentiment
    FROM conversations c
    LEFT JOIN conversation_summaries s ON s.conversation_id = c.id
    WHERE c.session_id = :customer_id {since_clause}
    ORDER BY c.started_at DESC
    LIMIT :limit
"""


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class SignalRepository:
    """Fetch customer signals from the relational store."""

    def __init__(self, engine: Optional[Engine] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_environment()
        self.engine = engine or get_db_engine(
            self.settings.database_url, self.settings.db_secret_arn
        )
        self.db = PostgresRepository(self.engine) if self.engine else None

    def fetch_profile(self, customer_id: str) -> CustomerProfile:
        """Return the profile or raise DataUnavailableError."""
        if not self.db:
            raise DataUnavailableError("Signal store is not configured")

        row = self.db.fetch_one(PROFILE_QUERY, {"customer_id": customer_id})
        if not row:
            raise DataUnavailableError(f"No profile for customer {customer_id}")

        return CustomerProfile(
            customer_id=str(row["session_id"]),
            age_bracket=row.get("age_range"),
            occupation=row.get("occupation"),
            income_bracket=row.get("income_range"),
            customer_tier=row.get("customer_tier"),
            subscription_start_date=row.get("subscription_start_date"),
            current_plan_name=row.get("current_plan_type"),
            current_plan_price=float(row.get("current_plan_price") or 0),
            average_monthly_usage_gb=float(row.get("average_monthly_usage_gb") or 0),
        )

    def fetch_current_device(self, customer_id: str) -> Optional[DeviceRecord]:
        row = self.db.fetch_one(
            CURRENT_DEVICE_QUERY, {"customer_id": customer_id, "is_current": True}
        )
        if not row or not row.get("purchase_date"):
            return None
        return DeviceRecord(
            model_name=row.get("model_name") or "unknown",
            manufacturer=row.get("manufacturer"),
            purchase_date=row["purchase_date"],
            is_current=bool(row.get("is_current")),
            condition=row.get("condition"),
            battery_health_percent=row.get("battery_health_percent"),
        )

    def fetch_purchase_history(self, customer_id: str, limit: int) -> List[PurchaseEvent]:
        rows = self.db.fetch_all(
            PURCHASE_HISTORY_QUERY, {"customer_id": customer_id, "limit": limit}
        )
        events: List[PurchaseEvent] = []
        for row in rows:
            try:
                events.append(
                    PurchaseEvent(
                        purchase_type=row["purchase_type"],
                        product_name=row.get("product_name") or "",
                        price=float(row.get("price") or 0),
                        purchase_date=row["purchase_date"],
                        contract_months=row.get("contract_months"),
                        metadata=row.get("metadata"),
                    )
                )
            except ValueError as exc:
                logger.warning(
                    "Skipping malformed purchase row",
                    extra={"customer_id": customer_id, "error": str(exc)},
                )
        return events

    def fetch_family_members(self, customer_id: str) -> List[FamilyMember]:
        rows = self.db.fetch_all(FAMILY_QUERY, {"customer_id": customer_id})
        return [
            FamilyMember(
                relationship=row.get("relationship") or "other",
                age_bracket=row.get("age_range") or "adult",
                has_mobile_line=bool(row.get("has_mobile_line")),
                line_type=row.get("line_type"),
                usage_level=row.get("data_usage_level"),
            )
            for row in rows
        ]

    def fetch_recent_conversations(
        self, customer_id: str, since: Optional[datetime] = None, limit: int = 20
    ) -> List[ConversationSignal]:
        """Conversations newest first, one entry per conversation."""
        params = {"customer_id": customer_id, "limit": limit}
        since_clause = ""
        if since is not None:
            since_clause = "AND c.started_at >= :since"
            params["since"] = _iso(since)

        rows = self.db.fetch_all(CONVERSATIONS_QUERY.format(since_clause=since_clause), params)
        seen = set()
        conversations: List[ConversationSignal] = []
        for row in rows:
            conversation_id = str(row["conversation_id"])
            if conversation_id in seen or not row.get("started_at"):
                continue
            seen.add(conversation_id)
            conversations.append(
                ConversationSignal(
                    conversation_id=conversation_id,
                    occurred_at=row["started_at"],
                    category=row.get("category"),
                    summary=row.get("summary"),
                    keywords=row.get("keywords"),
                    sentiment=row.get("sentiment"),
                )
            )
        return conversations

    def fetch_bundle(self, customer_id: str, as_of: Optional[datetime] = None) -> SignalBundle:
        """Assemble the signal bundle for one scoring pass."""
        as_of = as_of or datetime.now(timezone.utc)
        profile = self.fetch_profile(customer_id)

        bundle = SignalBundle(
            profile=profile,
            current_device=self.fetch_current_device(customer_id),
            purchases=self.fetch_purchase_history(
                customer_id, self.settings.purchase_history_limit
            ),
            family_members=self.fetch_family_members(customer_id),
            conversations=self.fetch_recent_conversations(
                customer_id, limit=self.settings.conversation_history_limit
            ),
            as_of=as_of,
        )
        logger.info(
            "Signal bundle fetched",
            extra={
                "customer_id": customer_id,
                "has_device": bundle.current_device is not None,
                "purchases": len(bundle.purchases),
                "family_members": len(bundle.family_members),
                "conversations": len(bundle.conversations),
            },
        )
        return bundle
