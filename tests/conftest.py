"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import predict` to work when running
tests, simulating the Lambda environment where code is deployed from the
src/ directory. Also provides an in-memory SQLite signal store and bundle
builders shared by the unit tests.
"""

import json
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing."""
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("BEDROCK_REGION", "eu-west-2")
os.environ.setdefault("MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")

# Create a default boto3 session so clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")

from sqlalchemy import create_engine, text  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from models.signals import (  # noqa: E402
    ConversationSignal,
    CustomerProfile,
    DeviceRecord,
    FamilyMember,
    PurchaseEvent,
    SignalBundle,
)

AS_OF = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

SCHEMA = [
    """CREATE TABLE customer_demographics (
        session_id TEXT PRIMARY KEY, age_range TEXT, gender TEXT, occupation TEXT,
        income_range TEXT, residential_area TEXT, customer_tier TEXT,
        subscription_start_date TEXT, current_plan_type TEXT, current_plan_price REAL,
        average_monthly_usage_gb REAL)""",
    """CREATE TABLE customer_devices (
        session_id TEXT, device_type TEXT, manufacturer TEXT, model_name TEXT,
        purchase_date TEXT, is_current BOOLEAN, device_age_months INTEGER,
        condition TEXT, battery_health_percent REAL)""",
    """CREATE TABLE purchase_history (
        session_id TEXT, purchase_type TEXT, product_name TEXT, price REAL,
        purchase_date TEXT, contract_months INTEGER, metadata TEXT)""",
    """CREATE TABLE family_members (
        session_id TEXT, relationship TEXT, age_range TEXT, has_mobile_line BOOLEAN,
        line_type TEXT, data_usage_level TEXT)""",
    """CREATE TABLE conversations (
        id TEXT PRIMARY KEY, session_id TEXT, status TEXT, started_at TEXT, ended_at TEXT)""",
    """CREATE TABLE conversation_summaries (
        conversation_id TEXT, session_id TEXT, summary TEXT, category TEXT,
        keywords TEXT, sentiment TEXT)""",
    """CREATE TABLE purchase_predictions (
        id TEXT PRIMARY KEY, session_id TEXT, prediction_type TEXT,
        probability_score REAL, confidence TEXT, reasoning TEXT,
        recommended_actions TEXT, created_at TEXT)""",
]


@pytest.fixture
def as_of() -> datetime:
    return AS_OF


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite store shaped like the production tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        for ddl in SCHEMA:
            conn.execute(text(ddl))
    yield engine
    engine.dispose()


@pytest.fixture
def seed_customer(sqlite_engine):
    """Insert a customer with a worn device, family and conversation history."""

    def _seed(customer_id: str = "cust-1") -> str:
        with sqlite_engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO customer_demographics VALUES "
                    "(:sid, '40s', 'male', 'engineer', 'high', 'Seoul', 'vip', :start, "
                    "'5G Standard 100GB', 60000, 95)"
                ),
                {"sid": customer_id, "start": (AS_OF - timedelta(days=1500)).isoformat()},
            )
            conn.execute(
                text(
                    "INSERT INTO customer_devices VALUES "
                    "(:sid, 'smartphone', 'Samsung', 'Galaxy S20', :old, 0, 60, 'poor', NULL),"
                    "(:sid, 'smartphone', 'Samsung', 'Galaxy S22', :cur, 1, 1, 'poor', 72)"
                ),
                {
                    "sid": customer_id,
                    "old": (AS_OF - timedelta(days=1800)).isoformat(),
                    "cur": (AS_OF - timedelta(days=36 * 30 + 5)).isoformat(),
                },
            )
            conn.execute(
                text(
                    "INSERT INTO purchase_history VALUES "
                    "(:sid, 'device', 'Galaxy S22', 1100000, :d1, 24, :meta),"
                    "(:sid, 'add_service', 'Membership', 3000, :d2, NULL, NULL)"
                ),
                {
                    "sid": customer_id,
                    "d1": (AS_OF - timedelta(days=1085)).isoformat(),
                    "d2": (AS_OF - timedelta(days=200)).isoformat(),
                    "meta": json.dumps({"color": "Black"}),
                },
            )
            conn.execute(
                text(
                    "INSERT INTO family_members VALUES "
                    "(:sid, 'spouse', 'adult', 0, NULL, 'low'),"
                    "(:sid, 'child', 'child', 0, NULL, NULL)"
                ),
                {"sid": customer_id},
            )
            conversations = [
                ("c1", 1, "device_upgrade", ["new phone", "battery"], "neutral", "Asked about new phones."),
                ("c2", 10, "device_upgrade", ["trade-in"], "positive", "Asked about trade-in value."),
                ("c3", 20, None, [], None, None),
            ]
            for conv_id, days_ago, category, keywords, sentiment, summary in conversations:
                started = (AS_OF - timedelta(days=days_ago)).isoformat()
                conn.execute(
                    text(
                        "INSERT INTO conversations VALUES (:id, :sid, 'ended', :started, :started)"
                    ),
                    {"id": f"{customer_id}-{conv_id}", "sid": customer_id, "started": started},
                )
                if summary:
                    conn.execute(
                        text(
                            "INSERT INTO conversation_summaries VALUES "
                            "(:id, :sid, :summary, :category, :keywords, :sentiment)"
                        ),
                        {
                            "id": f"{customer_id}-{conv_id}",
                            "sid": customer_id,
                            "summary": summary,
                            "category": category,
                            "keywords": json.dumps(keywords),
                            "sentiment": sentiment,
                        },
                    )
        return customer_id

    return _seed


def _conversation(
    days_ago: float = 1,
    category=None,
    sentiment=None,
    keywords=None,
    summary="Customer contacted support.",
    conversation_id=None,
):
    occurred = AS_OF - timedelta(days=days_ago)
    return ConversationSignal(
        conversation_id=conversation_id or f"conv-{category}-{days_ago}",
        occurred_at=occurred,
        category=category,
        summary=summary,
        keywords=keywords or [],
        sentiment=sentiment,
    )


@pytest.fixture
def conversation():
    """Factory for ConversationSignal relative to AS_OF."""
    return _conversation


@pytest.fixture
def make_bundle():
    """Factory for a SignalBundle with neutral defaults."""

    def _make(
        plan_name="5G Standard 100GB",
        usage_gb=50.0,
        tier="silver",
        device_age_months=None,
        condition=None,
        battery=None,
        purchases=None,
        family=None,
        conversations=None,
    ) -> SignalBundle:
        device = None
        if device_age_months is not None:
            device = DeviceRecord(
                model_name="Galaxy S22",
                manufacturer="Samsung",
                purchase_date=AS_OF - timedelta(days=device_age_months * 30 + 1),
                is_current=True,
                condition=condition,
                battery_health_percent=battery,
            )
        return SignalBundle(
            profile=CustomerProfile(
                customer_id="cust-1",
                customer_tier=tier,
                current_plan_name=plan_name,
                current_plan_price=60000,
                average_monthly_usage_gb=usage_gb,
            ),
            current_device=device,
            purchases=purchases or [],
            family_members=family or [],
            conversations=sorted(
                conversations or [], key=lambda c: c.occurred_at, reverse=True
            ),
            as_of=AS_OF,
        )

    return _make


@pytest.fixture
def family_member():
    def _member(age_bracket="adult", has_line=False, relationship="spouse"):
        return FamilyMember(
            relationship=relationship, age_bracket=age_bracket, has_mobile_line=has_line
        )

    return _member


@pytest.fixture
def purchase():
    def _purchase(product_name="Data Sharing", purchase_type="add_service", days_ago=100):
        return PurchaseEvent(
            purchase_type=purchase_type,
            product_name=product_name,
            price=5000,
            purchase_date=AS_OF - timedelta(days=days_ago),
        )

    return _purchase
