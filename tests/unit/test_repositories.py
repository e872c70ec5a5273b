"""
Repository tests against an in-memory SQLite store.

The SQL is plain SQLAlchemy Core text, so the same statements run here and
against PostgreSQL.
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from config.settings import Settings
from models.prediction import ConfidenceTier, Prediction, PredictionType
from models.signals import CustomerTier, DeviceCondition
from repositories.prediction_repository import PredictionRepository
from repositories.signal_repository import SignalRepository
from utils.error_handling import DataUnavailableError, PersistenceFailure


@pytest.fixture
def signals(sqlite_engine):
    return SignalRepository(engine=sqlite_engine, settings=Settings())


@pytest.fixture
def store(sqlite_engine):
    return PredictionRepository(engine=sqlite_engine, settings=Settings())


def _prediction(as_of, prediction_type=PredictionType.DEVICE_UPGRADE, minutes=0, pid=None):
    return Prediction(
        id=pid or f"{prediction_type.value}-{minutes}",
        customer_id="cust-1",
        prediction_type=prediction_type,
        probability_score=0.8,
        confidence=ConfidenceTier.HIGH,
        reasoning="Some reasoning.",
        recommended_actions=["Send device discount coupon"],
        created_at=as_of + timedelta(minutes=minutes),
    )


class TestSignalRepository:
    """Signal fetching."""

    def test_unknown_customer_raises(self, signals):
        with pytest.raises(DataUnavailableError):
            signals.fetch_profile("missing")

    def test_unconfigured_store_raises(self):
        repo = SignalRepository(engine=None, settings=Settings(database_url=None))
        with pytest.raises(DataUnavailableError):
            repo.fetch_bundle("cust-1")

    def test_profile_fields(self, signals, seed_customer):
        seed_customer()
        profile = signals.fetch_profile("cust-1")
        assert profile.customer_tier == CustomerTier.VIP
        assert profile.current_plan_name == "5G Standard 100GB"
        assert profile.average_monthly_usage_gb == 95

    def test_current_device_only(self, signals, seed_customer, as_of):
        seed_customer()
        device = signals.fetch_current_device("cust-1")
        assert device.model_name == "Galaxy S22"
        assert device.is_current is True
        assert device.condition == DeviceCondition.POOR
        assert device.age_in_months(as_of) == 36

    def test_purchase_history_decodes_metadata(self, signals, seed_customer):
        seed_customer()
        events = signals.fetch_purchase_history("cust-1", limit=10)
        assert [e.product_name for e in events] == ["Membership", "Galaxy S22"]
        assert events[1].metadata == {"color": "Black"}

    def test_conversations_newest_first_with_missing_summaries(self, signals, seed_customer):
        seed_customer()
        conversations = signals.fetch_recent_conversations("cust-1")
        assert [c.conversation_id for c in conversations] == ["cust-1-c1", "cust-1-c2", "cust-1-c3"]
        assert conversations[0].keywords == ["new phone", "battery"]
        assert conversations[2].summary is None
        assert conversations[2].keywords == []

    def test_conversations_since(self, signals, seed_customer, as_of):
        seed_customer()
        conversations = signals.fetch_recent_conversations(
            "cust-1", since=as_of - timedelta(days=3)
        )
        assert [c.conversation_id for c in conversations] == ["cust-1-c1"]

    def test_missing_relations_are_empty(self, signals, sqlite_engine):
        with sqlite_engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO customer_demographics (session_id, customer_tier, "
                    "current_plan_type, average_monthly_usage_gb) VALUES ('bare', NULL, NULL, NULL)"
                )
            )
        bundle = signals.fetch_bundle("bare")
        assert bundle.current_device is None
        assert bundle.purchases == []
        assert bundle.family_members == []
        assert bundle.conversations == []
        assert bundle.profile.customer_tier == CustomerTier.BRONZE

    def test_bundle(self, signals, seed_customer, as_of):
        seed_customer()
        bundle = signals.fetch_bundle("cust-1", as_of=as_of)
        assert bundle.customer_id == "cust-1"
        assert len(bundle.family_members) == 2
        assert bundle.as_of == as_of


class TestPredictionRepository:
    """Append-only persistence."""

    def test_rows_accumulate_and_latest_wins(self, store, as_of):
        store.save_prediction(_prediction(as_of, minutes=0))
        store.save_prediction(_prediction(as_of, minutes=5))
        store.save_prediction(_prediction(as_of, PredictionType.CHURN_PREVENTION, minutes=1))

        latest = store.fetch_latest_predictions("cust-1")

        assert [p["prediction_type"] for p in latest] == ["device_upgrade", "churn_prevention"]
        assert latest[0]["id"] == "device_upgrade-5"
        assert latest[0]["recommended_actions"] == ["Send device discount coupon"]

    def test_failed_write_does_not_block_siblings(self, store, as_of):
        store.save_prediction(_prediction(as_of, pid="dup"))

        reports = store.save_all(
            [
                _prediction(as_of, pid="dup"),
                _prediction(as_of, PredictionType.PLAN_CHANGE, pid="fresh"),
            ]
        )

        assert [r.saved for r in reports] == [False, True]
        assert reports[0].error

    def test_unconfigured_store_raises_persistence_failure(self, as_of):
        repo = PredictionRepository(engine=None, settings=Settings(database_url=None))
        with pytest.raises(PersistenceFailure):
            repo.save_prediction(_prediction(as_of))
        assert repo.fetch_latest_predictions("cust-1") == []
