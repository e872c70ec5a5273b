"""
Prediction repository.

Every run appends rows; nothing is updated or deduplicated. Readers take the
newest row per (customer, prediction type).
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from sqlalchemy.engine import Engine

from config.settings import Settings
from models.prediction import PersistenceReport, Prediction, PredictionType
from repositories.postgres_repo import PostgresRepository, get_db_engine
from utils.error_handling import PersistenceFailure
from utils.logging_config import get_logger

logger = get_logger(__name__)


INSERT_PREDICTION = """
    INSERT INTO purchase_predictions (
        id, session_id, prediction_type, probability_score, confidence,
        reasoning, recommended_actions, created_at
    ) VALUES (
        :id, :session_id, :prediction_type, :probability_score, :confidence,
        :reasoning, :recommended_actions, :created_at
    )
"""

PREDICTIONS_QUERY = """
    SELECT id, session_id, prediction_type, probability_score, confidence,
           reasoning, recommended_actions, created_at
    FROM purchase_predictions
    WHERE session_id = :customer_id
    ORDER BY created_at DESC
    LIMIT :limit
"""


def _timestamp(value) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


class PredictionRepository:
    """Append-only sink for emitted predictions."""

    def __init__(self, engine: Optional[Engine] = None, settings: Optional[Settings] = None):
        settings = settings or Settings.from_environment()
        self.engine = engine or get_db_engine(settings.database_url, settings.db_secret_arn)
        self.db = PostgresRepository(self.engine) if self.engine else None

    def save_prediction(self, prediction: Prediction) -> None:
        """Insert one row; raises PersistenceFailure on any store error."""
        if not self.db:
            raise PersistenceFailure("Prediction store is not configured")
        try:
            self.db.execute(
                INSERT_PREDICTION,
                {
                    "id": prediction.id,
                    "session_id": prediction.customer_id,
                    "prediction_type": prediction.prediction_type.value,
                    "probability_score": prediction.probability_score,
                    "confidence": prediction.confidence.value,
                    "reasoning": prediction.reasoning,
                    "recommended_actions": json.dumps(prediction.recommended_actions),
                    "created_at": prediction.created_at.isoformat(),
                },
            )
        except Exception as exc:
            raise PersistenceFailure(str(exc)) from exc

    def save_all(self, predictions: List[Prediction]) -> List[PersistenceReport]:
        """Write each prediction independently and report per item."""
        reports: List[PersistenceReport] = []
        for prediction in predictions:
            try:
                self.save_prediction(prediction)
                reports.append(
                    PersistenceReport(
                        prediction_id=prediction.id,
                        prediction_type=prediction.prediction_type,
                        saved=True,
                    )
                )
            except PersistenceFailure as exc:
                logger.error(
                    "Prediction persistence failed",
                    extra={
                        "customer_id": prediction.customer_id,
                        "prediction_type": prediction.prediction_type.value,
                        "error": str(exc),
                    },
                )
                reports.append(
                    PersistenceReport(
                        prediction_id=prediction.id,
                        prediction_type=prediction.prediction_type,
                        saved=False,
                        error=str(exc),
                    )
                )
        return reports

    def fetch_latest_predictions(self, customer_id: str, limit: int = 100) -> List[dict]:
        """Newest row per prediction type, ordered by type declaration."""
        if not self.db:
            return []
        rows = self.db.fetch_all(PREDICTIONS_QUERY, {"customer_id": customer_id, "limit": limit})

        latest: Dict[str, dict] = {}
        for row in rows:
            latest.setdefault(row["prediction_type"], row)

        results = []
        for prediction_type in PredictionType:
            row = latest.get(prediction_type.value)
            if not row:
                continue
            actions = row.get("recommended_actions")
            if isinstance(actions, str):
                try:
                    actions = json.loads(actions)
                except ValueError:
                    actions = []
            results.append(
                {
                    "id": str(row["id"]),
                    "customer_id": str(row["session_id"]),
                    "prediction_type": row["prediction_type"],
                    "probability_score": float(row["probability_score"]),
                    "confidence": row.get("confidence"),
                    "reasoning": row.get("reasoning"),
                    "recommended_actions": actions or [],
                    "created_at": _timestamp(row["created_at"]),
                }
            )
        return results
