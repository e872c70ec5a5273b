"""Handler for GET /customers/{id}/predictions."""

import json
from typing import Optional

from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded repository to avoid import-time DB connections
_prediction_repository: Optional["PredictionRepository"] = None


def _get_prediction_repository():
    """Lazy-load PredictionRepository."""
    global _prediction_repository
    if _prediction_repository is None:
        from repositories.prediction_repository import PredictionRepository
        _prediction_repository = PredictionRepository()
    return _prediction_repository


def lambda_handler(event, context):
    """Return the newest stored prediction per type for a customer."""
    path_params = event.get("pathParameters") or {}
    query_params = event.get("queryStringParameters") or {}

    customer_id = query_params.get("customer_id") or path_params.get("id")
    if not customer_id:
        return {
            "statusCode": 400,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({"message": "customer_id is required"}),
        }

    predictions = _get_prediction_repository().fetch_latest_predictions(customer_id)

    logger.info(
        "Latest predictions served",
        extra={"customer_id": customer_id, "count": len(predictions)},
    )
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"customer_id": customer_id, "predictions": predictions}),
    }
