"""
Purchase-intent analysis handlers.

``lambda_handler`` serves POST /predictions/analyze for agents who trigger a
fresh run manually; ``conversation_ended_handler`` consumes queue records
emitted when a support conversation closes.
"""

from __future__ import annotations

import json
import uuid
from typing import Dict, Optional

from utils.error_handling import AppError, ValidationError, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time DB connections
_prediction_service: Optional["PredictionService"] = None


def _get_prediction_service():
    """Lazy-load PredictionService."""
    global _prediction_service
    if _prediction_service is None:
        from services.prediction_service import PredictionService
        _prediction_service = PredictionService()
    return _prediction_service


def _customer_id_from(payload: Dict) -> str:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    customer_id = payload.get("customer_id") or payload.get("session_id")
    if not customer_id or not str(customer_id).strip():
        raise ValidationError("customer_id is required")
    return str(customer_id).strip()


def lambda_handler(event, context) -> Dict:
    """Run the full pipeline for one customer and return the analysis."""
    correlation_id = str(uuid.uuid4())
    try:
        payload_body = event.get("body")
        payload = json.loads(payload_body) if payload_body else event
        customer_id = _customer_id_from(payload)

        result = _get_prediction_service().run(customer_id, correlation_id=correlation_id)

        logger.info(
            "Prediction request served",
            extra={
                "correlation_id": correlation_id,
                "customer_id": customer_id,
                "emitted": len(result.predictions),
            },
        )
        return {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json"},
            "body": result.model_dump_json(),
        }
    except AppError as exc:
        logger.warning(
            "Prediction request rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception("Prediction failed", extra={"correlation_id": correlation_id})
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(
                {
                    "message": "Failed to generate predictions",
                    "error": str(exc),
                    "correlation_id": correlation_id,
                }
            ),
        }


def conversation_ended_handler(event, context) -> Dict:
    """
    Score every customer named in an SQS batch of conversation-ended events.

    Failed records are returned as ``batchItemFailures`` so only they are
    redelivered; unknown customers are dropped since retrying cannot help.
    """
    failures = []
    processed = 0
    for record in event.get("Records", []):
        message_id = record.get("messageId", "")
        try:
            payload = json.loads(record.get("body") or "{}")
            customer_id = _customer_id_from(payload)
            _get_prediction_service().run(customer_id, correlation_id=message_id or None)
            processed += 1
        except AppError as exc:
            logger.warning(
                "Dropping conversation-ended record",
                extra={"message_id": message_id, "error": str(exc)},
            )
        except Exception:
            logger.exception(
                "Conversation-ended scoring failed", extra={"message_id": message_id}
            )
            failures.append({"itemIdentifier": message_id})

    logger.info(
        "Conversation-ended batch processed",
        extra={"processed": processed, "failed": len(failures)},
    )
    return {"batchItemFailures": failures}
