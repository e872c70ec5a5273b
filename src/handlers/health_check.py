"""Lightweight health check handler."""

import json
import os
from datetime import datetime, timezone

from models.prediction import PredictionType


def lambda_handler(event, context):
    """Report liveness plus the prediction types this deployment scores."""
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "status": "ok",
                "environment": os.environ.get("ENVIRONMENT", "dev"),
                "prediction_types": [t.value for t in PredictionType],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
    }
