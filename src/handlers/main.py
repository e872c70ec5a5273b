"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

One Lambda keeps the Bedrock client and DB pool warm across routes while the
modules stay small and individually testable.
"""

from typing import Callable, Dict, Tuple
import json

from . import customer_predictions, health_check, predict


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path}"

    # Map route keys to handler callables. Using startswith for path params.
    route_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /health", health_check.lambda_handler),
        ("POST /predictions/analyze", predict.lambda_handler),
        ("GET /customers/", customer_predictions.lambda_handler),
    )

    for prefix, handler in route_table:
        if route_key.startswith(prefix):
            return handler(event, context)

    return _response(404, {"message": "Route not found", "route": route_key})
