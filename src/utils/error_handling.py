"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class DataUnavailableError(AppError):
    """Raised when a customer identifier resolves to no profile. Aborts the run."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class SentimentAnalysisDegraded(AppError):
    """Model call failed or returned garbage; the aggregator recovers locally."""

    def __init__(self, message: str = "Sentiment analysis unavailable"):
        super().__init__(message, status_code=503)


class PersistenceFailure(AppError):
    """One prediction could not be written."""

    def __init__(self, message: str = "Failed to persist prediction"):
        super().__init__(message, status_code=500)


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"message": str(error), "status": "error"}),
    }
