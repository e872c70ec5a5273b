"""Structured logger setup shared across Lambdas."""

import logging
import os

from pythonjsonlogger import jsonlogger


def get_logger(name: str) -> logging.Logger:
    """
    Configure a JSON logger once and reuse it.

    Scoring context (customer_id, prediction_type, correlation_id) is passed
    through ``extra`` so every line stays queryable in CloudWatch.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(asctime)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger
