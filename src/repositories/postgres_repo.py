"""PostgreSQL repository using SQLAlchemy Core."""

from __future__ import annotations

import json
from typing import Any, List, Optional

import boto3
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from utils.logging_config import get_logger

logger = get_logger(__name__)

# Connection pooling for Lambda reuse.
_engine: Optional[Engine] = None


def get_db_engine(
    database_url: Optional[str] = None, secret_arn: Optional[str] = None
) -> Optional[Engine]:
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        db_url = database_url
        if not db_url and secret_arn:
            db_url = _secret_to_db_url(secret_arn)
        if not db_url:
            logger.warning("DATABASE_URL not set; signal store is unavailable")
            return None
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=2,
            pool_pre_ping=True,
            pool_recycle=300,
        )
    return _engine


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
        host = secret.get("host")
        port = secret.get("port", 5432)
        username = secret.get("username")
        password = secret.get("password")
        dbname = secret.get("dbname", "postgres")
        if not (host and username and password):
            return None
        return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None


class PostgresRepository:
    """Thin wrapper to keep SQL organized and parameterized."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def fetch_one(self, query: str, params: dict) -> Optional[dict]:
        """Execute a SELECT and return one row as dict."""
        stmt = text(query)
        with self.engine.connect() as conn:
            row = conn.execute(stmt, params).fetchone()
            return dict(row._mapping) if row else None

    def fetch_all(self, query: str, params: dict) -> List[dict]:
        """Execute a SELECT and return every row as dict."""
        stmt = text(query)
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt, params)]

    def execute(self, query: str, params: dict) -> Any:
        """Execute a parameterized statement in its own transaction."""
        stmt = text(query)
        with self.engine.begin() as conn:
            return conn.execute(stmt, params)
