"""
Environment-specific configuration settings.

Defaults keep the engine runnable locally; every value can be overridden
through environment variables in the Lambda configuration.
"""

from dataclasses import dataclass
import os
from typing import Optional


@dataclass
class Settings:
    """Application settings for one scoring deployment."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Data store
    database_url: Optional[str] = None
    db_secret_arn: Optional[str] = None
    purchase_history_limit: int = 50
    conversation_history_limit: int = 20

    # Bedrock Configuration
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"  # Cost-optimized
    bedrock_region: str = "eu-west-2"

    # Sentiment aggregation
    sentiment_window_days: int = 3
    sentiment_max_conversations: int = 10
    sentiment_timeout_seconds: float = 8.0
    sentiment_max_tokens: int = 200

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        region = (
            os.environ.get("BEDROCK_REGION")
            or os.environ.get("AWS_REGION")
            or cls.bedrock_region
        )
        settings = cls(
            environment=env,
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
            database_url=os.environ.get("DATABASE_URL"),
            db_secret_arn=os.environ.get("DB_SECRET_ARN"),
            purchase_history_limit=int(
                os.environ.get("PURCHASE_HISTORY_LIMIT", cls.purchase_history_limit)
            ),
            conversation_history_limit=int(
                os.environ.get("CONVERSATION_HISTORY_LIMIT", cls.conversation_history_limit)
            ),
            model_id=os.environ.get("MODEL_ID", cls.model_id),
            bedrock_region=region,
            sentiment_window_days=int(
                os.environ.get("SENTIMENT_WINDOW_DAYS", cls.sentiment_window_days)
            ),
            sentiment_max_conversations=int(
                os.environ.get("SENTIMENT_MAX_CONVERSATIONS", cls.sentiment_max_conversations)
            ),
            sentiment_timeout_seconds=float(
                os.environ.get("SENTIMENT_TIMEOUT_SECONDS", cls.sentiment_timeout_seconds)
            ),
        )

        # Production overrides
        if env == "prod":
            settings.sentiment_timeout_seconds = min(settings.sentiment_timeout_seconds, 5.0)

        return settings
