"""
Environment-specific deployment settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Bedrock Configuration
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"  # Cost-optimized

    # Database Configuration (Cost-optimized)
    db_instance_class: str = "t3.micro"  # Free tier eligible
    db_allocated_storage: int = 20  # Minimum GB

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30

    # Conversation-ended queue
    scoring_batch_size: int = 5
    sentiment_timeout_seconds: float = 8.0

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        region = os.environ.get("AWS_REGION", cls.aws_region)

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                aws_region=region,
                db_instance_class="t3.small",  # Upgrade for prod
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                sentiment_timeout_seconds=5.0,
            )

        return cls(environment=env, aws_region=region)
