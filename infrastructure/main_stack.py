"""
Main CDK Stack for the customer intent scoring service.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct, bundled_source
from infrastructure.constructs.event_pipeline import EventPipelineConstruct
from infrastructure.config.settings import Settings


class IntentScoringStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "customer-intent-scoring")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "support-automation")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer + shared VPC.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )

        shared_env = {
            "ENVIRONMENT": settings.environment,
            "DB_SECRET_ARN": data_construct.db_secret.secret_arn,
            "MODEL_ID": settings.model_id,
            "BEDROCK_REGION": settings.aws_region,
            "SENTIMENT_TIMEOUT_SECONDS": str(settings.sentiment_timeout_seconds),
        }
        code = bundled_source()

        # 2) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            vpc=data_construct.vpc,
            code=code,
            shared_env=shared_env,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # 3) Conversation-ended queue consumer.
        event_construct = EventPipelineConstruct(
            self,
            "EventPipeline",
            environment=settings.environment,
            vpc=data_construct.vpc,
            code=code,
            shared_env=shared_env,
            batch_size=settings.scoring_batch_size,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # Bedrock permissions for every Lambda that runs the sentiment aggregator.
        bedrock_policy = iam.PolicyStatement(
            actions=["bedrock:InvokeModel"],
            resources=["*"],
        )
        for fn in (api_construct.main_lambda, event_construct.scoring_lambda):
            fn.add_to_role_policy(bedrock_policy)
            data_construct.allow_from(fn)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "ConversationEndedQueueUrl", value=event_construct.queue.queue_url)
        CfnOutput(self, "DbSecretArn", value=data_construct.db_secret.secret_arn)
