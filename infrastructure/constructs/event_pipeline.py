"""
Event pipeline: conversation-ended messages -> SQS -> scoring Lambda.
"""

from typing import Dict

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_lambda_event_sources as event_sources,
    aws_logs as logs,
    aws_sqs as sqs,
)
from constructs import Construct


class EventPipelineConstruct(Construct):
    """Score a customer each time one of their support conversations closes."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        shared_env: Dict[str, str],
        batch_size: int = 5,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        self.dead_letter_queue = sqs.Queue(
            self,
            "ConversationEndedDlq",
            queue_name=f"conversation-ended-dlq-{environment}",
            retention_period=Duration.days(14),
        )

        # Visibility must exceed the consumer timeout or messages are redelivered mid-run.
        self.queue = sqs.Queue(
            self,
            "ConversationEndedQueue",
            queue_name=f"conversation-ended-{environment}",
            visibility_timeout=Duration.seconds(lambda_timeout_seconds * 6),
            dead_letter_queue=sqs.DeadLetterQueue(
                max_receive_count=3, queue=self.dead_letter_queue
            ),
        )

        self.scoring_lambda = _lambda.Function(
            self,
            "ConversationEndedHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.predict.conversation_ended_handler",
            code=code,
            timeout=Duration.seconds(lambda_timeout_seconds),
            memory_size=512,
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            environment=shared_env,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        self.scoring_lambda.add_event_source(
            event_sources.SqsEventSource(
                self.queue,
                batch_size=batch_size,
                report_batch_item_failures=True,
            )
        )
