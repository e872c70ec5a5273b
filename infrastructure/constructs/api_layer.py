"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps the Bedrock client and DB pool warm across routes.
Uses Docker bundling for dependencies (runs in CI/CD pipeline).
"""

from typing import Dict

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct


def bundled_source() -> _lambda.Code:
    """src/ plus requirements-lambda.txt installed into the asset."""
    return _lambda.Code.from_asset(
        "src",
        bundling=BundlingOptions(
            image=_lambda.Runtime.PYTHON_3_12.bundling_image,
            command=[
                "bash", "-c",
                "pip install -r requirements-lambda.txt -t /asset-output && "
                "cp -r . /asset-output"
            ],
        ),
    )


class ApiLayerConstruct(Construct):
    """Expose scoring endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        shared_env: Dict[str, str],
        lambda_memory_mb: int = 512,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            environment=shared_env,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # HTTP API with minimal latency and low cost.
        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"intent-scoring-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.GET, apigw.CorsHttpMethod.POST],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        route_defs = [
            (apigw.HttpMethod.POST, "/predictions/analyze"),
            (apigw.HttpMethod.GET, "/customers/{id}/predictions"),
            (apigw.HttpMethod.GET, "/health"),
        ]

        for method, path in route_defs:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
