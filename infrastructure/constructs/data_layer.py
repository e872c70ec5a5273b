"""
Data layer construct: VPC + RDS PostgreSQL holding customer signals and predictions.
"""

from aws_cdk import (
    RemovalPolicy,
    Duration,
    aws_ec2 as ec2,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct


class DataLayerConstruct(Construct):
    """Provision the network and database resources."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        db_instance_class: str,
        db_allocated_storage: int = 20,
    ) -> None:
        super().__init__(scope, construct_id)

        # No NAT: Lambdas reach Bedrock and Secrets Manager through endpoints.
        self.vpc = ec2.Vpc(
            self,
            "Vpc",
            max_azs=2,
            nat_gateways=0,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="isolated", subnet_type=ec2.SubnetType.PRIVATE_ISOLATED, cidr_mask=24
                ),
            ],
        )
        self.vpc.add_interface_endpoint(
            "BedrockRuntimeEndpoint",
            service=ec2.InterfaceVpcEndpointAwsService.BEDROCK_RUNTIME,
        )
        self.vpc.add_interface_endpoint(
            "SecretsManagerEndpoint",
            service=ec2.InterfaceVpcEndpointAwsService.SECRETS_MANAGER,
        )

        # Secret for DB credentials (username auto-generated).
        self.db_secret = secretsmanager.Secret(
            self,
            "DbCredentials",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template='{"username": "app_user"}',
                generate_string_key="password",
                exclude_punctuation=True,
            ),
        )

        # RDS instance (single-AZ, storage-optimized for cost).
        self.db_instance = rds.DatabaseInstance(
            self,
            "Postgres",
            engine=rds.DatabaseInstanceEngine.postgres(
                version=rds.PostgresEngineVersion.VER_16_3
            ),
            vpc=self.vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            instance_type=ec2.InstanceType(db_instance_class),
            credentials=rds.Credentials.from_secret(self.db_secret),
            allocated_storage=db_allocated_storage,
            storage_encrypted=True,
            backup_retention=Duration.days(3 if environment == "prod" else 0),
            multi_az=environment == "prod",
            publicly_accessible=False,
            deletion_protection=environment == "prod",
            removal_policy=RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY,
        )

    def allow_from(self, fn) -> None:
        """Open the Postgres port to a Lambda and let it read the credentials."""
        self.db_instance.connections.allow_default_port_from(fn)
        self.db_secret.grant_read(fn)
