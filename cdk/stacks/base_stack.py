"""Base infrastructure stack for the magic item browser.

Contains:
- DynamoDB table with single-table design (catalog rows, roll tables,
  share-token pointers) and GSI1 for per-user table listings
- Lambda layer for shared Python code and dependencies
"""
from pathlib import Path

from aws_cdk import BundlingOptions, CfnOutput, RemovalPolicy, Stack
from aws_cdk import aws_dynamodb as dynamodb
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

LAMBDAS_DIR = str(Path(__file__).resolve().parents[2] / "lambdas")


class MagicItemsBaseStack(Stack):
    """Base infrastructure stack with DynamoDB and the shared Lambda layer."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        environment: str = "dev",
        **kwargs,
    ) -> None:
        """Initialize base stack.

        Args:
            scope: CDK scope
            construct_id: Stack identifier
            environment: Deployment environment (dev/prod)
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.deploy_env = environment
        self.prefix = f"magic-items-{environment}"

        self.table = self._create_table()
        self.shared_layer = self._create_lambda_layer()

        self._create_outputs()

    def _create_table(self) -> dynamodb.Table:
        """Create DynamoDB table with single-table design."""
        table = dynamodb.Table(
            self,
            "MainTable",
            table_name=f"{self.prefix}-main",
            partition_key=dynamodb.Attribute(
                name="PK",
                type=dynamodb.AttributeType.STRING,
            ),
            sort_key=dynamodb.Attribute(
                name="SK",
                type=dynamodb.AttributeType.STRING,
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=(
                RemovalPolicy.RETAIN
                if self.deploy_env == "prod"
                else RemovalPolicy.DESTROY
            ),
            point_in_time_recovery=self.deploy_env == "prod",
        )

        # Owner listings: GSI1PK=USER#<id>, GSI1SK=TABLE#<created_at>#<id>
        table.add_global_secondary_index(
            index_name="GSI1",
            partition_key=dynamodb.Attribute(
                name="GSI1PK",
                type=dynamodb.AttributeType.STRING,
            ),
            sort_key=dynamodb.Attribute(
                name="GSI1SK",
                type=dynamodb.AttributeType.STRING,
            ),
            projection_type=dynamodb.ProjectionType.ALL,
        )

        return table

    def _create_lambda_layer(self) -> lambda_.LayerVersion:
        """Create Lambda layer for shared Python code."""
        return lambda_.LayerVersion(
            self,
            "SharedLayer",
            layer_version_name=f"{self.prefix}-shared",
            code=lambda_.Code.from_asset(
                LAMBDAS_DIR,
                bundling=BundlingOptions(
                    image=lambda_.Runtime.PYTHON_3_12.bundling_image,
                    command=[
                        "bash",
                        "-c",
                        "pip install -r requirements.txt -t /asset-output/python "
                        "&& cp -r shared /asset-output/python/",
                    ],
                ),
            ),
            compatible_runtimes=[lambda_.Runtime.PYTHON_3_12],
            description="Shared catalog, roll table and storage code",
        )

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs."""
        CfnOutput(
            self,
            "TableName",
            value=self.table.table_name,
            description="DynamoDB table name",
            export_name=f"{self.prefix}-table-name",
        )

        CfnOutput(
            self,
            "TableArn",
            value=self.table.table_arn,
            description="DynamoDB table ARN",
            export_name=f"{self.prefix}-table-arn",
        )

        CfnOutput(
            self,
            "SharedLayerArn",
            value=self.shared_layer.layer_version_arn,
            description="Shared Lambda layer ARN",
            export_name=f"{self.prefix}-shared-layer-arn",
        )
