"""API infrastructure stack for the magic item browser.

Contains:
- Catalog and roll table Lambda functions
- API Gateway REST API with CORS, proxying every route to its function
- Stage configuration for dev/prod
"""
from aws_cdk import CfnOutput, Duration, RemovalPolicy, Stack
from aws_cdk import aws_apigateway as apigw
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_logs as logs
from constructs import Construct

from .base_stack import LAMBDAS_DIR, MagicItemsBaseStack

PROD_ORIGIN = "https://magic-items.example.com"
FUNCTION_ASSET_EXCLUDES = ["tests", "shared", "requirements.txt", "**/__pycache__"]


class MagicItemsApiStack(Stack):
    """API infrastructure stack with API Gateway and Lambda functions."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        environment: str,
        base_stack: MagicItemsBaseStack,
        max_tables_per_user: int = 100,
        **kwargs,
    ) -> None:
        """Initialize API stack.

        Args:
            scope: CDK scope
            construct_id: Stack identifier
            environment: Deployment environment (dev/prod)
            base_stack: Reference to base infrastructure stack
            max_tables_per_user: Roll table quota per owner
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.deploy_env = environment
        self.prefix = f"magic-items-{environment}"
        self.base_stack = base_stack
        self.allowed_origin = PROD_ORIGIN if environment == "prod" else "*"

        self.catalog_function = self._create_function(
            "MagicItems",
            "magic-items",
            "magic_items.handler.lambda_handler",
        )
        self.roll_tables_function = self._create_function(
            "RollTables",
            "roll-tables",
            "roll_tables.handler.lambda_handler",
            {"MAX_TABLES_PER_USER": str(max_tables_per_user)},
        )

        # Catalog is read-only; roll tables read the catalog and own their rows
        base_stack.table.grant_read_data(self.catalog_function)
        base_stack.table.grant_read_write_data(self.roll_tables_function)

        self.api = self._create_api()

        self._create_outputs()

    def _create_function(
        self,
        construct_id: str,
        name: str,
        handler: str,
        extra_environment: dict[str, str] | None = None,
    ) -> lambda_.Function:
        """Create a Lambda function with standard configuration."""
        log_group = logs.LogGroup(
            self,
            f"{construct_id}Logs",
            log_group_name=f"/aws/lambda/{self.prefix}-{name}",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY,
        )

        environment = {
            "TABLE_NAME": self.base_stack.table.table_name,
            "ENVIRONMENT": self.deploy_env,
            "ALLOWED_ORIGIN": self.allowed_origin,
            "POWERTOOLS_SERVICE_NAME": name,
            "POWERTOOLS_LOG_LEVEL": "DEBUG" if self.deploy_env == "dev" else "INFO",
            **(extra_environment or {}),
        }

        return lambda_.Function(
            self,
            f"{construct_id}Function",
            function_name=f"{self.prefix}-{name}",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler=handler,
            code=lambda_.Code.from_asset(LAMBDAS_DIR, exclude=FUNCTION_ASSET_EXCLUDES),
            layers=[self.base_stack.shared_layer],
            environment=environment,
            timeout=Duration.seconds(30),
            memory_size=512,
            tracing=lambda_.Tracing.ACTIVE,
            log_group=log_group,
        )

    def _create_api(self) -> apigw.RestApi:
        """Create API Gateway REST API with CORS configuration."""
        cors_origins = (
            [PROD_ORIGIN] if self.deploy_env == "prod" else apigw.Cors.ALL_ORIGINS
        )

        api = apigw.RestApi(
            self,
            "Api",
            rest_api_name=f"{self.prefix}-api",
            description="Magic item catalog and roll table API",
            deploy_options=apigw.StageOptions(
                stage_name=self.deploy_env,
                throttling_rate_limit=100,
                throttling_burst_limit=200,
            ),
            default_cors_preflight_options=apigw.CorsOptions(
                allow_origins=cors_origins,
                allow_methods=apigw.Cors.ALL_METHODS,
                allow_headers=[
                    "Content-Type",
                    "Authorization",
                    "X-User-Id",
                ],
            ),
        )

        self._add_catalog_routes(api, apigw.LambdaIntegration(self.catalog_function, proxy=True))
        self._add_roll_table_routes(
            api, apigw.LambdaIntegration(self.roll_tables_function, proxy=True)
        )

        return api

    def _add_catalog_routes(self, api: apigw.RestApi, integration: apigw.LambdaIntegration) -> None:
        # /magic-items
        items = api.root.add_resource("magic-items")
        items.add_method("GET", integration)
        items.add_resource("facets").add_method("GET", integration)
        items.add_resource("suggestions").add_method("GET", integration)

        # /magic-items/{slug}
        item = items.add_resource("{slug}")
        item.add_method("GET", integration)
        item.add_resource("similar").add_method("GET", integration)

    def _add_roll_table_routes(
        self, api: apigw.RestApi, integration: apigw.LambdaIntegration
    ) -> None:
        # /roll-tables
        tables = api.root.add_resource("roll-tables")
        tables.add_method("GET", integration)
        tables.add_method("POST", integration)
        tables.add_resource("generate").add_method("POST", integration)

        # /roll-tables/shared/{token} (no identity required except duplicate)
        shared = tables.add_resource("shared").add_resource("{token}")
        shared.add_method("GET", integration)
        shared.add_resource("roll").add_method("POST", integration)
        shared.add_resource("duplicate").add_method("POST", integration)

        # /roll-tables/{tableId}
        table = tables.add_resource("{tableId}")
        table.add_method("GET", integration)
        table.add_method("PUT", integration)
        table.add_method("DELETE", integration)
        table.add_resource("roll").add_method("POST", integration)
        table.add_resource("duplicate").add_method("POST", integration)
        table.add_resource("stats").add_method("GET", integration)
        table.add_resource("export").add_method("GET", integration)

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs."""
        CfnOutput(
            self,
            "ApiUrl",
            value=self.api.url,
            description="API Gateway URL",
            export_name=f"{self.prefix}-api-url",
        )

        CfnOutput(
            self,
            "ApiId",
            value=self.api.rest_api_id,
            description="API Gateway ID",
            export_name=f"{self.prefix}-api-id",
        )

        CfnOutput(
            self,
            "RollTablesFunctionArn",
            value=self.roll_tables_function.function_arn,
            description="Roll table Lambda function ARN",
            export_name=f"{self.prefix}-roll-tables-function-arn",
        )
