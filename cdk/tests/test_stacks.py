"""Tests for magic item browser CDK stacks."""
import aws_cdk as cdk
from aws_cdk import assertions

from stacks.api_stack import MagicItemsApiStack
from stacks.base_stack import MagicItemsBaseStack

# Skip Docker bundling of the shared layer during synthesis
NO_BUNDLING = {"aws:cdk:bundling-stacks": []}


def make_app() -> cdk.App:
    return cdk.App(context=NO_BUNDLING)


def api_template(environment: str = "test") -> assertions.Template:
    """Synthesize the API stack with its base stack."""
    app = make_app()
    base_stack = MagicItemsBaseStack(app, "TestBaseStack", environment=environment)
    api_stack = MagicItemsApiStack(
        app,
        "TestApiStack",
        environment=environment,
        base_stack=base_stack,
        max_tables_per_user=25,
    )
    return assertions.Template.from_stack(api_stack)


class TestBaseStack:
    """Tests for MagicItemsBaseStack."""

    def test_dynamodb_table_created(self):
        """Test that DynamoDB table is created with correct schema."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="test")
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties(
            "AWS::DynamoDB::Table",
            {
                "TableName": "magic-items-test-main",
                "KeySchema": [
                    {"AttributeName": "PK", "KeyType": "HASH"},
                    {"AttributeName": "SK", "KeyType": "RANGE"},
                ],
                "BillingMode": "PAY_PER_REQUEST",
            },
        )

    def test_dynamodb_table_has_gsi(self):
        """Test that DynamoDB table has GSI1 for owner listings."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="test")
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties(
            "AWS::DynamoDB::Table",
            {
                "GlobalSecondaryIndexes": assertions.Match.array_with(
                    [
                        assertions.Match.object_like(
                            {
                                "IndexName": "GSI1",
                                "KeySchema": [
                                    {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                                    {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                                ],
                            }
                        )
                    ]
                ),
            },
        )

    def test_lambda_layer_created(self):
        """Test that Lambda layer is created."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="test")
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties(
            "AWS::Lambda::LayerVersion",
            {"Description": "Shared catalog, roll table and storage code"},
        )

    def test_dev_environment_destroys_table(self):
        """Test that dev environment uses DESTROY removal policy."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="dev")
        template = assertions.Template.from_stack(stack)

        template.has_resource(
            "AWS::DynamoDB::Table",
            {
                "DeletionPolicy": "Delete",
                "UpdateReplacePolicy": "Delete",
            },
        )

    def test_prod_environment_retains_table(self):
        """Test that prod environment uses RETAIN removal policy."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="prod")
        template = assertions.Template.from_stack(stack)

        template.has_resource(
            "AWS::DynamoDB::Table",
            {
                "DeletionPolicy": "Retain",
                "UpdateReplacePolicy": "Retain",
            },
        )

    def test_outputs_created(self):
        """Test that stack outputs are created."""
        stack = MagicItemsBaseStack(make_app(), "TestBaseStack", environment="test")
        template = assertions.Template.from_stack(stack)

        template.has_output("TableName", {})
        template.has_output("TableArn", {})
        template.has_output("SharedLayerArn", {})


class TestApiStack:
    """Tests for MagicItemsApiStack."""

    def test_api_gateway_created(self):
        """Test that API Gateway is created."""
        api_template().has_resource_properties(
            "AWS::ApiGateway::RestApi",
            {"Name": "magic-items-test-api"},
        )

    def test_functions_created(self):
        """Both handlers are deployed with their entry points."""
        template = api_template()

        template.resource_count_is("AWS::Lambda::Function", 2)
        template.has_resource_properties(
            "AWS::Lambda::Function",
            {
                "FunctionName": "magic-items-test-magic-items",
                "Handler": "magic_items.handler.lambda_handler",
                "Runtime": "python3.12",
                "TracingConfig": {"Mode": "Active"},
            },
        )
        template.has_resource_properties(
            "AWS::Lambda::Function",
            {
                "FunctionName": "magic-items-test-roll-tables",
                "Handler": "roll_tables.handler.lambda_handler",
            },
        )

    def test_roll_tables_quota_configured(self):
        """The table quota reaches the roll table function."""
        api_template().has_resource_properties(
            "AWS::Lambda::Function",
            {
                "FunctionName": "magic-items-test-roll-tables",
                "Environment": {
                    "Variables": assertions.Match.object_like(
                        {"MAX_TABLES_PER_USER": "25", "ALLOWED_ORIGIN": "*"}
                    )
                },
            },
        )

    def test_prod_origin(self):
        """Production functions only allow the production origin."""
        api_template("prod").has_resource_properties(
            "AWS::Lambda::Function",
            {
                "Environment": {
                    "Variables": assertions.Match.object_like(
                        {"ALLOWED_ORIGIN": "https://magic-items.example.com"}
                    )
                },
            },
        )

    def test_api_resources_created(self):
        """Every route segment becomes an API Gateway resource."""
        resources = api_template().find_resources("AWS::ApiGateway::Resource")
        path_parts = sorted(r["Properties"]["PathPart"] for r in resources.values())

        assert path_parts == sorted(
            [
                "magic-items",
                "facets",
                "suggestions",
                "{slug}",
                "similar",
                "roll-tables",
                "generate",
                "shared",
                "{token}",
                "roll",
                "duplicate",
                "{tableId}",
                "roll",
                "duplicate",
                "stats",
                "export",
            ]
        )

    def test_api_methods_are_lambda_proxies(self):
        """Non-preflight methods proxy to Lambda."""
        methods = api_template().find_resources("AWS::ApiGateway::Method")
        proxied = [
            m for m in methods.values() if m["Properties"]["HttpMethod"] != "OPTIONS"
        ]

        assert len(proxied) == 18
        assert all(m["Properties"]["Integration"]["Type"] == "AWS_PROXY" for m in proxied)

    def test_api_outputs_created(self):
        """Test that API stack outputs are created."""
        template = api_template()

        template.has_output("ApiUrl", {})
        template.has_output("ApiId", {})
        template.has_output("RollTablesFunctionArn", {})
