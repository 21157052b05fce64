#!/usr/bin/env python3
"""CDK app entry point for the magic item browser."""
import os

import aws_cdk as cdk

from stacks.api_stack import MagicItemsApiStack
from stacks.base_stack import MagicItemsBaseStack

app = cdk.App()

env = cdk.Environment(
    account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
    region=os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
)

environment = app.node.try_get_context("environment") or "dev"
max_tables_per_user = int(app.node.try_get_context("maxTablesPerUser") or 100)

base_stack = MagicItemsBaseStack(
    app,
    f"MagicItemsBase-{environment}",
    environment=environment,
    env=env,
)

api_stack = MagicItemsApiStack(
    app,
    f"MagicItemsApi-{environment}",
    environment=environment,
    base_stack=base_stack,
    max_tables_per_user=max_tables_per_user,
    env=env,
)

app.synth()
