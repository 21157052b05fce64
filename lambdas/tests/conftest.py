"""Shared pytest fixtures."""
import os

import boto3
import pytest
from moto import mock_aws

# Handlers read config at import time
os.environ.setdefault("TABLE_NAME", "test-table")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POWERTOOLS_LOG_LEVEL", "DEBUG")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "magic-items-test")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

ITEM_ROWS = [
    {
        "name": "Flaming Sword",
        "slug": "flaming-sword",
        "description": "A common blade wreathed in fire",
        "traits": [],
    },
    {
        "name": "Potion of Healing",
        "slug": "potion-of-healing",
        "description": "A minor restorative draught.",
        "traits": [],
    },
    {
        "name": "Ring of Protection",
        "slug": "ring-of-protection",
        "description": "A greater ward against harm.",
        "traits": [{"name": "Warding", "description": "Improves armor class."}],
    },
    {
        "name": "Cloak of Shadows",
        "slug": "cloak-of-shadows",
        "description": "Woven from night itself.",
        "traits": [{"name": "Stealth", "description": "Hides the wearer."}],
    },
]


@pytest.fixture
def item_rows():
    """Raw catalog rows as stored in the table."""
    return [dict(row) for row in ITEM_ROWS]


@pytest.fixture
def env_setup(monkeypatch):
    """Set configuration env vars and clear the config cache."""
    from shared.config import get_config

    monkeypatch.setenv("TABLE_NAME", "test-table")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("POWERTOOLS_LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("MAX_TABLES_PER_USER", raising=False)
    if hasattr(get_config, "_config"):
        delattr(get_config, "_config")
    yield
    if hasattr(get_config, "_config"):
        delattr(get_config, "_config")


@pytest.fixture
def dynamodb_table(env_setup):
    """Create a mocked single table with PK/SK and GSI1."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(
            TableName="test-table",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.meta.client.get_waiter("table_exists").wait(TableName="test-table")
        yield table


@pytest.fixture
def seeded_table(dynamodb_table):
    """Mocked table holding the sample catalog."""
    for row in ITEM_ROWS:
        dynamodb_table.put_item(Item={"PK": "CATALOG", "SK": f"ITEM#{row['slug']}", **row})
    return dynamodb_table
