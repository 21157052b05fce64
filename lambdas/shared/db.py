"""DynamoDB client wrapper for single-table design."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import boto3
from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .exceptions import StoreUnavailableError

logger = Logger(child=True)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELED = "TransactionCanceledException"
CONDITION_FAILED_REASON = "ConditionalCheckFailed"


def convert_floats_to_decimal(obj: Any) -> Any:
    """Recursively convert floats to Decimal for DynamoDB compatibility.

    DynamoDB does not support Python float types. This function converts
    all floats in nested dicts/lists to Decimal.

    Args:
        obj: Any Python object (dict, list, or primitive)

    Returns:
        The object with all floats converted to Decimal
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    elif isinstance(obj, dict):
        return {k: convert_floats_to_decimal(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_floats_to_decimal(item) for item in obj]
    return obj


def _store_error(action: str, error: ClientError) -> StoreUnavailableError:
    code = error.response.get("Error", {}).get("Code", "Unknown")
    return StoreUnavailableError(f"Failed to {action}: {code}")


class DynamoDBClient:
    """DynamoDB client wrapper with consistent error handling and logging.

    Implements single-table design patterns with PK/SK composite keys and
    one global secondary index (GSI1PK/GSI1SK). Every ClientError other
    than a failed condition surfaces as StoreUnavailableError.
    """

    def __init__(self, table_name: str) -> None:
        """Initialize with table name.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource("dynamodb")
        self.table = self.dynamodb.Table(table_name)

    def _build_item(self, pk: str, sk: str, data: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(UTC).isoformat()
        item = {
            "PK": pk,
            "SK": sk,
            **convert_floats_to_decimal(data),
            "updated_at": now,
        }

        # Set created_at only if not provided
        if "created_at" not in item:
            item["created_at"] = now
        return item

    def batch_put(self, items: list[tuple[str, str, dict[str, Any]]]) -> int:
        """Write many items with the table's batch writer.

        Args:
            items: Sequence of (PK, SK, data) tuples

        Returns:
            Number of items written
        """
        try:
            with self.table.batch_writer() as batch:
                for pk, sk, data in items:
                    batch.put_item(Item=self._build_item(pk, sk, data))
        except ClientError as e:
            logger.error("Failed batch write", extra={"error": str(e), "count": len(items)})
            raise _store_error("batch write items", e) from e
        logger.info("Batch write complete", extra={"count": len(items)})
        return len(items)

    def get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        """Get a single item by PK and SK.

        Args:
            pk: Partition key value
            sk: Sort key value

        Returns:
            Item dict or None if not found
        """
        try:
            response = self.table.get_item(Key={"PK": pk, "SK": sk})
            item = response.get("Item")
            if item:
                logger.debug("Item found", extra={"pk": pk, "sk": sk})
            return item
        except ClientError as e:
            logger.error("Failed to get item", extra={"error": str(e), "pk": pk, "sk": sk})
            raise _store_error("get item", e) from e

    def query_all_by_pk(self, pk: str, sk_prefix: str | None = None) -> list[dict[str, Any]]:
        """Query every item in a partition, following pagination.

        Args:
            pk: Partition key value
            sk_prefix: Optional sort key prefix filter

        Returns:
            All matching items in sort key order
        """
        condition = Key("PK").eq(pk)
        if sk_prefix:
            condition = condition & Key("SK").begins_with(sk_prefix)

        params: dict[str, Any] = {"KeyConditionExpression": condition}
        items: list[dict[str, Any]] = []
        try:
            while True:
                response = self.table.query(**params)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                params["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("Failed to query partition", extra={"error": str(e), "pk": pk})
            raise _store_error("query", e) from e

        logger.debug("Partition query complete", extra={"pk": pk, "count": len(items)})
        return items

    def query_index(
        self,
        gsi_pk: str,
        gsi_sk_prefix: str | None = None,
        index_name: str = "GSI1",
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query the secondary index by its partition key.

        Args:
            gsi_pk: GSI1PK value
            gsi_sk_prefix: Optional GSI1SK prefix filter
            index_name: Name of the index
            newest_first: Return items in descending GSI1SK order
            limit: Maximum items to return (None for all)

        Returns:
            List of matching items
        """
        condition = Key("GSI1PK").eq(gsi_pk)
        if gsi_sk_prefix:
            condition = condition & Key("GSI1SK").begins_with(gsi_sk_prefix)

        params: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": condition,
            "ScanIndexForward": not newest_first,
        }
        if limit is not None:
            params["Limit"] = limit

        items: list[dict[str, Any]] = []
        try:
            while True:
                response = self.table.query(**params)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key or (limit is not None and len(items) >= limit):
                    break
                params["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("Failed to query index", extra={"error": str(e), "gsi_pk": gsi_pk})
            raise _store_error("query index", e) from e

        logger.debug("Index query complete", extra={"gsi_pk": gsi_pk, "count": len(items)})
        return items if limit is None else items[:limit]

    def update_item(
        self,
        pk: str,
        sk: str,
        updates: dict[str, Any],
        expected_version: int | None = None,
    ) -> dict[str, Any] | None:
        """Update specific attributes of an item.

        When expected_version is given the write only succeeds if the
        stored ``version`` attribute still equals it, and the version is
        bumped by one.

        Args:
            pk: Partition key value
            sk: Sort key value
            updates: Dict of attribute names to new values
            expected_version: Optional optimistic-concurrency guard

        Returns:
            Updated item, or None if not found or the version check failed
        """
        if not updates and expected_version is None:
            return self.get_item(pk, sk)

        try:
            response = self.table.update_item(
                **self._update_params(pk, sk, updates, expected_version),
                ReturnValues="ALL_NEW",
            )
            logger.info("Item updated", extra={"pk": pk, "sk": sk})
            return response.get("Attributes")
        except ClientError as e:
            if e.response["Error"]["Code"] == CONDITIONAL_CHECK_FAILED:
                logger.warning(
                    "Conditional update rejected",
                    extra={"pk": pk, "sk": sk, "expected_version": expected_version},
                )
                return None
            logger.error("Failed to update", extra={"error": str(e), "pk": pk, "sk": sk})
            raise _store_error("update item", e) from e

    def _update_params(
        self,
        pk: str,
        sk: str,
        updates: dict[str, Any],
        expected_version: int | None,
    ) -> dict[str, Any]:
        # Build update expression
        update_parts = []
        names: dict[str, str] = {}
        values: dict[str, Any] = {":updated_at": datetime.now(UTC).isoformat()}
        condition = "attribute_exists(PK)"

        for i, (key, value) in enumerate(updates.items()):
            placeholder = f"#attr{i}"
            value_placeholder = f":val{i}"
            update_parts.append(f"{placeholder} = {value_placeholder}")
            names[placeholder] = key
            values[value_placeholder] = convert_floats_to_decimal(value)

        if expected_version is not None:
            names["#version"] = "version"
            values[":expected_version"] = expected_version
            values[":next_version"] = expected_version + 1
            update_parts.append("#version = :next_version")
            condition += " AND #version = :expected_version"

        update_parts.append("updated_at = :updated_at")

        params: dict[str, Any] = {
            "Key": {"PK": pk, "SK": sk},
            "UpdateExpression": "SET " + ", ".join(update_parts),
            "ExpressionAttributeValues": values,
            "ConditionExpression": condition,
        }
        if names:
            params["ExpressionAttributeNames"] = names
        return params

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def put_action(
        self, pk: str, sk: str, data: dict[str, Any], if_absent: bool = False
    ) -> dict[str, Any]:
        """Build a transactional Put, optionally guarded against overwrites."""
        put: dict[str, Any] = {"TableName": self.table_name, "Item": self._build_item(pk, sk, data)}
        if if_absent:
            put["ConditionExpression"] = "attribute_not_exists(PK)"
        return {"Put": put}

    def delete_action(self, pk: str, sk: str, must_exist: bool = False) -> dict[str, Any]:
        """Build a transactional Delete, optionally requiring the item."""
        delete: dict[str, Any] = {"TableName": self.table_name, "Key": {"PK": pk, "SK": sk}}
        if must_exist:
            delete["ConditionExpression"] = "attribute_exists(PK)"
        return {"Delete": delete}

    def update_action(
        self,
        pk: str,
        sk: str,
        updates: dict[str, Any],
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        """Build a transactional Update with the same guards as update_item."""
        return {
            "Update": {
                "TableName": self.table_name,
                **self._update_params(pk, sk, updates, expected_version),
            }
        }

    def transact_write(self, actions: list[dict[str, Any]]) -> bool:
        """Apply actions atomically: all of them are written or none are.

        Args:
            actions: Items built by put_action, delete_action and update_action

        Returns:
            True if committed, False if a condition check cancelled it
        """
        try:
            self.dynamodb.meta.client.transact_write_items(TransactItems=actions)
        except ClientError as e:
            if e.response["Error"]["Code"] == TRANSACTION_CANCELED:
                reasons = [r.get("Code") for r in e.response.get("CancellationReasons", [])]
                if not reasons or CONDITION_FAILED_REASON in reasons:
                    logger.warning("Transaction condition failed", extra={"reasons": reasons})
                    return False
            logger.error(
                "Failed transaction", extra={"error": str(e), "count": len(actions)}
            )
            raise _store_error("write transaction", e) from e

        logger.info("Transaction committed", extra={"count": len(actions)})
        return True

