"""Roll table service - CRUD, share-token access and rolling."""

from typing import Any

from aws_lambda_powertools import Logger
from pydantic.alias_generators import to_camel

from roll_tables.models import (
    RollTableCreateRequest,
    RollTableGenerateRequest,
    RollTableUpdateRequest,
    validate_table_data,
)
from roll_tables.resolver import RollOutcome, resolve_roll
from shared.catalog import MagicItemCatalog
from shared.config import DEFAULT_MAX_TABLES_PER_USER
from shared.db import DynamoDBClient
from shared.dice import recommended_die_size
from shared.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from shared.generator import (
    EXPORT_CONTENT_TYPES,
    ExportFormat,
    check_table,
    create_balanced_roll_table,
    export_roll_table,
    generate_roll_table,
    shuffle_roll_table,
    table_stats,
)
from shared.models import ROWS_SK_PREFIX, RollTable, RollTableData, row_chunk_sk
from shared.utils import generate_id, generate_share_token, utc_now

logger = Logger()

SHARE_PK_PREFIX = "SHARE#"
SHARE_SK = "TABLE"
USER_GSI_PREFIX = "USER#"
TABLE_GSI_SK_PREFIX = "TABLE#"
SHARE_TOKEN_ATTEMPTS = 3
RESOURCE_NAME = "Roll table"
CONCURRENT_UPDATE_MESSAGE = "Roll table was modified concurrently, reload and retry"


def share_keys(token: str) -> tuple[str, str]:
    """DynamoDB PK and SK for a share-token pointer."""
    return f"{SHARE_PK_PREFIX}{token}", SHARE_SK


def table_keys(table_id: str) -> tuple[str, str]:
    """DynamoDB PK and SK for a roll table."""
    return f"TABLE#{table_id}", "META"


def _camel_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


class RollTableService:
    """Service layer for roll tables."""

    def __init__(
        self,
        db_client: DynamoDBClient,
        catalog: MagicItemCatalog,
        max_tables_per_user: int = DEFAULT_MAX_TABLES_PER_USER,
    ) -> None:
        """Initialize roll table service.

        Args:
            db_client: DynamoDB client instance
            catalog: Catalog used to resolve item references
            max_tables_per_user: Per-owner table quota
        """
        self.db = db_client
        self.catalog = catalog
        self.max_tables_per_user = max_tables_per_user

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _load(self, table_id: str) -> RollTable | None:
        pk, meta_sk = table_keys(table_id)
        items = self.db.query_all_by_pk(pk)
        if not any(item["SK"] == meta_sk for item in items):
            return None
        return RollTable.from_db_items(items)

    def get_table(self, user_id: str | None, table_id: str) -> RollTable:
        """Get a table visible to the caller.

        Tables owned by someone else are reported as missing.

        Raises:
            NotFoundError: If the table does not exist or is not the caller's
        """
        table = self._load(table_id)
        if table is None or not table.is_owned_by(user_id):
            raise NotFoundError(RESOURCE_NAME, table_id)
        return table

    def _get_owned(self, user_id: str | None, table_id: str) -> RollTable:
        table = self._load(table_id)
        if table is None:
            raise NotFoundError(RESOURCE_NAME, table_id)
        if not table.is_owned_by(user_id):
            logger.warning(
                "Rejected non-owner mutation",
                extra={"table_id": table_id, "user_id": user_id},
            )
            raise ForbiddenError("You do not own this roll table")
        return table

    def list_tables(
        self,
        user_id: str,
        search: str | None = None,
        source_list_id: str | None = None,
    ) -> list[RollTable]:
        """List the caller's tables, newest first.

        Args:
            user_id: Owner
            search: Optional case-insensitive name substring
            source_list_id: Optional source list filter

        Returns:
            Matching tables
        """
        metas = self.db.query_index(
            f"{USER_GSI_PREFIX}{user_id}", TABLE_GSI_SK_PREFIX, newest_first=True
        )
        if search and search.strip():
            needle = search.strip().casefold()
            metas = [m for m in metas if needle in m["name"].casefold()]
        if source_list_id:
            metas = [m for m in metas if m.get("source_list_id") == source_list_id]

        # Rows live outside the index; load them for the matches only
        tables = [self._load(meta["id"]) for meta in metas]
        return [table for table in tables if table is not None]

    def get_by_share_token(self, token: str) -> RollTable:
        """Resolve a share token to its table.

        Raises:
            ValidationError: If the token is blank
            NotFoundError: If no table carries the token
        """
        if not token or not token.strip():
            raise ValidationError("Share token is required", field="token")
        token = token.strip()

        pointer = self.db.get_item(*share_keys(token))
        if pointer is None:
            raise NotFoundError(RESOURCE_NAME, token)
        table = self._load(pointer["table_id"])
        if table is None or table.share_token != token:
            raise NotFoundError(RESOURCE_NAME, token)
        return table

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _check_quota(self, user_id: str | None) -> None:
        if user_id is None:
            return
        owned = self.db.query_index(f"{USER_GSI_PREFIX}{user_id}", TABLE_GSI_SK_PREFIX)
        if len(owned) >= self.max_tables_per_user:
            raise ConflictError(
                f"Roll table limit reached ({self.max_tables_per_user} per user)"
            )

    def _persist_new(
        self,
        user_id: str | None,
        name: str,
        die_size: int,
        table_data: RollTableData,
        source_list_id: str | None = None,
        is_public: bool = False,
    ) -> RollTable:
        validate_table_data(die_size, table_data)
        self._check_quota(user_id)

        table_id = generate_id()
        now = utc_now()
        for _ in range(SHARE_TOKEN_ATTEMPTS):
            table = RollTable(
                id=table_id,
                user_id=user_id,
                source_list_id=source_list_id,
                name=name,
                die_size=die_size,
                share_token=generate_share_token(),
                is_public=is_public,
                table_data=table_data,
                created_at=now,
                updated_at=now,
            )

            # Pointer, META and row chunks commit together or not at all
            actions = [
                self.db.put_action(
                    *share_keys(table.share_token), {"table_id": table_id}, if_absent=True
                )
            ]
            actions.extend(self.db.put_action(*item) for item in table.to_db_items())
            if not self.db.transact_write(actions):
                logger.warning("Share token collision, regenerating")
                continue

            logger.info(
                "Roll table created",
                extra={"table_id": table_id, "user_id": user_id, "items": len(actions)},
            )
            return table

        raise ConflictError("Could not allocate a unique share token")

    def create_table(self, user_id: str | None, request: RollTableCreateRequest) -> RollTable:
        """Validate and store a new table with a fresh share token.

        Args:
            user_id: Owner, or None for an anonymous table
            request: Validated request body

        Returns:
            The stored table

        Raises:
            ValidationError: If rows do not fit the die
            ConflictError: If the owner's quota is reached
        """
        return self._persist_new(
            user_id,
            request.name,
            request.die_size,
            request.table_data,
            source_list_id=request.source_list_id,
            is_public=request.is_public,
        )

    def update_table(
        self, user_id: str | None, table_id: str, request: RollTableUpdateRequest
    ) -> RollTable:
        """Replace fields of an owned table.

        The merged table is validated as a whole before the write, and
        the write fails if another update landed first.

        Raises:
            NotFoundError: If the table does not exist
            ForbiddenError: If the caller is not the owner
            ValidationError: If the merged rows do not fit the die
            ConflictError: On concurrent modification
        """
        table = self._get_owned(user_id, table_id)

        die_size = request.die_size if request.die_size is not None else table.die_size
        table_data = request.table_data if request.table_data is not None else table.table_data
        validate_table_data(die_size, table_data)

        updates: dict[str, Any] = {}
        if request.name is not None:
            updates["name"] = request.name
        if request.die_size is not None:
            updates["die_size"] = request.die_size

        if request.table_data is None:
            stored = self.db.update_item(
                *table_keys(table_id), updates, expected_version=table.version
            )
            if stored is None:
                raise ConflictError(CONCURRENT_UPDATE_MESSAGE)
            updated = RollTable.from_db_item(stored, rolls=table.table_data.rolls)
        else:
            updated = self._replace_rows(table, updates, table_data)

        logger.info(
            "Roll table updated",
            extra={"table_id": table_id, "fields": sorted(request.model_fields_set)},
        )
        return updated

    def _replace_rows(
        self, table: RollTable, updates: dict[str, Any], table_data: RollTableData
    ) -> RollTable:
        replacement = table.model_copy(
            update={
                **updates,
                "table_data": table_data,
                "updated_at": utc_now(),
                "version": table.version + 1,
            }
        )
        items = replacement.to_db_items()
        pk, sk, meta = items[0]
        updates = {
            **updates,
            "table_data": meta["table_data"],
            "row_chunks": meta["row_chunks"],
        }

        # Version check, new chunks and removal of surplus old chunks in one write
        actions = [self.db.update_action(pk, sk, updates, expected_version=table.version)]
        actions.extend(self.db.put_action(*item) for item in items[1:])
        old_chunks = len(table.table_data.row_chunks())
        actions.extend(
            self.db.delete_action(pk, row_chunk_sk(n)) for n in range(len(items) - 1, old_chunks)
        )
        if not self.db.transact_write(actions):
            raise ConflictError(CONCURRENT_UPDATE_MESSAGE)
        return replacement

    def delete_table(self, user_id: str | None, table_id: str) -> None:
        """Delete an owned table, its row chunks and its share pointer together.

        Raises:
            NotFoundError: If the table does not exist
            ForbiddenError: If the caller is not the owner
        """
        table = self._get_owned(user_id, table_id)
        pk, sk = table_keys(table_id)
        actions = [
            self.db.delete_action(pk, sk, must_exist=True),
            self.db.delete_action(*share_keys(table.share_token)),
        ]
        actions.extend(
            self.db.delete_action(pk, item["SK"])
            for item in self.db.query_all_by_pk(pk, ROWS_SK_PREFIX)
        )
        if not self.db.transact_write(actions):
            raise NotFoundError(RESOURCE_NAME, table_id)
        logger.info("Roll table deleted", extra={"table_id": table_id, "user_id": user_id})

    def _copy(self, source: RollTable, user_id: str, name: str) -> RollTable:
        metadata = source.table_data.metadata.model_copy(
            update={"generated_at": utc_now(), "source_list_name": None}
        )
        table_data = RollTableData(rolls=list(source.table_data.rolls), metadata=metadata)
        copy = self._persist_new(user_id, name, source.die_size, table_data)
        logger.info(
            "Roll table duplicated",
            extra={"source_table_id": source.id, "table_id": copy.id},
        )
        return copy

    def duplicate_table(self, user_id: str, table_id: str, name: str) -> RollTable:
        """Copy one of the caller's tables under a new name."""
        return self._copy(self.get_table(user_id, table_id), user_id, name)

    def duplicate_shared(self, user_id: str, token: str, name: str) -> RollTable:
        """Copy a shared table into the caller's account."""
        return self._copy(self.get_by_share_token(token), user_id, name)

    # -------------------------------------------------------------------------
    # Rolling and analysis
    # -------------------------------------------------------------------------

    def roll(self, user_id: str | None, table_id: str) -> RollOutcome:
        """Roll one of the caller's tables."""
        return resolve_roll(self.get_table(user_id, table_id), self.catalog.get_item_by_slug)

    def roll_shared(self, token: str) -> RollOutcome:
        """Roll a table by its share token."""
        return resolve_roll(self.get_by_share_token(token), self.catalog.get_item_by_slug)

    def stats(self, user_id: str | None, table_id: str) -> dict[str, Any]:
        """Population statistics and completeness check for a table."""
        table = self.get_table(user_id, table_id)
        return {
            "stats": _camel_keys(table_stats(table.table_data)),
            "check": _camel_keys(check_table(table.table_data, table.die_size)),
        }

    def export(
        self, user_id: str | None, table_id: str, export_format: ExportFormat | str
    ) -> tuple[str, str]:
        """Render a table for download.

        Returns:
            Tuple of (text, content type)

        Raises:
            ValidationError: If the format is unsupported
        """
        try:
            export_format = ExportFormat(export_format)
        except ValueError:
            raise ValidationError(
                f"Unsupported export format: {export_format}", field="format"
            ) from None

        table = self.get_table(user_id, table_id)
        slugs = {row.magic_item_id for row in table.table_data.rolls if row.has_item}
        names = {item.slug: item.name for item in self.catalog.get_items_by_slugs(slugs)}
        text = export_roll_table(
            table.table_data, export_format, table_name=table.name, item_names=names
        )
        return text, EXPORT_CONTENT_TYPES[export_format]

    def generate(self, request: RollTableGenerateRequest) -> RollTableData:
        """Generate table data without storing it."""
        die_size = request.die_size or recommended_die_size(len(request.source_items))
        if request.balanced:
            data = create_balanced_roll_table(request.source_items, die_size)
        else:
            data = generate_roll_table(
                die_size,
                request.source_items,
                request.fill_strategy,
                allow_duplicates=request.allow_duplicates,
            )
        return shuffle_roll_table(data) if request.shuffle else data
