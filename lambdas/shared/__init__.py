"""Shared code for the magic item browser Lambda functions."""

from .catalog import MagicItemCatalog, MagicItemSearchResult
from .config import Config
from .db import DynamoDBClient
from .exceptions import (
    ConfigurationError,
    ConflictError,
    ForbiddenError,
    InvalidFilterError,
    MagicItemsError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .models import (
    FillStrategy,
    MagicItem,
    MagicItemRarity,
    MagicItemTrait,
    MagicItemType,
    RollTable,
    RollTableData,
    RollTableMetadata,
    RollTableRow,
)

__all__ = [
    # Catalog
    "MagicItemCatalog",
    "MagicItemSearchResult",
    # Config
    "Config",
    # Database
    "DynamoDBClient",
    # Exceptions
    "ConfigurationError",
    "ConflictError",
    "ForbiddenError",
    "InvalidFilterError",
    "MagicItemsError",
    "NotFoundError",
    "StoreUnavailableError",
    "ValidationError",
    # Models
    "FillStrategy",
    "MagicItem",
    "MagicItemRarity",
    "MagicItemTrait",
    "MagicItemType",
    "RollTable",
    "RollTableData",
    "RollTableMetadata",
    "RollTableRow",
]
