"""Custom exceptions for the magic item browser."""


class MagicItemsError(Exception):
    """Base exception for all service errors."""

    def __init__(self, message: str = "An error occurred") -> None:
        """Initialize exception with message.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(self.message)


class NotFoundError(MagicItemsError):
    """Resource not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize not found error.

        Args:
            resource_type: Readable resource name (e.g., "Magic item", "Roll table")
            resource_id: ID of the missing resource
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} '{resource_id}' not found")


class ValidationError(MagicItemsError):
    """Request validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Validation error message
            field: Optional field name that failed validation
        """
        self.field = field
        super().__init__(message)


class InvalidFilterError(ValidationError):
    """A search filter value is outside its enumeration."""


class ForbiddenError(MagicItemsError):
    """Caller is authenticated but does not own the resource."""


class ConflictError(MagicItemsError):
    """Request conflicts with current state (quota, concurrent write)."""


class StoreUnavailableError(MagicItemsError):
    """The backing store could not be read or written."""


class ConfigurationError(MagicItemsError):
    """Configuration or environment error."""

    def __init__(self, message: str, config_key: str | None = None) -> None:
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Optional configuration key that caused the error
        """
        self.config_key = config_key
        super().__init__(message)
