"""Custom exception hierarchy for the application."""


class DepotIngestError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, is_retryable: bool = False) -> None:
        """Initialize exception.

        Args:
            message: Error message
            is_retryable: Whether the operation can be retried
        """
        super().__init__(message)
        self.message = message
        self.is_retryable = is_retryable


class ConfigurationError(DepotIngestError):
    """Configuration or environment setup error."""

    pass


class IngestionError(DepotIngestError):
    """Data ingestion pipeline error."""

    pass


class TableParseError(IngestionError):
    """A raw source table could not be split into records."""

    def __init__(self, message: str, table: str | None = None, line: int | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            table: Source table name, when known
            line: 1-based line number in the raw table, when known
        """
        super().__init__(message)
        self.table = table
        self.line = line


class IntegrityError(IngestionError):
    """A required join between source tables is broken."""

    pass


class SourceFetchError(IngestionError):
    """Downloading a raw source table failed."""

    pass
