"""
Exceptions raised by the match ingestion pipeline.

Each exception carries a short user-facing message alongside the log message,
so per-match results and Discord replies can report failures without leaking
tracebacks.
"""

from typing import Optional


class IngestionError(Exception):
    """Base exception for match ingestion errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class FetchFailedError(IngestionError):
    """Raised when a match-detail document cannot be retrieved."""
    def __init__(self, match_id: int, status_code: Optional[int] = None, details: str = None):
        self.match_id = match_id
        self.status_code = status_code
        if status_code is not None:
            message = f"Failed to fetch match {match_id}: HTTP {status_code}"
        else:
            message = f"Failed to fetch match {match_id}: {details or 'transport error'}"
        super().__init__(message, message)


class ExtractionFailedError(IngestionError):
    """Raised when the embedded game data cannot be located or parsed."""
    PATTERN_NOT_FOUND = "pattern not found"
    INVALID_JSON = "invalid json"
    MALFORMED_DATA = "malformed game data"

    def __init__(self, reason: str, match_id: Optional[int] = None):
        self.reason = reason
        self.match_id = match_id
        prefix = f"Match {match_id}: " if match_id is not None else ""
        super().__init__(
            f"{prefix}game data extraction failed ({reason})",
            f"Failed to extract game data: {reason}"
        )


class PersistenceFailedError(IngestionError):
    """Raised when the datastore rejects a write during ingestion."""
    def __init__(self, operation: str, details: str = None):
        self.operation = operation
        super().__init__(
            f"Persistence error during {operation}: {details}",
            f"Failed to save {operation}"
        )


class IngestionValidationError(IngestionError):
    """Raised when an ingestion request is malformed as a whole."""
    pass
