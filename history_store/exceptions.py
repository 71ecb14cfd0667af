"""
Exception classes for the chat history store.
"""


class HistoryStoreError(Exception):
    """Base exception for all history store errors."""
    pass


class StorageError(HistoryStoreError):
    """Raised when the storage lifecycle fails (open, close, bootstrap)."""
    pass


class QueryError(HistoryStoreError):
    """Raised when a statement fails to execute."""
    pass


class SchemaError(HistoryStoreError):
    """Raised when the schema version cannot be read or written."""
    pass


class ConfigError(HistoryStoreError):
    """Raised when configuration values are invalid."""
    pass


class ValidationError(HistoryStoreError):
    """Raised when input validation fails."""
    pass
