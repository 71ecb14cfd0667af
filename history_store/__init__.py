"""
Chat History Store
Per-client message persistence with bounded history and paginated search.
"""

from .db import MessageStore, SqliteMessageStorage
from .models import Client, Network, Channel, Message, SearchQuery, SearchResponse
from .exceptions import HistoryStoreError, StorageError, QueryError, SchemaError, ConfigError, ValidationError
from .config import Config

__version__ = "1.0.0"

__all__ = [
    "MessageStore",
    "SqliteMessageStorage",
    "Client",
    "Network",
    "Channel",
    "Message",
    "SearchQuery",
    "SearchResponse",
    "HistoryStoreError",
    "StorageError",
    "QueryError",
    "SchemaError",
    "ConfigError",
    "ValidationError",
    "Config",
]
