"""
Database module for the history store
Handles SQLite message storage and backend coordination
"""

from .sqlite_storage import SqliteMessageStorage
from .message_store import MessageStore
from .schema import CURRENT_SCHEMA_VERSION, SchemaStatus, ensure_schema

__all__ = ['SqliteMessageStorage', 'MessageStore', 'CURRENT_SCHEMA_VERSION', 'SchemaStatus', 'ensure_schema']
