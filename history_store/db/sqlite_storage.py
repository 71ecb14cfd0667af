#!/usr/bin/env python3
"""
SQLite message storage for one client.

Keeps every indexed channel message in <logs_path>/<client name>.sqlite3 and
answers two queries: the most recent history of a channel, and paginated
substring search over message text.
"""

import json
import os
import sqlite3
from pathlib import Path
from typing import Any, Callable, List, Optional

import aiosqlite

from ..config import Config
from ..exceptions import QueryError, SchemaError, StorageError, ValidationError
from ..log_manager import get_logger
from ..models import Channel, Client, Message, Network, SearchQuery, SearchResponse
from ..utils.time_utils import to_epoch_ms
from .db_helpers import StatementQueue, open_connection, statement
from .schema import SchemaStatus, ensure_schema

# Cap applied when history is configured as unlimited (negative max_history)
UNLIMITED_HISTORY_CAP = 100000

SEARCH_PAGE_SIZE = 100

# Escape marker for LIKE patterns
LIKE_ESCAPE = "@"


def escape_like(term: str) -> str:
    """Escape %, _ and the escape marker itself so the term matches literally"""
    return "".join(
        LIKE_ESCAPE + char if char in ("%", "_", LIKE_ESCAPE) else char
        for char in term
    )


@statement(writer=True)
async def _insert_message(conn, network_uuid: str, channel: str, time_ms: int,
                          msg_type: str, payload: str):
    await conn.execute(
        "INSERT INTO messages(network, channel, time, type, msg) VALUES(?, ?, ?, ?, ?)",
        (network_uuid, channel, time_ms, msg_type, payload)
    )


@statement(writer=True)
async def _delete_channel(conn, network_uuid: str, channel: str) -> int:
    cursor = await conn.execute(
        "DELETE FROM messages WHERE network = ? AND channel = ?",
        (network_uuid, channel)
    )
    return cursor.rowcount


@statement(writer=False)
async def _select_history(conn, network_uuid: str, channel: str, limit: int) -> List[tuple]:
    cursor = await conn.execute(
        "SELECT msg, type, time FROM messages WHERE network = ? AND channel = ? "
        "ORDER BY time DESC LIMIT ?",
        (network_uuid, channel, limit)
    )
    rows = await cursor.fetchall()
    await cursor.close()
    return rows


@statement(writer=False)
async def _select(conn, sql: str, params: List[Any]) -> List[tuple]:
    cursor = await conn.execute(sql, params)
    rows = await cursor.fetchall()
    await cursor.close()
    return rows


class SqliteMessageStorage:
    """
    Message storage backed by one SQLite file per client.

    A disabled store (engine unavailable, logs directory not creatable, or
    closed) is a valid no-op surface: writes do nothing and queries return
    empty results.
    """

    def __init__(self, client: Client, config: Config):
        """
        Args:
            client: Owner of this store; supplies the file name and message ids
            config: Storage configuration
        """
        self.client = client
        self.config = config
        self.is_enabled = False
        self.database: Optional[aiosqlite.Connection] = None
        self.schema_status: Optional[SchemaStatus] = None
        self._queue: Optional[StatementQueue] = None
        self.logger = get_logger('SqliteMessageStorage', component='storage')

    @property
    def database_path(self) -> Path:
        return Path(self.config.logs_path) / f"{self.client.name}.sqlite3"

    # ============================================================================
    # Lifecycle
    # ============================================================================

    async def enable(self):
        """Open the client's database and bring its schema up to date"""
        if self.is_enabled:
            return

        if not self.config.sqlite_available:
            self.logger.error("sqlite engine is unavailable, message storage stays disabled")
            return

        logs_path = self.config.logs_path
        try:
            os.makedirs(logs_path, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Unable to create logs directory {logs_path}: {e}")
            return

        try:
            self.database = await open_connection(str(self.database_path))
        except sqlite3.Error as e:
            self.logger.error(f"Unable to open sqlite database {self.database_path}: {e}")
            return

        self._queue = StatementQueue(self.database)
        self._queue.start()
        self.is_enabled = True

        # First job on the queue; everything submitted later runs after it
        try:
            self.schema_status = await self._queue.submit(ensure_schema)
        except (SchemaError, QueryError) as e:
            self.logger.error(f"Failed to set up messages schema: {e}")

    async def close(self, callback: Optional[Callable[[Optional[Exception]], Any]] = None) -> Optional[Exception]:
        """
        Close the database once queued statements have run.

        Args:
            callback: Called with the close error, or None on success

        Returns:
            The close error, or None
        """
        if not self.is_enabled:
            if callback:
                callback(None)
            return None

        # Cleared before awaiting so operations racing the close see a disabled store
        self.is_enabled = False

        error = None
        try:
            await self._queue.close()
            await self.database.close()
        except sqlite3.Error as e:
            error = StorageError(f"Failed to close sqlite database: {e}")
            error.__cause__ = e
            self.logger.error(str(error))
        finally:
            self._queue = None
            self.database = None

        if callback:
            callback(error)
        return error

    def can_provide_messages(self) -> bool:
        return self.is_enabled

    # ============================================================================
    # Write Path
    # ============================================================================

    def index(self, network: Network, channel: Channel, message: Message):
        """
        Queue a message for storage without waiting for it.

        Returns:
            Future for the insert (None when disabled); failures are logged
        """
        if not self.is_enabled:
            return None

        return self._submit_write(
            _insert_message,
            network.uuid,
            channel.name.lower(),
            to_epoch_ms(message.time),
            message.type,
            json.dumps(message.to_payload())
        )

    def delete_channel(self, network: Network, channel: Channel):
        """
        Queue deletion of every stored message of a channel.

        Returns:
            Future resolving to the number of deleted rows (None when disabled)
        """
        if not self.is_enabled:
            return None

        return self._submit_write(_delete_channel, network.uuid, channel.name.lower())

    def _submit_write(self, job, *args):
        future = self._queue.submit(job, *args)
        future.add_done_callback(self._log_write_failure)
        return future

    def _log_write_failure(self, future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.logger.error(f"Failed to write to sqlite database: {error}")

    # ============================================================================
    # Read Path
    # ============================================================================

    async def get_messages(self, network: Network, channel: Channel) -> List[Message]:
        """
        Load the most recent messages of a channel.

        Args:
            network: Network the channel belongs to
            channel: Channel to load messages for

        Returns:
            Messages in chronological order, each with a freshly allocated id
        """
        max_history = self.config.max_history
        if not self.is_enabled or max_history == 0:
            return []

        limit = UNLIMITED_HISTORY_CAP if max_history < 0 else max_history

        rows = await self._queue.submit(
            _select_history, network.uuid, channel.name.lower(), limit
        )

        messages = []
        for msg, msg_type, time_ms in reversed(rows):
            message = Message.from_payload(json.loads(msg), time_ms, msg_type)
            message.id = self.client.next_message_id()
            messages.append(message)
        return messages

    # ============================================================================
    # Search Path
    # ============================================================================

    async def search(self, query: SearchQuery) -> SearchResponse:
        """
        Search message text, newest first, one page at a time.

        Args:
            query: Search term, optional network/channel scope and the
                   cursor of the previous page

        Returns:
            One page of results in chronological order with the next cursor
        """
        if not self.is_enabled:
            return SearchResponse.empty(query)

        if (query.last_time is None) != (query.last_id is None):
            raise ValidationError("last_time and last_id must be given together")

        select = (
            "SELECT rowid, msg, type, time, network, channel FROM messages "
            "WHERE type = 'message' AND json_extract(msg, '$.text') LIKE ? ESCAPE '@'"
        )
        params: List[Any] = [f"%{escape_like(query.search_term)}%"]

        if query.network_uuid:
            select += " AND network = ?"
            params.append(query.network_uuid)

        if query.channel_name:
            select += " AND channel = ?"
            params.append(query.channel_name.lower())

        if query.last_time is not None:
            # Only rows strictly before the previous page's last row in
            # (time, rowid) order; rows sharing its timestamp are split by rowid
            select += " AND ((time = ? AND rowid < ?) OR time < ?)"
            params.extend([query.last_time, query.last_id, query.last_time])

        select += " ORDER BY time DESC, rowid DESC LIMIT ?"
        params.append(SEARCH_PAGE_SIZE)

        rows = await self._queue.submit(_select, select, params)

        response = SearchResponse.empty(query)
        if rows:
            oldest = rows[-1]
            response.last_time = oldest[3]
            response.last_id = oldest[0]

        response.results = [
            Message.from_payload(
                json.loads(msg), time_ms, msg_type,
                id=rowid, network_uuid=network, channel_name=channel
            )
            for rowid, msg, msg_type, time_ms, network, channel in reversed(rows)
        ]
        return response
