#!/usr/bin/env python3
"""
MessageStore: per-client coordinator over the configured storage backends.
This is the single entry point the chat application talks to.
"""

from typing import Any, Callable, Dict, List, Optional

from ..config import Config, SQLITE_BACKEND
from ..log_manager import get_logger
from ..models import Channel, Client, Message, Network, SearchQuery, SearchResponse
from .sqlite_storage import SqliteMessageStorage

BACKENDS: Dict[str, Callable[[Client, Config], Any]] = {
    SQLITE_BACKEND: SqliteMessageStorage,
}


class MessageStore:
    """
    Coordinates the message storage backends of one client.

    Responsibilities:
    - Builds one backend per name in config.message_storage
    - Fans writes and lifecycle calls out to every backend
    - Answers history and search from the first backend that can provide messages
    """

    def __init__(self, client: Client, config: Config):
        """
        Initialize the coordinator.

        Args:
            client: Owner of the stores
            config: Storage configuration; unknown backend names are skipped
        """
        self.client = client
        self.config = config
        self.logger = get_logger('MessageStore', component='storage')

        self.backends = []
        for name in config.message_storage:
            factory = BACKENDS.get(name)
            if factory is None:
                self.logger.warning(f"Unknown message storage backend '{name}', skipping")
                continue
            self.backends.append(factory(client, config))

    async def enable(self):
        """Enable every backend"""
        for backend in self.backends:
            await backend.enable()

    async def close(self, callback: Optional[Callable[[Optional[Exception]], Any]] = None) -> Optional[Exception]:
        """
        Close every backend.

        Returns:
            The first close error, or None
        """
        first_error = None
        for backend in self.backends:
            error = await backend.close()
            if error is not None and first_error is None:
                first_error = error

        if callback:
            callback(first_error)
        return first_error

    def can_provide_messages(self) -> bool:
        return self._provider() is not None

    def _provider(self):
        for backend in self.backends:
            if backend.can_provide_messages():
                return backend
        return None

    # ============================================================================
    # Message Storage
    # ============================================================================

    def index(self, network: Network, channel: Channel, message: Message):
        for backend in self.backends:
            backend.index(network, channel, message)

    def delete_channel(self, network: Network, channel: Channel):
        for backend in self.backends:
            backend.delete_channel(network, channel)

    # ============================================================================
    # Message Retrieval
    # ============================================================================

    async def get_messages(self, network: Network, channel: Channel) -> List[Message]:
        provider = self._provider()
        if provider is None:
            return []
        return await provider.get_messages(network, channel)

    async def search(self, query: SearchQuery) -> SearchResponse:
        provider = self._provider()
        if provider is None:
            return SearchResponse.empty(query)
        return await provider.search(query)
