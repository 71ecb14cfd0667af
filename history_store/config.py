"""
Configuration helpers for the history store.
Supports environment variables and YAML files for deployment configuration.
"""

import os
import sqlite3
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigError
from .log_manager import get_logger

SQLITE_BACKEND = "sqlite"

DEFAULT_LOGS_PATH = os.path.expanduser("~/.history-store/logs")
DEFAULT_MAX_HISTORY = 10000


@lru_cache(maxsize=None)
def sqlite_engine_available() -> bool:
    """
    Check once per process whether the SQLite engine can serve this store.

    Search relies on json_extract(), so a build without the JSON functions
    is treated the same as a missing engine.
    """
    try:
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("""SELECT json_extract('{"text": "x"}', '$.text')""").fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        get_logger('Config').error(f"SQLite engine is unusable for message storage: {e}")
        return False
    return True


@dataclass
class Config:
    """
    Configuration for message storage.

    Environment variables:
        HISTORY_STORE_LOGS_PATH: Directory holding one <client>.sqlite3 file per client
        HISTORY_STORE_MAX_HISTORY: Messages returned per channel (0 disables, negative is unlimited)
        HISTORY_STORE_BACKENDS: Comma separated list of enabled backends (default: sqlite)
    """
    logs_path: str = DEFAULT_LOGS_PATH
    max_history: int = DEFAULT_MAX_HISTORY
    message_storage: List[str] = field(default_factory=lambda: [SQLITE_BACKEND])
    sqlite_available: bool = True

    def resolve_engine(self, available: Optional[bool] = None) -> "Config":
        """
        Record engine availability and drop the sqlite backend if it cannot run.

        Args:
            available: Override for the detected capability (default: detect)

        Returns:
            self, for chaining
        """
        if available is None:
            available = sqlite_engine_available()
        self.sqlite_available = available

        if not available and SQLITE_BACKEND in self.message_storage:
            self.message_storage = [b for b in self.message_storage if b != SQLITE_BACKEND]
            get_logger('Config').error(
                "Unable to use the sqlite engine, message storage falls back to: "
                f"{self.message_storage or 'none'}"
            )
        return self

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Config":
        """
        Build configuration from a plain mapping.

        Args:
            data: Mapping with optional keys logs_path, max_history, message_storage

        Returns:
            Config with engine availability resolved
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        try:
            max_history = int(data.get("max_history", DEFAULT_MAX_HISTORY))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"max_history must be an integer: {data.get('max_history')!r}") from e

        backends = data.get("message_storage", [SQLITE_BACKEND])
        if isinstance(backends, str):
            backends = [b.strip() for b in backends.split(",") if b.strip()]
        if not isinstance(backends, list):
            raise ConfigError(f"message_storage must be a list: {backends!r}")

        logs_path = os.path.expanduser(str(data.get("logs_path", DEFAULT_LOGS_PATH)))

        config = Config(
            logs_path=logs_path,
            max_history=max_history,
            message_storage=[str(b) for b in backends]
        )
        return config.resolve_engine()

    @staticmethod
    def from_env() -> "Config":
        """
        Create configuration from environment variables.

        Example:
            from history_store import Config, MessageStore

            config = Config.from_env()
            store = MessageStore(client, config)
        """
        data: Dict[str, Any] = {}

        logs_path = os.getenv("HISTORY_STORE_LOGS_PATH")
        if logs_path:
            data["logs_path"] = logs_path

        max_history = os.getenv("HISTORY_STORE_MAX_HISTORY")
        if max_history is not None:
            data["max_history"] = max_history

        backends = os.getenv("HISTORY_STORE_BACKENDS")
        if backends is not None:
            data["message_storage"] = backends

        return Config.from_dict(data)

    @staticmethod
    def from_file(path: str) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            path: YAML file with the same keys as from_dict()

        Returns:
            Config with engine availability resolved
        """
        config_path = Path(path).expanduser()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        return Config.from_dict(data)

    @staticmethod
    def for_local(logs_path: str, max_history: int = DEFAULT_MAX_HISTORY) -> "Config":
        """
        Configuration for local file storage.

        Args:
            logs_path: Directory for per-client database files
            max_history: History limit per channel

        Returns:
            Config with engine availability resolved
        """
        return Config(logs_path=logs_path, max_history=max_history).resolve_engine()
