#!/usr/bin/env python3
"""
Centralized Logging Manager for the history store

Provides file-only logging so that storage diagnostics never interleave
with the chat application's own console output.
All output goes to log files under HISTORY_STORE_LOG_DIR
(default ~/.history-store/logs).
"""

import os
import logging
import logging.handlers
from pathlib import Path
from typing import Optional


class LoggingManager:
    """
    Manages file-based logging for all history store components.

    Features:
    - File-only output (no console interference)
    - Component-specific log files
    - Shared error log for everything at ERROR and above
    - Automatic rotation
    - Debug mode support via HISTORY_STORE_DEBUG
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the logging manager (singleton)"""
        if not self._initialized:
            self.log_dir = Path(os.environ.get(
                'HISTORY_STORE_LOG_DIR',
                Path.home() / '.history-store' / 'logs'
            ))
            self.debug_mode = os.environ.get('HISTORY_STORE_DEBUG', '').lower() in ('1', 'true', 'yes')
            self.loggers = {}
            self._initialized = True

            self._ensure_log_directories()

    def _ensure_log_directories(self):
        """Create necessary log directories"""
        for directory in (self.log_dir, self.log_dir / 'storage'):
            directory.mkdir(parents=True, exist_ok=True)

    def get_logger(self, name: str, component: Optional[str] = None) -> logging.Logger:
        """
        Get or create a logger for a specific component.

        Args:
            name: Logger name (e.g., 'SqliteMessageStorage')
            component: Component category ('storage', None for main)

        Returns:
            Configured logger instance
        """
        logger_key = f"{component}.{name}" if component else name

        if logger_key in self.loggers:
            return self.loggers[logger_key]

        logger = logging.getLogger(f"history-store.{logger_key}")
        logger.setLevel(logging.DEBUG if self.debug_mode else logging.INFO)

        # Remove any inherited handlers
        logger.handlers = []
        logger.propagate = False

        if component == 'storage':
            log_file = self.log_dir / 'storage' / f"{name.lower()}.log"
        else:
            log_file = self.log_dir / f"{name.lower()}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )

        if self.debug_mode:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        if self.debug_mode:
            debug_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / 'debug.log',
                maxBytes=50 * 1024 * 1024,  # 50MB for debug
                backupCount=3,
                encoding='utf-8'
            )
            debug_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            debug_handler.setLevel(logging.DEBUG)
            logger.addHandler(debug_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / 'error.log',
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        error_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d]\n%(message)s\n',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        error_handler.setLevel(logging.ERROR)
        logger.addHandler(error_handler)

        self.loggers[logger_key] = logger
        return logger


_logging_manager = None


def get_logging_manager() -> LoggingManager:
    """Get the singleton LoggingManager instance"""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager()
    return _logging_manager


def get_logger(name: str, component: Optional[str] = None) -> logging.Logger:
    """
    Convenience function to get a logger.

    Args:
        name: Logger name
        component: Component type ('storage' or None)

    Returns:
        Configured logger
    """
    return get_logging_manager().get_logger(name, component)
