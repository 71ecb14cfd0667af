#!/usr/bin/env python3
"""
Database connection helpers for the history store
Provides the per-handle statement queue and the statement decorator
"""

import asyncio
import functools
import sqlite3
from typing import Any, Awaitable, Callable, Optional

import aiosqlite

from ..exceptions import QueryError


async def open_connection(db_path: str) -> aiosqlite.Connection:
    """
    Open the long-lived connection for one storage handle.

    Args:
        db_path: Path to SQLite database
    """
    conn = await aiosqlite.connect(db_path)
    try:
        # Enable WAL mode for better concurrency
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA busy_timeout=5000")
    except sqlite3.Error:
        await conn.close()
        raise
    return conn


def statement(writer: bool = False):
    """
    Decorator for queue jobs that run against a connection.

    The decorated coroutine receives the connection as its first argument.
    Database errors are re-raised as QueryError.

    Args:
        writer: If True, commits changes after successful execution
    """
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(conn: aiosqlite.Connection, *args, **kwargs):
            try:
                result = await fn(conn, *args, **kwargs)
                if writer:
                    await conn.commit()
                return result
            except sqlite3.Error as e:
                if writer:
                    await conn.rollback()
                raise QueryError(f"{fn.__name__} failed: {e}") from e
        return wrapper
    return decorator


class StatementQueue:
    """
    Single-worker job queue for one database connection.

    Every job runs to completion before the next one starts, in submission
    order, so schema setup queued first is always finished before any read
    or write touches the tables.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def start(self):
        """Start the worker task on the running event loop"""
        if self._worker is None:
            self._worker = asyncio.create_task(self._run())

    def submit(self, job: Callable[..., Awaitable[Any]], *args) -> asyncio.Future:
        """
        Queue a job and return a future for its result.

        Args:
            job: Coroutine function called as job(conn, *args)

        Returns:
            Future resolved with the job's result or its exception
        """
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((job, args, future))
        return future

    async def close(self):
        """Run every job already queued, then stop the worker"""
        if self._worker is None:
            return
        self._queue.put_nowait(None)
        await self._worker

    async def _run(self):
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return

                job, args, future = item
                try:
                    result = await job(self.conn, *args)
                except Exception as e:
                    if not future.cancelled():
                        future.set_exception(e)
                else:
                    if not future.cancelled():
                        future.set_result(result)
            finally:
                self._queue.task_done()
