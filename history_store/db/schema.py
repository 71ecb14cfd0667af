#!/usr/bin/env python3
"""
Schema management for the sqlite message store.

Tables:
    options   - Named settings; holds the schema_version row
    messages  - One row per indexed message (network, channel, time, type, msg)

The schema version is a timestamp-like integer. A stored version lower than
CURRENT_SCHEMA_VERSION runs every registered migration step above it, in
ascending order, before the stored value is bumped. A stored version higher
than ours is left alone.
"""

import sqlite3
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import aiosqlite

from ..exceptions import SchemaError
from ..log_manager import get_logger
from .db_helpers import statement

CURRENT_SCHEMA_VERSION = 1520239200

SCHEMA = [
    "CREATE TABLE IF NOT EXISTS options (name TEXT, value TEXT, CONSTRAINT name_unique UNIQUE (name))",
    "CREATE TABLE IF NOT EXISTS messages (network TEXT, channel TEXT, time INTEGER, type TEXT, msg TEXT)",
    "CREATE INDEX IF NOT EXISTS network_channel ON messages (network, channel)",
    "CREATE INDEX IF NOT EXISTS time ON messages (time)",
]

MigrationStep = Callable[[aiosqlite.Connection], Awaitable[None]]

# version -> step that brings the previous version's schema up to it.
# The first release has no steps; new ones go here keyed by their version.
MIGRATIONS: Dict[int, MigrationStep] = {}


class SchemaStatus(str, Enum):
    """Outcome of ensure_schema()"""
    CREATED = "created"
    CURRENT = "current"
    MIGRATED = "migrated"
    NEWER = "newer"


async def get_schema_version(conn: aiosqlite.Connection) -> Optional[int]:
    """Stored schema version, or None if the store was never initialized"""
    cursor = await conn.execute("SELECT value FROM options WHERE name = 'schema_version'")
    row = await cursor.fetchone()
    await cursor.close()
    return int(row[0]) if row else None


@statement(writer=True)
async def ensure_schema(conn: aiosqlite.Connection,
                        current_version: int = CURRENT_SCHEMA_VERSION,
                        migrations: Optional[Dict[int, MigrationStep]] = None) -> SchemaStatus:
    """
    Create tables and indexes if needed and reconcile the stored version.

    Args:
        conn: Open connection
        current_version: Version this code expects
        migrations: Migration steps keyed by version (default: MIGRATIONS)

    Returns:
        What happened to the schema
    """
    logger = get_logger('Schema', component='storage')
    migrations = MIGRATIONS if migrations is None else migrations

    for line in SCHEMA:
        await conn.execute(line)

    try:
        stored_version = await get_schema_version(conn)
    except (sqlite3.Error, ValueError) as e:
        logger.error(f"Failed to retrieve schema version: {e}")
        raise SchemaError(f"Failed to retrieve schema version: {e}") from e

    if stored_version is None:
        await conn.execute(
            "INSERT INTO options (name, value) VALUES ('schema_version', ?)",
            (current_version,)
        )
        logger.debug(f"Created messages schema at version {current_version}")
        return SchemaStatus.CREATED

    if stored_version == current_version:
        return SchemaStatus.CURRENT

    if stored_version > current_version:
        logger.error(
            f"sqlite messages schema version is higher than expected "
            f"({stored_version} > {current_version}). Is the application out of date?"
        )
        return SchemaStatus.NEWER

    logger.info(
        f"sqlite messages schema version is out of date "
        f"({stored_version} < {current_version}). Running migrations if any."
    )

    for version in sorted(migrations):
        if stored_version < version <= current_version:
            logger.info(f"Applying messages schema migration {version}")
            try:
                await migrations[version](conn)
            except Exception as e:
                await conn.rollback()
                logger.error(f"Messages schema migration {version} failed: {e}")
                raise SchemaError(f"Messages schema migration {version} failed: {e}") from e

    await conn.execute(
        "UPDATE options SET value = ? WHERE name = 'schema_version'",
        (current_version,)
    )
    return SchemaStatus.MIGRATED
