"""
Tests for messages schema creation and version reconciliation.
"""

from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio

from history_store import Client, SchemaError
from history_store.db import SqliteMessageStorage
from history_store.db import schema
from history_store.db.schema import (
    CURRENT_SCHEMA_VERSION,
    SchemaStatus,
    ensure_schema,
    get_schema_version,
)
from history_store.log_manager import get_logging_manager

from conftest import make_message


@pytest_asyncio.fixture
async def conn():
    """Provide a raw in-memory connection."""
    connection = await aiosqlite.connect(":memory:")
    yield connection
    await connection.close()


async def _count_version_rows(conn) -> int:
    cursor = await conn.execute("SELECT COUNT(*) FROM options WHERE name = 'schema_version'")
    row = await cursor.fetchone()
    return row[0]


async def _object_names(conn, kind: str):
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = ?", (kind,))
    return {row[0] for row in await cursor.fetchall()}


class TestEnsureSchema:

    @pytest.mark.asyncio
    async def test_fresh_database_gets_tables_indexes_and_version(self, conn):
        status = await ensure_schema(conn)

        assert status == SchemaStatus.CREATED
        assert {"options", "messages"} <= await _object_names(conn, "table")
        assert {"network_channel", "time"} <= await _object_names(conn, "index")
        assert await get_schema_version(conn) == CURRENT_SCHEMA_VERSION

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, conn):
        await ensure_schema(conn)
        status = await ensure_schema(conn)

        assert status == SchemaStatus.CURRENT
        assert await _count_version_rows(conn) == 1

    @pytest.mark.asyncio
    async def test_newer_version_is_left_untouched(self, conn):
        await ensure_schema(conn)
        await conn.execute(
            "UPDATE options SET value = ? WHERE name = 'schema_version'",
            (CURRENT_SCHEMA_VERSION + 1,)
        )
        await conn.commit()

        status = await ensure_schema(conn)

        assert status == SchemaStatus.NEWER
        assert await get_schema_version(conn) == CURRENT_SCHEMA_VERSION + 1

        error_log = Path(get_logging_manager().log_dir) / "error.log"
        assert "higher than expected" in error_log.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_older_version_is_bumped(self, conn):
        await ensure_schema(conn)
        await conn.execute(
            "UPDATE options SET value = ? WHERE name = 'schema_version'",
            (CURRENT_SCHEMA_VERSION - 10,)
        )
        await conn.commit()

        status = await ensure_schema(conn)

        assert status == SchemaStatus.MIGRATED
        assert await get_schema_version(conn) == CURRENT_SCHEMA_VERSION
        assert await _count_version_rows(conn) == 1

    @pytest.mark.asyncio
    async def test_migration_steps_run_in_order_above_stored_version(self, conn):
        await ensure_schema(conn, current_version=100)
        applied = []

        def step(version):
            async def migrate(c):
                applied.append(version)
                await c.execute(f"CREATE TABLE IF NOT EXISTS migrated_{version} (x INTEGER)")
            return migrate

        migrations = {300: step(300), 50: step(50), 200: step(200), 400: step(400)}

        status = await ensure_schema(conn, current_version=300, migrations=migrations)

        assert status == SchemaStatus.MIGRATED
        assert applied == [200, 300]
        assert {"migrated_200", "migrated_300"} <= await _object_names(conn, "table")
        assert await get_schema_version(conn) == 300


    @pytest.mark.asyncio
    async def test_failing_migration_step_rolls_back(self, conn):
        await ensure_schema(conn, current_version=100)

        async def broken(c):
            await c.execute("INSERT INTO options (name, value) VALUES ('half_done', '1')")
            raise RuntimeError("bad step")

        with pytest.raises(SchemaError) as excinfo:
            await ensure_schema(conn, current_version=200, migrations={200: broken})

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert await get_schema_version(conn) == 100
        cursor = await conn.execute("SELECT COUNT(*) FROM options WHERE name = 'half_done'")
        assert (await cursor.fetchone())[0] == 0


class TestReopen:

    @pytest.mark.asyncio
    async def test_opening_same_file_twice(self, config):
        first = SqliteMessageStorage(Client("alice"), config)
        await first.enable()
        assert first.schema_status == SchemaStatus.CREATED
        await first.close()

        second = SqliteMessageStorage(Client("alice"), config)
        await second.enable()
        try:
            assert second.can_provide_messages()
            assert second.schema_status == SchemaStatus.CURRENT
            assert await _count_version_rows(second.database) == 1
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_failing_migration_is_logged_not_raised(self, config, monkeypatch):
        first = SqliteMessageStorage(Client("alice"), config)
        await first.enable()
        await first.database.execute(
            "UPDATE options SET value = ? WHERE name = 'schema_version'",
            (CURRENT_SCHEMA_VERSION - 10,)
        )
        await first.database.commit()
        await first.close()

        async def broken(c):
            raise RuntimeError("step exploded")

        monkeypatch.setitem(schema.MIGRATIONS, CURRENT_SCHEMA_VERSION, broken)

        second = SqliteMessageStorage(Client("alice"), config)
        await second.enable()
        try:
            assert second.can_provide_messages()
            assert second.schema_status is None
            assert await get_schema_version(second.database) == CURRENT_SCHEMA_VERSION - 10

            error_log = Path(get_logging_manager().log_dir) / "error.log"
            assert "step exploded" in error_log.read_text(encoding="utf-8")
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_newer_schema_still_usable(self, config, network, channel):
        first = SqliteMessageStorage(Client("alice"), config)
        await first.enable()
        await first.database.execute(
            "UPDATE options SET value = ? WHERE name = 'schema_version'",
            (CURRENT_SCHEMA_VERSION * 2,)
        )
        await first.database.commit()
        await first.close()

        second = SqliteMessageStorage(Client("alice"), config)
        await second.enable()
        try:
            assert second.schema_status == SchemaStatus.NEWER
            assert second.can_provide_messages()

            second.index(network, channel, make_message(100, "still works"))
            messages = await second.get_messages(network, channel)
            assert [m.text for m in messages] == ["still works"]
        finally:
            await second.close()
