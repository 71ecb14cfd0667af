"""
Shared pytest fixtures for history store tests.
Provides common test infrastructure for all test suites.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

# Keep diagnostic logs out of the home directory; must happen before the
# logging manager is first created
os.environ.setdefault("HISTORY_STORE_LOG_DIR", tempfile.mkdtemp(prefix="history-store-logs-"))

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from history_store import Channel, Client, Config, Message, Network
from history_store.db import SqliteMessageStorage


def make_message(time_ms: int, text: str = "", type: str = "message", **fields) -> Message:
    """Build a message at a given epoch-millisecond time."""
    return Message(
        type=type,
        time=datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc),
        text=text,
        fields=fields
    )


@pytest.fixture
def logs_dir():
    """Provide a temporary logs directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def config(logs_dir):
    """Configuration pointing at the temporary logs directory."""
    return Config.for_local(logs_dir, max_history=1000)


@pytest.fixture
def client():
    return Client("alice")


@pytest.fixture
def network():
    return Network(uuid="net-1", name="Libera")


@pytest.fixture
def other_network():
    return Network(uuid="net-2", name="OFTC")


@pytest.fixture
def channel():
    return Channel("#Lounge")


@pytest_asyncio.fixture
async def storage(client, config):
    """Provide an enabled SqliteMessageStorage, closed after the test."""
    store = SqliteMessageStorage(client, config)
    await store.enable()
    yield store
    await store.close()
