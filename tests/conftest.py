"""
Shared pytest fixtures for fsbridge tests.
"""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fsbridge.adapters.base import Adapter
from fsbridge.adapters.memory import MemoryAdapter
from fsbridge.cache import MetadataCache
from fsbridge.config import ConnectionConfig, FilesystemConfig, SSHConfig
from fsbridge.filesystem import Filesystem


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = f"""[filesystem]
adapter = local
strict_config = false
allow_overwrite = true
default_visibility = private
cache_listing_entries = false

[local]
root = {tmp_path / "storage"}

[cache]
enabled = true
ttl_seconds = 120
max_entries = 500

[connection]
timeout_seconds = 45
retry_attempts = 5
retry_delay_seconds = 2
keepalive_interval_seconds = 90

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def sftp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Creates an INI file selecting the SFTP adapter."""
    config_content = """[filesystem]
adapter = sftp

[sftp]
host = files.example.com
port = 2222
username = deploy
key_file = ~/.ssh/id_ed25519
use_agent = false
root = /srv/data
"""
    config_path = tmp_path / "sftp_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def memory_adapter() -> MemoryAdapter:
    return MemoryAdapter()


@pytest.fixture
def cache() -> MetadataCache:
    """Cache without expiry so tests never race the clock."""
    return MetadataCache(ttl_seconds=None)


@pytest.fixture
def fs(memory_adapter: MemoryAdapter, cache: MetadataCache) -> Filesystem:
    """Filesystem over a fresh in-memory adapter."""
    return Filesystem(memory_adapter, cache)


@pytest.fixture
def spy_adapter(memory_adapter: MemoryAdapter) -> MagicMock:
    """
    Records every adapter call while still storing data in memory.

    Set ``side_effect`` on a method to simulate a backend failure.
    """
    return MagicMock(wraps=memory_adapter)


@pytest.fixture
def spy_fs(spy_adapter: MagicMock, cache: MetadataCache) -> Filesystem:
    return Filesystem(spy_adapter, cache)


@pytest.fixture
def mock_adapter() -> MagicMock:
    """Fully mocked adapter; every method must be stubbed per test."""
    return MagicMock(spec=Adapter)


@pytest.fixture
def mock_fs(mock_adapter: MagicMock, cache: MetadataCache) -> Filesystem:
    return Filesystem(mock_adapter, cache)


@pytest.fixture
def ssh_config() -> SSHConfig:
    """Creates a standard SSHConfig for testing."""
    return SSHConfig(
        host="test.ssh.local",
        port=22,
        username="testuser",
        key_file="/home/testuser/.ssh/id_rsa",
        use_agent=False,
        root="/srv/data",
    )


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Creates a ConnectionConfig with no retry delay."""
    return ConnectionConfig(
        timeout_seconds=30,
        retry_attempts=3,
        retry_delay_seconds=0,
        keepalive_interval_seconds=60,
    )


@pytest.fixture
def permissive_config() -> FilesystemConfig:
    return FilesystemConfig(adapter="memory", strict_config=False)
