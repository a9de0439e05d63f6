from typing import Iterator

from unittest.mock import MagicMock, patch
import pytest

from wcproxy.config import Settings
from wcproxy.logging import shutdown_logging


# Configure anyio to only use asyncio backend
@pytest.fixture
def anyio_backend() -> str:
    """Force tests to use asyncio backend only."""
    return "asyncio"


@pytest.fixture(autouse=True, scope="session")
def mock_logger() -> Iterator[MagicMock]:
    with patch("wcproxy.logging._logger", MagicMock()) as mock_logger:
        mock_logger.log.return_value = None
        yield mock_logger


@pytest.fixture(autouse=True)
def stop_log_listener() -> Iterator[None]:
    """Stop any queue listener started by ``init_logging`` during a test."""
    yield
    shutdown_logging()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with log files under a temporary directory and a generous rate limit."""
    log_dir = tmp_path / "logs"
    return Settings(
        port=3000,
        log_dir=str(log_dir),
        log_file_path=str(log_dir / "all.log"),
        error_log_file_path=str(log_dir / "error.log"),
        cache_ttl_ms=3_600_000,
        cache_max_entries=100,
        qps_limit=1000,
        rate_limit_window_seconds=1.0,
        rate_limit_scope="global",
        rate_limit_enabled=True,
    )
