"""
Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import logging
import sqlite3

import pytest

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires live postgres/mysql servers)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (may require external services)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow (takes more than 1 second)")
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled (use --run-integration to enable)."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """
    Capture logs at DEBUG and undo any logging.disable() done by the CLI.

    This fixture runs automatically for all tests.
    """
    caplog.set_level(logging.DEBUG)
    yield
    logging.disable(logging.NOTSET)
    for logger_name in ("dbquery", "httpx", "openai", "asyncio", "asyncpg"):
        logging.getLogger(logger_name).setLevel(logging.NOTSET)


# ============================================================================
# Environment and Configuration
# ============================================================================

_ENV_VARS = (
    "LLM_API_KEY",
    "LLM_MODEL",
    "LLM_BASE_URL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "LLM_TIMEOUT",
    "DATABASE_TYPE",
    "DATABASE_URL",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def dbquery_home(tmp_path, monkeypatch):
    """
    Point DBQUERY_HOME at a temporary directory and clear dbquery env vars.

    Runs automatically so no test touches ~/.dbquery.
    """
    from dbquery.config import clear_settings_cache

    home = tmp_path / "dbquery-home"
    monkeypatch.setenv("DBQUERY_HOME", str(home))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    clear_settings_cache()
    yield home
    clear_settings_cache()


# ============================================================================
# Databases
# ============================================================================


@pytest.fixture
def sqlite_db(tmp_path):
    """
    Small SQLite database with users and orders tables.

    Returns the file path as a string.
    """
    path = tmp_path / "app.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT, active BOOLEAN);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL);
        INSERT INTO users (id, email, active) VALUES (1, 'a@example.com', 1);
        INSERT INTO users (id, email, active) VALUES (2, 'b@example.com', 0);
        INSERT INTO orders (id, user_id, total) VALUES (10, 1, 9.5);
        """
    )
    conn.commit()
    conn.close()
    return str(path)


# ============================================================================
# Mock LLM Provider
# ============================================================================


@pytest.fixture
def mock_llm_provider():
    """
    Mock LLM provider for testing SQL generation.

    Usage:
        def test_generator(mock_llm_provider):
            mock_llm_provider.set_response("SELECT 1")
            sql = await SQLGenerator(mock_llm_provider, "sqlite", 10).generate(q, ctx)
    """
    from unittest.mock import AsyncMock

    from dbquery.llm.models import LLMResponse, LLMUsage

    class MockLLMProvider:
        def __init__(self):
            self.generate = AsyncMock()

        def set_response(self, response: str):
            """Set the response that generate() will return."""
            self.generate.return_value = LLMResponse(
                content=response,
                model="mock-model",
                usage=LLMUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
                finish_reason="stop",
                provider="mock",
            )

    return MockLLMProvider()
