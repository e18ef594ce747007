"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from pyhelki import HelkiClient


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)

REQUIRED_VARIABLES = ("HELKI_API_NAME", "HELKI_CLIENT_ID", "HELKI_CLIENT_SECRET", "HELKI_USERNAME", "HELKI_PASSWORD")


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str]:
    """Load integration test configuration from environment.

    Tests using this fixture are skipped when any credential is missing.

    Returns:
        Dictionary with API name, client credentials and account credentials.
    """
    missing = [name for name in REQUIRED_VARIABLES if not os.getenv(name)]
    if missing:
        pytest.skip(f"Missing environment variables: {', '.join(missing)}")

    return {
        "api_name": os.environ["HELKI_API_NAME"],
        "client_id": os.environ["HELKI_CLIENT_ID"],
        "client_secret": os.environ["HELKI_CLIENT_SECRET"],
        "username": os.environ["HELKI_USERNAME"],
        "password": os.environ["HELKI_PASSWORD"],
    }


@pytest.fixture(scope="session")
def test_dev_id() -> str | None:
    """Get test device ID from environment if available.

    Returns:
        Device ID for testing, or None to use the first discovered device.
    """
    return os.getenv("HELKI_TEST_DEV_ID")


@pytest.fixture
async def integration_client(integration_config: dict[str, str]) -> AsyncGenerator[HelkiClient]:
    """Create a client with its own session for one test."""
    from pyhelki import HelkiClient

    async with HelkiClient(
        integration_config["api_name"],
        integration_config["client_id"],
        integration_config["client_secret"],
        integration_config["username"],
        integration_config["password"],
    ) as client:
        yield client


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: Integration tests requiring real API access")
    config.addinivalue_line("markers", "slow: Slow tests that may take several seconds")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Pause after each integration test to stay clear of API rate limiting."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(2.0)
