"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession

from pyhelki.resilience import ExponentialBackoff
from pyhelki.transport import ResilientTransport


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Build mock aiohttp responses usable as ``async with`` targets.

    Returns:
        Factory taking a status and an optional JSON payload.
    """

    def _make(status: int = HTTPStatus.OK, payload: Any = None, *, content_type: str = "application/json") -> MagicMock:
        response = MagicMock()
        response.status = status
        response.headers = {}
        response.content_type = content_type if payload is not None else "text/plain"
        response.json = AsyncMock(return_value=payload)
        response.__aenter__ = AsyncMock(return_value=response)
        response.__aexit__ = AsyncMock(return_value=None)
        return response

    return _make


@pytest.fixture
def no_wait_backoff() -> ExponentialBackoff:
    """Backoff with zero delays so retry tests run instantly."""
    return ExponentialBackoff(base_delay=0.0, max_retries=5, jitter=False)


@pytest.fixture
def transport(mock_session: ClientSession, no_wait_backoff: ExponentialBackoff) -> ResilientTransport:
    """Create a transport on the mock session."""
    return ResilientTransport(mock_session, backoff=no_wait_backoff)
