"""Tests for retry patterns (exponential backoff, retry predicate, retry loop)."""

from __future__ import annotations

from http import HTTPStatus
from unittest.mock import AsyncMock, patch

import pytest

from pyhelki.exceptions import TransientTransportError, TransportError, TransportTimeoutError
from pyhelki.resilience import ExponentialBackoff, is_idempotent, retry_with_backoff, should_retry


class TestExponentialBackoff:
    """Test ExponentialBackoff delay calculation."""

    def test_delays_double_without_jitter(self) -> None:
        """Test that each delay is twice the previous one."""
        backoff = ExponentialBackoff(base_delay=0.1, jitter=False)

        delays = [backoff.calculate_delay(attempt) for attempt in range(5)]

        assert delays == pytest.approx([0.1, 0.2, 0.4, 0.8, 1.6])

    def test_delay_capped_at_max(self) -> None:
        """Test that delays never exceed max_delay."""
        backoff = ExponentialBackoff(base_delay=1.0, max_delay=5.0, jitter=False)

        assert backoff.calculate_delay(10) == 5.0

    def test_jitter_only_adds_delay(self) -> None:
        """Test that jitter stays within 0-20% above the exponential value."""
        backoff = ExponentialBackoff(base_delay=1.0, jitter=True)

        for _ in range(50):
            delay = backoff.calculate_delay(2)
            assert 4.0 <= delay <= 4.8

    def test_delays_strictly_increase_with_jitter(self) -> None:
        """Test that jittered delays still grow from one attempt to the next."""
        backoff = ExponentialBackoff(base_delay=0.1, jitter=True)

        for _ in range(20):
            delays = [backoff.calculate_delay(attempt) for attempt in range(5)]
            assert all(later > earlier for earlier, later in zip(delays, delays[1:], strict=False))

    def test_max_retries(self) -> None:
        """Test that max_retries is exposed and defaults to 5."""
        assert ExponentialBackoff().max_retries == 5
        assert ExponentialBackoff(max_retries=2).max_retries == 2

    def test_negative_max_retries_rejected(self) -> None:
        """Test that a negative retry count is refused."""
        with pytest.raises(ValueError, match="max_retries"):
            ExponentialBackoff(max_retries=-1)


class TestShouldRetry:
    """Test the retry predicate."""

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_network_error_retried(self, method: str) -> None:
        """Test that network failures are retried for any method."""
        assert should_retry(method, TransientTransportError("Connection reset")) is True

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_rate_limit_retried(self, method: str) -> None:
        """Test that 429 responses are retried for any method."""
        error = TransientTransportError("Rate limited", status=HTTPStatus.TOO_MANY_REQUESTS)
        assert should_retry(method, error) is True

    def test_timeout_retried_for_idempotent_methods(self) -> None:
        """Test that timeouts are retried for GET and PUT only, not POST."""
        error = TransportTimeoutError("Request timed out")

        assert should_retry("GET", error) is True
        assert should_retry("PUT", error) is True
        assert should_retry("POST", error) is False

    def test_server_error_retried_for_get(self) -> None:
        """Test that 5xx responses to GET are retried."""
        error = TransportError("Server error", status=HTTPStatus.INTERNAL_SERVER_ERROR)
        assert should_retry("GET", error) is True

    def test_server_error_not_retried_for_post(self) -> None:
        """Test that 5xx responses to POST are not retried."""
        error = TransportError("Server error", status=HTTPStatus.INTERNAL_SERVER_ERROR)
        assert should_retry("POST", error) is False

    @pytest.mark.parametrize("status", [HTTPStatus.BAD_REQUEST, HTTPStatus.UNAUTHORIZED, HTTPStatus.NOT_FOUND])
    def test_client_error_not_retried(self, status: HTTPStatus) -> None:
        """Test that 4xx responses other than 429 are never retried."""
        assert should_retry("GET", TransportError("Client error", status=status)) is False

    def test_decode_error_without_status_not_retried(self) -> None:
        """Test that non-transient failures without a status are not retried."""
        assert should_retry("GET", TransportError("Invalid JSON response")) is False

    def test_idempotent_methods(self) -> None:
        """Test method classification."""
        assert is_idempotent("get") is True
        assert is_idempotent("PUT") is True
        assert is_idempotent("POST") is False


class TestRetryWithBackoff:
    """Test the retry loop."""

    async def test_returns_first_success(self) -> None:
        """Test that a successful call is not retried."""
        func = AsyncMock(return_value={"ok": True})

        result = await retry_with_backoff(func, method="GET", backoff=ExponentialBackoff(jitter=False))

        assert result == {"ok": True}
        assert func.call_count == 1

    async def test_retries_until_success(self) -> None:
        """Test that retryable failures are retried until a call succeeds."""
        func = AsyncMock(
            side_effect=[
                TransientTransportError("Connection reset"),
                TransientTransportError("Connection reset"),
                {"ok": True},
            ]
        )

        with patch("pyhelki.resilience.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await retry_with_backoff(func, method="GET", backoff=ExponentialBackoff(jitter=False))

        assert result == {"ok": True}
        assert func.call_count == 3
        assert mock_sleep.call_count == 2

    async def test_exhausted_retries_raise_last_error(self) -> None:
        """Test that the last error is raised after max_retries retries with growing delays."""
        func = AsyncMock(side_effect=TransientTransportError("Connection reset"))
        backoff = ExponentialBackoff(base_delay=0.1, max_retries=3, jitter=False)

        with (
            patch("pyhelki.resilience.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
            pytest.raises(TransientTransportError, match="Connection reset"),
        ):
            await retry_with_backoff(func, method="GET", backoff=backoff)

        assert func.call_count == 4
        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == pytest.approx([0.1, 0.2, 0.4])

    async def test_non_retryable_error_raised_immediately(self) -> None:
        """Test that a rejected failure is raised without sleeping."""
        func = AsyncMock(side_effect=TransportError("Server error", status=HTTPStatus.INTERNAL_SERVER_ERROR))

        with (
            patch("pyhelki.resilience.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
            pytest.raises(TransportError),
        ):
            await retry_with_backoff(func, method="POST", backoff=ExponentialBackoff())

        assert func.call_count == 1
        mock_sleep.assert_not_called()

    async def test_zero_retries_makes_single_attempt(self) -> None:
        """Test that max_retries=0 disables retrying."""
        func = AsyncMock(side_effect=TransientTransportError("Connection reset"))

        with pytest.raises(TransientTransportError):
            await retry_with_backoff(func, method="GET", backoff=ExponentialBackoff(max_retries=0))

        assert func.call_count == 1

    async def test_custom_predicate(self) -> None:
        """Test that a custom predicate replaces the default one."""
        func = AsyncMock(side_effect=[TransportError("Conflict", status=HTTPStatus.CONFLICT), "done"])

        result = await retry_with_backoff(
            func,
            method="POST",
            backoff=ExponentialBackoff(base_delay=0.0, jitter=False),
            retry_predicate=lambda _method, exc: getattr(exc, "status", None) == HTTPStatus.CONFLICT,
        )

        assert result == "done"
        assert func.call_count == 2
