"""HTTP transport with automatic retry for the Helki API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientResponseError, ClientSession, ClientTimeout, ContentTypeError

from pyhelki.const import DEFAULT_RETRY_ATTEMPTS, DEFAULT_TIMEOUT
from pyhelki.exceptions import TransientTransportError, TransportError, TransportTimeoutError
from pyhelki.resilience import ExponentialBackoff, retry_with_backoff


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


class ResilientTransport:
    """Send HTTP requests over an aiohttp session, retrying transient failures.

    Every attempt is bounded by a fixed 10 second timeout. Network errors and
    429 responses are retried for any method. Timeouts and 5xx responses are
    retried for idempotent methods only, so a slow POST is never sent twice.
    Retries wait an exponentially growing delay.

    Example:
        ```python
        async with ResilientTransport(retry_attempts=3) as transport:
            devices = await transport.send(
                "GET",
                "https://api-example.helki.com/api/v2/devs",
                headers={"Authorization": "Bearer ..."},
            )
        ```
    """

    def __init__(
        self,
        session: ClientSession | None = None,
        *,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        backoff: ExponentialBackoff | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager and closed on exit.
            retry_attempts: Number of retries after the first attempt.
            backoff: Optional pre-configured backoff. Overrides retry_attempts.
            logger: Logger to use instead of the module logger.
        """
        self._session = session
        self._owns_session = session is None
        self._backoff = backoff or ExponentialBackoff(max_retries=retry_attempts)
        self._timeout = ClientTimeout(total=DEFAULT_TIMEOUT)
        self._logger = logger or _LOGGER

    @property
    def backoff(self) -> ExponentialBackoff:
        """Backoff used between attempts."""
        return self._backoff

    @property
    def session(self) -> ClientSession | None:
        """The aiohttp session in use, if any."""
        return self._session

    def set_session(self, session: ClientSession) -> None:
        """Use an externally managed session. It will not be closed by the transport."""
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> ResilientTransport:
        """Enter the context manager, creating a session if none was provided."""
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the session if it was created here."""
        await self.close()

    async def close(self) -> None:
        """Close the session if this transport owns it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _validate_session(self) -> ClientSession:
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make requests."
            raise RuntimeError(msg)

        return self._session

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,
        data: Any = None,
    ) -> Any:
        """Send a request, retrying according to the retry predicate.

        Args:
            method: HTTP method.
            url: Absolute URL.
            headers: Optional request headers.
            json: Optional JSON body.
            data: Optional form body.

        Returns:
            Decoded JSON body, or None when the response has no JSON body.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            TransientTransportError: Network failure or 429 after all retries.
            TransportTimeoutError: An attempt timed out and was not retried further.
            TransportError: Any other non-success response or an undecodable body.
        """
        session = self._validate_session()
        method = method.upper()

        async def attempt() -> Any:
            return await self._send_once(session, method, url, headers=headers, json=json, data=data)

        return await retry_with_backoff(attempt, method=method, backoff=self._backoff, logger=self._logger)

    async def _send_once(
        self,
        session: ClientSession,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None,
        json: Any,
        data: Any,
    ) -> Any:
        self._logger.debug("%s %s", method, url)

        try:
            async with session.request(
                method,
                url,
                headers=headers,
                json=json,
                data=data,
                timeout=self._timeout,
            ) as response:
                if response.status == HTTPStatus.TOO_MANY_REQUESTS:
                    msg = f"Rate limited (status {response.status})"
                    raise TransientTransportError(msg, status=response.status)

                if response.status >= HTTPStatus.BAD_REQUEST:
                    msg = f"Request failed with status {response.status}"
                    raise TransportError(msg, status=response.status)

                # Match with substring to handle charset parameters
                if "application/json" not in (response.content_type or ""):
                    return None

                try:
                    return await response.json()
                except (ContentTypeError, ValueError) as exc:
                    msg = f"Invalid JSON response: {exc}"
                    raise TransportError(msg, status=response.status) from exc

        except TimeoutError as exc:
            msg = "Request timed out"
            raise TransportTimeoutError(msg) from exc

        except ClientResponseError as exc:
            msg = f"Request failed with status {exc.status}: {exc.message}"
            if exc.status == HTTPStatus.TOO_MANY_REQUESTS:
                raise TransientTransportError(msg, status=exc.status) from exc
            raise TransportError(msg, status=exc.status) from exc

        except ClientError as exc:
            msg = f"Connection error: {exc}"
            raise TransientTransportError(msg) from exc
