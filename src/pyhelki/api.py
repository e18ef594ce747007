"""Authenticated request execution against the Helki v2 API.

This module composes the token manager and the resilient transport. Callers
pass a path relative to the versioned API prefix and receive the decoded
JSON body; every failure surfaces as ``ApiRequestError``.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from pyhelki.const import API_PREFIX
from pyhelki.exceptions import ApiRequestError, TransportError


if TYPE_CHECKING:
    from types import TracebackType

    from pyhelki.auth import TokenManager
    from pyhelki.transport import ResilientTransport

_LOGGER = logging.getLogger(__name__)


class HelkiAPI:
    """Low-level executor for authenticated Helki API requests.

    Before every request the token manager is asked for a valid credential,
    which may trigger a re-authentication round trip. A 401 response drops
    the credential and the request is repeated once with a fresh token.

    Example:
        ```python
        transport = ResilientTransport()
        tokens = TokenManager(transport, api_root=root, client_id=cid, client_secret=secret,
                              username="user@example.com", password="password")
        async with HelkiAPI(token_manager=tokens, transport=transport) as api:
            devices = await api.request("devs")
            await api.request("devs/abc/htr/2/status", "POST", {"mode": "off"})
        ```

    Attributes:
        api_root: Root URL of the API (without trailing slash).
    """

    def __init__(
        self,
        *,
        token_manager: TokenManager,
        transport: ResilientTransport,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            token_manager: Token manager providing the bearer credential.
            transport: Transport executing the HTTP requests.
            logger: Logger to use instead of the module logger.
        """
        self._token_manager = token_manager
        self._transport = transport
        self._logger = logger or _LOGGER
        self.api_root = token_manager.api_root

    @property
    def token_manager(self) -> TokenManager:
        """Token manager used by this executor."""
        return self._token_manager

    @property
    def transport(self) -> ResilientTransport:
        """Transport used by this executor."""
        return self._transport

    async def __aenter__(self) -> HelkiAPI:
        """Enter the context manager, opening the transport session if needed."""
        await self._transport.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the transport session if it owns one."""
        await self._transport.__aexit__(exc_type, exc_val, exc_tb)

    def build_url(self, path: str) -> str:
        """Join the API root, the versioned prefix and ``path``."""
        return f"{self.api_root}/{API_PREFIX}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token_manager.access_token or ''}",
            "Content-Type": "application/json",
        }

    async def request(self, path: str, method: str = "GET", body: Any = None) -> Any:
        """Make an authenticated API request.

        Args:
            path: Path relative to the versioned prefix, e.g. "devs/abc/mgr/nodes".
            method: HTTP method (GET or POST).
            body: Optional JSON request body.

        Returns:
            The decoded JSON response body as-is, or None for an empty body.

        Raises:
            AuthenticationError: If a needed authentication fails.
            ApiRequestError: If the request fails after the transport's retries.
        """
        method = method.upper()
        url = self.build_url(path)
        retry_auth = True

        while True:
            await self._token_manager.ensure_valid()

            try:
                return await self._transport.send(method, url, headers=self._headers(), json=body)
            except TransportError as exc:
                if retry_auth and exc.status == HTTPStatus.UNAUTHORIZED:
                    self._logger.warning("Received status %d for %s, re-authenticating", exc.status, path)
                    self._token_manager.invalidate()
                    retry_auth = False
                    continue

                self._logger.debug("API request to %s failed: %s", path, exc)
                raise ApiRequestError(path, str(exc)) from exc
