"""OAuth2 token management for the Helki API."""

from __future__ import annotations

import asyncio
import base64
import logging
import math
import warnings
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from pyhelki.const import GRANT_TYPE_PASSWORD, MIN_TOKEN_LIFETIME, TOKEN_PATH
from pyhelki.exceptions import AuthenticationError, TokenLifetimeWarning, TransportError
from pyhelki.models import Credential


if TYPE_CHECKING:
    from pyhelki.transport import ResilientTransport

_LOGGER = logging.getLogger(__name__)

_REQUIRED_TOKEN_FIELDS = ("access_token", "refresh_token", "expires_in")


def _basic_authorization(user: str, password: str) -> str:
    """Build an HTTP basic Authorization header value."""
    credentials = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
    return f"Basic {credentials}"


class TokenManager:
    """Obtain and maintain the bearer credential for the Helki API.

    The manager uses the OAuth2 resource-owner password grant. The client id
    and secret are sent as HTTP basic auth, the user's credentials as the
    form-encoded grant. There is no refresh-token flow: when the held token
    has less than ``MIN_TOKEN_LIFETIME`` seconds left, the full password grant
    is repeated.

    Re-authentication is single-flight. Concurrent callers that find the
    token expiring wait on one lock, and every caller after the first sees the
    fresh credential and returns without another round trip.

    Example:
        ```python
        async with ResilientTransport() as transport:
            tokens = TokenManager(
                transport,
                api_root="https://api-example.helki.com",
                client_id="client-id",
                client_secret="client-secret",
                username="user@example.com",
                password="password",
            )
            await tokens.ensure_valid()
            headers = {"Authorization": f"Bearer {tokens.access_token}"}
        ```

    Attributes:
        api_root: Root URL of the API (without trailing slash).
        username: Account user name used in the password grant.
    """

    def __init__(
        self,
        transport: ResilientTransport,
        *,
        api_root: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the token manager.

        Args:
            transport: Transport used for the token request.
            api_root: Root URL of the API.
            client_id: OAuth2 client id (basic auth user).
            client_secret: OAuth2 client secret (basic auth password).
            username: Account user name.
            password: Account password.
            logger: Logger to use instead of the module logger.
        """
        self.api_root = api_root.rstrip("/")
        self.username = username

        self._transport = transport
        self._client_authorization = _basic_authorization(client_id, client_secret)
        self._password = password
        self._credential: Credential | None = None
        self._auth_lock = asyncio.Lock()
        self._logger = logger or _LOGGER

    @property
    def token_url(self) -> str:
        """URL of the token endpoint."""
        return f"{self.api_root}/{TOKEN_PATH}"

    @property
    def access_token(self) -> str | None:
        """Current access token, or None when not authenticated."""
        return self._credential.access_token if self._credential is not None else None

    @property
    def expires_at(self) -> datetime | None:
        """Expiry of the current token, or None when not authenticated."""
        return self._credential.expires_at if self._credential is not None else None

    def is_authenticated(self) -> bool:
        """Check if a credential is held (it may still be close to expiry)."""
        return self._credential is not None

    def needs_authentication(self) -> bool:
        """Check if no credential is held or it expires within the safety margin."""
        return self._credential is None or self._credential.expires_within(MIN_TOKEN_LIFETIME)

    def invalidate(self) -> None:
        """Drop the held credential so the next ``ensure_valid()`` authenticates."""
        self._credential = None
        self._logger.debug("Credential invalidated")

    async def ensure_valid(self) -> None:
        """Make sure a credential with at least the safety margin of lifetime is held.

        Performs no network call while the current token is fresh.

        Raises:
            AuthenticationError: If authentication is needed and fails.
        """
        if not self.needs_authentication():
            return

        async with self._auth_lock:
            # Another caller may have authenticated while we waited
            if not self.needs_authentication():
                return
            await self._authenticate()

    async def authenticate(self) -> None:
        """Run the password grant now, replacing any held credential.

        Raises:
            AuthenticationError: If the token request fails or its response is incomplete.
        """
        async with self._auth_lock:
            await self._authenticate()

    async def _authenticate(self) -> None:
        form = {
            "grant_type": GRANT_TYPE_PASSWORD,
            "username": self.username,
            "password": self._password,
        }

        self._logger.debug("Authenticating with %s", self.token_url)

        try:
            token_data = await self._transport.send(
                "POST",
                self.token_url,
                headers={
                    "Authorization": self._client_authorization,
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data=form,
            )
        except TransportError as exc:
            msg = f"Token request failed: {exc}"
            raise AuthenticationError(msg) from exc

        credential = self._parse_token_response(token_data)
        self._credential = credential

        lifetime = credential.remaining_seconds()
        self._logger.info("Authentication successful for %s, token valid for %ds", self.username, int(lifetime))

        if lifetime < MIN_TOKEN_LIFETIME:
            msg = (
                f"Token expires in {lifetime:.0f}s, which is below the minimum lifetime of "
                f"{MIN_TOKEN_LIFETIME}s; every request will re-authenticate"
            )
            self._logger.warning(msg)
            warnings.warn(msg, TokenLifetimeWarning, stacklevel=3)

    @staticmethod
    def _parse_token_response(token_data: Any) -> Credential:
        """Build a Credential from a token endpoint response.

        Raises:
            AuthenticationError: If a required field is missing or the lifetime is invalid.
        """
        if not isinstance(token_data, dict):
            msg = "Invalid auth response: expected a JSON object"
            raise AuthenticationError(msg)

        missing = [name for name in _REQUIRED_TOKEN_FIELDS if not token_data.get(name)]
        if missing:
            msg = f"Invalid auth response: missing {', '.join(missing)}"
            raise AuthenticationError(msg)

        try:
            expires_in = float(token_data["expires_in"])
        except (TypeError, ValueError):
            msg = f"Invalid auth response: unparsable expires_in {token_data['expires_in']!r}"
            raise AuthenticationError(msg) from None

        if not math.isfinite(expires_in) or expires_in <= 0:
            msg = f"Invalid auth response: expires_in must be a positive number, got {expires_in}"
            raise AuthenticationError(msg)

        return Credential(
            access_token=str(token_data["access_token"]),
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        )
