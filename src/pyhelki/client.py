"""High-level client for Helki heating devices.

This module provides typed domain operations on top of the low-level
request executor in ``pyhelki.api``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pyhelki.api import HelkiAPI
from pyhelki.auth import TokenManager
from pyhelki.const import API_HOST_TEMPLATE, DEFAULT_RETRY_ATTEMPTS
from pyhelki.exceptions import ApiRequestError
from pyhelki.serializers import (
    deserialize_devices,
    deserialize_grouped_devices,
    deserialize_nodes,
    deserialize_power_limit,
    deserialize_setup,
    deserialize_status,
    merge_setup,
    serialize_away_status,
    serialize_power_limit,
    serialize_set_status,
    serialize_setup,
)
from pyhelki.transport import ResilientTransport


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from aiohttp import ClientSession

    from pyhelki.models import Device, GroupedDevices, Node, SetStatus, Setup, SetupArgs, Status
    from pyhelki.resilience import ExponentialBackoff

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class HelkiClient:
    """Client for the Helki cloud API.

    Every method is a fresh round trip; nothing but the bearer credential is
    cached.

    Example:
        ```python
        from pyhelki import HelkiClient, SetStatus

        async with HelkiClient(
            "api-example", "client-id", "client-secret", "user@example.com", "password"
        ) as client:
            for home in await client.get_grouped_devices():
                for device in home.devs:
                    nodes = await client.get_nodes(device.dev_id)
                    status = await client.get_status(device.dev_id, nodes[0])
                    print(device.name, status.measured_temperature)
                    await client.set_status(device.dev_id, nodes[0], SetStatus(mode="manual", stemp=21.5))
        ```

    Attributes:
        api: Low-level HelkiAPI instance for raw requests.
    """

    def __init__(
        self,
        api_name: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        *,
        base_url: str | None = None,
        session: ClientSession | None = None,
        backoff: ExponentialBackoff | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the Helki client.

        Args:
            api_name: API host name fragment; the API root becomes
                ``https://{api_name}.helki.com``.
            client_id: OAuth2 client id.
            client_secret: OAuth2 client secret.
            username: Account user name.
            password: Account password.
            retry_attempts: Number of retries after the first attempt of a request.
            base_url: Optional API root overriding the one derived from api_name.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            backoff: Optional pre-configured backoff. Overrides retry_attempts.
            logger: Logger used by the client and its components instead of
                their module loggers.
        """
        api_root = base_url or API_HOST_TEMPLATE.format(api_name=api_name)
        self._logger = logger or _LOGGER

        self._transport = ResilientTransport(
            session,
            retry_attempts=retry_attempts,
            backoff=backoff,
            logger=logger,
        )
        self._token_manager = TokenManager(
            self._transport,
            api_root=api_root,
            client_id=client_id,
            client_secret=client_secret,
            username=username,
            password=password,
            logger=logger,
        )
        self._api = HelkiAPI(token_manager=self._token_manager, transport=self._transport, logger=logger)

    @property
    def api(self) -> HelkiAPI:
        """Get the underlying request executor for advanced use cases."""
        return self._api

    @property
    def token_manager(self) -> TokenManager:
        """Get the token manager holding the bearer credential."""
        return self._token_manager

    async def __aenter__(self) -> HelkiClient:
        """Enter the context manager, creating the HTTP session if needed."""
        await self._api.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the HTTP session if the client created it."""
        await self._api.__aexit__(exc_type, exc_val, exc_tb)

    async def _fetch(self, path: str, parse: Callable[[Any], _T]) -> _T:
        data = await self._api.request(path)
        try:
            return parse(data)
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Unexpected response shape: {exc!r}"
            raise ApiRequestError(path, msg) from exc

    @staticmethod
    def _node_path(dev_id: str, node: Node) -> str:
        return f"devs/{dev_id}/{node.path}"

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def get_devices(self) -> list[Device]:
        """Get all devices of the account."""
        return await self._fetch("devs", deserialize_devices)

    async def get_grouped_devices(self) -> list[GroupedDevices]:
        """Get the account's homes, each with the devices it owns."""
        groups = await self._fetch("grouped_devs", deserialize_grouped_devices)
        self._logger.debug("Found %d device group(s)", len(groups))
        return groups

    async def get_nodes(self, dev_id: str) -> list[Node]:
        """Get the nodes of a device, in the order the API reports them."""
        return await self._fetch(f"devs/{dev_id}/mgr/nodes", deserialize_nodes)

    # -------------------------------------------------------------------------
    # Node status and setup
    # -------------------------------------------------------------------------

    async def get_status(self, dev_id: str, node: Node) -> Status:
        """Get the operating state of a node."""
        return await self._fetch(f"{self._node_path(dev_id, node)}/status", deserialize_status)

    async def set_status(self, dev_id: str, node: Node, status: SetStatus) -> None:
        """Change the operating state of a node.

        Only the fields set on ``status`` are sent; the current status is not
        read first.

        Raises:
            InvalidParameterError: If ``status`` sets no field or an invalid value.
            ApiRequestError: If the request fails.
        """
        payload = serialize_set_status(status)
        self._logger.debug("Setting status of %s/%s: %s", dev_id, node.path, payload)
        await self._api.request(f"{self._node_path(dev_id, node)}/status", "POST", payload)

    async def get_setup(self, dev_id: str, node: Node) -> Setup:
        """Get the configuration record of a node."""
        return await self._fetch(f"{self._node_path(dev_id, node)}/setup", deserialize_setup)

    async def set_setup(self, dev_id: str, node: Node, patch: SetupArgs) -> Setup:
        """Update a node's configuration with read-modify-write.

        The current setup is fetched, the fields set on ``patch`` replace the
        fetched values and the complete merged record is submitted. This is not
        atomic: a change made by another writer between the fetch and the
        submit is overwritten.

        Returns:
            The merged setup that was submitted.

        Raises:
            ApiRequestError: If either request fails.
        """
        path = f"{self._node_path(dev_id, node)}/setup"
        current = await self._fetch(path, deserialize_setup)
        merged = merge_setup(current, patch)
        await self._api.request(path, "POST", serialize_setup(merged))
        return merged

    # -------------------------------------------------------------------------
    # Device management
    # -------------------------------------------------------------------------

    async def get_device_away_status(self, dev_id: str) -> Any:
        """Get the away status of a device as returned by the API."""
        return await self._api.request(f"devs/{dev_id}/mgr/away_status")

    async def set_device_away_status(self, dev_id: str, args: Mapping[str, Any]) -> Any:
        """Update the away status of a device.

        Entries whose value is None are dropped before sending, so passing
        None explicitly leaves that field unchanged.
        """
        return await self._api.request(f"devs/{dev_id}/mgr/away_status", "POST", serialize_away_status(args))

    async def get_device_power_limit(self, dev_id: str) -> int:
        """Get the power limit of a device's heating system in watts."""
        return await self._fetch(f"devs/{dev_id}/htr_system/power_limit", deserialize_power_limit)

    async def set_device_power_limit(self, dev_id: str, power_limit: int) -> None:
        """Set the power limit of a device's heating system in watts.

        Raises:
            InvalidParameterError: If ``power_limit`` is not a non-negative integer.
            ApiRequestError: If the request fails.
        """
        await self._api.request(f"devs/{dev_id}/htr_system/power_limit", "POST", serialize_power_limit(power_limit))
