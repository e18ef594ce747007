"""Python client library for Helki cloud-connected heating devices.

This package provides an async client for reading and changing the state of
radiators and heaters managed through the Helki API.

The library is organized into layers:
1. **Transport** (pyhelki.transport): aiohttp requests with retry and backoff
2. **Auth** (pyhelki.auth): OAuth2 password-grant token lifecycle
3. **API** (pyhelki.api): Authenticated request execution and error normalization
4. **Client** (pyhelki.client): Typed domain operations

Example:
    ```python
    from pyhelki import HelkiClient, SetupArgs

    async with HelkiClient(
        "api-example", "client-id", "client-secret", "user@example.com", "password"
    ) as client:
        devices = await client.get_devices()
        nodes = await client.get_nodes(devices[0].dev_id)

        status = await client.get_status(devices[0].dev_id, nodes[0])
        print(f"Measured: {status.measured_temperature}")

        await client.set_setup(devices[0].dev_id, nodes[0], SetupArgs(window_mode_enabled=True))
    ```
"""

from __future__ import annotations

from pyhelki.api import HelkiAPI
from pyhelki.auth import TokenManager
from pyhelki.client import HelkiClient
from pyhelki.exceptions import (
    ApiRequestError,
    AuthenticationError,
    HelkiError,
    InvalidParameterError,
    TokenLifetimeWarning,
    TransientTransportError,
    TransportError,
    TransportTimeoutError,
)
from pyhelki.models import (
    Credential,
    Device,
    GroupedDevices,
    Node,
    SetStatus,
    Setup,
    SetupArgs,
    Status,
)
from pyhelki.resilience import ExponentialBackoff, retry_with_backoff, should_retry
from pyhelki.serializers import merge_setup
from pyhelki.transport import ResilientTransport


__version__ = "0.1.0"

__all__ = [
    "ApiRequestError",
    "AuthenticationError",
    "Credential",
    "Device",
    "ExponentialBackoff",
    "GroupedDevices",
    "HelkiAPI",
    "HelkiClient",
    "HelkiError",
    "InvalidParameterError",
    "Node",
    "ResilientTransport",
    "SetStatus",
    "Setup",
    "SetupArgs",
    "Status",
    "TokenLifetimeWarning",
    "TokenManager",
    "TransientTransportError",
    "TransportError",
    "TransportTimeoutError",
    "__version__",
    "merge_setup",
    "retry_with_backoff",
    "should_retry",
]
