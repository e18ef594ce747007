"""Serialization and deserialization of API payloads.

Stateless functions converting between raw JSON bodies and the typed models
in ``pyhelki.models``. Deserializers raise ``KeyError``, ``TypeError`` or
``ValueError`` when a body does not have the expected shape; the client turns
those into ``ApiRequestError`` for the path that produced the body.
"""

from __future__ import annotations

import math
import re
from dataclasses import fields, replace
from typing import TYPE_CHECKING, Any

from pyhelki.const import STATUS_MODES, TEMPERATURE_UNITS
from pyhelki.exceptions import InvalidParameterError
from pyhelki.models import Device, GroupedDevices, Node, SetStatus, Setup, SetupArgs, Status


if TYPE_CHECKING:
    from collections.abc import Mapping


_STATUS_FIELDS = tuple(f.name for f in fields(Status) if f.name != "raw_data")
_SETUP_FIELDS = tuple(f.name for f in fields(Setup) if f.name not in {"extra", "received_fields"})
_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"Expected {what} object, got {type(data).__name__}"
        raise TypeError(msg)
    return data


def _require_list(data: Any, what: str) -> list[Any]:
    if not isinstance(data, list):
        msg = f"Expected list of {what}, got {type(data).__name__}"
        raise TypeError(msg)
    return data


def deserialize_device(data: dict[str, Any]) -> Device:
    """Deserialize a device record.

    Example:
        >>> deserialize_device({"dev_id": "abc", "name": "Lounge"}).name
        'Lounge'
    """
    data = _require_mapping(data, "device")
    dev_id = data["dev_id"]
    return Device(
        dev_id=dev_id,
        name=data.get("name") or dev_id,
        product_id=data.get("product_id") or "",
        fw_version=data.get("fw_version") or "",
        serial_id=data.get("serial_id") or "",
    )


def deserialize_devices(data: Any) -> list[Device]:
    """Deserialize the body of GET devs."""
    return [deserialize_device(item) for item in _require_list(data, "devices")]


def deserialize_grouped_devices(data: Any) -> list[GroupedDevices]:
    """Deserialize the body of GET grouped_devs."""
    groups: list[GroupedDevices] = []
    for item in _require_list(data, "device groups"):
        group = _require_mapping(item, "device group")
        groups.append(
            GroupedDevices(
                id=group["id"],
                name=group.get("name", ""),
                devs=deserialize_devices(group.get("devs", [])),
                owner=bool(group.get("owner", False)),
            )
        )
    return groups


def deserialize_nodes(data: Any) -> list[Node]:
    """Unwrap the ``{"nodes": [...]}`` envelope of GET devs/{id}/mgr/nodes.

    Node order is preserved.
    """
    envelope = _require_mapping(data, "nodes envelope")
    nodes: list[Node] = []
    for item in _require_list(envelope["nodes"], "nodes"):
        node = _require_mapping(item, "node")
        nodes.append(
            Node(
                type=node["type"],
                addr=node["addr"],
                name=node.get("name"),
                installed=node.get("installed"),
                lost=node.get("lost"),
            )
        )
    return nodes


def deserialize_status(data: Any) -> Status:
    """Deserialize a node status body. Missing fields stay None."""
    data = _require_mapping(data, "status")
    return Status(**{name: data.get(name) for name in _STATUS_FIELDS}, raw_data=dict(data))


def deserialize_setup(data: Any) -> Setup:
    """Deserialize a node setup body, keeping unknown fields in ``extra``."""
    data = _require_mapping(data, "setup")
    known = {name: data.get(name) for name in _SETUP_FIELDS}
    extra = {key: value for key, value in data.items() if key not in known}
    return Setup(**known, extra=extra, received_fields=frozenset(data.keys() & known.keys()))


def serialize_setup(setup: Setup) -> dict[str, Any]:
    """Serialize a complete setup record for POST .../setup.

    Known fields that are None are omitted unless the server sent them;
    ``extra`` fields are sent as received.
    """
    payload: dict[str, Any] = dict(setup.extra)
    for name in _SETUP_FIELDS:
        value = getattr(setup, name)
        if value is not None or name in setup.received_fields:
            payload[name] = value
    return payload


def merge_setup(current: Setup, patch: SetupArgs) -> Setup:
    """Overlay the non-None fields of ``patch`` on ``current``.

    All other fields, including unknown server fields, are retained. The
    input records are not modified.

    Example:
        >>> merged = merge_setup(Setup(units="C", offset="0.0"), SetupArgs(offset="1.5"))
        >>> (merged.units, merged.offset)
        ('C', '1.5')
    """
    changes = {f.name: value for f in fields(patch) if (value := getattr(patch, f.name)) is not None}
    return replace(current, **changes, extra=dict(current.extra))


def serialize_set_status(status: SetStatus) -> dict[str, Any]:
    """Serialize a partial status update, sending only the fields that are set.

    Raises:
        InvalidParameterError: If a field has an invalid value or no field is set.
    """
    payload: dict[str, Any] = {}

    if status.mode is not None:
        if status.mode not in STATUS_MODES:
            msg = f"Invalid mode {status.mode!r}, expected one of {sorted(STATUS_MODES)}"
            raise InvalidParameterError(msg, parameter_name="mode", value=status.mode)
        payload["mode"] = status.mode

    if status.units is not None:
        if status.units not in TEMPERATURE_UNITS:
            msg = f"Invalid units {status.units!r}, expected one of {sorted(TEMPERATURE_UNITS)}"
            raise InvalidParameterError(msg, parameter_name="units", value=status.units)
        payload["units"] = status.units

    if status.stemp is not None:
        try:
            payload["stemp"] = f"{float(status.stemp):.1f}"
        except (TypeError, ValueError):
            msg = f"Invalid stemp value {status.stemp!r}"
            raise InvalidParameterError(msg, parameter_name="stemp", value=status.stemp) from None

    if not payload:
        msg = "Status update must set at least one field"
        raise InvalidParameterError(msg)

    return payload


def serialize_away_status(args: Mapping[str, Any]) -> dict[str, Any]:
    """Drop None-valued entries from an away status update.

    Example:
        >>> serialize_away_status({"away": True, "forced": None})
        {'away': True}
    """
    return {key: value for key, value in args.items() if value is not None}


def deserialize_power_limit(data: Any) -> int:
    """Convert ``{"power_limit": "1500"}`` to ``1500``.

    The leading integer of the value is used, so ``"1500.0"`` and
    ``" 1500W"`` both read as 1500. Numeric JSON values are truncated.

    Raises:
        ValueError: If the value does not start with an integer.
    """
    data = _require_mapping(data, "power limit")
    value = data["power_limit"]
    if isinstance(value, bool):
        msg = f"Invalid power limit {value!r}"
        raise TypeError(msg)
    if isinstance(value, int | float):
        if not math.isfinite(value):
            msg = f"Invalid power limit {value!r}"
            raise ValueError(msg)
        return int(value)

    match = _LEADING_INTEGER.match(str(value))
    if match is None:
        msg = f"Invalid power limit {value!r}"
        raise ValueError(msg)
    return int(match.group(1))


def serialize_power_limit(power_limit: int) -> dict[str, str]:
    """Convert ``1500`` to ``{"power_limit": "1500"}``.

    Raises:
        InvalidParameterError: If the limit is not a non-negative integer.
    """
    if isinstance(power_limit, bool) or not isinstance(power_limit, int) or power_limit < 0:
        msg = f"Invalid power limit {power_limit!r}, expected a non-negative integer"
        raise InvalidParameterError(msg, parameter_name="power_limit", value=power_limit)
    return {"power_limit": str(power_limit)}
