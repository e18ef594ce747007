"""Data models for Helki API requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


__all__ = [
    "Credential",
    "Device",
    "GroupedDevices",
    "Node",
    "SetStatus",
    "Setup",
    "SetupArgs",
    "Status",
]


@dataclass(frozen=True)
class Credential:
    """Bearer credential obtained from the token endpoint.

    Attributes:
        access_token: Opaque bearer token sent with every API request.
        expires_at: UTC instant at which the server stops accepting the token.
    """

    access_token: str
    expires_at: datetime

    def remaining_seconds(self, now: datetime | None = None) -> float:
        """Return the number of seconds until the token expires (negative once expired)."""
        current = now or datetime.now(UTC)
        return (self.expires_at - current).total_seconds()

    def expires_within(self, margin_seconds: float, now: datetime | None = None) -> bool:
        """Check whether the remaining lifetime is below the given margin."""
        return self.remaining_seconds(now) < margin_seconds


@dataclass
class Device:
    """Device record from the devs endpoint.

    Attributes:
        dev_id: Unique device identifier, used as a path parameter.
        name: Human-readable device name.
        product_id: Product identifier.
        fw_version: Firmware version.
        serial_id: Serial identifier.
    """

    dev_id: str
    name: str
    product_id: str
    fw_version: str
    serial_id: str


@dataclass
class Node:
    """Addressable heating unit (heater, thermostat, accumulator) within a device.

    Attributes:
        type: Node type as used in API paths (e.g. "htr", "acm", "thm").
        addr: Node address within the device.
        name: Optional user-assigned name.
        installed: Whether the node is installed.
        lost: Whether the device lost contact with the node.
    """

    type: str
    addr: str | int
    name: str | None = None
    installed: bool | None = None
    lost: bool | None = None

    @property
    def path(self) -> str:
        """Path fragment addressing this node, e.g. "htr/2"."""
        return f"{self.type}/{self.addr}"


@dataclass
class GroupedDevices:
    """A home (site) and the devices it owns.

    Attributes:
        id: Group identifier.
        name: Group name (usually the home name).
        devs: Devices in the group.
        owner: Whether the authenticated user owns the group.
    """

    id: str
    name: str
    devs: list[Device] = field(default_factory=list)
    owner: bool = False


@dataclass
class Status:
    """Operating state of a node as reported by the status endpoint.

    Temperatures are strings on the wire and kept that way; use the
    ``set_temperature`` and ``measured_temperature`` properties for floats.
    """

    mode: str | None = None
    units: str | None = None

    stemp: str | None = None
    mtemp: str | None = None
    ice_temp: str | None = None
    eco_temp: str | None = None
    comf_temp: str | None = None

    active: bool | None = None
    locked: int | None = None

    presence: bool | None = None
    window_open: bool | None = None
    true_radiant_active: bool | None = None
    boost: bool | None = None
    boost_end_min: int | None = None
    boost_end_day: int | None = None

    power: str | None = None
    duty: int | None = None
    act_duty: int | None = None
    pcb_temp: str | None = None
    power_pcb_temp: str | None = None
    error_code: str | None = None

    sync_status: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict)

    @property
    def set_temperature(self) -> float | None:
        """Target temperature as a float."""
        return _to_float(self.stemp)

    @property
    def measured_temperature(self) -> float | None:
        """Measured temperature as a float."""
        return _to_float(self.mtemp)

    @property
    def is_heating(self) -> bool:
        """Check if the node is actively heating."""
        return bool(self.active)

    @property
    def is_locked(self) -> bool:
        """Check if the node's local controls are locked."""
        return bool(self.locked)


@dataclass
class SetStatus:
    """Partial status update. Fields left as None are not sent.

    Attributes:
        mode: Operating mode ("auto", "manual" or "off").
        units: Temperature units ("C" or "F").
        stemp: Target temperature; sent as a one-decimal string.
    """

    mode: str | None = None
    units: str | None = None
    stemp: float | None = None


@dataclass
class Setup:
    """Configuration record of a node.

    Fields the server sends but this model does not name are kept in
    ``extra`` and submitted back unchanged. ``received_fields`` names the
    known fields present in the server record, so explicit nulls are
    submitted back as well.
    """

    sync_status: str | None = None
    control_mode: int | None = None
    units: str | None = None
    power: str | None = None
    offset: str | None = None
    priority: str | None = None
    away_mode: int | None = None
    away_offset: str | None = None
    window_mode_enabled: bool | None = None
    true_radiant_enabled: bool | None = None
    prog_resolution: int | None = None
    min_stemp: str | None = None
    max_stemp: str | None = None
    extra_options: dict[str, Any] | None = None
    factory_options: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    received_fields: frozenset[str] = field(default_factory=frozenset, compare=False, repr=False)


@dataclass
class SetupArgs:
    """Partial setup patch. Fields left as None keep their current value."""

    units: str | None = None
    power: str | None = None
    offset: str | None = None
    priority: str | None = None
    away_mode: int | None = None
    away_offset: str | None = None
    window_mode_enabled: bool | None = None
    true_radiant_enabled: bool | None = None
    min_stemp: str | None = None
    max_stemp: str | None = None
    extra_options: dict[str, Any] | None = None


def _to_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
