"""ESP32 BLE terminal link library."""

from __future__ import annotations

from .central import CentralController, CentralState, LinkSession
from .config import LinkConfig
from .const import (
    DEFAULT_DEVICE_NAME,
    RX_CHAR_UUID,
    SERVICE_UUID,
    TX_CHAR_UUID,
)
from .errors import ConfigError, ErrorReason, LinkError, TransportError
from .peripheral import PeripheralController, PeripheralState
from .protocol import Command, SensorReading, TerminalProtocol
from .sink import LoggingSink, Severity
from .transport import (
    BleakPeerSelector,
    BleakTransport,
    Characteristic,
    LoopbackLink,
    PeerHandle,
)

__all__ = [
    "DEFAULT_DEVICE_NAME",
    "RX_CHAR_UUID",
    "SERVICE_UUID",
    "TX_CHAR_UUID",
    "BleakPeerSelector",
    "BleakTransport",
    "CentralController",
    "CentralState",
    "Characteristic",
    "Command",
    "ConfigError",
    "ErrorReason",
    "LinkConfig",
    "LinkError",
    "LinkSession",
    "LoggingSink",
    "LoopbackLink",
    "PeerHandle",
    "PeripheralController",
    "PeripheralState",
    "SensorReading",
    "Severity",
    "TerminalProtocol",
    "TransportError",
]
