"""Error taxonomy for the BLE terminal link."""

from __future__ import annotations

from enum import StrEnum


class ErrorReason(StrEnum):
    """Why an operation on the link failed. All of them are recoverable."""

    NO_PEER_SELECTED = "NoPeerSelected"
    CONNECT_FAILED = "ConnectFailed"
    INCOMPATIBLE_PEER = "IncompatiblePeer"
    SUBSCRIBE_FAILED = "SubscribeFailed"
    WRITE_FAILED = "WriteFailed"
    SENSOR_READ_FAILED = "SensorReadFailed"
    UNEXPECTED_DISCONNECT = "UnexpectedDisconnect"


class LinkError(Exception):
    """Base class for link failures."""


class TransportError(LinkError):
    """Raised by a transport when the radio or the peer fails an operation."""


class ConfigError(ValueError):
    """Raised when a link configuration does not validate."""
