"""ESP32 BLE terminal text protocol implementation."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from .const import (
    REPLY_UNKNOWN_FORMAT,
    STATUS_ERROR,
    STATUS_FORMAT,
    TELEMETRY_ERROR,
    TELEMETRY_FORMAT,
)

_TEMPERATURE_RE = re.compile(r"Temperature:\s*(-?\d+(?:\.\d+)?)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SensorReading:
    """One temperature/humidity sample. Absent fields mean the read failed."""

    temperature: float | None = None
    humidity: float | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def ok(self) -> bool:
        """Return True when both values were acquired."""
        return self.temperature is not None and self.humidity is not None

    @classmethod
    def from_raw(
        cls, temperature: float | None, humidity: float | None
    ) -> SensorReading:
        """Build a reading from driver values, treating NaN as a failed read."""

        def _clean(value: float | None) -> float | None:
            if value is None or math.isnan(value):
                return None
            return float(value)

        return cls(temperature=_clean(temperature), humidity=_clean(humidity))

    @classmethod
    def failed(cls) -> SensorReading:
        """Return a reading that carries no values."""
        return cls()


class Command(StrEnum):
    """Closed vocabulary accepted on the RX characteristic."""

    STATUS = "STATUS"
    LED_ON = "LED ON"
    LED_OFF = "LED OFF"
    TEMP = "TEMP"
    HELLO = "HELLO"
    HELP = "HELP"


# Normalized token -> command, including the short aliases
_COMMAND_TOKENS: dict[str, Command] = {
    "STATUS": Command.STATUS,
    "LED ON": Command.LED_ON,
    "LEDON": Command.LED_ON,
    "LED OFF": Command.LED_OFF,
    "LEDOFF": Command.LED_OFF,
    "TEMP": Command.TEMP,
    "HELLO": Command.HELLO,
    "HI": Command.HELLO,
    "HELP": Command.HELP,
}


class TerminalProtocol:
    """Encoder/decoder for the line-based terminal protocol.

    Protocol Details:
    - Commands: written TO the device on RX (6e400002), one write per command
    - Telemetry and replies: notified FROM the device on TX (6e400003)
    - Message format: a single UTF-8 line, no sequence numbers
    - Commands may carry a trailing newline; receivers strip it

    Telemetry lines:
        Temperature: 25.5 °C | Humidity: 60.2 %
        Error: Sensor read failed!
    """

    @staticmethod
    def encode_command(command: str, newline: bool = False) -> bytes:
        """Encode a command for the RX characteristic.

        Args:
            command: Command text, already trimmed.
            newline: Append a trailing newline.

        Returns:
            bytes: The command as UTF-8 bytes.
        """
        if newline:
            command = f"{command}\n"
        return command.encode("utf-8")

    @staticmethod
    def decode_text(data: bytes | bytearray) -> str:
        """Decode a characteristic value as UTF-8, replacing invalid bytes."""
        return bytes(data).decode("utf-8", errors="replace")

    @staticmethod
    def normalize_command(data: bytes | bytearray | str) -> tuple[str, str]:
        """Return the trimmed command text and its upper-cased matching key."""
        if isinstance(data, str):
            text = data.strip()
        else:
            text = TerminalProtocol.decode_text(data).strip()
        return text, text.upper()

    @staticmethod
    def parse_command(token: str) -> Command | None:
        """Match a token case-insensitively against the command vocabulary.

        Returns:
            The command, or None for an unknown token.
        """
        return _COMMAND_TOKENS.get(token.strip().upper())

    @staticmethod
    def format_telemetry(reading: SensorReading) -> str:
        """Format a reading as a telemetry line (or the error line)."""
        if not reading.ok:
            return TELEMETRY_ERROR
        return TELEMETRY_FORMAT.format(
            temperature=reading.temperature, humidity=reading.humidity
        )

    @staticmethod
    def format_status(reading: SensorReading, led_on: bool) -> str:
        """Format the reply to STATUS."""
        if not reading.ok:
            return STATUS_ERROR
        return STATUS_FORMAT.format(
            temperature=reading.temperature,
            humidity=reading.humidity,
            led="ON" if led_on else "OFF",
        )

    @staticmethod
    def format_unknown(command: str) -> str:
        """Format the reply to an unrecognized command."""
        return REPLY_UNKNOWN_FORMAT.format(command=command)

    @staticmethod
    def parse_temperature(text: str) -> float | None:
        """Extract the value of a "Temperature: <number>" fragment.

        Returns:
            The temperature, or None if the line does not carry one.
        """
        match = _TEMPERATURE_RE.search(text)
        if match is None:
            return None
        return float(match.group(1))
