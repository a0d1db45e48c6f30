"""Sensor-side controller: advertising, telemetry timer and command dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

from .config import LinkConfig
from .const import REPLY_HELLO, REPLY_HELP, REPLY_LED_OFF, REPLY_LED_ON
from .errors import ErrorReason
from .protocol import Command, SensorReading, TerminalProtocol
from .ticks import Clock, MonotonicClock, ticks_diff
from .transport import PeripheralLink

_LOGGER = logging.getLogger(__name__)


class PeripheralState(StrEnum):
    """Connection state of the sensor device."""

    ADVERTISING = "advertising"
    CONNECTED = "connected"


class SensorReader(Protocol):
    """Sensor-access collaborator."""

    def read(self) -> SensorReading:
        """Acquire one sample. Absent fields mean failure."""


class Actuator(Protocol):
    """Actuator collaborator (the LED)."""

    def set(self, on: bool) -> None:
        """Drive the output."""

    def get(self) -> bool:
        """Return the current output level."""


class PeripheralController:
    """Runs on the sensor device.

    Driven by link events (connect, disconnect, RX write) and by ``tick()``
    on a short fixed cadence. Nothing here blocks: the re-advertise delay
    after a disconnect is measured on the tick clock instead of sleeping.
    """

    def __init__(
        self,
        link: PeripheralLink,
        sensor: SensorReader,
        actuator: Actuator,
        config: LinkConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._link = link
        self._sensor = sensor
        self._actuator = actuator
        self._config = config or LinkConfig()
        self._clock = clock or MonotonicClock()

        self.connected = False
        self.last_reading: SensorReading | None = None
        self._last_push = self._clock.ticks_ms()
        self._disconnected_at: int | None = None

        self._handlers: dict[Command, Callable[[], str | None]] = {
            Command.STATUS: self._cmd_status,
            Command.LED_ON: self._cmd_led_on,
            Command.LED_OFF: self._cmd_led_off,
            Command.TEMP: self.send_telemetry,
            Command.HELLO: lambda: self._reply(REPLY_HELLO),
            Command.HELP: lambda: self._reply(REPLY_HELP),
        }

    @property
    def state(self) -> PeripheralState:
        """Return the current connection state."""
        if self.connected:
            return PeripheralState.CONNECTED
        return PeripheralState.ADVERTISING

    def start(self) -> None:
        """Start advertising under the configured device name."""
        self._link.start_advertising()
        _LOGGER.info("Advertising as %s", self._config.device_name)

    # -------------------------------------------------------------------------
    # Link events
    # -------------------------------------------------------------------------

    def on_peer_connect(self) -> None:
        """Handle a central connecting."""
        self.connected = True
        self._disconnected_at = None
        _LOGGER.info("Client connected")

    def on_peer_disconnect(self) -> None:
        """Handle the central leaving; advertising resumes after a settle delay."""
        self.connected = False
        self._disconnected_at = self._clock.ticks_ms()
        _LOGGER.info("Client disconnected")

    def tick(self) -> None:
        """Advance timers. Call every few tens of milliseconds."""
        now = self._clock.ticks_ms()

        if self._disconnected_at is not None and (
            ticks_diff(now, self._disconnected_at) >= self._config.readvertise_delay_ms
        ):
            self._disconnected_at = None
            self.start()

        if not self.connected:
            return
        if ticks_diff(now, self._last_push) >= self._config.telemetry_interval_ms:
            self.send_telemetry()
            self._last_push = now

    # -------------------------------------------------------------------------
    # Telemetry
    # -------------------------------------------------------------------------

    def _read_sensor(self) -> SensorReading:
        try:
            reading = self._sensor.read()
        except (OSError, RuntimeError) as err:
            _LOGGER.warning("Sensor read raised: %s", err)
            return SensorReading.failed()
        if not reading.ok:
            _LOGGER.warning("Sensor read failed (%s)", ErrorReason.SENSOR_READ_FAILED)
        return reading

    def send_telemetry(self) -> str | None:
        """Read the sensor and push one telemetry line.

        Returns:
            The pushed line, or None if no peer is connected.
        """
        if not self.connected:
            return None
        reading = self._read_sensor()
        if reading.ok:
            self.last_reading = reading
        return self._reply(TerminalProtocol.format_telemetry(reading))

    def _reply(self, text: str) -> str | None:
        if not self.connected:
            _LOGGER.debug("Dropping reply with no client: %s", text)
            return None
        self._link.notify(text.encode("utf-8"))
        _LOGGER.debug("Sent: %s", text)
        return text

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def on_command_received(self, data: bytes | bytearray) -> str | None:
        """Dispatch one command written to RX.

        Returns:
            The reply text, or None when the command was empty.
        """
        text, token = TerminalProtocol.normalize_command(data)
        if not text:
            return None
        _LOGGER.info("Received command: %s", text)

        command = TerminalProtocol.parse_command(token)
        if command is None:
            return self._reply(TerminalProtocol.format_unknown(text))
        return self._handlers[command]()

    def _cmd_status(self) -> str | None:
        reading = self._read_sensor()
        return self._reply(TerminalProtocol.format_status(reading, self._actuator.get()))

    def _cmd_led_on(self) -> str | None:
        self._actuator.set(True)
        return self._reply(REPLY_LED_ON)

    def _cmd_led_off(self) -> str | None:
        self._actuator.set(False)
        return self._reply(REPLY_LED_OFF)
