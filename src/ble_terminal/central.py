"""Client-side controller: discovery, connection, subscription and commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .config import LinkConfig
from .const import (
    CATEGORY_BLE,
    CATEGORY_DEVICE,
    CATEGORY_ERROR,
    CATEGORY_SUCCESS,
    CATEGORY_SYSTEM,
    CATEGORY_YOU,
    RX_CHAR_UUID,
    TX_CHAR_UUID,
)
from .errors import ErrorReason, TransportError
from .protocol import TerminalProtocol
from .sink import LoggingSink, LogSink, Severity
from .transport import Characteristic, PeerHandle, PeerSelector, Transport

_LOGGER = logging.getLogger(__name__)


class CentralState(StrEnum):
    """Connection lifecycle of the client."""

    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    SERVICE_DISCOVERY = "service_discovery"
    SUBSCRIBING = "subscribing"
    READY = "ready"
    DISCONNECTING = "disconnecting"
    ERROR_IDLE = "error_idle"


_CONNECTING_STATES = frozenset(
    {
        CentralState.SCANNING,
        CentralState.CONNECTING,
        CentralState.SERVICE_DISCOVERY,
        CentralState.SUBSCRIBING,
    }
)


@dataclass
class LinkSession:
    """One pending or active connection."""

    peer: PeerHandle
    rx: Characteristic | None = None
    tx: Characteristic | None = None


class CentralController:
    """Owns the single link session on the client.

    Lifecycle:
        IDLE -> SCANNING -> CONNECTING -> SERVICE_DISCOVERY -> SUBSCRIBING
        -> READY -> DISCONNECTING -> IDLE

    Any failure lands in ERROR_IDLE with one error line on the sink;
    retry() (or the next initiate()) returns to IDLE. Only one operation
    runs at a time. terminate() may interrupt an operation in flight, which
    then returns without touching the new state.
    """

    def __init__(
        self,
        transport: Transport,
        selector: PeerSelector,
        sink: LogSink | None = None,
        config: LinkConfig | None = None,
        on_temperature: Callable[[float], None] | None = None,
    ) -> None:
        self._transport = transport
        self._selector = selector
        self._sink = sink or LoggingSink()
        self._config = config or LinkConfig()
        self._on_temperature = on_temperature

        self.state = CentralState.IDLE
        self.session: LinkSession | None = None
        self.last_error: ErrorReason | None = None
        self.current_temperature: float | None = None
        self._busy = False
        self._generation = 0
        self._drop_timer: asyncio.TimerHandle | None = None

    @property
    def is_ready(self) -> bool:
        """Return True when commands can be sent."""
        return self.state is CentralState.READY

    # -------------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------------

    def _set_state(self, state: CentralState) -> None:
        if state is not self.state:
            _LOGGER.debug("State %s -> %s", self.state, state)
            self.state = state

    def _emit(self, category: str, text: str, severity: Severity) -> None:
        self._sink.emit(category, text, severity)

    def _enter(self, operation: str, *allowed: CentralState) -> int | None:
        """Claim the single operation slot if the state allows it.

        Returns the generation the operation runs under, or None if rejected.
        """
        if self._busy:
            _LOGGER.warning("%s rejected: another operation is in progress", operation)
            return None
        if self.state not in allowed:
            _LOGGER.warning("%s rejected in state %s", operation, self.state)
            return None
        self._busy = True
        self._generation += 1
        return self._generation

    def _leave(self, generation: int) -> None:
        # a terminate() since _enter already released the slot
        if generation == self._generation:
            self._busy = False

    def _reset_session(self) -> None:
        self._cancel_drop_timer()
        self.session = None
        self.current_temperature = None

    def _fail(self, reason: ErrorReason, message: str) -> None:
        self._reset_session()
        self.last_error = reason
        self._set_state(CentralState.ERROR_IDLE)
        _LOGGER.error("%s: %s", reason, message)
        self._emit(CATEGORY_ERROR, message, Severity.ERROR)

    async def _close_transport(self) -> None:
        try:
            await self._transport.disconnect()
        except TransportError as err:
            _LOGGER.debug("Ignoring close error: %s", err)

    async def _fail_connected(self, reason: ErrorReason, message: str) -> None:
        """Fail after the transport is open, closing it first."""
        await self._close_transport()
        self._fail(reason, message)

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def retry(self) -> bool:
        """Leave ERROR_IDLE so a new connection can be attempted."""
        if self.state is not CentralState.ERROR_IDLE or self._busy:
            return False
        self._set_state(CentralState.IDLE)
        return True

    async def initiate(self) -> bool:
        """Prompt for a peer matching the device name or service UUID."""
        if self.state is CentralState.ERROR_IDLE:
            self.retry()
        generation = self._enter("initiate", CentralState.IDLE)
        if generation is None:
            return False
        try:
            self.last_error = None
            self._set_state(CentralState.SCANNING)
            self._emit(CATEGORY_SYSTEM, "Opening Bluetooth chooser...", Severity.WARNING)
            peer = await self._selector.choose(
                self._config.device_name, self._config.service_uuid
            )
            if generation != self._generation:
                return False
            if peer is None:
                self._fail(ErrorReason.NO_PEER_SELECTED, "No device selected.")
                return False
            self.session = LinkSession(peer=peer)
            self._set_state(CentralState.CONNECTING)
            self._emit(
                CATEGORY_BLE, f"Selected: {peer.name or peer.address}", Severity.SUCCESS
            )
            return True
        finally:
            self._leave(generation)

    async def establish(self) -> bool:
        """Open the transport to the selected peer."""
        generation = self._enter("establish", CentralState.CONNECTING)
        if generation is None:
            return False
        session = self.session
        try:
            try:
                await self._transport.connect(session.peer, self.on_peer_dropped)
            except TransportError as err:
                if self.session is session:
                    self._fail(ErrorReason.CONNECT_FAILED, str(err))
                return False
            if self.session is not session:
                # terminated while connecting
                if self.session is None:
                    await self._close_transport()
                return False
            self._set_state(CentralState.SERVICE_DISCOVERY)
            return True
        finally:
            self._leave(generation)

    async def resolve(self) -> bool:
        """Look up the service and the RX/TX characteristics."""
        generation = self._enter("resolve", CentralState.SERVICE_DISCOVERY)
        if generation is None:
            return False
        session = self.session
        try:
            service_uuid = self._config.service_uuid
            try:
                rx = await self._transport.get_characteristic(service_uuid, RX_CHAR_UUID)
                tx = await self._transport.get_characteristic(service_uuid, TX_CHAR_UUID)
            except TransportError as err:
                if self.session is session:
                    await self._fail_connected(ErrorReason.INCOMPATIBLE_PEER, str(err))
                return False
            if self.session is not session:
                return False
            if rx is None or tx is None:
                await self._fail_connected(
                    ErrorReason.INCOMPATIBLE_PEER,
                    "Device does not expose the terminal service.",
                )
                return False
            session.rx, session.tx = rx, tx
            self._set_state(CentralState.SUBSCRIBING)
            return True
        finally:
            self._leave(generation)

    async def subscribe(self) -> bool:
        """Register for notifications on TX."""
        generation = self._enter("subscribe", CentralState.SUBSCRIBING)
        if generation is None:
            return False
        session = self.session
        try:
            try:
                await self._transport.start_notify(session.tx.uuid, self.on_notification)
            except TransportError as err:
                if self.session is session:
                    await self._fail_connected(ErrorReason.SUBSCRIBE_FAILED, str(err))
                return False
            if self.session is not session:
                return False
            self._set_state(CentralState.READY)
            _LOGGER.info("Link ready with %s", session.peer.address)
            self._emit(CATEGORY_SUCCESS, "ESP32 Connected!", Severity.SUCCESS)
            return True
        finally:
            self._leave(generation)

    async def connect(self) -> bool:
        """Run the whole connection sequence, stopping at the first failure."""
        for step in (self.initiate, self.establish, self.resolve, self.subscribe):
            if not await step():
                return False
        return True

    async def terminate(self) -> None:
        """Close the session. Always ends in IDLE."""
        if self.state is not CentralState.READY and self.state not in _CONNECTING_STATES:
            _LOGGER.debug("terminate ignored in state %s", self.state)
            return
        self._set_state(CentralState.DISCONNECTING)
        self._reset_session()
        self._generation += 1
        self._busy = False
        try:
            await self._transport.disconnect()
        except TransportError as err:
            _LOGGER.warning("Error while disconnecting: %s", err)
        self._set_state(CentralState.IDLE)
        self._emit(CATEGORY_SYSTEM, "Disconnected.", Severity.WARNING)

    # -------------------------------------------------------------------------
    # Unsolicited disconnects
    # -------------------------------------------------------------------------

    def on_peer_dropped(self) -> None:
        """Transport callback for a link that went down on its own.

        The final transition is deferred by the debounce window; a link that
        is still alive when the window closes is kept.
        """
        if self.session is None or self.state is CentralState.DISCONNECTING:
            return
        if self._drop_timer is not None:
            return
        window = self._config.disconnect_debounce
        if window <= 0:
            self._apply_drop()
            return
        _LOGGER.debug("Peer dropped; confirming in %.1fs", window)
        session = self.session
        loop = asyncio.get_running_loop()
        self._drop_timer = loop.call_later(window, self._confirm_drop, session)

    def _cancel_drop_timer(self) -> None:
        if self._drop_timer is not None:
            self._drop_timer.cancel()
            self._drop_timer = None

    def _confirm_drop(self, session: LinkSession) -> None:
        self._drop_timer = None
        if self.session is not session:
            return
        if self._transport.is_connected:
            _LOGGER.info("Transient disconnect ignored; link is still up")
            return
        self._apply_drop()

    def _apply_drop(self) -> None:
        self._reset_session()
        self.last_error = ErrorReason.UNEXPECTED_DISCONNECT
        self._set_state(CentralState.IDLE)
        _LOGGER.warning("Peer disconnected unexpectedly")
        self._emit(CATEGORY_SYSTEM, "ESP32 disconnected unexpectedly.", Severity.ERROR)

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    async def send(self, command: str) -> bool:
        """Write one command to RX.

        Returns:
            True if the write went out.
        """
        if self.state is not CentralState.READY or self.session is None:
            self._emit(CATEGORY_ERROR, "Not connected.", Severity.ERROR)
            return False
        text = command.strip()
        if not text:
            self._emit(CATEGORY_ERROR, "Empty command.", Severity.ERROR)
            return False
        generation = self._enter("send", CentralState.READY)
        if generation is None:
            return False

        rx = self.session.rx
        data = TerminalProtocol.encode_command(text, self._config.newline_terminated)
        try:
            await asyncio.wait_for(
                self._transport.write(
                    rx.uuid, data, response=not rx.can_write_without_response
                ),
                timeout=self._config.write_timeout,
            )
        except (TransportError, TimeoutError) as err:
            self.last_error = ErrorReason.WRITE_FAILED
            message = str(err) or "Write timed out."
            _LOGGER.error("%s: %s", ErrorReason.WRITE_FAILED, message)
            self._emit(CATEGORY_ERROR, message, Severity.ERROR)
            return False
        finally:
            self._leave(generation)

        self._emit(CATEGORY_YOU, text, Severity.WARNING)
        return True

    def on_notification(self, data: bytes) -> None:
        """Handle a push from the device: display it and track temperature."""
        text = TerminalProtocol.decode_text(data)
        self._emit(CATEGORY_DEVICE, text, Severity.SUCCESS)

        temperature = TerminalProtocol.parse_temperature(text)
        if temperature is None:
            return
        self.current_temperature = temperature
        if self._on_temperature is not None:
            self._on_temperature(temperature)
