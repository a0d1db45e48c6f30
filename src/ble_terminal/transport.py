"""Link transport: the RX/TX characteristic pair and its connection events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .const import (
    CONNECTION_TIMEOUT,
    DEFAULT_DEVICE_NAME,
    PROP_NOTIFY,
    PROP_WRITE,
    PROP_WRITE_NO_RESPONSE,
    RX_CHAR_UUID,
    SCAN_TIMEOUT,
    SERVICE_UUID,
    TX_CHAR_UUID,
)
from .errors import TransportError

if TYPE_CHECKING:
    from .peripheral import PeripheralController

_LOGGER = logging.getLogger(__name__)

NotificationCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[], None]


@dataclass(frozen=True)
class PeerHandle:
    """A selected peer. ``device`` is the backend object, if any."""

    address: str
    name: str | None = None
    device: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Characteristic:
    """A resolved GATT characteristic and the properties it advertises."""

    uuid: str
    properties: frozenset[str] = frozenset()

    @property
    def can_write_without_response(self) -> bool:
        """Return True if the characteristic accepts Write Command."""
        return PROP_WRITE_NO_RESPONSE in self.properties

    @property
    def can_notify(self) -> bool:
        """Return True if the characteristic can push notifications."""
        return PROP_NOTIFY in self.properties


class PeerSelector(Protocol):
    """Peer-selection prompt."""

    async def choose(self, name: str, service_uuid: str) -> PeerHandle | None:
        """Return the chosen peer, or None if cancelled or nothing matched."""


class Transport(Protocol):
    """Central side of the link."""

    @property
    def is_connected(self) -> bool:
        """Return True while the radio link is up."""

    async def connect(self, peer: PeerHandle, on_disconnect: DisconnectCallback) -> None:
        """Open the link; on_disconnect fires whenever the link goes down."""

    async def get_characteristic(
        self, service_uuid: str, char_uuid: str
    ) -> Characteristic | None:
        """Look up a characteristic, or None if the peer does not expose it."""

    async def start_notify(self, char_uuid: str, callback: NotificationCallback) -> None:
        """Subscribe to notifications on a characteristic."""

    async def write(self, char_uuid: str, data: bytes, *, response: bool) -> None:
        """Write one message to a characteristic."""

    async def disconnect(self) -> None:
        """Close the link."""


class PeripheralLink(Protocol):
    """Device side of the link."""

    def start_advertising(self) -> None:
        """Make the device discoverable again."""

    def notify(self, data: bytes) -> None:
        """Push one message on TX."""


def matches_peer(
    name: str | None, service_uuids: Sequence[str], wanted_name: str, service_uuid: str
) -> bool:
    """Return True if an advertisement matches by name or by service UUID."""
    if name and name == wanted_name:
        return True
    return service_uuid.lower() in [str(u).lower() for u in service_uuids]


class BleakPeerSelector:
    """Scan with bleak and pick a matching device.

    Without a chooser the first match wins; a chooser receives every match
    and returns one of them, or None to cancel.
    """

    def __init__(
        self,
        scan_timeout: float = SCAN_TIMEOUT,
        chooser: Callable[[list[PeerHandle]], PeerHandle | None] | None = None,
    ) -> None:
        self._scan_timeout = scan_timeout
        self._chooser = chooser

    async def scan(self, name: str, service_uuid: str) -> list[PeerHandle]:
        """Scan and return all matching peers."""
        try:
            devices = await BleakScanner.discover(
                timeout=self._scan_timeout, return_adv=True
            )
        except (BleakError, OSError) as err:
            raise TransportError(f"Scan failed: {err}") from err

        peers: list[PeerHandle] = []
        for device, adv_data in devices.values():
            peer_name = device.name or adv_data.local_name
            if matches_peer(peer_name, adv_data.service_uuids, name, service_uuid):
                peers.append(PeerHandle(device.address, peer_name, device))
        _LOGGER.debug("Scan found %d matching peer(s)", len(peers))
        return peers

    async def choose(self, name: str, service_uuid: str) -> PeerHandle | None:
        try:
            peers = await self.scan(name, service_uuid)
        except TransportError as err:
            _LOGGER.warning("%s", err)
            return None
        if not peers:
            return None
        if self._chooser is None:
            return peers[0]
        return self._chooser(peers)


class BleakTransport:
    """Transport over a real radio through bleak."""

    def __init__(self, connection_timeout: float = CONNECTION_TIMEOUT) -> None:
        self._connection_timeout = connection_timeout
        self._client: BleakClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    def _require_client(self) -> BleakClient:
        if self._client is None:
            raise TransportError("Not connected")
        return self._client

    async def connect(self, peer: PeerHandle, on_disconnect: DisconnectCallback) -> None:
        client = BleakClient(
            peer.device or peer.address,
            disconnected_callback=lambda _client: on_disconnect(),
            timeout=self._connection_timeout,
        )
        try:
            await client.connect()
        except (BleakError, TimeoutError, OSError) as err:
            raise TransportError(f"Connection to {peer.address} failed: {err}") from err
        self._client = client
        _LOGGER.debug("Connected to %s", peer.address)

    async def get_characteristic(
        self, service_uuid: str, char_uuid: str
    ) -> Characteristic | None:
        client = self._require_client()
        service = client.services.get_service(service_uuid)
        if service is None:
            return None
        char = service.get_characteristic(char_uuid)
        if char is None:
            return None
        return Characteristic(str(char.uuid).lower(), frozenset(char.properties))

    async def start_notify(self, char_uuid: str, callback: NotificationCallback) -> None:
        client = self._require_client()
        try:
            await client.start_notify(
                char_uuid, lambda _sender, data: callback(bytes(data))
            )
        except (BleakError, OSError) as err:
            raise TransportError(f"Cannot enable notifications: {err}") from err

    async def write(self, char_uuid: str, data: bytes, *, response: bool) -> None:
        client = self._require_client()
        try:
            await client.write_gatt_char(char_uuid, data, response=response)
        except (BleakError, OSError) as err:
            raise TransportError(f"Write failed: {err}") from err

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.disconnect()
        except (BleakError, OSError) as err:
            raise TransportError(f"Disconnect failed: {err}") from err


class LoopbackLink:
    """In-process link between one central and one peripheral.

    Implements the selector and transport on the central side and the
    peripheral link on the device side, so both controllers can run
    against each other without a radio.
    """

    def __init__(
        self,
        name: str = DEFAULT_DEVICE_NAME,
        service_uuid: str = SERVICE_UUID,
        write_without_response: bool = True,
    ) -> None:
        self.peer = PeerHandle(address="loopback", name=name)
        self.service_uuid = service_uuid
        self.advertising = False
        self.writes: list[tuple[bytes, bool]] = []
        self.notifications: list[bytes] = []
        self._peripheral: PeripheralController | None = None
        self._connected = False
        self._on_disconnect: DisconnectCallback | None = None
        self._notify_callback: NotificationCallback | None = None
        rx_props = {PROP_WRITE}
        if write_without_response:
            rx_props.add(PROP_WRITE_NO_RESPONSE)
        self._characteristics = {
            RX_CHAR_UUID: Characteristic(RX_CHAR_UUID, frozenset(rx_props)),
            TX_CHAR_UUID: Characteristic(TX_CHAR_UUID, frozenset({PROP_NOTIFY})),
        }

    def attach(self, peripheral: PeripheralController) -> None:
        """Bind the device-side controller."""
        self._peripheral = peripheral

    # Device side

    def start_advertising(self) -> None:
        self.advertising = True

    def notify(self, data: bytes) -> None:
        self.notifications.append(data)
        if self._connected and self._notify_callback is not None:
            self._notify_callback(data)

    # Central side

    async def choose(self, name: str, service_uuid: str) -> PeerHandle | None:
        if not self.advertising:
            return None
        if not matches_peer(self.peer.name, [self.service_uuid], name, service_uuid):
            return None
        return self.peer

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, peer: PeerHandle, on_disconnect: DisconnectCallback) -> None:
        if not self.advertising or peer != self.peer:
            raise TransportError(f"Peer {peer.address} is not reachable")
        self.advertising = False
        self._connected = True
        self._on_disconnect = on_disconnect
        if self._peripheral is not None:
            self._peripheral.on_peer_connect()

    async def get_characteristic(
        self, service_uuid: str, char_uuid: str
    ) -> Characteristic | None:
        if not self._connected:
            raise TransportError("Not connected")
        if service_uuid.lower() != self.service_uuid:
            return None
        return self._characteristics.get(char_uuid.lower())

    async def start_notify(self, char_uuid: str, callback: NotificationCallback) -> None:
        char = await self.get_characteristic(self.service_uuid, char_uuid)
        if char is None or not char.can_notify:
            raise TransportError(f"Characteristic {char_uuid} cannot notify")
        self._notify_callback = callback

    async def write(self, char_uuid: str, data: bytes, *, response: bool) -> None:
        if not self._connected:
            raise TransportError("Not connected")
        self.writes.append((data, response))
        if self._peripheral is not None:
            self._peripheral.on_command_received(data)

    async def disconnect(self) -> None:
        self._drop_link()

    def drop(self) -> None:
        """Simulate the peer vanishing (power loss, out of range)."""
        callback = self._on_disconnect
        self._drop_link()
        if callback is not None:
            callback()

    def _drop_link(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._notify_callback = None
        self._on_disconnect = None
        if self._peripheral is not None:
            self._peripheral.on_peer_disconnect()
