"""Fixtures for BLE terminal tests."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ble_terminal.central import CentralController
from ble_terminal.config import LinkConfig
from ble_terminal.const import (
    PROP_NOTIFY,
    PROP_WRITE,
    PROP_WRITE_NO_RESPONSE,
    RX_CHAR_UUID,
    SERVICE_UUID,
    TICKS_PERIOD,
    TX_CHAR_UUID,
)
from ble_terminal.sink import MemorySink
from ble_terminal.transport import Characteristic, PeerHandle

if TYPE_CHECKING:
    from collections.abc import Generator

PEER = PeerHandle(address="AA:BB:CC:DD:EE:FF", name="ESP32_Temp_Sensor")


class ManualClock:
    """Tick source advanced by hand."""

    def __init__(self) -> None:
        self._now = 0

    def ticks_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        """Move the clock forward, wrapping like the device counter."""
        self._now = (self._now + ms) % TICKS_PERIOD
        return self._now


@pytest.fixture
def mock_bleak_client() -> Generator[MagicMock]:
    """Mock BleakClient for testing without actual Bluetooth hardware."""
    with patch("ble_terminal.transport.BleakClient") as mock_client:
        client_instance = MagicMock()
        client_instance.is_connected = True
        client_instance.connect = AsyncMock(return_value=None)
        client_instance.disconnect = AsyncMock(return_value=True)
        client_instance.start_notify = AsyncMock(return_value=None)
        client_instance.write_gatt_char = AsyncMock(return_value=None)
        mock_client.return_value = client_instance
        yield mock_client


@pytest.fixture
def mock_advertisement() -> tuple[MagicMock, MagicMock]:
    """Create a mock (BLEDevice, AdvertisementData) pair for the sensor."""
    device = MagicMock()
    device.address = "AA:BB:CC:DD:EE:FF"
    device.name = "ESP32_Temp_Sensor"
    adv_data = MagicMock()
    adv_data.local_name = "ESP32_Temp_Sensor"
    adv_data.service_uuids = [SERVICE_UUID]
    adv_data.rssi = -60
    return device, adv_data


@pytest.fixture
def peer() -> PeerHandle:
    """The sensor as returned by peer selection."""
    return PEER


@pytest.fixture
def sink() -> MemorySink:
    """Sink that records every terminal line."""
    return MemorySink()


@pytest.fixture
def clock() -> ManualClock:
    """Hand-driven tick source starting at zero."""
    return ManualClock()


@pytest.fixture
def config() -> LinkConfig:
    """Config with a short disconnect debounce."""
    return LinkConfig(disconnect_debounce=0.05)


def make_characteristics(
    write_without_response: bool = True,
) -> dict[str, Characteristic]:
    """Build the RX/TX characteristics a compatible peer exposes."""
    rx_props = {PROP_WRITE}
    if write_without_response:
        rx_props.add(PROP_WRITE_NO_RESPONSE)
    return {
        RX_CHAR_UUID: Characteristic(RX_CHAR_UUID, frozenset(rx_props)),
        TX_CHAR_UUID: Characteristic(TX_CHAR_UUID, frozenset({PROP_NOTIFY})),
    }


@pytest.fixture
def mock_transport() -> MagicMock:
    """Transport double exposing a compatible peer."""
    transport = MagicMock()
    transport.is_connected = False
    chars = make_characteristics()

    async def _connect(peer, on_disconnect):
        transport.is_connected = True
        transport.on_disconnect = on_disconnect

    async def _get_characteristic(service_uuid, char_uuid):
        return chars.get(char_uuid)

    async def _disconnect():
        transport.is_connected = False

    transport.connect = AsyncMock(side_effect=_connect)
    transport.get_characteristic = AsyncMock(side_effect=_get_characteristic)
    transport.start_notify = AsyncMock(return_value=None)
    transport.write = AsyncMock(return_value=None)
    transport.disconnect = AsyncMock(side_effect=_disconnect)
    return transport


@pytest.fixture
def mock_selector() -> MagicMock:
    """Peer-selection prompt that picks the sensor."""
    selector = MagicMock()
    selector.choose = AsyncMock(return_value=PEER)
    return selector


@pytest.fixture
def central(
    mock_transport: MagicMock,
    mock_selector: MagicMock,
    sink: MemorySink,
    config: LinkConfig,
) -> CentralController:
    """Central controller wired to the doubles."""
    return CentralController(mock_transport, mock_selector, sink=sink, config=config)
