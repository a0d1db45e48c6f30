"""End-to-end tests: central and peripheral over the loopback link."""

from __future__ import annotations

import asyncio

import pytest

from ble_terminal.central import CentralController, CentralState
from ble_terminal.config import LinkConfig
from ble_terminal.peripheral import PeripheralController, PeripheralState
from ble_terminal.protocol import SensorReading
from ble_terminal.simulation import MemoryActuator, SimulatedSensor
from ble_terminal.sink import MemorySink
from ble_terminal.transport import LoopbackLink


class FixedSensor:
    """Sensor with a settable reading."""

    def __init__(self) -> None:
        self.reading = SensorReading(temperature=25.5, humidity=60.2)

    def read(self) -> SensorReading:
        return self.reading


@pytest.fixture
def rig(clock):
    """Loopback link with both controllers attached."""
    config = LinkConfig(disconnect_debounce=0.05)
    link = LoopbackLink()
    sensor = FixedSensor()
    actuator = MemoryActuator()
    peripheral = PeripheralController(link, sensor, actuator, config=config, clock=clock)
    link.attach(peripheral)
    peripheral.start()
    sink = MemorySink()
    central = CentralController(link, link, sink=sink, config=config)
    return link, peripheral, central, sink, clock, sensor, actuator


@pytest.mark.asyncio
async def test_command_round_trip(rig) -> None:
    """Commands written by the central come back as device lines."""
    link, peripheral, central, sink, clock, sensor, actuator = rig

    assert await central.connect() is True
    assert peripheral.state is PeripheralState.CONNECTED

    await central.send("hello")
    await central.send("led on")
    await central.send("bogus")

    assert sink.texts("ESP32") == [
        "Hello! ESP32 Temperature Sensor ready!",
        "LED turned ON",
        "Unknown command: bogus. Try HELP",
    ]
    assert actuator.get() is True
    assert link.writes[0] == (b"hello", False)


@pytest.mark.asyncio
async def test_periodic_telemetry_updates_display(rig) -> None:
    """Ticks push telemetry that the central turns into a temperature."""
    link, peripheral, central, sink, clock, sensor, actuator = rig
    await central.connect()

    clock.advance(2000)
    peripheral.tick()
    assert central.current_temperature == 25.5

    sensor.reading = SensorReading.failed()
    clock.advance(2000)
    peripheral.tick()
    assert sink.texts("ESP32")[-1] == "Error: Sensor read failed!"
    assert central.current_temperature == 25.5


@pytest.mark.asyncio
async def test_user_disconnect_then_reconnect(rig) -> None:
    """The device re-advertises after a disconnect and accepts a new session."""
    link, peripheral, central, sink, clock, sensor, actuator = rig
    await central.connect()
    await central.terminate()

    assert peripheral.connected is False
    assert link.advertising is False
    assert await central.connect() is False
    assert central.last_error == "NoPeerSelected"

    clock.advance(500)
    peripheral.tick()
    assert link.advertising is True
    assert await central.connect() is True


@pytest.mark.asyncio
async def test_power_loss(rig) -> None:
    """A dropped peer resets the central after the debounce window."""
    link, peripheral, central, sink, clock, sensor, actuator = rig
    await central.connect()

    link.drop()
    assert central.state is CentralState.READY
    await asyncio.sleep(0.1)

    assert central.state is CentralState.IDLE
    assert central.session is None
    assert await central.send("STATUS") is False


@pytest.mark.asyncio
async def test_simulated_sensor_demo_flow() -> None:
    """The demo collaborators drive a full session."""
    link = LoopbackLink()
    peripheral = PeripheralController(
        link, SimulatedSensor(temperature=20.0, humidity=50.0), MemoryActuator()
    )
    link.attach(peripheral)
    peripheral.start()
    sink = MemorySink()
    central = CentralController(link, link, sink=sink)

    assert await central.connect() is True
    await central.send("TEMP")
    assert central.current_temperature is not None
    assert 19.0 < central.current_temperature < 21.0
    await central.terminate()
    assert central.state is CentralState.IDLE
