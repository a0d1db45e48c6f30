#!/usr/bin/env python3
"""Command-line terminal for the ESP32 temperature sensor.

Usage:
    # Scan for sensors (by name or terminal service UUID)
    uv run python tools/terminal.py scan

    # Connect and type commands (HELP, STATUS, LED ON, ...); "quit" leaves
    uv run python tools/terminal.py connect

    # Send one command, print replies for a few seconds, disconnect
    uv run python tools/terminal.py send STATUS

    # Run against a simulated sensor, no radio needed
    uv run python tools/terminal.py demo

Options (anywhere on the line):
    --config FILE   JSON file with link settings (device_name, scan_timeout, ...)
    --verbose       Debug logging
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys

from ble_terminal.central import CentralController
from ble_terminal.config import LinkConfig
from ble_terminal.const import TICK_PERIOD_MS
from ble_terminal.errors import ConfigError, TransportError
from ble_terminal.peripheral import PeripheralController
from ble_terminal.simulation import MemoryActuator, SimulatedSensor
from ble_terminal.sink import Severity
from ble_terminal.transport import (
    BleakPeerSelector,
    BleakTransport,
    LoopbackLink,
    PeerHandle,
)

REPLY_WAIT = 3.0  # seconds

_ICONS = {
    Severity.INFO: "ℹ️",
    Severity.SUCCESS: "✅",
    Severity.WARNING: "⚠️",
    Severity.ERROR: "❌",
}


class PrintSink:
    """Print terminal lines to stdout."""

    def emit(self, category: str, text: str, severity: Severity) -> None:
        print(f"{_ICONS[severity]} [{category}] {text}")


def prompt_for_peer(peers: list[PeerHandle]) -> PeerHandle | None:
    """Let the user pick one of the scanned peers."""
    if len(peers) == 1:
        return peers[0]
    for index, peer in enumerate(peers, start=1):
        print(f"  {index}) {peer.name or 'Unknown':20} {peer.address}")
    try:
        choice = input("Select device (empty to cancel): ").strip()
    except EOFError:
        return None
    if not choice.isdigit() or not 1 <= int(choice) <= len(peers):
        return None
    return peers[int(choice) - 1]


def split_options(argv: list[str]) -> tuple[list[str], LinkConfig, bool]:
    """Strip --config/--verbose from argv and load the config."""
    args: list[str] = []
    config_path: str | None = None
    verbose = False
    items = iter(argv)
    for arg in items:
        if arg == "--config":
            config_path = next(items, None)
            if config_path is None:
                raise ConfigError("--config needs a file name")
        elif arg == "--verbose":
            verbose = True
        else:
            args.append(arg)
    config = LinkConfig.from_file(config_path) if config_path else LinkConfig()
    return args, config, verbose


def build_central(config: LinkConfig, interactive: bool = False) -> CentralController:
    """Create a controller on the real radio."""
    selector = BleakPeerSelector(
        scan_timeout=config.scan_timeout,
        chooser=prompt_for_peer if interactive else None,
    )
    transport = BleakTransport(connection_timeout=config.connection_timeout)
    return CentralController(transport, selector, sink=PrintSink(), config=config)


async def scan_devices(config: LinkConfig) -> None:
    """Scan and list matching sensors."""
    print(f"🔍 Scanning for {config.device_name} ({config.scan_timeout:.0f} seconds)...")
    selector = BleakPeerSelector(scan_timeout=config.scan_timeout)
    try:
        peers = await selector.scan(config.device_name, config.service_uuid)
    except TransportError as e:
        print(f"❌ {e}")
        return
    print(f"\nFound {len(peers)} sensor(s):\n")
    for peer in peers:
        print(f"  {peer.name or 'Unknown':20} {peer.address}")


async def interactive_terminal(config: LinkConfig) -> None:
    """Connect and forward typed lines as commands."""
    central = build_central(config, interactive=True)
    if not await central.connect():
        return
    try:
        while central.is_ready:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if line.strip().lower() in ("quit", "exit"):
                break
            await central.send(line)
    finally:
        await central.terminate()


async def send_once(config: LinkConfig, command: str) -> None:
    """Send a single command and print replies for a short while."""
    central = build_central(config)
    if not await central.connect():
        return
    try:
        if await central.send(command):
            await asyncio.sleep(REPLY_WAIT)
    finally:
        await central.terminate()


async def _tick_forever(peripheral: PeripheralController) -> None:
    while True:
        peripheral.tick()
        await asyncio.sleep(TICK_PERIOD_MS / 1000)


async def run_demo(config: LinkConfig) -> None:
    """Drive both controllers over a loopback link."""
    link = LoopbackLink(name=config.device_name, service_uuid=config.service_uuid)
    peripheral = PeripheralController(
        link, SimulatedSensor(failure_rate=0.1), MemoryActuator(), config=config
    )
    link.attach(peripheral)
    peripheral.start()
    central = CentralController(
        link,
        link,
        sink=PrintSink(),
        config=config,
        on_temperature=lambda t: print(f"🌡️  {t:.1f} °C"),
    )

    ticker = asyncio.create_task(_tick_forever(peripheral))
    try:
        if not await central.connect():
            return
        for command in ("hello", "STATUS", "led on", "TEMP", "FOO", "HELP"):
            await central.send(command)
            await asyncio.sleep(0.2)
        print("\n⏳ Waiting for periodic telemetry...")
        await asyncio.sleep(config.telemetry_interval_ms / 1000 + 0.5)

        print("\n🔌 Simulating power loss...")
        link.drop()
        await asyncio.sleep(config.disconnect_debounce + 0.2)
        print(f"   Central state: {central.state}")
    finally:
        await central.terminate()
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker


async def main() -> None:
    """Main entry point."""
    try:
        args, config, verbose = split_options(sys.argv[1:])
    except ConfigError as e:
        print(f"❌ {e}")
        return

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    if not args:
        print(__doc__)
        return

    cmd = args[0].lower()
    if cmd == "scan":
        await scan_devices(config)
    elif cmd == "connect":
        await interactive_terminal(config)
    elif cmd == "send":
        if len(args) < 2:
            print("Usage: send <command>")
            return
        await send_once(config, " ".join(args[1:]))
    elif cmd == "demo":
        await run_demo(config)
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)


if __name__ == "__main__":
    asyncio.run(main())
