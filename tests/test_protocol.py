"""Tests for the terminal text protocol."""

from __future__ import annotations

import math

from ble_terminal.protocol import Command, SensorReading, TerminalProtocol


class TestSensorReading:
    """Tests for SensorReading dataclass."""

    def test_default_reading_is_failed(self) -> None:
        """Test that a reading without values is a failure."""
        reading = SensorReading()
        assert reading.temperature is None
        assert reading.humidity is None
        assert reading.ok is False
        assert reading.timestamp is not None

    def test_complete_reading(self) -> None:
        """Test a reading with both values."""
        reading = SensorReading(temperature=25.5, humidity=60.2)
        assert reading.ok is True

    def test_partial_reading_is_failed(self) -> None:
        """Test that one missing value makes the reading a failure."""
        assert SensorReading(temperature=25.5).ok is False
        assert SensorReading(humidity=60.2).ok is False

    def test_from_raw_treats_nan_as_absent(self) -> None:
        """Test that NaN from the driver counts as a failed read."""
        reading = SensorReading.from_raw(math.nan, 40.0)
        assert reading.temperature is None
        assert reading.humidity == 40.0
        assert reading.ok is False

    def test_from_raw_converts_to_float(self) -> None:
        """Test that integer driver values become floats."""
        reading = SensorReading.from_raw(21, 50)
        assert reading.temperature == 21.0
        assert isinstance(reading.temperature, float)


class TestTerminalProtocol:
    """Tests for TerminalProtocol encoder/decoder."""

    def test_encode_command(self) -> None:
        """Test command encoding without newline."""
        packet = TerminalProtocol.encode_command("STATUS")
        assert isinstance(packet, bytes)
        assert packet == b"STATUS"

    def test_encode_command_newline(self) -> None:
        """Test command encoding with the optional trailing newline."""
        assert TerminalProtocol.encode_command("LED ON", newline=True) == b"LED ON\n"

    def test_decode_text_invalid_utf8(self) -> None:
        """Test that invalid UTF-8 is replaced, not raised."""
        text = TerminalProtocol.decode_text(b"\xff\xfeOK")
        assert text.endswith("OK")

    def test_normalize_command_strips_and_uppercases(self) -> None:
        """Test trimming, newline removal and case folding."""
        assert TerminalProtocol.normalize_command(b"  led on\r\n") == (
            "led on",
            "LED ON",
        )

    def test_parse_command_aliases(self) -> None:
        """Test every accepted token and alias."""
        assert TerminalProtocol.parse_command("STATUS") is Command.STATUS
        assert TerminalProtocol.parse_command("led on") is Command.LED_ON
        assert TerminalProtocol.parse_command("LEDON") is Command.LED_ON
        assert TerminalProtocol.parse_command("Led Off") is Command.LED_OFF
        assert TerminalProtocol.parse_command("ledoff") is Command.LED_OFF
        assert TerminalProtocol.parse_command("temp") is Command.TEMP
        assert TerminalProtocol.parse_command("HELLO") is Command.HELLO
        assert TerminalProtocol.parse_command("hi") is Command.HELLO
        assert TerminalProtocol.parse_command("help") is Command.HELP

    def test_parse_command_unknown(self) -> None:
        """Test that unknown tokens return None."""
        assert TerminalProtocol.parse_command("FOO") is None
        assert TerminalProtocol.parse_command("LED  ON") is None
        assert TerminalProtocol.parse_command("") is None

    def test_format_telemetry(self) -> None:
        """Test the telemetry line with one decimal and the degree sign."""
        reading = SensorReading(temperature=25.53, humidity=60.18)
        assert (
            TerminalProtocol.format_telemetry(reading)
            == "Temperature: 25.5 °C | Humidity: 60.2 %"
        )

    def test_format_telemetry_failure(self) -> None:
        """Test the error line for a failed read."""
        assert (
            TerminalProtocol.format_telemetry(SensorReading.failed())
            == "Error: Sensor read failed!"
        )

    def test_format_status(self) -> None:
        """Test the STATUS reply."""
        reading = SensorReading(temperature=22.0, humidity=45.5)
        assert (
            TerminalProtocol.format_status(reading, led_on=True)
            == "Status: Temperature=22.0°C, Humidity=45.5%, LED=ON"
        )
        assert TerminalProtocol.format_status(reading, led_on=False).endswith("LED=OFF")

    def test_format_status_failure(self) -> None:
        """Test the STATUS reply when the sensor fails."""
        assert (
            TerminalProtocol.format_status(SensorReading.failed(), led_on=True)
            == "Status: Sensor Error!"
        )

    def test_format_unknown(self) -> None:
        """Test the unknown command reply."""
        assert (
            TerminalProtocol.format_unknown("FOO") == "Unknown command: FOO. Try HELP"
        )

    def test_parse_temperature(self) -> None:
        """Test extracting the temperature from a telemetry line."""
        line = "Temperature: 25.5 °C | Humidity: 60.2 %"
        assert TerminalProtocol.parse_temperature(line) == 25.5

    def test_parse_temperature_negative(self) -> None:
        """Test a sub-zero reading."""
        assert TerminalProtocol.parse_temperature("Temperature: -3.0 °C") == -3.0

    def test_parse_temperature_absent(self) -> None:
        """Test lines without a temperature fragment."""
        assert TerminalProtocol.parse_temperature("LED turned ON") is None
        assert TerminalProtocol.parse_temperature("Error: Sensor read failed!") is None
        # STATUS uses "=" rather than ": "
        assert (
            TerminalProtocol.parse_temperature("Status: Temperature=22.0°C") is None
        )
