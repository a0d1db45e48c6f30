"""Constants for the ESP32 BLE terminal link."""

from __future__ import annotations

from typing import Final

# GATT Service and Characteristic UUIDs
# Nordic UART Service layout, shared with the ESP32 sketch

SERVICE_UUID: Final = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
# Client -> device, WRITE and WRITE NO RESPONSE
RX_CHAR_UUID: Final = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
# Device -> client, NOTIFY
TX_CHAR_UUID: Final = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"

# Name advertised by the peripheral
DEFAULT_DEVICE_NAME: Final = "ESP32_Temp_Sensor"

# bleak characteristic property names
PROP_WRITE: Final = "write"
PROP_WRITE_NO_RESPONSE: Final = "write-without-response"
PROP_NOTIFY: Final = "notify"

# Telemetry and replies pushed on TX
TELEMETRY_FORMAT: Final = "Temperature: {temperature:.1f} °C | Humidity: {humidity:.1f} %"
TELEMETRY_ERROR: Final = "Error: Sensor read failed!"
STATUS_FORMAT: Final = (
    "Status: Temperature={temperature:.1f}°C, Humidity={humidity:.1f}%, LED={led}"
)
STATUS_ERROR: Final = "Status: Sensor Error!"
REPLY_LED_ON: Final = "LED turned ON"
REPLY_LED_OFF: Final = "LED turned OFF"
REPLY_HELLO: Final = "Hello! ESP32 Temperature Sensor ready!"
REPLY_HELP: Final = "Commands: STATUS, LED ON, LED OFF, TEMP, HELLO, HELP"
REPLY_UNKNOWN_FORMAT: Final = "Unknown command: {command}. Try HELP"

# Timing (peripheral side, milliseconds)
TELEMETRY_INTERVAL_MS: Final = 2000
READVERTISE_DELAY_MS: Final = 500
TICK_PERIOD_MS: Final = 20
TICKS_PERIOD: Final = 1 << 32  # 32-bit millisecond counter, like millis()

# Timing (central side, seconds)
SCAN_TIMEOUT: Final = 10.0
CONNECTION_TIMEOUT: Final = 10.0
WRITE_TIMEOUT: Final = 5.0
DISCONNECT_DEBOUNCE: Final = 1.0

# Configuration keys
CONF_DEVICE_NAME: Final = "device_name"
CONF_SERVICE_UUID: Final = "service_uuid"
CONF_SCAN_TIMEOUT: Final = "scan_timeout"
CONF_CONNECTION_TIMEOUT: Final = "connection_timeout"
CONF_WRITE_TIMEOUT: Final = "write_timeout"
CONF_DISCONNECT_DEBOUNCE: Final = "disconnect_debounce"
CONF_NEWLINE_TERMINATED: Final = "newline_terminated"
CONF_TELEMETRY_INTERVAL_MS: Final = "telemetry_interval_ms"
CONF_READVERTISE_DELAY_MS: Final = "readvertise_delay_ms"

# Terminal line categories
CATEGORY_SYSTEM: Final = "SYSTEM"
CATEGORY_BLE: Final = "BLE"
CATEGORY_SUCCESS: Final = "SUCCESS"
CATEGORY_ERROR: Final = "ERROR"
CATEGORY_YOU: Final = "YOU"
CATEGORY_DEVICE: Final = "ESP32"
