"""Simulated device collaborators for demos and tests."""

from __future__ import annotations

import random

from .protocol import SensorReading


class SimulatedSensor:
    """Temperature/humidity source doing a small random walk.

    ``failure_rate`` is the chance that a read comes back empty, the way a
    DHT sensor occasionally returns NaN.
    """

    def __init__(
        self,
        temperature: float = 24.0,
        humidity: float = 55.0,
        failure_rate: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        self.temperature = temperature
        self.humidity = humidity
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    def read(self) -> SensorReading:
        if self._rng.random() < self.failure_rate:
            return SensorReading.failed()
        self.temperature = round(self.temperature + self._rng.uniform(-0.3, 0.3), 1)
        self.humidity = round(
            min(100.0, max(0.0, self.humidity + self._rng.uniform(-1.0, 1.0))), 1
        )
        return SensorReading.from_raw(self.temperature, self.humidity)


class MemoryActuator:
    """LED kept in memory."""

    def __init__(self, on: bool = False) -> None:
        self._on = on

    def set(self, on: bool) -> None:
        self._on = on

    def get(self) -> bool:
        return self._on
