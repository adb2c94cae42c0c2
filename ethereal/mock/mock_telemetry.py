"""Synthetic hardware telemetry for running without a monitor backend.

Patterns mirror the desktop monitor's debug generator:
  idle         cool, near-zero load
  high_load    hot, saturated
  fluctuating  anything in between
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable

from ethereal.core.state import HardwareSample

log = logging.getLogger(__name__)

PATTERNS = ("idle", "high_load", "fluctuating")

_MEMORY_TOTAL_MB = 24576

# (temperature, utilization, memory_used) ranges per pattern
_RANGES: dict[str, tuple[tuple[float, float], tuple[float, float], tuple[int, int]]] = {
    "idle": ((30.0, 45.0), (0.0, 10.0), (500, 1000)),
    "high_load": ((75.0, 85.0), (90.0, 100.0), (15000, 20000)),
    "fluctuating": ((40.0, 80.0), (10.0, 90.0), (2000, 12000)),
}


def derive_tags(
    temperature: float, utilization: float, *, overheat_temp: float = 80.0
) -> tuple[str, str]:
    """Backend (state, mood) tags for a reading."""
    if temperature > overheat_temp:
        return "Overheating", "Angry"
    if utilization > 80.0:
        return "HighLoad", "Excited"
    if utilization < 10.0:
        return "Idle", "Bored"
    return "Idle", "Happy"


class MockTelemetry:
    def __init__(
        self,
        pattern: str = "fluctuating",
        *,
        overheat_temp: float = 80.0,
        rng: random.Random | None = None,
    ) -> None:
        if pattern not in _RANGES:
            raise ValueError(f"unknown telemetry pattern: {pattern}")
        self.pattern = pattern
        self._overheat_temp = overheat_temp
        self._rng = rng or random.Random()
        self._running = False

    def sample(self) -> HardwareSample:
        (t_lo, t_hi), (u_lo, u_hi), (m_lo, m_hi) = _RANGES[self.pattern]
        rng = self._rng
        temperature = round(rng.uniform(t_lo, t_hi), 1)
        utilization = round(rng.uniform(u_lo, u_hi), 1)
        state, mood = derive_tags(
            temperature, utilization, overheat_temp=self._overheat_temp
        )
        return HardwareSample(
            temperature=temperature,
            utilization=utilization,
            memory_used=rng.randint(m_lo, m_hi),
            memory_total=_MEMORY_TOTAL_MB,
            network_rx=round(rng.uniform(0.0, 500.0), 1),
            network_tx=round(rng.uniform(0.0, 100.0), 1),
            battery_level=100.0,
            battery_state="Full",
            state=state,
            mood=mood,
        )

    async def run(
        self, sink: Callable[[HardwareSample], None], interval_s: float = 1.0
    ) -> None:
        """Push a sample into *sink* every *interval_s* until stopped."""
        self._running = True
        log.info("mock telemetry started (pattern=%s, %.1fs)", self.pattern, interval_s)
        try:
            while self._running:
                sink(self.sample())
                await asyncio.sleep(interval_s)
        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            log.info("mock telemetry stopped")

    def stop(self) -> None:
        self._running = False
