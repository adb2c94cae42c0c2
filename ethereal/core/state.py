"""State types for the sprite engine.

HardwareSample: telemetry snapshot, replaced wholesale on each arrival.
EngineSnapshot: live store state, mutated only through SpriteStore.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping


# ── Enums ────────────────────────────────────────────────────────


class SpriteState(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    GAMING = "gaming"
    BROWSING = "browsing"
    OVERHEATING = "overheating"
    HIGH_LOAD = "high_load"
    THINKING = "thinking"
    SLEEPING = "sleeping"


class MoodState(str, Enum):
    HAPPY = "happy"
    EXCITED = "excited"
    TIRED = "tired"
    BORED = "bored"
    ANGRY = "angry"
    SAD = "sad"
    CURIOUS = "curious"
    SLEEPING = "sleeping"


# ── Value types ──────────────────────────────────────────────────


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True, slots=True)
class HardwareSample:
    """One telemetry push from the hardware monitor."""

    temperature: float = 0.0
    utilization: float = 0.0  # 0-100
    memory_used: int = 0
    memory_total: int = 0
    network_rx: float = 0.0
    network_tx: float = 0.0
    disk_read: float = 0.0
    disk_write: float = 0.0
    battery_level: float = 0.0
    battery_state: str = ""
    active_window: str = ""

    # Raw backend tags ("Overheating", "Angry", ...)
    state: str = ""
    mood: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> HardwareSample:
        """Build from an untrusted mapping; bad fields fall back to defaults."""
        return cls(
            temperature=_as_float(payload.get("temperature")),
            utilization=_as_float(payload.get("utilization")),
            memory_used=_as_int(payload.get("memory_used")),
            memory_total=_as_int(payload.get("memory_total")),
            network_rx=_as_float(payload.get("network_rx")),
            network_tx=_as_float(payload.get("network_tx")),
            disk_read=_as_float(payload.get("disk_read")),
            disk_write=_as_float(payload.get("disk_write")),
            battery_level=_as_float(payload.get("battery_level")),
            battery_state=_as_str(payload.get("battery_state")),
            active_window=_as_str(payload.get("active_window")),
            state=_as_str(payload.get("state")),
            mood=_as_str(payload.get("mood")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class AnimationProfile:
    frame_count: int = 4
    base_fps: float = 8.0
    loop: bool = True


DEFAULT_PROFILES: dict[SpriteState, AnimationProfile] = {
    SpriteState.IDLE: AnimationProfile(4, 8.0, True),
    SpriteState.WORKING: AnimationProfile(4, 12.0, True),
    SpriteState.GAMING: AnimationProfile(4, 12.0, True),
    SpriteState.BROWSING: AnimationProfile(4, 8.0, True),
    SpriteState.OVERHEATING: AnimationProfile(4, 24.0, True),
    SpriteState.HIGH_LOAD: AnimationProfile(4, 16.0, True),
    SpriteState.THINKING: AnimationProfile(4, 12.0, True),
    SpriteState.SLEEPING: AnimationProfile(4, 4.0, True),
}


# ── EngineSnapshot (store state, lives for the process lifetime) ──


@dataclass(slots=True)
class EngineSnapshot:
    state: SpriteState = SpriteState.IDLE
    mood: MoodState = MoodState.HAPPY
    hardware: HardwareSample | None = None
    is_click_through: bool = False
    custom_sprite_path: str | None = None
    ai_message: str | None = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "mood": self.mood.value,
            "hardware": self.hardware.to_dict() if self.hardware else None,
            "is_click_through": self.is_click_through,
            "custom_sprite_path": self.custom_sprite_path,
            "ai_message": self.ai_message,
        }
