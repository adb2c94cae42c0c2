"""Explicit transition events emitted by the store and chat state.

Subscribers consume these instead of diffing ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ethereal.core.state import MoodState, SpriteState


class TransitionKind(str, Enum):
    HARDWARE = "hardware"
    AI_MESSAGE = "ai_message"
    STATE_OVERRIDE = "state_override"
    MOOD_OVERRIDE = "mood_override"
    CLICK_THROUGH = "click_through"
    SPRITE_PATH = "sprite_path"


@dataclass(frozen=True, slots=True)
class SpriteTransition:
    kind: TransitionKind
    old_state: SpriteState
    new_state: SpriteState
    old_mood: MoodState
    new_mood: MoodState
    t_mono_ms: float
    seq: int = 0

    @property
    def state_changed(self) -> bool:
        return self.old_state != self.new_state

    @property
    def changed(self) -> bool:
        return self.state_changed or self.old_mood != self.new_mood

    def to_dict(self) -> dict:
        return {
            "type": "sprite.transition",
            "kind": self.kind.value,
            "from": {"state": self.old_state.value, "mood": self.old_mood.value},
            "to": {"state": self.new_state.value, "mood": self.new_mood.value},
            "t_mono_ms": self.t_mono_ms,
            "seq": self.seq,
        }


class ChatEventKind(str, Enum):
    THINKING = "thinking"
    VISIBILITY = "visibility"
    MESSAGE = "message"


@dataclass(frozen=True, slots=True)
class ChatEvent:
    kind: ChatEventKind
    value: bool | str | None
    t_mono_ms: float

    def to_dict(self) -> dict:
        return {
            "type": f"chat.{self.kind.value}",
            "value": self.value,
            "t_mono_ms": self.t_mono_ms,
        }
