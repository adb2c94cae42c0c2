"""Canonical mappings from backend telemetry tags to sprite states and moods."""

from __future__ import annotations

from typing import Final

from ethereal.core.state import MoodState, SpriteState


BACKEND_STATE_TO_SPRITE: Final[dict[str, SpriteState]] = {
    "Overheating": SpriteState.OVERHEATING,
    "HighLoad": SpriteState.HIGH_LOAD,
    "Working": SpriteState.WORKING,
    "Gaming": SpriteState.GAMING,
    "Browsing": SpriteState.BROWSING,
    "Sleeping": SpriteState.SLEEPING,
}

BACKEND_MOOD_TO_MOOD: Final[dict[str, MoodState]] = {
    "Excited": MoodState.EXCITED,
    "Tired": MoodState.TIRED,
    "Bored": MoodState.BORED,
    "Angry": MoodState.ANGRY,
    "Sad": MoodState.SAD,
    "Curious": MoodState.CURIOUS,
    "Sleeping": MoodState.SLEEPING,
}

MOOD_FPS_MULTIPLIER: Final[dict[MoodState, float]] = {
    MoodState.EXCITED: 1.5,
    MoodState.TIRED: 0.7,
    MoodState.BORED: 0.5,
    MoodState.ANGRY: 2.0,
    MoodState.SAD: 0.6,
    MoodState.CURIOUS: 1.2,
    MoodState.SLEEPING: 0.4,
}


def map_backend_state(tag: object) -> SpriteState:
    """Unknown or non-string tags map to idle."""
    if not isinstance(tag, str):
        return SpriteState.IDLE
    return BACKEND_STATE_TO_SPRITE.get(tag, SpriteState.IDLE)


def map_backend_mood(tag: object) -> MoodState:
    """Unknown or non-string tags map to happy."""
    if not isinstance(tag, str):
        return MoodState.HAPPY
    return BACKEND_MOOD_TO_MOOD.get(tag, MoodState.HAPPY)


def mood_multiplier(mood: MoodState) -> float:
    return MOOD_FPS_MULTIPLIER.get(mood, 1.0)


def normalize_sprite_state(value: SpriteState | str) -> SpriteState:
    """Coerce an enum member or its value; raises ValueError otherwise."""
    if isinstance(value, SpriteState):
        return value
    return SpriteState(str(value).strip().lower())


def normalize_mood(value: MoodState | str) -> MoodState:
    if isinstance(value, MoodState):
        return value
    return MoodState(str(value).strip().lower())
