"""Sprite state & mood store: the authoritative state machine.

Mutators:
  update_hardware   telemetry tick; ignored for state/mood while thinking
  set_ai_message    non-null message forces THINKING; null releases it
  set_state/mood    direct overrides (preview tooling)

Derivations (pure, read-only): get_animation_frames, get_current_fps,
should_loop.

Every mutator publishes a SpriteTransition to subscribers.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from ethereal.core.assets import (
    BUNDLED_SPRITE_ROOT,
    frame_locators,
    resolve_asset_root,
)
from ethereal.core.events import SpriteTransition, TransitionKind
from ethereal.core.expressions import (
    map_backend_mood,
    map_backend_state,
    mood_multiplier,
    normalize_mood,
    normalize_sprite_state,
)
from ethereal.core.state import (
    DEFAULT_PROFILES,
    AnimationProfile,
    EngineSnapshot,
    HardwareSample,
    MoodState,
    SpriteState,
)

log = logging.getLogger(__name__)

_DEFAULT_BASE_FPS = 8.0

Subscriber = Callable[[SpriteTransition], None]


class SpriteStore:
    """Holds the EngineSnapshot and publishes transitions."""

    def __init__(
        self,
        *,
        profiles: dict[SpriteState, AnimationProfile] | None = None,
        bundled_root: str = BUNDLED_SPRITE_ROOT,
        is_click_through: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._profiles = dict(DEFAULT_PROFILES if profiles is None else profiles)
        self._bundled_root = bundled_root
        self._clock = clock
        self._snap = EngineSnapshot(is_click_through=bool(is_click_through))
        self._subscribers: list[Subscriber] = []
        self._next_seq = 1

    # ── Read access ──────────────────────────────────────────────

    @property
    def snapshot(self) -> EngineSnapshot:
        return self._snap

    @property
    def state(self) -> SpriteState:
        return self._snap.state

    @property
    def mood(self) -> MoodState:
        return self._snap.mood

    @property
    def hardware(self) -> HardwareSample | None:
        return self._snap.hardware

    @property
    def is_click_through(self) -> bool:
        return self._snap.is_click_through

    @property
    def custom_sprite_path(self) -> str | None:
        return self._snap.custom_sprite_path

    @property
    def ai_message(self) -> str | None:
        return self._snap.ai_message

    # ── Subscription ─────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    # ── Mutators ─────────────────────────────────────────────────

    def update_hardware(self, sample: HardwareSample) -> None:
        old_state, old_mood = self._snap.state, self._snap.mood
        self._snap.hardware = sample

        if old_state != SpriteState.THINKING:
            self._snap.state = map_backend_state(sample.state)
            self._snap.mood = map_backend_mood(sample.mood)

        self._publish(TransitionKind.HARDWARE, old_state, old_mood)

    def set_ai_message(self, message: str | None) -> None:
        old_state, old_mood = self._snap.state, self._snap.mood
        self._snap.ai_message = message or None

        if message:
            self._snap.state = SpriteState.THINKING
        elif old_state == SpriteState.THINKING:
            # Release the thinking-lock onto the latest telemetry candidate
            hw = self._snap.hardware
            if hw is not None:
                self._snap.state = map_backend_state(hw.state)
                self._snap.mood = map_backend_mood(hw.mood)
            else:
                self._snap.state = SpriteState.IDLE

        self._publish(TransitionKind.AI_MESSAGE, old_state, old_mood)

    def set_state(self, state: SpriteState | str) -> None:
        new_state = normalize_sprite_state(state)
        old_state, old_mood = self._snap.state, self._snap.mood
        self._snap.state = new_state
        self._publish(TransitionKind.STATE_OVERRIDE, old_state, old_mood)

    def set_mood(self, mood: MoodState | str) -> None:
        new_mood = normalize_mood(mood)
        old_state, old_mood = self._snap.state, self._snap.mood
        self._snap.mood = new_mood
        self._publish(TransitionKind.MOOD_OVERRIDE, old_state, old_mood)

    def toggle_click_through(self) -> bool:
        self._snap.is_click_through = not self._snap.is_click_through
        log.info("click-through %s", "on" if self._snap.is_click_through else "off")
        self._publish(TransitionKind.CLICK_THROUGH, self._snap.state, self._snap.mood)
        return self._snap.is_click_through

    def set_custom_sprite_path(self, path: str | None) -> None:
        self._snap.custom_sprite_path = path or None
        log.info("sprite root: %s", self._snap.custom_sprite_path or self._bundled_root)
        self._publish(TransitionKind.SPRITE_PATH, self._snap.state, self._snap.mood)

    # ── Derivations ──────────────────────────────────────────────

    def active_profile(self) -> AnimationProfile | None:
        profile = self._profiles.get(self._snap.state)
        if profile is None:
            profile = self._profiles.get(SpriteState.IDLE)
        return profile

    def get_animation_frames(self) -> list[str]:
        profile = self.active_profile()
        if profile is None:
            return []
        root, sep = resolve_asset_root(
            self._snap.custom_sprite_path, self._bundled_root
        )
        return frame_locators(root, sep, self._snap.state.value, profile.frame_count)

    def get_current_fps(self) -> float:
        profile = self._profiles.get(self._snap.state)
        base_fps = profile.base_fps if profile is not None else _DEFAULT_BASE_FPS
        return base_fps * mood_multiplier(self._snap.mood)

    def should_loop(self) -> bool:
        profile = self._profiles.get(self._snap.state)
        return profile.loop if profile is not None else True

    def to_dict(self) -> dict:
        d = self._snap.to_dict()
        d["frames"] = self.get_animation_frames()
        d["fps"] = self.get_current_fps()
        d["loop"] = self.should_loop()
        return d

    # ── Internals ────────────────────────────────────────────────

    def _publish(
        self, kind: TransitionKind, old_state: SpriteState, old_mood: MoodState
    ) -> None:
        event = SpriteTransition(
            kind=kind,
            old_state=old_state,
            new_state=self._snap.state,
            old_mood=old_mood,
            new_mood=self._snap.mood,
            t_mono_ms=self._clock() * 1000.0,
            seq=self._next_seq,
        )
        self._next_seq += 1

        if event.changed:
            log.debug(
                "%s: %s/%s -> %s/%s",
                kind.value,
                old_state.value,
                old_mood.value,
                event.new_state.value,
                event.new_mood.value,
            )

        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception:
                log.exception("store subscriber failed")
