"""Edge-triggered sound cues.

A cue fires once per transition, never for continued presence in a state:

  state -> overheating     alert
  state -> gaming          active
  idle  -> working         focus
  thinking False -> True   thinking
  thinking True  -> False  notification (reply ready)

Baselines update on every observation, including while sound is disabled,
so re-enabling never replays a stale edge.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from ethereal.core.assets import DEFAULT_ASSET_DIR, to_local_path
from ethereal.core.events import ChatEvent, ChatEventKind, SpriteTransition
from ethereal.core.state import SpriteState

if TYPE_CHECKING:
    from ethereal.config import SoundConfig

log = logging.getLogger(__name__)

CUE_ALERT = "/sounds/alert.mp3"
CUE_ACTIVE = "/sounds/active.mp3"
CUE_FOCUS = "/sounds/focus.mp3"
CUE_THINKING = "/sounds/thinking.mp3"
CUE_NOTIFICATION = "/sounds/notification.mp3"


class SoundSettings:
    """Enabled flag + volume, read at play time."""

    def __init__(self, enabled: bool = True, volume: float = 0.5) -> None:
        self.enabled = bool(enabled)
        self.volume = _clamp_volume(volume)

    def toggle_sound(self) -> bool:
        self.enabled = not self.enabled
        log.info("sound %s", "enabled" if self.enabled else "disabled")
        return self.enabled

    def set_volume(self, volume: float) -> None:
        self.volume = _clamp_volume(volume)

    def sync_with_config(self, cfg: SoundConfig) -> None:
        self.enabled = bool(cfg.enabled)
        self.volume = _clamp_volume(cfg.volume)

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "volume": self.volume}


def _clamp_volume(volume: float) -> float:
    try:
        v = float(volume)
    except (TypeError, ValueError):
        return 0.5
    return max(0.0, min(1.0, v))


def _pygame_sound_factory(asset_dir: Path) -> Callable[[str], Any]:
    def _load(url: str) -> Any:
        import pygame

        if not pygame.mixer.get_init():
            pygame.mixer.init()
        return pygame.mixer.Sound(str(to_local_path(url, asset_dir)))

    return _load


class SoundPlayer:
    """Plays cached cue objects; one instance per distinct URL.

    *factory* builds a sound object exposing ``stop()``, ``set_volume(v)``
    and ``play()``. The default loads pygame mixer sounds.
    """

    def __init__(
        self,
        settings: SoundSettings,
        *,
        factory: Callable[[str], Any] | None = None,
        asset_dir: Path = DEFAULT_ASSET_DIR,
    ) -> None:
        self.settings = settings
        self._factory = factory or _pygame_sound_factory(asset_dir)
        self._cache: dict[str, Any] = {}
        self.play_count = 0

    def play_sound(self, url: str) -> None:
        if not self.settings.enabled:
            return
        try:
            sound = self._cache.get(url)
            if sound is None:
                sound = self._factory(url)
                self._cache[url] = sound

            sound.stop()  # restart from zero
            sound.set_volume(self.settings.volume)
            sound.play()
            self.play_count += 1
        except Exception as e:
            log.warning("failed to play sound %s: %s", url, e)

    @property
    def cached_urls(self) -> list[str]:
        return list(self._cache)


class SoundTriggerEngine:
    """Watches state and thinking edges and fires at most one cue per edge."""

    def __init__(
        self,
        player: SoundPlayer,
        *,
        initial_state: SpriteState = SpriteState.IDLE,
        initial_thinking: bool = False,
    ) -> None:
        self._player = player
        self._prev_state = initial_state
        self._prev_thinking = initial_thinking
        self._thinking = initial_thinking

    @property
    def previous_state(self) -> SpriteState:
        return self._prev_state

    @property
    def previous_thinking(self) -> bool:
        return self._prev_thinking

    def observe(self, state: SpriteState, thinking: bool) -> list[str]:
        """Evaluate one observation; returns the cues played.

        While sound is disabled nothing plays and [] is returned, but the
        baselines still advance.
        """
        cues: list[str] = []
        cue: str | None = None

        if state != self._prev_state:
            if state == SpriteState.OVERHEATING:
                cue = CUE_ALERT
            elif state == SpriteState.GAMING:
                cue = CUE_ACTIVE
            elif self._prev_state == SpriteState.IDLE and state == SpriteState.WORKING:
                cue = CUE_FOCUS
            if cue is not None:
                cues.append(cue)
            self._prev_state = state

        if thinking != self._prev_thinking:
            cues.append(CUE_THINKING if thinking else CUE_NOTIFICATION)
            self._prev_thinking = thinking

        if not self._player.settings.enabled:
            return []
        for url in cues:
            self._player.play_sound(url)
        return cues

    # ── Subscription handlers ────────────────────────────────────

    def on_transition(self, event: SpriteTransition) -> None:
        self.observe(event.new_state, self._thinking)

    def on_chat_event(self, event: ChatEvent) -> None:
        if event.kind != ChatEventKind.THINKING:
            return
        self._thinking = bool(event.value)
        self.observe(self._prev_state, self._thinking)
