"""Companion runtime: builds the engine and routes collaborator events.

Wiring:
  telemetry      -> SpriteStore.update_hardware
  chat message   -> SpriteStore.set_ai_message
  chat prompt    -> ChatState (user history entry, thinking, visible)
  chat thinking  -> ChatState -> SoundTriggerEngine
  store changes  -> SoundTriggerEngine, persistence, listeners (WS hub)
  store frames   -> AnimationScheduler -> ResourceCache
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Mapping

from ethereal.api.persistence import load_state, save_value
from ethereal.config import EtherealConfig
from ethereal.core.animation_scheduler import AnimationScheduler
from ethereal.core.chat_state import ChatState
from ethereal.core.events import ChatEvent, SpriteTransition, TransitionKind
from ethereal.core.resource_cache import PygameImageProbe, Probe, ResourceCache
from ethereal.core.sound_triggers import SoundPlayer, SoundSettings, SoundTriggerEngine
from ethereal.core.sprite_store import SpriteStore
from ethereal.core.state import HardwareSample

log = logging.getLogger(__name__)

Listener = Callable[[dict], Any]


class CompanionRuntime:
    def __init__(
        self,
        cfg: EtherealConfig | None = None,
        *,
        probe: Probe | None = None,
        sound_factory: Callable[[str], Any] | None = None,
        state_path: Path | None = None,
    ) -> None:
        self.cfg = cfg or EtherealConfig()
        asset_dir = Path(self.cfg.sprite.asset_dir)
        self._state_path = state_path or Path(
            self.cfg.persistence.state_path
        ).expanduser()

        saved = load_state(self._state_path)
        self.store = SpriteStore(
            bundled_root=self.cfg.sprite.bundled_root,
            is_click_through=bool(saved.get("is_click_through", False)),
        )
        if self.cfg.sprite.custom_sprite_path:
            self.store.set_custom_sprite_path(self.cfg.sprite.custom_sprite_path)

        self.chat = ChatState(
            history_limit=self.cfg.chat.history_limit,
            auto_hide_s=self.cfg.chat.auto_hide_s,
        )
        self.cache = ResourceCache(probe or PygameImageProbe(asset_dir))
        self.scheduler = AnimationScheduler(
            self.cache,
            store=self.store,
            tick_hz=self.cfg.animation.tick_hz,
            on_animation_end=self._on_animation_end,
        )

        self.sound_settings = SoundSettings()
        self.sound_settings.sync_with_config(self.cfg.sound)
        self.player = SoundPlayer(
            self.sound_settings, factory=sound_factory, asset_dir=asset_dir
        )
        self.sounds = SoundTriggerEngine(
            self.player,
            initial_state=self.store.state,
            initial_thinking=self.chat.is_thinking,
        )

        self._listeners: list[Listener] = []

        self.store.subscribe(self.sounds.on_transition)
        self.store.subscribe(self._on_transition)
        self.chat.subscribe(self.sounds.on_chat_event)
        self.chat.subscribe(self._on_chat_event)

    # ── Collaborator inputs ──────────────────────────────────────

    def on_hardware_sample(self, sample: HardwareSample | Mapping[str, Any]) -> None:
        if not isinstance(sample, HardwareSample):
            sample = HardwareSample.from_payload(sample)
        self.store.update_hardware(sample)

    def on_chat_message_set(self, text: str | None) -> None:
        self.store.set_ai_message(text)

    def on_chat_thinking_change(self, thinking: bool) -> None:
        self.chat.set_thinking(thinking)

    def on_chat_visibility_change(self, visible: bool) -> None:
        self.chat.set_visible(visible)

    def on_chat_prompt(self, text: str) -> dict:
        """User prompt sent: show the bubble thinking and record the entry.

        Returns the request the chat backend needs. History is taken before
        the prompt is appended.
        """
        history = [{"role": m.role, "content": m.content} for m in self.chat.history]
        self.chat.set_thinking(True)
        self.chat.set_visible(True)
        self.chat.add_to_history("user", text)
        return {
            "message": text,
            "history": history,
            "system_context": self.chat.system_context(self.store.snapshot),
            "mood": self.store.mood.value,
        }

    def clear_chat_history(self) -> None:
        self.chat.clear_history()

    def on_chat_response(self, text: str) -> None:
        """Reply arrived: show it and release the thinking-lock."""
        self.chat.show_response(text)
        self.store.set_ai_message(None)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ── Read access ──────────────────────────────────────────────

    @property
    def is_click_through(self) -> bool:
        return self.store.is_click_through

    def toggle_click_through(self) -> bool:
        return self.store.toggle_click_through()

    def snapshot(self) -> dict:
        d = self.store.to_dict()
        d["animation"] = self.scheduler.snapshot()
        d["chat"] = self.chat.to_dict()
        d["chat"]["system_context"] = self.chat.system_context(self.store.snapshot)
        d["sound"] = self.sound_settings.to_dict()
        d["resources"] = self.cache.snapshot()
        return d

    # ── Subscribers ──────────────────────────────────────────────

    def _on_transition(self, event: SpriteTransition) -> None:
        if event.kind == TransitionKind.CLICK_THROUGH:
            save_value("is_click_through", self.store.is_click_through, self._state_path)
        if event.changed:
            log.info(
                "sprite %s/%s -> %s/%s (%s)",
                event.old_state.value,
                event.old_mood.value,
                event.new_state.value,
                event.new_mood.value,
                event.kind.value,
            )
        self._broadcast(event.to_dict())

    def _on_chat_event(self, event: ChatEvent) -> None:
        self._broadcast(event.to_dict())

    def _on_animation_end(self) -> None:
        self._broadcast({"type": "animation.ended", "state": self.store.state.value})

    def _broadcast(self, payload: dict) -> None:
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                log.exception("runtime listener failed")
