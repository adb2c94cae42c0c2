"""Tests for edge-triggered sound cues and the cached player."""

from __future__ import annotations

import pytest

from ethereal.config import SoundConfig
from ethereal.core.events import ChatEvent, ChatEventKind
from ethereal.core.sound_triggers import (
    CUE_ACTIVE,
    CUE_ALERT,
    CUE_FOCUS,
    CUE_NOTIFICATION,
    CUE_THINKING,
    SoundPlayer,
    SoundSettings,
    SoundTriggerEngine,
)
from ethereal.core.sprite_store import SpriteStore
from ethereal.core.state import SpriteState


class FakeSound:
    def __init__(self, url: str):
        self.url = url
        self.calls: list[tuple] = []

    def stop(self):
        self.calls.append(("stop",))

    def set_volume(self, v):
        self.calls.append(("volume", v))

    def play(self):
        self.calls.append(("play",))


class FakeFactory:
    def __init__(self):
        self.created: list[FakeSound] = []

    def __call__(self, url: str) -> FakeSound:
        s = FakeSound(url)
        self.created.append(s)
        return s

    @property
    def played(self) -> list[str]:
        return [
            s.url
            for s in self.created
            for c in s.calls
            if c == ("play",)
        ]


def _engine(enabled: bool = True, **kw):
    factory = FakeFactory()
    settings = SoundSettings(enabled=enabled, volume=0.5)
    player = SoundPlayer(settings, factory=factory)
    return SoundTriggerEngine(player, **kw), player, factory


# ── Settings ─────────────────────────────────────────────────────


class TestSoundSettings:
    def test_defaults(self):
        s = SoundSettings()
        assert s.enabled is True
        assert s.volume == 0.5

    def test_toggle(self):
        s = SoundSettings()
        assert s.toggle_sound() is False
        assert s.toggle_sound() is True

    @pytest.mark.parametrize(
        "raw, expected", [(0.25, 0.25), (-1, 0.0), (3, 1.0), ("bad", 0.5)]
    )
    def test_volume_clamped(self, raw, expected):
        s = SoundSettings()
        s.set_volume(raw)
        assert s.volume == expected

    def test_sync_with_config(self):
        s = SoundSettings()
        s.sync_with_config(SoundConfig(enabled=False, volume=0.8))
        assert s.to_dict() == {"enabled": False, "volume": 0.8}


# ── Player ───────────────────────────────────────────────────────


class TestSoundPlayer:
    def test_restarts_at_current_volume(self):
        factory = FakeFactory()
        settings = SoundSettings(volume=0.3)
        player = SoundPlayer(settings, factory=factory)
        player.play_sound(CUE_ALERT)
        assert factory.created[0].calls == [("stop",), ("volume", 0.3), ("play",)]

    def test_one_object_per_url(self):
        factory = FakeFactory()
        player = SoundPlayer(SoundSettings(), factory=factory)
        player.play_sound(CUE_ALERT)
        player.play_sound(CUE_ALERT)
        player.play_sound(CUE_FOCUS)
        assert len(factory.created) == 2
        assert player.cached_urls == [CUE_ALERT, CUE_FOCUS]
        assert player.play_count == 3

    def test_volume_read_at_play_time(self):
        factory = FakeFactory()
        settings = SoundSettings(volume=0.3)
        player = SoundPlayer(settings, factory=factory)
        player.play_sound(CUE_ALERT)
        settings.set_volume(0.9)
        player.play_sound(CUE_ALERT)
        assert ("volume", 0.9) in factory.created[0].calls

    def test_disabled_does_nothing(self):
        factory = FakeFactory()
        player = SoundPlayer(SoundSettings(enabled=False), factory=factory)
        player.play_sound(CUE_ALERT)
        assert factory.created == []
        assert player.play_count == 0

    def test_playback_failure_is_swallowed(self, caplog):
        def _broken(url):
            raise RuntimeError("no audio device")

        player = SoundPlayer(SoundSettings(), factory=_broken)
        with caplog.at_level("WARNING"):
            player.play_sound(CUE_ALERT)
        assert player.play_count == 0
        assert "failed to play sound" in caplog.text


# ── Edge triggers ────────────────────────────────────────────────


class TestStateEdges:
    def test_idle_to_working_fires_focus_once(self):
        engine, _, factory = _engine()
        assert engine.observe(SpriteState.WORKING, False) == [CUE_FOCUS]
        assert engine.observe(SpriteState.WORKING, False) == []
        assert factory.played == [CUE_FOCUS]

    def test_overheating_fires_alert(self):
        engine, _, _ = _engine()
        assert engine.observe(SpriteState.OVERHEATING, False) == [CUE_ALERT]
        assert engine.observe(SpriteState.OVERHEATING, False) == []

    def test_gaming_fires_active(self):
        engine, _, _ = _engine(initial_state=SpriteState.BROWSING)
        assert engine.observe(SpriteState.GAMING, False) == [CUE_ACTIVE]

    def test_browsing_to_working_is_silent(self):
        engine, _, _ = _engine(initial_state=SpriteState.BROWSING)
        assert engine.observe(SpriteState.WORKING, False) == []
        assert engine.previous_state == SpriteState.WORKING

    def test_reentering_fires_again(self):
        engine, _, _ = _engine()
        engine.observe(SpriteState.OVERHEATING, False)
        engine.observe(SpriteState.IDLE, False)
        assert engine.observe(SpriteState.OVERHEATING, False) == [CUE_ALERT]

    def test_disabled_sound_still_updates_baseline(self):
        engine, player, factory = _engine(enabled=False)
        assert engine.observe(SpriteState.WORKING, True) == []
        assert engine.previous_thinking is True
        assert engine.previous_state == SpriteState.WORKING
        assert factory.created == []

        player.settings.toggle_sound()
        assert engine.observe(SpriteState.WORKING, False) == []
        assert factory.created == []


class TestThinkingEdges:
    def test_thinking_on_then_off(self):
        engine, _, factory = _engine()
        assert engine.observe(SpriteState.IDLE, True) == [CUE_THINKING]
        assert engine.observe(SpriteState.IDLE, True) == []
        assert engine.observe(SpriteState.IDLE, False) == [CUE_NOTIFICATION]
        assert factory.played == [CUE_THINKING, CUE_NOTIFICATION]

    def test_state_and_thinking_edges_in_one_observation(self):
        engine, _, _ = _engine()
        assert engine.observe(SpriteState.OVERHEATING, True) == [
            CUE_ALERT,
            CUE_THINKING,
        ]

    def test_chat_event_drives_thinking_edge(self):
        engine, _, factory = _engine()
        engine.on_chat_event(ChatEvent(ChatEventKind.THINKING, True, 0.0))
        engine.on_chat_event(ChatEvent(ChatEventKind.VISIBILITY, True, 0.0))
        engine.on_chat_event(ChatEvent(ChatEventKind.THINKING, False, 0.0))
        assert factory.played == [CUE_THINKING, CUE_NOTIFICATION]
        assert engine.previous_thinking is False


class TestStoreWiring:
    def test_store_transitions_trigger_cues(self):
        engine, _, factory = _engine()
        store = SpriteStore()
        store.subscribe(engine.on_transition)

        store.set_state("working")
        store.set_mood("excited")
        store.set_state("overheating")
        assert factory.played == [CUE_FOCUS, CUE_ALERT]
