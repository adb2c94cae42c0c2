"""Tests for CompanionRuntime wiring."""

from __future__ import annotations

import asyncio
import json

import pytest

from ethereal.config import EtherealConfig
from ethereal.core.runtime import CompanionRuntime
from ethereal.core.state import HardwareSample, SpriteState


async def _instant_probe(url: str) -> None:
    return None


class FakeSound:
    played: list[str] = []

    def __init__(self, url: str):
        self.url = url

    def stop(self):
        pass

    def set_volume(self, v):
        pass

    def play(self):
        FakeSound.played.append(self.url)


@pytest.fixture(autouse=True)
def _reset_played():
    FakeSound.played = []


def _runtime(tmp_path, cfg: EtherealConfig | None = None) -> CompanionRuntime:
    return CompanionRuntime(
        cfg or EtherealConfig(),
        probe=_instant_probe,
        sound_factory=FakeSound,
        state_path=tmp_path / "state.json",
    )


# ── Construction ─────────────────────────────────────────────────


class TestConstruction:
    def test_click_through_restored(self, tmp_path):
        (tmp_path / "state.json").write_text(json.dumps({"is_click_through": True}))
        rt = _runtime(tmp_path)
        assert rt.is_click_through is True

    def test_click_through_survives_restart(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.toggle_click_through()
        assert _runtime(tmp_path).is_click_through is True

    def test_custom_sprite_path_from_config(self, tmp_path):
        cfg = EtherealConfig()
        cfg.sprite.custom_sprite_path = "/opt/sprites"
        rt = _runtime(tmp_path, cfg)
        assert rt.store.get_animation_frames()[0] == "/opt/sprites/idle-1.svg"

    def test_sound_from_config(self, tmp_path):
        cfg = EtherealConfig()
        cfg.sound.enabled = False
        cfg.sound.volume = 0.2
        rt = _runtime(tmp_path, cfg)
        assert rt.sound_settings.to_dict() == {"enabled": False, "volume": 0.2}


# ── Inputs ───────────────────────────────────────────────────────


class TestInputs:
    def test_hardware_dict_accepted(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.on_hardware_sample({"state": "Working", "mood": "Curious"})
        assert rt.store.state == SpriteState.WORKING
        assert FakeSound.played == ["/sounds/focus.mp3"]

    def test_hardware_sample_accepted(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.on_hardware_sample(HardwareSample(state="Overheating"))
        assert rt.store.state == SpriteState.OVERHEATING
        assert FakeSound.played == ["/sounds/alert.mp3"]

    def test_continued_presence_is_silent(self, tmp_path):
        rt = _runtime(tmp_path)
        for _ in range(5):
            rt.on_hardware_sample({"state": "Gaming"})
        assert FakeSound.played == ["/sounds/active.mp3"]

    def test_chat_round_trip(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.on_hardware_sample({"state": "Browsing"})
        rt.on_chat_message_set("hello")
        rt.on_chat_thinking_change(True)
        assert rt.store.state == SpriteState.THINKING

        rt.on_hardware_sample({"state": "Gaming"})
        assert rt.store.state == SpriteState.THINKING

        rt.on_chat_response("hi there")
        assert rt.store.state == SpriteState.GAMING
        assert rt.chat.is_visible is True
        assert FakeSound.played == [
            "/sounds/thinking.mp3",
            "/sounds/notification.mp3",
            "/sounds/active.mp3",
        ]

    def test_prompt_records_user_entry(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.on_hardware_sample(
            {
                "state": "Working",
                "utilization": 42.0,
                "memory_used": 512,
                "memory_total": 1024,
            }
        )
        rt.on_chat_response("earlier reply")

        request = rt.on_chat_prompt("how busy am I?")
        assert request["message"] == "how busy am I?"
        assert request["history"] == [{"role": "assistant", "content": "earlier reply"}]
        assert request["mood"] == rt.store.mood.value
        assert request["system_context"].startswith("Current State: working")
        assert "CPU: 42.0%" in request["system_context"]
        assert "Mem: 512/1024MB" in request["system_context"]

        assert rt.chat.is_thinking is True
        assert rt.chat.is_visible is True
        assert rt.chat.to_dict()["history"][-1] == {
            "role": "user",
            "content": "how busy am I?",
        }
        assert FakeSound.played[-1] == "/sounds/thinking.mp3"

    def test_clear_chat_history(self, tmp_path):
        rt = _runtime(tmp_path)
        rt.on_chat_prompt("hi")
        rt.on_chat_response("hello")
        assert len(rt.chat.history) == 2
        rt.clear_chat_history()
        assert rt.chat.to_dict()["history"] == []
        assert rt.on_chat_prompt("again")["history"] == []


# ── Listeners ────────────────────────────────────────────────────


class TestListeners:
    def test_transitions_and_chat_events_broadcast(self, tmp_path):
        rt = _runtime(tmp_path)
        seen = []
        rt.add_listener(seen.append)
        rt.on_hardware_sample({"state": "Gaming"})
        rt.on_chat_visibility_change(True)
        assert [p["type"] for p in seen] == ["sprite.transition", "chat.visibility"]

    def test_failing_listener_isolated(self, tmp_path):
        rt = _runtime(tmp_path)
        seen = []

        def _boom(_payload):
            raise RuntimeError("boom")

        rt.add_listener(_boom)
        rt.add_listener(seen.append)
        rt.on_hardware_sample({"state": "Gaming"})
        assert len(seen) == 1

    def test_snapshot_sections(self, tmp_path):
        rt = _runtime(tmp_path)
        snap = rt.snapshot()
        for key in ("state", "mood", "frames", "fps", "animation", "chat", "sound", "resources"):
            assert key in snap
        assert snap["chat"]["system_context"] == "Current State: idle, Mood: happy"


# ── Animation loop ───────────────────────────────────────────────


class TestAnimation:
    @pytest.mark.asyncio
    async def test_scheduler_follows_store(self, tmp_path):
        cfg = EtherealConfig()
        cfg.animation.tick_hz = 200
        rt = _runtime(tmp_path, cfg)
        task = asyncio.create_task(rt.scheduler.run())
        await asyncio.sleep(0.05)
        assert rt.scheduler.current_frame is not None
        assert rt.scheduler.current_frame.startswith("/sprites/idle-")

        rt.on_hardware_sample({"state": "Overheating", "mood": "Angry"})
        await asyncio.sleep(0.05)
        assert rt.scheduler.fps == 48.0
        assert rt.scheduler.current_frame.startswith("/sprites/overheating-")

        rt.scheduler.stop()
        await asyncio.wait_for(task, timeout=1.0)
