"""FastAPI HTTP + WebSocket event channel for the companion engine.

Telemetry producers and the chat subsystem push their payloads here;
renderers read /state and follow /ws for transitions.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ethereal.core.state import HardwareSample

if TYPE_CHECKING:
    from ethereal.api.ws_hub import WsHub
    from ethereal.core.runtime import CompanionRuntime

log = logging.getLogger(__name__)


# ── Payload schemas ──────────────────────────────────────────────


class HardwarePayload(BaseModel):
    temperature: float = 0.0
    utilization: float = 0.0
    memory_used: int = 0
    memory_total: int = 0
    network_rx: float = 0.0
    network_tx: float = 0.0
    disk_read: float = 0.0
    disk_write: float = 0.0
    battery_level: float = 0.0
    battery_state: str | None = None
    active_window: str | None = None

    # Raw backend tags; unknown or missing values degrade to idle/happy
    state: str | None = None
    mood: str | None = None

    def to_sample(self) -> HardwareSample:
        return HardwareSample.from_payload(self.model_dump())


class ChatMessageBody(BaseModel):
    text: str | None = None


class ChatThinkingBody(BaseModel):
    thinking: bool


class ChatVisibleBody(BaseModel):
    visible: bool


class ChatPromptBody(BaseModel):
    text: str


class ChatResponseBody(BaseModel):
    text: str


# ── App ──────────────────────────────────────────────────────────


def create_app(runtime: CompanionRuntime, ws_hub: WsHub) -> FastAPI:
    app = FastAPI(title="Ethereal Companion", version="0.1.0")

    @app.get("/state")
    async def get_state():
        return JSONResponse(runtime.snapshot())

    @app.post("/hardware")
    async def post_hardware(body: HardwarePayload):
        runtime.on_hardware_sample(body.to_sample())
        return JSONResponse(
            {"state": runtime.store.state.value, "mood": runtime.store.mood.value}
        )

    @app.post("/chat/message")
    async def post_chat_message(body: ChatMessageBody):
        runtime.on_chat_message_set(body.text)
        return JSONResponse({"state": runtime.store.state.value})

    @app.post("/chat/thinking")
    async def post_chat_thinking(body: ChatThinkingBody):
        runtime.on_chat_thinking_change(body.thinking)
        return JSONResponse({"is_thinking": runtime.chat.is_thinking})

    @app.post("/chat/visible")
    async def post_chat_visible(body: ChatVisibleBody):
        runtime.on_chat_visibility_change(body.visible)
        return JSONResponse({"is_visible": runtime.chat.is_visible})

    @app.post("/chat/prompt")
    async def post_chat_prompt(body: ChatPromptBody):
        return JSONResponse(runtime.on_chat_prompt(body.text))

    @app.post("/chat/history/clear")
    async def post_chat_history_clear():
        runtime.clear_chat_history()
        return JSONResponse({"history": []})

    @app.post("/chat/response")
    async def post_chat_response(body: ChatResponseBody):
        runtime.on_chat_response(body.text)
        return JSONResponse(runtime.chat.to_dict())

    @app.post("/actions")
    async def post_action(body: dict):
        ok, reason, result = apply_action(runtime, body)
        if not ok:
            return JSONResponse({"ok": False, "reason": reason}, status_code=400)
        return JSONResponse({"ok": True, "reason": reason, **result})

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()
        try:
            await ws_hub.attach(ws, runtime.snapshot())
            while True:
                raw = await ws.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict):
                    _handle_ws_cmd(msg, runtime)
        except WebSocketDisconnect:
            pass
        finally:
            ws_hub.detach(ws)

    return app


def apply_action(
    runtime: CompanionRuntime, body: dict
) -> tuple[bool, str, dict[str, Any]]:
    """Run one preview/settings action. Returns (ok, reason, result)."""
    action = body.get("action")
    store = runtime.store

    if action == "set_state":
        try:
            store.set_state(str(body.get("state", "")))
        except ValueError:
            return False, f"unknown state: {body.get('state')}", {}
        return True, "ok", {"state": store.state.value}

    elif action == "set_mood":
        try:
            store.set_mood(str(body.get("mood", "")))
        except ValueError:
            return False, f"unknown mood: {body.get('mood')}", {}
        return True, "ok", {"mood": store.mood.value}

    elif action == "toggle_click_through":
        return True, "ok", {"is_click_through": runtime.toggle_click_through()}

    elif action == "set_custom_sprite_path":
        path = body.get("path")
        if path is not None and not isinstance(path, str):
            return False, "path must be a string or null", {}
        store.set_custom_sprite_path(path)
        return True, "ok", {"frames": store.get_animation_frames()}

    elif action == "toggle_sound":
        return True, "ok", {"enabled": runtime.sound_settings.toggle_sound()}

    elif action == "set_volume":
        try:
            volume = float(body.get("volume"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False, "volume must be a number", {}
        runtime.sound_settings.set_volume(volume)
        return True, "ok", {"volume": runtime.sound_settings.volume}

    return False, f"unknown action: {action}", {}


def _handle_ws_cmd(msg: dict, runtime: CompanionRuntime) -> None:
    """Process incoming WebSocket command messages."""
    msg_type = msg.get("type")
    if msg_type == "hardware":
        payload = msg.get("payload")
        runtime.on_hardware_sample(payload if isinstance(payload, dict) else {})
    elif msg_type == "chat_message":
        text = msg.get("text")
        runtime.on_chat_message_set(text if isinstance(text, str) else None)
    elif msg_type == "chat_prompt":
        text = msg.get("text")
        if isinstance(text, str) and text:
            runtime.on_chat_prompt(text)
    elif msg_type == "chat_clear_history":
        runtime.clear_chat_history()
    elif msg_type == "chat_thinking":
        runtime.on_chat_thinking_change(bool(msg.get("thinking", False)))
    elif msg_type == "chat_visible":
        runtime.on_chat_visibility_change(bool(msg.get("visible", False)))
    elif msg_type == "action":
        ok, reason, _ = apply_action(runtime, msg)
        if not ok:
            log.debug("ws action rejected: %s", reason)
