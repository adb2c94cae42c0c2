"""Chat bubble state: current message, thinking flag, visibility, history.

Subscribers receive a ChatEvent only when a value actually changes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from ethereal.core.events import ChatEvent, ChatEventKind

if TYPE_CHECKING:
    from ethereal.core.state import EngineSnapshot

log = logging.getLogger(__name__)

HISTORY_LIMIT = 10
AUTO_HIDE_S = 5.0


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str


class ChatState:
    def __init__(
        self,
        *,
        history_limit: int = HISTORY_LIMIT,
        auto_hide_s: float = AUTO_HIDE_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.message: str | None = None
        self.is_thinking = False
        self.is_visible = False
        self._history: deque[ChatMessage] = deque(maxlen=max(1, history_limit))
        self._auto_hide_s = auto_hide_s
        self._hide_handle: asyncio.TimerHandle | None = None
        self._clock = clock
        self._subscribers: list[Callable[[ChatEvent], None]] = []

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    def subscribe(self, callback: Callable[[ChatEvent], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def set_message(self, message: str | None) -> None:
        if message == self.message:
            return
        self.message = message
        self._emit(ChatEventKind.MESSAGE, message)

    def set_thinking(self, thinking: bool) -> None:
        thinking = bool(thinking)
        if thinking == self.is_thinking:
            return
        self.is_thinking = thinking
        self._emit(ChatEventKind.THINKING, thinking)

    def set_visible(self, visible: bool) -> None:
        visible = bool(visible)
        if visible == self.is_visible:
            return
        self.is_visible = visible
        self._emit(ChatEventKind.VISIBILITY, visible)

    def add_to_history(self, role: str, content: str) -> None:
        self._history.append(ChatMessage(role, content))

    def clear_history(self) -> None:
        self._history.clear()

    def show_response(self, message: str) -> None:
        """Show an assistant reply and schedule the bubble to auto-hide."""
        self._history.append(ChatMessage("assistant", message))
        self.set_message(message)
        self.set_thinking(False)
        self.set_visible(True)
        self._schedule_hide()

    def system_context(self, snap: EngineSnapshot) -> str:
        """Context line handed to the chat backend alongside a prompt."""
        hw = snap.hardware
        if hw is None:
            return f"Current State: {snap.state.value}, Mood: {snap.mood.value}"
        return (
            f"Current State: {snap.state.value}, Mood: {snap.mood.value}, "
            f"CPU: {hw.utilization}%, Mem: {hw.memory_used}/{hw.memory_total}MB, "
            f"Net: {hw.network_rx}KB/s down, "
            f"Bat: {hw.battery_level}% ({hw.battery_state})"
        )

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "is_thinking": self.is_thinking,
            "is_visible": self.is_visible,
            "history": [{"role": m.role, "content": m.content} for m in self._history],
        }

    # ── Internals ────────────────────────────────────────────────

    def _schedule_hide(self) -> None:
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("no running loop; bubble stays visible")
            return
        self._hide_handle = loop.call_later(self._auto_hide_s, self._auto_hide)

    def _auto_hide(self) -> None:
        self._hide_handle = None
        self.set_visible(False)

    def _emit(self, kind: ChatEventKind, value: bool | str | None) -> None:
        event = ChatEvent(kind, value, self._clock() * 1000.0)
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception:
                log.exception("chat subscriber failed")
