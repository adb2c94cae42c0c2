"""WebSocket fan-out of sprite transitions and chat events to renderers.

Every frame on the wire is an envelope:
  {"schema": "ethereal_ws_v1", "type": ..., "ts_ms": ..., "payload": {...}}

A newly connected renderer first receives a "state.snapshot" envelope so it
can draw without waiting for the next transition.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from fastapi import WebSocket

log = logging.getLogger(__name__)

WS_SCHEMA = "ethereal_ws_v1"


def make_envelope(msg_type: str, payload: dict[str, Any]) -> str:
    return json.dumps(
        {
            "schema": WS_SCHEMA,
            "type": msg_type,
            "ts_ms": int(time.monotonic() * 1000),
            "payload": payload,
        }
    )


class WsHub:
    def __init__(self) -> None:
        self._renderers: set[WebSocket] = set()
        self._sends: set[asyncio.Future[None]] = set()
        self.dropped = 0

    @property
    def client_count(self) -> int:
        return len(self._renderers)

    async def attach(self, ws: WebSocket, snapshot: dict[str, Any]) -> None:
        """Register *ws* and greet it with the current engine snapshot."""
        await ws.send_text(make_envelope("state.snapshot", snapshot))
        self._renderers.add(ws)
        log.info("ws: renderer attached (%d total)", len(self._renderers))

    def detach(self, ws: WebSocket) -> None:
        if ws in self._renderers:
            self._renderers.discard(ws)
            log.info("ws: renderer detached (%d total)", len(self._renderers))

    def broadcast_event(self, payload: dict[str, Any]) -> None:
        """Queue *payload* for every renderer without awaiting delivery."""
        if not self._renderers:
            return

        envelope = make_envelope(payload.get("type", "event"), payload)
        for ws in list(self._renderers):
            try:
                fut = asyncio.ensure_future(ws.send_text(envelope))
            except Exception as e:
                self._drop(ws, e)
                continue
            self._sends.add(fut)
            fut.add_done_callback(lambda f, ws=ws: self._on_sent(ws, f))

    def _on_sent(self, ws: WebSocket, fut: asyncio.Future[None]) -> None:
        self._sends.discard(fut)
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self._drop(ws, exc)

    def _drop(self, ws: WebSocket, exc: BaseException) -> None:
        if ws not in self._renderers:
            return
        self._renderers.discard(ws)
        self.dropped += 1
        log.warning("ws: dropping renderer: %s", exc)
