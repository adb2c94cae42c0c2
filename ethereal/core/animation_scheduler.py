"""Time-based sprite frame scheduler.

The cursor advances by at most one frame per tick, and only when at least
1000/fps ms have elapsed since the previous advance. Tick cadence therefore
has no effect on playback speed.

Readiness: nothing advances until every frame of the current list has
settled in the ResourceCache. While not ready, current_frame is None and
the renderer shows its loading indicator.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Sequence

if TYPE_CHECKING:
    from ethereal.core.resource_cache import ResourceCache
    from ethereal.core.sprite_store import SpriteStore

log = logging.getLogger(__name__)

DEFAULT_TICK_HZ = 60


class AnimationScheduler:
    """Drives the frame cursor for one animating view."""

    def __init__(
        self,
        cache: ResourceCache,
        *,
        store: SpriteStore | None = None,
        tick_hz: int = DEFAULT_TICK_HZ,
        on_animation_end: Callable[[], None] | None = None,
        on_frame: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache = cache
        self._store = store
        self._tick_period_s = 1.0 / max(1, tick_hz)
        self._on_animation_end = on_animation_end
        self._on_frame = on_frame
        self._clock = clock

        # Source
        self._frames: tuple[str, ...] = ()
        self._fps: float = 0.0
        self._loop: bool = True

        # Cursor
        self._index = 0
        self._last_advance_ms: float | None = None
        self._ready = False
        self._ended = False

        self._running = False
        self._preload_task: asyncio.Task[None] | None = None

    # ── Read access ──────────────────────────────────────────────

    @property
    def frames(self) -> tuple[str, ...]:
        return self._frames

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def frame_index(self) -> int:
        return self._index

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def running(self) -> bool:
        return self._running

    @property
    def current_frame(self) -> str | None:
        """Frame to display, or None while assets are loading."""
        if not self._ready or not self._frames:
            return None
        return self._frames[self._index]

    # ── Source ───────────────────────────────────────────────────

    def set_source(self, frames: Sequence[str], fps: float, loop: bool) -> None:
        """Point the scheduler at a frame list; a new list resets the cursor."""
        self._fps = float(fps)
        self._loop = bool(loop)

        key = tuple(frames)
        if key == self._frames:
            return

        self._frames = key
        self._reset_cursor()
        if not key:
            return

        if self._all_loaded():
            self._mark_ready()
        else:
            self._start_preload(key)

    def _reset_cursor(self) -> None:
        self._index = 0
        self._last_advance_ms = None
        self._ready = False
        self._ended = False

    def _all_loaded(self) -> bool:
        return all(self._cache.is_image_loaded(f) for f in self._frames)

    def _mark_ready(self) -> None:
        self._ready = True
        self._last_advance_ms = None
        self._emit_frame()

    def _start_preload(self, key: tuple[str, ...]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; tick() re-checks readiness
            return
        self._preload_task = loop.create_task(self._preload(key))

    async def _preload(self, key: tuple[str, ...]) -> None:
        await self._cache.preload_images(key)
        if key == self._frames and not self._ready:
            self._mark_ready()

    # ── Tick ─────────────────────────────────────────────────────

    def tick(self, now_ms: float) -> None:
        """Advance the cursor if a full frame interval has elapsed."""
        if not self._ready:
            if not self._frames or not self._all_loaded():
                return
            self._mark_ready()

        if self._last_advance_ms is None:
            self._last_advance_ms = now_ms
            return

        if self._fps <= 0:
            return

        interval_ms = 1000.0 / self._fps
        if now_ms - self._last_advance_ms < interval_ms:
            return

        self._last_advance_ms = now_ms
        nxt = self._index + 1
        if nxt < len(self._frames):
            self._index = nxt
            self._emit_frame()
        elif self._loop:
            if self._index != 0:
                self._index = 0
                self._emit_frame()
        elif not self._ended:
            self._ended = True
            log.debug("animation ended on frame %d", self._index)
            if self._on_animation_end is not None:
                try:
                    self._on_animation_end()
                except Exception:
                    log.exception("animation end callback failed")

    def _emit_frame(self) -> None:
        if self._on_frame is None:
            return
        frame = self.current_frame
        if frame is None:
            return
        try:
            self._on_frame(frame)
        except Exception:
            log.exception("frame callback failed")

    # ── Loop ─────────────────────────────────────────────────────

    def sync_from_store(self) -> None:
        if self._store is None:
            return
        self.set_source(
            self._store.get_animation_frames(),
            self._store.get_current_fps(),
            self._store.should_loop(),
        )

    async def run(self) -> None:
        """Tick until stopped. A fresh run starts from frame 0."""
        self._running = True
        self._frames = ()
        self._reset_cursor()
        log.info("animation loop started at %d Hz", round(1.0 / self._tick_period_s))

        try:
            while self._running:
                t0 = self._clock()
                self.sync_from_store()
                self.tick(t0 * 1000.0)

                elapsed = self._clock() - t0
                sleep_s = self._tick_period_s - elapsed
                await asyncio.sleep(sleep_s if sleep_s > 0 else 0)
        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            log.info("animation loop stopped")

    def stop(self) -> None:
        self._running = False

    def snapshot(self) -> dict:
        return {
            "frame": self.current_frame,
            "index": self._index,
            "frame_count": len(self._frames),
            "fps": self._fps,
            "loop": self._loop,
            "ready": self._ready,
            "ended": self._ended,
        }
