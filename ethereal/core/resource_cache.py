"""Sprite image preloading and readiness tracking.

A URL is "loaded" once its decode probe has settled, whether the decode
succeeded or not. Broken assets must never block the animator.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from ethereal.core.assets import DEFAULT_ASSET_DIR, to_local_path

log = logging.getLogger(__name__)

Probe = Callable[[str], Awaitable[None]]


class PygameImageProbe:
    """Decode an image with pygame on a worker thread; raises on failure."""

    def __init__(self, asset_dir: Path = DEFAULT_ASSET_DIR) -> None:
        self._asset_dir = asset_dir

    async def __call__(self, url: str) -> None:
        path = to_local_path(url, self._asset_dir)
        await asyncio.to_thread(self._decode, path)

    @staticmethod
    def _decode(path: Path) -> None:
        import pygame

        pygame.image.load(str(path))


class ResourceCache:
    """Tracks which sprite URLs have settled; grows for the process lifetime."""

    def __init__(self, probe: Probe | None = None) -> None:
        self._probe: Probe = probe or PygameImageProbe()
        self._loaded: set[str] = set()
        self._inflight: dict[str, asyncio.Future[None]] = {}
        self._active_batches = 0
        self.probe_count = 0
        self.failed_count = 0

    @property
    def is_loading(self) -> bool:
        return self._active_batches > 0

    @property
    def loaded_count(self) -> int:
        return len(self._loaded)

    def is_image_loaded(self, url: str) -> bool:
        return url in self._loaded

    async def preload_images(self, urls: Iterable[str]) -> None:
        """Probe every URL not already loaded; return when the batch settles."""
        waits: list[asyncio.Future[None]] = []
        for url in urls:
            if url in self._loaded:
                continue
            fut = self._inflight.get(url)
            if fut is None:
                fut = asyncio.ensure_future(self._settle(url))
                self._inflight[url] = fut
            waits.append(fut)

        if not waits:
            return

        self._active_batches += 1
        try:
            # Shielded: a cancelled caller must not cancel probes others share
            await asyncio.gather(*(asyncio.shield(f) for f in waits))
        finally:
            self._active_batches -= 1

    async def _settle(self, url: str) -> None:
        self.probe_count += 1
        try:
            await self._probe(url)
        except asyncio.CancelledError:
            self._inflight.pop(url, None)
            raise
        except Exception as e:
            self.failed_count += 1
            log.warning("failed to preload image %s: %s", url, e)
        self._loaded.add(url)
        self._inflight.pop(url, None)

    def snapshot(self) -> dict:
        return {
            "loaded": len(self._loaded),
            "inflight": len(self._inflight),
            "probes": self.probe_count,
            "failed": self.failed_count,
        }
