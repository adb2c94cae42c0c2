"""Tests for sprite image preloading."""

from __future__ import annotations

import asyncio

import pytest

from ethereal.core.resource_cache import ResourceCache


class FakeProbe:
    """Records probed URLs; optionally blocks on a gate or fails."""

    def __init__(self, fail: set[str] | None = None, gate: asyncio.Event | None = None):
        self.calls: list[str] = []
        self.fail = fail or set()
        self.gate = gate

    async def __call__(self, url: str) -> None:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url in self.fail:
            raise OSError(f"cannot decode {url}")


# ── Preloading ───────────────────────────────────────────────────


class TestPreload:
    @pytest.mark.asyncio
    async def test_duplicates_probed_once(self):
        probe = FakeProbe()
        cache = ResourceCache(probe)
        await cache.preload_images(["a", "a", "b"])
        assert sorted(probe.calls) == ["a", "b"]
        assert cache.is_image_loaded("a")
        assert cache.is_image_loaded("b")
        assert cache.loaded_count == 2

    @pytest.mark.asyncio
    async def test_already_loaded_not_reprobed(self):
        probe = FakeProbe()
        cache = ResourceCache(probe)
        await cache.preload_images(["a"])
        await cache.preload_images(["a", "b"])
        assert probe.calls == ["a", "b"]
        assert cache.probe_count == 2

    @pytest.mark.asyncio
    async def test_empty_batch_returns_immediately(self):
        probe = FakeProbe()
        cache = ResourceCache(probe)
        await cache.preload_images([])
        assert probe.calls == []
        assert cache.is_loading is False

    @pytest.mark.asyncio
    async def test_not_loaded_until_settled(self):
        gate = asyncio.Event()
        cache = ResourceCache(FakeProbe(gate=gate))
        task = asyncio.create_task(cache.preload_images(["a"]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert cache.is_image_loaded("a") is False
        assert cache.is_loading is True

        gate.set()
        await task
        assert cache.is_image_loaded("a") is True
        assert cache.is_loading is False

    @pytest.mark.asyncio
    async def test_failed_decode_still_settles(self):
        probe = FakeProbe(fail={"broken.svg"})
        cache = ResourceCache(probe)
        await cache.preload_images(["ok.svg", "broken.svg"])
        assert cache.is_image_loaded("broken.svg")
        assert cache.is_image_loaded("ok.svg")
        assert cache.failed_count == 1

    @pytest.mark.asyncio
    async def test_failed_decode_logs_warning(self, caplog):
        cache = ResourceCache(FakeProbe(fail={"x.svg"}))
        with caplog.at_level("WARNING"):
            await cache.preload_images(["x.svg"])
        assert "failed to preload image x.svg" in caplog.text


# ── Concurrency ──────────────────────────────────────────────────


class TestOverlappingBatches:
    @pytest.mark.asyncio
    async def test_overlapping_calls_share_inflight_probe(self):
        gate = asyncio.Event()
        probe = FakeProbe(gate=gate)
        cache = ResourceCache(probe)

        first = asyncio.create_task(cache.preload_images(["a", "b"]))
        await asyncio.sleep(0)
        second = asyncio.create_task(cache.preload_images(["b", "c"]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        gate.set()
        await asyncio.gather(first, second)

        assert sorted(probe.calls) == ["a", "b", "c"]
        assert cache.loaded_count == 3

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_probe(self):
        gate = asyncio.Event()
        cache = ResourceCache(FakeProbe(gate=gate))

        first = asyncio.create_task(cache.preload_images(["a"]))
        second = asyncio.create_task(cache.preload_images(["a"]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        gate.set()
        await second
        assert cache.is_image_loaded("a")

    @pytest.mark.asyncio
    async def test_snapshot(self):
        cache = ResourceCache(FakeProbe(fail={"b"}))
        await cache.preload_images(["a", "b"])
        assert cache.snapshot() == {
            "loaded": 2,
            "inflight": 0,
            "probes": 2,
            "failed": 1,
        }
