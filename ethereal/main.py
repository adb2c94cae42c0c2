"""Ethereal companion engine entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging

log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ethereal companion engine")
    p.add_argument("--config", default=None, help="YAML config file path")
    p.add_argument(
        "--mock", action="store_true", help="Feed synthetic hardware telemetry"
    )
    p.add_argument(
        "--pattern",
        default=None,
        choices=("idle", "high_load", "fluctuating"),
        help="Mock telemetry pattern",
    )
    p.add_argument("--http-port", type=int, default=None, help="HTTP server port")
    p.add_argument("--no-sound", action="store_true", help="Start with sound muted")
    p.add_argument("--log-level", default="INFO", help="Log level")
    return p.parse_args(argv)


async def async_main(args: argparse.Namespace) -> None:
    import uvicorn

    from ethereal.api.http_server import create_app
    from ethereal.api.ws_hub import WsHub
    from ethereal.config import load_config
    from ethereal.core.runtime import CompanionRuntime

    cfg = load_config(args.config)

    # Apply CLI overrides
    if args.mock:
        cfg.mock = True
    if args.pattern:
        cfg.telemetry.pattern = args.pattern
    if args.http_port:
        cfg.network.http_port = args.http_port
    if args.no_sound:
        cfg.sound.enabled = False

    runtime = CompanionRuntime(cfg)
    ws_hub = WsHub()
    runtime.add_listener(ws_hub.broadcast_event)

    app = create_app(runtime, ws_hub)
    http_server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=cfg.network.host,
            port=cfg.network.http_port,
            log_level="warning",
        )
    )

    mock = None
    tasks = [runtime.scheduler.run(), http_server.serve()]
    if cfg.mock:
        from ethereal.mock.mock_telemetry import MockTelemetry

        mock = MockTelemetry(
            cfg.telemetry.pattern, overheat_temp=cfg.telemetry.overheat_temp
        )
        tasks.append(mock.run(runtime.on_hardware_sample, cfg.telemetry.interval_s))

    log.info(
        "ethereal running (mock=%s, sound=%s, http=%s:%d)",
        cfg.mock,
        runtime.sound_settings.enabled,
        cfg.network.host,
        cfg.network.http_port,
    )

    try:
        await asyncio.gather(*tasks)
    finally:
        log.info("shutting down...")
        http_server.should_exit = True
        runtime.scheduler.stop()
        if mock:
            mock.stop()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        asyncio.run(async_main(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
