"""Companion configuration with defaults, loadable from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ethereal.core.assets import BUNDLED_SPRITE_ROOT, DEFAULT_ASSET_DIR

log = logging.getLogger(__name__)


@dataclass
class SoundConfig:
    enabled: bool = True
    volume: float = 0.5


@dataclass
class SpriteConfig:
    custom_sprite_path: str = ""  # empty = bundled sprites
    bundled_root: str = BUNDLED_SPRITE_ROOT
    asset_dir: str = str(DEFAULT_ASSET_DIR)


@dataclass
class AnimationConfig:
    tick_hz: int = 60


@dataclass
class ChatConfig:
    auto_hide_s: float = 5.0
    history_limit: int = 10


@dataclass
class TelemetryConfig:
    """Mock producer settings (real telemetry arrives over HTTP)."""

    interval_s: float = 1.0
    pattern: str = "fluctuating"  # "idle" | "high_load" | "fluctuating"
    overheat_temp: float = 80.0


@dataclass
class NetworkConfig:
    http_port: int = 8765
    host: str = "127.0.0.1"


@dataclass
class PersistenceConfig:
    state_path: str = "~/.config/ethereal/state.json"


@dataclass
class EtherealConfig:
    sound: SoundConfig = field(default_factory=SoundConfig)
    sprite: SpriteConfig = field(default_factory=SpriteConfig)
    animation: AnimationConfig = field(default_factory=AnimationConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    mock: bool = False


_SECTIONS = (
    "sound",
    "sprite",
    "animation",
    "chat",
    "telemetry",
    "network",
    "persistence",
)


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce(default: object, value: object) -> object:
    """Convert a YAML value to the type of the field default."""
    if isinstance(default, bool):
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE:
                return True
            if word in _FALSE:
                return False
            raise ValueError(value)
        return bool(value)
    if isinstance(default, str):
        return "" if value is None else str(value)
    if isinstance(default, (int, float)):
        return type(default)(value)
    return value


def load_config(path: str | Path | None = None) -> EtherealConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        return EtherealConfig()

    path = Path(path)
    if not path.exists():
        log.warning("config file not found: %s, using defaults", path)
        return EtherealConfig()

    try:
        import yaml  # type: ignore[import-untyped]

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        cfg = EtherealConfig()
        for section_name in _SECTIONS:
            if section_name in raw:
                section = getattr(cfg, section_name)
                for k, v in (raw[section_name] or {}).items():
                    if not hasattr(section, k):
                        log.warning("config: unknown key %s.%s", section_name, k)
                        continue
                    try:
                        setattr(section, k, _coerce(getattr(section, k), v))
                    except (TypeError, ValueError):
                        log.warning(
                            "config: bad value for %s.%s: %r, keeping default",
                            section_name,
                            k,
                            v,
                        )
        cfg.mock = bool(raw.get("mock", False))

        log.info("config loaded from %s", path)
        return cfg
    except Exception as e:
        log.warning("config load error: %s, using defaults", e)
        return EtherealConfig()
