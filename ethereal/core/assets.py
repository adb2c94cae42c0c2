"""Asset root resolution and locator helpers.

Bundled assets are addressed with web-style URLs ("/sprites/idle-1.svg",
"/sounds/alert.mp3"); custom sprite roots are plain filesystem paths.
"""

from __future__ import annotations

from pathlib import Path

BUNDLED_SPRITE_ROOT = "/sprites"

# Shipped assets live next to the package
DEFAULT_ASSET_DIR = Path(__file__).parent.parent / "assets"


def resolve_asset_root(
    custom_path: str | None = None, bundled_root: str = BUNDLED_SPRITE_ROOT
) -> tuple[str, str]:
    """Return (root, separator) for frame locators.

    A custom root that contains a backslash is treated as a Windows path.
    """
    if custom_path:
        sep = "\\" if "\\" in custom_path else "/"
        return custom_path, sep
    return bundled_root, "/"


def frame_locators(root: str, sep: str, prefix: str, count: int) -> list[str]:
    return [f"{root}{sep}{prefix}-{i}.svg" for i in range(1, count + 1)]


def to_local_path(url: str, asset_dir: Path = DEFAULT_ASSET_DIR) -> Path:
    """Map a bundled URL onto *asset_dir*; other locators are used as-is."""
    if url.startswith("/sprites/") or url.startswith("/sounds/"):
        return asset_dir / url.lstrip("/")
    return Path(url)
