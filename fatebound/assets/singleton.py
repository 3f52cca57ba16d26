from __future__ import annotations

import logging
from pathlib import Path

from fatebound.assets.registry import GameAssets, load_game_assets

logger = logging.getLogger(__name__)

_ASSETS: GameAssets | None = None


def default_project_root() -> Path:
    # fatebound/assets/singleton.py -> repo root holding assets/
    return Path(__file__).resolve().parents[2]


def init_assets(*, project_root: Path | None = None) -> GameAssets:
    """Load the curated CSV pools once and cache them.

    Safe to call multiple times; later calls return the already loaded instance.
    """

    global _ASSETS
    if _ASSETS is None:
        _ASSETS = load_game_assets(root=project_root or default_project_root())
        logger.info(
            "assets loaded: %d scenarios, %d puzzles, %d bots",
            len(_ASSETS.scenarios),
            sum(len(p) for p in _ASSETS.puzzles.values()),
            len(_ASSETS.bots),
        )
    return _ASSETS


def reset_assets_for_tests() -> None:
    global _ASSETS
    _ASSETS = None


def get_assets() -> GameAssets:
    if _ASSETS is None:
        raise RuntimeError("Assets not initialized. Call init_assets() at startup.")
    return _ASSETS
