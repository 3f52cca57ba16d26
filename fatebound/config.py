from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True, slots=True)
class GameSettings:
    game_ttl_s: int = 86_400
    lock_ttl_ms: int = 30_000
    max_players: int = 8
    bot_think_ms: int = 1_500
    bot_continue_ms: int = 2_000
    log_level: str = "INFO"
    redis_url: str = "redis://localhost:6379/0"
    # When set, content fallbacks are picked from a seeded RNG (reproducible demos).
    seed: int | None = None


def settings_from_env() -> GameSettings:
    seed_raw = os.environ.get("FATEBOUND_SEED", "").strip()
    return GameSettings(
        game_ttl_s=_env_int("FATEBOUND_GAME_TTL_S", 86_400),
        lock_ttl_ms=_env_int("FATEBOUND_LOCK_TTL_MS", 30_000),
        max_players=_env_int("FATEBOUND_MAX_PLAYERS", 8),
        bot_think_ms=_env_int("FATEBOUND_BOT_THINK_MS", 1_500),
        bot_continue_ms=_env_int("FATEBOUND_BOT_CONTINUE_MS", 2_000),
        log_level=os.environ.get("FATEBOUND_LOG_LEVEL", "INFO").upper(),
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        seed=int(seed_raw) if seed_raw else None,
    )
