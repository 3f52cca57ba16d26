from __future__ import annotations

import pytest

from fatebound.agent_runner import AgentRunnerConfig
from fatebound.config import GameSettings, settings_from_env

_ENV = (
    "FATEBOUND_GAME_TTL_S",
    "FATEBOUND_LOCK_TTL_MS",
    "FATEBOUND_MAX_PLAYERS",
    "FATEBOUND_BOT_THINK_MS",
    "FATEBOUND_BOT_CONTINUE_MS",
    "FATEBOUND_LOG_LEVEL",
    "FATEBOUND_SEED",
    "REDIS_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    assert settings_from_env() == GameSettings()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FATEBOUND_MAX_PLAYERS", "4")
    monkeypatch.setenv("FATEBOUND_BOT_THINK_MS", "0")
    monkeypatch.setenv("FATEBOUND_LOG_LEVEL", "debug")
    monkeypatch.setenv("FATEBOUND_SEED", "42")

    s = settings_from_env()
    assert (s.max_players, s.bot_think_ms, s.log_level, s.seed) == (4, 0, "DEBUG", 42)

    cfg = AgentRunnerConfig.from_settings(s)
    assert cfg.think_time_s == 0
    assert cfg.continue_delay_s == 2.0


def test_bad_integer_fails_loudly(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FATEBOUND_GAME_TTL_S", "a day")
    with pytest.raises(RuntimeError, match="FATEBOUND_GAME_TTL_S"):
        settings_from_env()
