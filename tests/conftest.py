from __future__ import annotations

import os
import random
from collections.abc import Generator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest

from fatebound.agents.base import GenerationOptions
from fatebound.core.context import RenderedPrompt


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    This makes OPENAI_BASE_URL / OPENAI_MODEL available to tests without needing
    to manually export them in your shell.

    In CI, we *don't* auto-load `.env` by default, so integration tests that require
    a live Ollama instance stay skipped unless explicitly opted-in.
    """

    # Opt-in on CI with: FATEBOUND_LOAD_DOTENV_FOR_TESTS=1
    if os.environ.get("CI") and os.environ.get("FATEBOUND_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)

    # If using a local OpenAI-compatible endpoint, some clients require a key string.
    if os.environ.get("OPENAI_BASE_URL") and not os.environ.get("OPENAI_API_KEY"):
        os.environ["OPENAI_API_KEY"] = "ollama"


@pytest.fixture(scope="session", autouse=True)
def _init_assets() -> None:
    from fatebound.assets.singleton import init_assets, reset_assets_for_tests

    reset_assets_for_tests()
    init_assets(project_root=Path(__file__).resolve().parents[1])


@dataclass
class ScriptedTextGenerator:
    """Replays canned replies (or raises canned exceptions) and records every call."""

    responses: list[str | Exception] = field(default_factory=list)
    calls: list[tuple[RenderedPrompt, GenerationOptions]] = field(default_factory=list)

    async def generate(self, *, prompt: RenderedPrompt, options: GenerationOptions) -> str:
        self.calls.append((prompt, options))
        if not self.responses:
            raise RuntimeError("script exhausted")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture()
def assets():
    from fatebound.assets.singleton import get_assets

    return get_assets()


@pytest.fixture()
def make_content(assets):
    """Build a ContentGenerator around a ScriptedTextGenerator (exposed as `.generator`)."""

    from fatebound.agents.content import ContentGenerator

    def _make(responses: Sequence[str | Exception] = (), *, seed: int = 0) -> ContentGenerator:
        return ContentGenerator(
            generator=ScriptedTextGenerator(responses=list(responses)),
            assets=assets,
            rng=random.Random(seed),
        )

    return _make


@pytest.fixture()
def offline_content(assets):
    from fatebound.agents.content import ContentGenerator
    from fatebound.agents.factory import OfflineTextGenerator

    return ContentGenerator(generator=OfflineTextGenerator(), assets=assets, rng=random.Random(7))


@pytest.fixture()
def redis_client():
    import fakeredis

    # A private server per test; default FakeRedis instances can share state.
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture()
def store(redis_client):
    from fatebound.game_store import RedisGameStore

    return RedisGameStore(redis_client)


@pytest.fixture()
def make_game():
    """Build an in-progress GameState: `make_game(players=[("A", 1), ("B", 3)])`."""

    from fatebound.api.models import Difficulty, GamePhase, GameState, PlayerState, PuzzleState

    def _make(
        *,
        players: Sequence[tuple[str, int]] = (("Alice", 3), ("Bob", 3)),
        phase: GamePhase = GamePhase.playing,
        phrase: str = "MAGIC SWORD",
        category: str = "Legendary Weapon",
        current: int = 0,
        bots: Sequence[str] = (),
    ) -> GameState:
        now = datetime.now(tz=UTC)
        return GameState(
            game_id="ABC123",
            created_at=now,
            last_updated_at=now,
            players=[
                PlayerState(
                    player_id=f"p{i}",
                    name=name,
                    lives=lives,
                    is_alive=lives > 0,
                    is_bot=name in bots,
                )
                for i, (name, lives) in enumerate(players)
            ],
            current_player_index=current,
            phase=phase,
            puzzle=PuzzleState(phrase=phrase, category=category, difficulty=Difficulty.easy),
            current_scenario="" if phase == GamePhase.lobby else "A troll blocks the road. You could fight or flee. What do you do?",
        )

    return _make


@pytest.fixture()
def client_and_redis(redis_client, offline_content):
    """FastAPI TestClient over fakeredis with the offline generator and no bot pacing."""

    from fastapi.testclient import TestClient

    from fatebound.agent_runner import AgentRunnerConfig
    from fatebound.api.deps import get_content_generator, get_redis, get_runner_config
    from fatebound.main import app

    def _override() -> Generator[object, None, None]:
        yield redis_client

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_content_generator] = lambda: offline_content
    app.dependency_overrides[get_runner_config] = lambda: AgentRunnerConfig(think_time_s=0, continue_delay_s=0)
    with TestClient(app) as c:
        yield c, redis_client
    app.dependency_overrides.clear()
