from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from fatebound import actions
from fatebound.actions import ActionResult
from fatebound.agents.content import ContentGenerator
from fatebound.api.models import GamePhase, GameState
from fatebound.config import GameSettings
from fatebound.errors import DuplicateGuess, InvalidPhase, NotYourTurn
from fatebound.game_engine import current_player
from fatebound.game_store import GameStore

logger = logging.getLogger(__name__)

# English letter frequency, most common first.
LETTER_FREQUENCY = "ETAOINSHRDLCUMWFGYPBVKJXQZ"


@dataclass(frozen=True, slots=True)
class AgentRunnerConfig:
    # Pacing only; zero in tests.
    think_time_s: float = 1.5
    continue_delay_s: float = 2.0
    # Upper bound on bot moves per run, so an all-bot table cannot spin forever.
    max_steps: int = 50

    @staticmethod
    def from_settings(settings: GameSettings) -> "AgentRunnerConfig":
        return AgentRunnerConfig(
            think_time_s=settings.bot_think_ms / 1000,
            continue_delay_s=settings.bot_continue_ms / 1000,
        )


def choose_bot_letter(state: GameState, rng: random.Random, *, top_n: int = 5) -> str:
    """Pick among the most common letters nobody has tried yet."""

    remaining = [ch for ch in LETTER_FREQUENCY if ch not in state.puzzle.selected_letters]
    if not remaining:
        raise InvalidPhase("No letters left to pick")
    return rng.choice(remaining[:top_n])


async def run_bot_step(
    *,
    store: GameStore,
    content: ContentGenerator,
    game_id: str,
    config: AgentRunnerConfig | None = None,
    rng: random.Random | None = None,
) -> ActionResult | None:
    """Make one move for the bot whose turn it is.

    Returns None when it is not a bot's turn, or when a concurrent request already
    moved the game on (the stale bot move is dropped).
    """

    config = config or AgentRunnerConfig()
    rng = rng or random.Random()

    state = store.require(game_id)
    if state.phase in {GamePhase.lobby, GamePhase.game_over}:
        return None
    bot = current_player(state)
    if not bot.is_bot:
        return None

    try:
        if state.phase == GamePhase.playing:
            await asyncio.sleep(config.think_time_s)
            action = await content.bot_action(
                bot_name=bot.name,
                personality=bot.personality,
                scenario=state.current_scenario,
                lives=bot.lives,
            )
            logger.info("game %s: bot %s acts: %s", game_id, bot.name, action.text)
            return await actions.submit_action(
                store=store, content=content, game_id=game_id, player_id=bot.player_id, text=action.text
            )

        if state.phase == GamePhase.letter_selection:
            await asyncio.sleep(config.think_time_s)
            letter = choose_bot_letter(state, rng)
            logger.info("game %s: bot %s picks %s", game_id, bot.name, letter)
            return await actions.pick_letter(
                store=store, content=content, game_id=game_id, player_id=bot.player_id, letter=letter
            )

        if state.phase == GamePhase.waiting_continue:
            await asyncio.sleep(config.continue_delay_s)
            return await actions.continue_turn(store=store, content=content, game_id=game_id)
    except (NotYourTurn, InvalidPhase, DuplicateGuess) as e:
        logger.info("game %s: dropped stale bot move for %s: %s", game_id, bot.name, e)
        return None

    return None


async def run_bots_until_human(
    *,
    store: GameStore,
    content: ContentGenerator,
    game_id: str,
    config: AgentRunnerConfig | None = None,
    rng: random.Random | None = None,
) -> tuple[GameState, int]:
    """Keep moving bots until a human is up, the game ends, or `max_steps` is reached."""

    config = config or AgentRunnerConfig()
    rng = rng or random.Random()

    steps = 0
    while steps < config.max_steps:
        result = await run_bot_step(store=store, content=content, game_id=game_id, config=config, rng=rng)
        if result is None:
            break
        steps += 1

    return store.require(game_id), steps
