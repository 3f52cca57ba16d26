from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass

from fatebound.agents.base import TextGenerator
from fatebound.agents.bot_actor import BotActionContract
from fatebound.agents.judge import VerdictContract, VerdictPools
from fatebound.agents.pipeline import DEFAULT_MAX_REPAIRS, ArtifactContract, Generated, T, generate_valid
from fatebound.agents.puzzle_maker import PuzzleContract
from fatebound.agents.scenario_writer import ScenarioContract
from fatebound.api.models import Difficulty
from fatebound.assets.registry import GameAssets
from fatebound.content_rules import DEFAULT_RULES, ContentRules
from fatebound.contracts import ActionVerdict, BotAction, PuzzleContent, Scenario

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ContentGenerator:
    """Entry point the game engine uses for every generated artifact.

    Each method always returns a valid value; model failures degrade to the curated
    asset pools.
    """

    generator: TextGenerator
    assets: GameAssets
    rules: ContentRules = DEFAULT_RULES
    rng: random.Random | None = None
    max_repairs: int = DEFAULT_MAX_REPAIRS
    ambiguous_success_weight: float = 0.5

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = random.Random()

    async def _run(self, contract: ArtifactContract[T]) -> Generated[T]:
        result = await generate_valid(
            generator=self.generator,
            contract=contract,
            rng=self.rng,
            max_repairs=self.max_repairs,
        )
        logger.debug("%s from %s after %d attempts", contract.name, result.source, result.attempts)
        return result

    async def next_scenario(self, *, history: Sequence[str]) -> Scenario:
        contract = ScenarioContract(history=history, pool=self.assets.scenarios, rules=self.rules)
        return (await self._run(contract)).value

    async def new_puzzle(self, *, difficulty: Difficulty, recent_phrases: Sequence[str] = ()) -> PuzzleContent:
        contract = PuzzleContract(
            difficulty=difficulty,
            pool=self.assets.puzzles_for(difficulty),
            recent_phrases=recent_phrases,
            rules=self.rules,
        )
        return (await self._run(contract)).value

    async def judge_action(self, *, scenario: str, action: str) -> ActionVerdict:
        contract = VerdictContract(
            scenario=scenario,
            action=action,
            pools=VerdictPools(success=self.assets.success_outcomes, failure=self.assets.failure_outcomes),
            rules=self.rules,
            ambiguous_success_weight=self.ambiguous_success_weight,
        )
        return (await self._run(contract)).value

    async def bot_action(self, *, bot_name: str, personality: str | None, scenario: str, lives: int) -> BotAction:
        contract = BotActionContract(
            bot_name=bot_name,
            personality=personality,
            scenario=scenario,
            lives=lives,
            pools=self.assets.bot_actions,
            rules=self.rules,
        )
        return (await self._run(contract)).value
