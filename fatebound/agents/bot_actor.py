from __future__ import annotations

import random
import re
from collections.abc import Mapping, Sequence
from typing import Literal

from fatebound.agents.base import GenerationOptions
from fatebound.agents.pipeline import ArtifactContract, RepairPlan
from fatebound.agents.text_utils import content_lines
from fatebound.content_rules import DEFAULT_RULES, ContentRules
from fatebound.contracts import BotAction, split_sentences, validate_bot_action
from fatebound.core.context import PromptSection, RenderedPrompt, compose_prompt
from fatebound.prompts import load_prompt

Peril = Literal["bold", "wary", "desperate"]

_OPTIONS_RE = re.compile(r"\bYou (?:could|can|might)\s+(.+?)[.?!]", re.IGNORECASE)
_OPTION_SPLIT_RE = re.compile(r",\s*(?:or\s+)?|\s+or\s+")
_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s'.,!-]")

PERIL_TAILS: dict[Peril, str] = {
    "bold": "trusting my nerve while I still have lives to spare",
    "wary": "carefully watching for any sign of a trap",
    "desperate": "moving slowly because one more mistake could end everything",
}

PERIL_GUIDANCE: dict[Peril, str] = {
    "bold": "You have plenty of lives left. Be bold and daring.",
    "wary": "You have lost a life already. Be brave but watchful.",
    "desperate": "You are on your last life. Be extremely careful.",
}


class BotActionParseError(ValueError):
    pass


def peril_for_lives(lives: int) -> Peril:
    if lives >= 3:
        return "bold"
    if lives == 2:
        return "wary"
    return "desperate"


def scenario_options(scenario: str) -> list[str]:
    """`You could rush in, hide, or run.` -> ["rush in", "hide", "run"] (second person made first person)."""

    m = _OPTIONS_RE.search(scenario)
    if not m:
        return []
    out: list[str] = []
    for opt in _OPTION_SPLIT_RE.split(m.group(1)):
        opt = opt.strip().rstrip(".,")
        if not opt:
            continue
        opt = re.sub(r"\byourself\b", "myself", opt, flags=re.IGNORECASE)
        opt = re.sub(r"\byours\b", "mine", opt, flags=re.IGNORECASE)
        opt = re.sub(r"\byour\b", "my", opt, flags=re.IGNORECASE)
        opt = re.sub(r"\byou\b", "me", opt, flags=re.IGNORECASE)
        out.append(opt)
    return out


def parse_bot_action(text: str) -> BotAction:
    lines = content_lines(text)
    if not lines:
        raise BotActionParseError("Empty bot action")

    cleaned = _DISALLOWED_CHARS_RE.sub("", " ".join(lines))
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    sentences = split_sentences(cleaned)
    if not sentences:
        raise BotActionParseError("Empty bot action")

    sentence = sentences[0].rstrip(",")
    if sentence[-1] not in ".!":
        sentence += "."
    return BotAction(text=sentence)


class BotActionContract(ArtifactContract[BotAction]):
    name = "bot_action"
    # No newline stop: a preamble line may come first, the parser keeps one sentence.
    options = GenerationOptions(temperature=1.0, max_output_tokens=80)
    repair_options = GenerationOptions(temperature=0.5, max_output_tokens=80)

    def __init__(
        self,
        *,
        bot_name: str,
        personality: str | None,
        scenario: str,
        lives: int,
        pools: Mapping[Peril, Sequence[BotAction]],
        rules: ContentRules = DEFAULT_RULES,
    ):
        self.bot_name = bot_name
        self.personality = personality
        self.scenario = scenario
        self.lives = lives
        self.peril = peril_for_lives(lives)
        self.pools = pools
        self.rules = rules

    def _prompt(self, *, violations: Sequence[str] = (), previous: str | None = None) -> RenderedPrompt:
        you = f"Name: {self.bot_name}\nLives left: {self.lives}\n{PERIL_GUIDANCE[self.peril]}"
        if self.personality:
            you += f"\nPersonality: {self.personality}"
        return compose_prompt(
            instructions=load_prompt("bot_action.txt"),
            sections=[PromptSection("You", you), PromptSection("Scenario", self.scenario)],
            task="What does your character do? Reply with the single sentence only.",
            repair_notes=violations,
            previous_output=previous,
        )

    def render(self) -> RenderedPrompt:
        return self._prompt()

    def parse(self, text: str) -> BotAction:
        return parse_bot_action(text)

    def validate(self, value: BotAction) -> list[str]:
        return validate_bot_action(value.text, rules=self.rules)

    def plan_repair(self, *, candidate: BotAction | None, raw: str, violations: list[str]) -> RepairPlan[BotAction]:
        previous = candidate.text if candidate is not None else raw
        return RepairPlan(prompt=self._prompt(violations=violations, previous=previous or None), parse=self.parse)

    def option_actions(self) -> list[BotAction]:
        """Candidate sentences committing to one of the options the scenario offers."""

        tail = PERIL_TAILS[self.peril]
        out: list[BotAction] = []
        for opt in scenario_options(self.scenario):
            action = BotAction(text=f"I {opt}, {tail}.")
            if not self.validate(action):
                out.append(action)
        return out

    def fallback_pool(self) -> Sequence[BotAction]:
        return self.pools.get(self.peril, ())

    def pick_fallback(self, rng: random.Random) -> BotAction:
        options = self.option_actions()
        if options:
            return rng.choice(options)
        pool = list(self.fallback_pool()) or [a for p in self.pools.values() for a in p]
        return rng.choice(pool)
