from __future__ import annotations

import re
from collections.abc import Sequence

from fatebound.agents.base import GenerationOptions
from fatebound.agents.pipeline import ArtifactContract, RepairPlan
from fatebound.agents.text_utils import content_lines
from fatebound.content_rules import DEFAULT_RULES, SCENARIO_TAIL, ContentRules
from fatebound.contracts import Scenario, normalize_text, split_sentences, validate_scenario
from fatebound.core.context import PromptSection, RenderedPrompt, bullet_list, compose_prompt
from fatebound.prompts import load_prompt

_TAIL_RE = re.compile(r"what do you do\??.*$", re.IGNORECASE | re.DOTALL)


class ScenarioParseError(ValueError):
    pass


def parse_scenario(text: str, *, sentences: int = 2) -> Scenario:
    """Coerce model output into `<sentence> <sentence> What do you do?`.

    Tolerates markdown, preambles, text split over several lines, and output cut
    off mid-sentence (the stop sequence removes the question itself).
    """

    body = " ".join(content_lines(text))
    body = _TAIL_RE.sub("", body).strip()
    if not body:
        raise ScenarioParseError("No scenario text found")

    parts = split_sentences(body)
    # A trailing fragment without end punctuation was truncated.
    if parts and parts[-1][-1] not in ".!?":
        parts = parts[:-1]
    if not parts:
        raise ScenarioParseError("Scenario was truncated before the first sentence ended")

    return Scenario(text=f"{' '.join(parts[:sentences])} {SCENARIO_TAIL}")


class ScenarioContract(ArtifactContract[Scenario]):
    name = "scenario"
    options = GenerationOptions(temperature=0.9, max_output_tokens=300, stop=(SCENARIO_TAIL,))
    repair_options = GenerationOptions(temperature=0.4, max_output_tokens=300, stop=(SCENARIO_TAIL,))

    def __init__(self, *, history: Sequence[str], pool: Sequence[Scenario], rules: ContentRules = DEFAULT_RULES):
        self.history = list(history)[-rules.scenario_history_size :]
        self.pool = pool
        self.rules = rules
        self._denied = {normalize_text(h) for h in self.history}

    def _prompt(self, *, violations: Sequence[str] = (), previous: str | None = None) -> RenderedPrompt:
        sections = []
        if self.history:
            sections.append(PromptSection("Recent scenarios (do not repeat)", bullet_list(self.history)))
        return compose_prompt(
            instructions=load_prompt("scenario.txt"),
            sections=sections,
            task="Write the next scenario now.",
            repair_notes=violations,
            previous_output=previous,
        )

    def render(self) -> RenderedPrompt:
        return self._prompt()

    def parse(self, text: str) -> Scenario:
        return parse_scenario(text, sentences=self.rules.scenario_sentences)

    def validate(self, value: Scenario) -> list[str]:
        return validate_scenario(value.text, history=self.history, rules=self.rules)

    def plan_repair(self, *, candidate: Scenario | None, raw: str, violations: list[str]) -> RepairPlan[Scenario]:
        previous = candidate.text if candidate is not None else raw
        return RepairPlan(prompt=self._prompt(violations=violations, previous=previous or None), parse=self.parse)

    def fallback_pool(self) -> Sequence[Scenario]:
        return self.pool

    def is_denied(self, value: Scenario) -> bool:
        return normalize_text(value.text) in self._denied
