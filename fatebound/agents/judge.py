from __future__ import annotations

import json
import random
import re
from collections.abc import Sequence
from dataclasses import dataclass

from fatebound.agents.base import GenerationOptions
from fatebound.agents.pipeline import ArtifactContract, RepairPlan
from fatebound.agents.text_utils import content_lines, strip_code_fence
from fatebound.content_rules import DEFAULT_RULES, ContentRules
from fatebound.contracts import ActionVerdict, validate_verdict
from fatebound.core.context import PromptSection, RenderedPrompt, compose_prompt
from fatebound.prompts import load_prompt

_MARKER_RE = re.compile(r"^\W*(SUCCESS|FAILURE|FAILED|FAIL|S|F)\b\s*[:\-–—.]?\s*(.*)$", re.IGNORECASE)

CAUTIOUS_WORDS = ("careful", "examine", "look", "check", "test", "slowly", "cautious", "inspect", "study")
RECKLESS_WORDS = ("run", "rush", "jump", "charge", "quickly", "sprint", "dash", "hurry")


class VerdictParseError(ValueError):
    pass


def _marker_success(marker: str) -> bool | None:
    m = marker.upper()
    if m in {"S", "SUCCESS"}:
        return True
    if m in {"F", "FAIL", "FAILED", "FAILURE"}:
        return False
    return None


def _from_json(raw: str) -> ActionVerdict | None:
    m = re.search(r"\{.*\}", raw, re.DOTALL)
    if not m:
        return None
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    success = data.get("success")
    outcome = data.get("outcome") or data.get("narration") or ""
    if not isinstance(success, bool) or not isinstance(outcome, str):
        return None
    return ActionVerdict(success=success, outcome=outcome.strip())


def parse_verdict(text: str) -> ActionVerdict:
    """Parse `S: <outcome>` / `F: <outcome>` and its common variants.

    Accepted layouts: the marker and outcome on one line, the marker alone on a line
    followed by the outcome, SUCCESS/FAILURE spelled out, or a JSON object with
    `success` and `outcome`.
    """

    raw = strip_code_fence(text)
    from_json = _from_json(raw)
    if from_json is not None:
        return from_json

    lines = content_lines(raw)
    for idx, line in enumerate(lines):
        m = _MARKER_RE.match(line)
        if not m:
            continue
        success = _marker_success(m.group(1))
        if success is None:
            continue
        outcome = m.group(2).strip()
        if not outcome:
            outcome = " ".join(lines[idx + 1 :]).strip()
        if not outcome:
            raise VerdictParseError("Verdict marker without an outcome")
        return ActionVerdict(success=success, outcome=outcome)

    raise VerdictParseError("No S:/F: verdict marker found")


def keyword_verdict(action: str, *, rng: random.Random, ambiguous_success_weight: float = 0.5) -> bool:
    """Offline judge: careful play succeeds, reckless play fails, the rest is a coin flip."""

    words = set(re.findall(r"[a-z]+", action.casefold()))
    cautious = any(w.startswith(stem) for w in words for stem in CAUTIOUS_WORDS)
    reckless = any(w.startswith(stem) for w in words for stem in RECKLESS_WORDS)
    if cautious and not reckless:
        return True
    if reckless and not cautious:
        return False
    return rng.random() < ambiguous_success_weight


@dataclass(frozen=True, slots=True)
class VerdictPools:
    success: Sequence[str]
    failure: Sequence[str]


class VerdictContract(ArtifactContract[ActionVerdict]):
    name = "verdict"
    # No paragraph stop: the marker may sit alone above its outcome.
    options = GenerationOptions(temperature=0.4, max_output_tokens=200)
    repair_options = GenerationOptions(temperature=0.2, max_output_tokens=200)

    def __init__(
        self,
        *,
        scenario: str,
        action: str,
        pools: VerdictPools,
        rules: ContentRules = DEFAULT_RULES,
        ambiguous_success_weight: float = 0.5,
    ):
        self.scenario = scenario
        self.action = action
        self.pools = pools
        self.rules = rules
        self.ambiguous_success_weight = ambiguous_success_weight

    def _prompt(self, *, violations: Sequence[str] = (), previous: str | None = None) -> RenderedPrompt:
        return compose_prompt(
            instructions=load_prompt("verdict.txt"),
            sections=[PromptSection("Scenario", self.scenario), PromptSection("Action", f'"{self.action}"')],
            task="Judge the action. Start your reply with exactly \"S:\" or \"F:\" then the outcome.",
            repair_notes=violations,
            previous_output=previous,
        )

    def render(self) -> RenderedPrompt:
        return self._prompt()

    def parse(self, text: str) -> ActionVerdict:
        return parse_verdict(text)

    def validate(self, value: ActionVerdict) -> list[str]:
        return validate_verdict(value, rules=self.rules)

    def plan_repair(
        self,
        *,
        candidate: ActionVerdict | None,
        raw: str,
        violations: list[str],
    ) -> RepairPlan[ActionVerdict]:
        notes = list(violations)
        if candidate is None:
            notes.append('Output ONE line starting with "S:" or "F:" only. No other text.')
        return RepairPlan(prompt=self._prompt(violations=notes, previous=raw or None), parse=self.parse)

    def fallback_pool(self) -> Sequence[ActionVerdict]:
        return [ActionVerdict(success=True, outcome=t) for t in self.pools.success] + [
            ActionVerdict(success=False, outcome=t) for t in self.pools.failure
        ]

    def pick_fallback(self, rng: random.Random) -> ActionVerdict:
        success = keyword_verdict(self.action, rng=rng, ambiguous_success_weight=self.ambiguous_success_weight)
        outcomes = self.pools.success if success else self.pools.failure
        return ActionVerdict(success=success, outcome=rng.choice(list(outcomes)))
