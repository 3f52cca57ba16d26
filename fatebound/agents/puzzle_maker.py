from __future__ import annotations

import json
import re
from collections.abc import Sequence

from fatebound.agents.base import GenerationOptions
from fatebound.agents.pipeline import ArtifactContract, RepairPlan
from fatebound.agents.text_utils import content_lines, strip_code_fence
from fatebound.api.models import Difficulty
from fatebound.content_rules import DEFAULT_RULES, ContentRules
from fatebound.contracts import PuzzleContent, validate_category, validate_phrase, validate_puzzle
from fatebound.core.context import PromptSection, RenderedPrompt, bullet_list, compose_prompt
from fatebound.prompts import render_prompt

_JSON_OBJECT_RE = re.compile(r"\{.*?\}", re.DOTALL)
_FIELD_RE = r'"{key}"\s*:\s*"([^"\n]*)'
_LINE_RE = r"^\s*{key}\s*[:=-]\s*(.+)$"


class PuzzleParseError(ValueError):
    pass


def clean_phrase(raw: str) -> str:
    phrase = raw.upper().replace("'", "").replace("’", "")
    phrase = re.sub(r"[^A-Z ]+", " ", phrase)
    return re.sub(r"\s+", " ", phrase).strip()


def clean_category(raw: str) -> str:
    category = raw.strip().strip('"“”.').strip()
    return re.sub(r"\s+", " ", category)


def _from_json(raw: str) -> tuple[str | None, str | None]:
    for m in _JSON_OBJECT_RE.finditer(raw):
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            phrase = data.get("phrase") or data.get("answer")
            category = data.get("category") or data.get("hint")
            return (
                phrase if isinstance(phrase, str) else None,
                category if isinstance(category, str) else None,
            )
    return None, None


def _salvage(raw: str, *keys: str) -> str | None:
    """Pull a field out of broken or truncated JSON, or a `KEY: value` line."""

    for key in keys:
        m = re.search(_FIELD_RE.format(key=key), raw, re.IGNORECASE)
        if m and m.group(1).strip():
            return m.group(1)
        m = re.search(_LINE_RE.format(key=key), raw, re.IGNORECASE | re.MULTILINE)
        if m and m.group(1).strip():
            return m.group(1)
    return None


def parse_puzzle(text: str) -> PuzzleContent:
    """Parse a phrase + category from JSON, truncated JSON, or `PHRASE:` / `CATEGORY:` lines."""

    raw = strip_code_fence(text)
    phrase, category = _from_json(raw)
    if phrase is None:
        phrase = _salvage(raw, "phrase", "answer")
    if category is None:
        category = _salvage(raw, "category", "hint")

    if phrase is None:
        raise PuzzleParseError("No phrase found")
    cleaned = clean_phrase(phrase)
    if not cleaned:
        raise PuzzleParseError("Phrase has no letters")
    return PuzzleContent(phrase=cleaned, category=clean_category(category or ""))


def parse_category(text: str) -> str:
    raw = strip_code_fence(text)
    _, category = _from_json(raw)
    if category is None:
        category = _salvage(raw, "category")
    if category is None:
        lines = content_lines(raw)
        if not lines:
            raise PuzzleParseError("No category found")
        category = lines[0]
    return clean_category(category)


class PuzzleContract(ArtifactContract[PuzzleContent]):
    name = "puzzle"
    options = GenerationOptions(temperature=0.6, max_output_tokens=120)
    repair_options = GenerationOptions(temperature=0.3, max_output_tokens=120)

    def __init__(
        self,
        *,
        difficulty: Difficulty,
        pool: Sequence[PuzzleContent],
        recent_phrases: Sequence[str] = (),
        rules: ContentRules = DEFAULT_RULES,
    ):
        self.difficulty = Difficulty(difficulty)
        self.pool = pool
        self.recent_phrases = [clean_phrase(p) for p in recent_phrases]
        self.rules = rules

    def _instructions(self) -> str:
        lo, hi = self.rules.word_range(self.difficulty)
        return render_prompt(
            "puzzle.txt",
            min_words=lo,
            max_words=hi,
            difficulty=self.difficulty.value,
            proper_nouns=", ".join(sorted(self.rules.proper_noun_denylist)[:4]),
            openers=", ".join(f'"{o}"' for o in self.rules.banned_phrase_openers),
        )

    def _prompt(self, *, violations: Sequence[str] = (), previous: str | None = None) -> RenderedPrompt:
        sections = []
        if self.recent_phrases:
            sections.append(PromptSection("Recently used phrases (do not reuse)", bullet_list(self.recent_phrases)))
        return compose_prompt(
            instructions=self._instructions(),
            sections=sections,
            task=f"Create one {self.difficulty.value} puzzle now.",
            repair_notes=violations,
            previous_output=previous,
        )

    def render(self) -> RenderedPrompt:
        return self._prompt()

    def parse(self, text: str) -> PuzzleContent:
        return parse_puzzle(text)

    def validate(self, value: PuzzleContent) -> list[str]:
        violations = validate_puzzle(value, difficulty=self.difficulty, rules=self.rules)
        if value.phrase in self.recent_phrases:
            violations.append("Do not reuse a recent phrase.")
        return violations

    def plan_repair(
        self,
        *,
        candidate: PuzzleContent | None,
        raw: str,
        violations: list[str],
    ) -> RepairPlan[PuzzleContent]:
        phrase_ok = (
            candidate is not None
            and not validate_phrase(candidate.phrase, difficulty=self.difficulty, rules=self.rules)
            and candidate.phrase not in self.recent_phrases
        )
        if candidate is None or not phrase_ok:
            previous = json.dumps({"phrase": candidate.phrase, "category": candidate.category}) if candidate else raw
            return RepairPlan(prompt=self._prompt(violations=violations, previous=previous or None), parse=self.parse)

        # The phrase is fine; only ask for a better category.
        phrase = candidate.phrase
        category_rules = validate_category(candidate.category, phrase=phrase, rules=self.rules)
        lo, hi = self.rules.category_words
        prompt = compose_prompt(
            instructions=(
                "You name categories for hidden-phrase puzzles. "
                f"Reply with ONLY the category: {lo}-{hi} words, Title Case, letters only."
            ),
            sections=[PromptSection("Phrase", phrase)],
            task="Give a specific category hint for this phrase that does not repeat its words.",
            repair_notes=category_rules or violations,
            previous_output=candidate.category or None,
        )
        return RepairPlan(prompt=prompt, parse=lambda text: PuzzleContent(phrase=phrase, category=parse_category(text)))

    def fallback_pool(self) -> Sequence[PuzzleContent]:
        return self.pool

    def is_denied(self, value: PuzzleContent) -> bool:
        return value.phrase in self.recent_phrases
