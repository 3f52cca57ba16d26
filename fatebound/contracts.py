"""Shape and content rules for every generated artifact.

Validators are pure: they take a candidate and return a list of human-readable
violations (empty means valid). The same strings are fed back to the model in
repair prompts, so they are written as instructions.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from fatebound.api.models import Difficulty
from fatebound.content_rules import DEFAULT_RULES, SCENARIO_TAIL, ContentRules

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_PHRASE_RE = re.compile(r"^[A-Z]+(?: [A-Z]+)*$")
_CATEGORY_CHARS_RE = re.compile(r"^[A-Za-z' -]+$")
_FUTURE_RE = re.compile(r"\bI(?:'ll|'d| will| would| shall| am going to|'m going to)\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Scenario:
    text: str


@dataclass(frozen=True, slots=True)
class PuzzleContent:
    phrase: str
    category: str


@dataclass(frozen=True, slots=True)
class ActionVerdict:
    success: bool
    outcome: str


@dataclass(frozen=True, slots=True)
class BotAction:
    text: str


def normalize_text(text: str) -> str:
    text = text.replace("’", "'").replace("‘", "'")
    return re.sub(r"\s+", " ", text).strip().casefold()


def normalize_phrase(text: str) -> str:
    """Uppercase and collapse whitespace; used for phrase guesses."""

    return re.sub(r"\s+", " ", text).strip().upper()


def split_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT_RE.split(text.strip()) if s.strip()]


def count_words(text: str) -> int:
    return len(text.split())


def meta_leaks(text: str, *, rules: ContentRules = DEFAULT_RULES) -> list[str]:
    lowered = normalize_text(text)
    return [m for m in rules.meta_markers if m in lowered]


def scenario_body(text: str) -> str:
    stripped = text.strip()
    if stripped.endswith(SCENARIO_TAIL):
        return stripped[: -len(SCENARIO_TAIL)].strip()
    return stripped


def validate_scenario(
    text: str,
    *,
    history: Iterable[str] = (),
    rules: ContentRules = DEFAULT_RULES,
) -> list[str]:
    violations: list[str] = []
    stripped = text.strip()
    if not stripped:
        return ["The scenario is empty."]

    if not stripped.endswith(SCENARIO_TAIL):
        violations.append(f"End with the exact question '{SCENARIO_TAIL}'.")

    n_sentences = len(split_sentences(scenario_body(stripped)))
    if n_sentences != rules.scenario_sentences:
        violations.append(
            f"Write exactly {rules.scenario_sentences} sentences before '{SCENARIO_TAIL}' (got {n_sentences})."
        )

    lo, hi = rules.scenario_words
    n_words = count_words(stripped)
    if not lo <= n_words <= hi:
        violations.append(f"Use between {lo} and {hi} words in total (got {n_words}).")

    for pattern in rules.trope_patterns():
        m = pattern.search(stripped)
        if m:
            violations.append(f"Avoid overused perils such as '{m.group(0)}' (no bridges, pits, chasms or collapsing floors).")

    normalized = normalize_text(stripped)
    if any(normalize_text(h) == normalized for h in history):
        violations.append("Do not repeat a recent scenario; invent a new situation.")

    if meta_leaks(stripped, rules=rules):
        violations.append("Write only the scenario, with no commentary about yourself or the format.")

    return violations


def validate_phrase(phrase: str, *, difficulty: Difficulty, rules: ContentRules = DEFAULT_RULES) -> list[str]:
    violations: list[str] = []
    if not _PHRASE_RE.match(phrase):
        violations.append("The phrase must use only uppercase letters A-Z separated by single spaces.")

    lo, hi = rules.word_range(difficulty)
    words = phrase.split()
    if not lo <= len(words) <= hi:
        violations.append(f"A {Difficulty(difficulty).value} phrase must have {lo}-{hi} words (got {len(words)}).")

    banned_names = sorted({w for w in words if w in rules.proper_noun_denylist})
    if banned_names:
        violations.append(f"Do not use famous proper nouns ({', '.join(banned_names)}).")

    for opener in rules.banned_phrase_openers:
        if phrase.startswith(opener):
            violations.append(f"Do not start the phrase with the cliche '{opener}'.")

    return violations


def _singular(word: str) -> str:
    w = word.casefold().strip("'")
    if len(w) > 3 and w.endswith("s") and not w.endswith("ss"):
        return w[:-1]
    return w


def validate_category(category: str, *, phrase: str, rules: ContentRules = DEFAULT_RULES) -> list[str]:
    violations: list[str] = []
    cleaned = category.strip()
    if not cleaned:
        return ["Give the puzzle a category."]

    if not _CATEGORY_CHARS_RE.match(cleaned):
        violations.append("The category may only contain letters, spaces, apostrophes and hyphens.")

    lo, hi = rules.category_words
    words = cleaned.split()
    if not lo <= len(words) <= hi:
        violations.append(f"The category must be {lo}-{hi} words (got {len(words)}).")

    if normalize_text(cleaned) in rules.banned_categories:
        violations.append(f"The category '{cleaned}' is too generic; name a specific kind of thing.")

    phrase_words = {_singular(w) for w in phrase.split()}
    if words and all(_singular(w) in phrase_words for w in words):
        violations.append("The category must not just repeat words from the phrase.")

    return violations


def validate_puzzle(
    content: PuzzleContent,
    *,
    difficulty: Difficulty,
    rules: ContentRules = DEFAULT_RULES,
) -> list[str]:
    return validate_phrase(content.phrase, difficulty=difficulty, rules=rules) + validate_category(
        content.category, phrase=content.phrase, rules=rules
    )


def validate_verdict(verdict: ActionVerdict, *, rules: ContentRules = DEFAULT_RULES) -> list[str]:
    violations: list[str] = []
    outcome = verdict.outcome.strip()
    if not outcome:
        return ["Describe the outcome in at least one sentence."]

    n_sentences = len(split_sentences(outcome))
    if n_sentences > rules.verdict_max_sentences:
        violations.append(f"Describe the outcome in at most {rules.verdict_max_sentences} sentences (got {n_sentences}).")

    n_words = count_words(outcome)
    if n_words > rules.verdict_max_words:
        violations.append(f"Keep the outcome under {rules.verdict_max_words} words (got {n_words}).")

    if meta_leaks(outcome, rules=rules):
        violations.append("Narrate only the outcome, with no commentary about yourself or the format.")

    return violations


def validate_bot_action(text: str, *, rules: ContentRules = DEFAULT_RULES) -> list[str]:
    violations: list[str] = []
    stripped = text.strip()
    if not stripped:
        return ["Write one sentence describing the action."]

    if not re.match(r"^I\b", stripped):
        violations.append("Start the sentence with 'I'.")

    if len(split_sentences(stripped)) != 1 or stripped[-1] not in ".!":
        violations.append("Write exactly one sentence ending with a period.")

    lo, hi = rules.bot_action_words
    n_words = count_words(stripped)
    if not lo <= n_words <= hi:
        violations.append(f"Use between {lo} and {hi} words (got {n_words}).")

    if _FUTURE_RE.search(stripped.replace("’", "'")):
        violations.append("Use the present tense ('I grab', not 'I will grab').")

    if meta_leaks(stripped, rules=rules):
        violations.append("Describe only the character's action, with no commentary about yourself.")

    return violations
