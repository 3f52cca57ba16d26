from __future__ import annotations

import re
from dataclasses import dataclass, field

from fatebound.api.models import Difficulty

SCENARIO_TAIL = "What do you do?"


@dataclass(frozen=True, slots=True)
class ContentRules:
    """Tunable limits and denylists shared by the content validators and prompts."""

    word_ranges: dict[Difficulty, tuple[int, int]] = field(
        default_factory=lambda: {
            Difficulty.easy: (2, 3),
            Difficulty.medium: (3, 4),
            Difficulty.hard: (4, 5),
            Difficulty.very_hard: (5, 6),
        }
    )

    banned_categories: frozenset[str] = frozenset(
        {
            "phrase",
            "adventure",
            "adventure phrase",
            "fantasy",
            "fantasy phrase",
            "thing",
            "things",
            "words",
            "word",
            "quest",
            "puzzle",
            "general",
            "misc",
            "miscellaneous",
            "other",
            "category",
            "category name",
            "unknown",
            "random",
        }
    )

    # Matched case-insensitively against scenario text.
    banned_tropes: tuple[str, ...] = (
        r"\bbridges?\b",
        r"\bpits?\b",
        r"\bchasms?\b",
        r"\bcollaps\w*",
        r"\bbottomless\b",
        r"\bfloors?\s+(?:gives?|gave|giving)\s+way\b",
        r"\bcrumbling\s+floors?\b",
    )

    proper_noun_denylist: frozenset[str] = frozenset(
        {"ZEUS", "ATLANTIS", "THOR", "ROME", "ODIN", "MERLIN", "EXCALIBUR", "OLYMPUS", "CAMELOT", "ATHENA"}
    )
    banned_phrase_openers: tuple[str, ...] = (
        "SEEK THE ANCIENT",
        "FIND THE LOST",
        "ESCAPE FROM THE",
        "DEFEAT THE EVIL",
    )

    # Lowercased substrings that betray a model talking about itself.
    meta_markers: tuple[str, ...] = (
        "as an ai",
        "language model",
        "i cannot",
        "i can't help",
        "system prompt",
        "json",
        "the model",
        "assistant:",
    )

    scenario_words: tuple[int, int] = (30, 55)
    scenario_sentences: int = 2
    scenario_history_size: int = 5

    category_words: tuple[int, int] = (2, 4)

    verdict_max_sentences: int = 3
    verdict_max_words: int = 60

    bot_action_words: tuple[int, int] = (12, 22)

    def word_range(self, difficulty: Difficulty) -> tuple[int, int]:
        return self.word_ranges[Difficulty(difficulty)]

    def trope_patterns(self) -> list[re.Pattern[str]]:
        return [re.compile(p, re.IGNORECASE) for p in self.banned_tropes]


DEFAULT_RULES = ContentRules()
