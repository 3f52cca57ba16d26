from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from fatebound.core.context import RenderedPrompt


@dataclass(frozen=True, slots=True)
class GenerationOptions:
    temperature: float = 0.7
    max_output_tokens: int = 256
    # Output is cut at the first occurrence of any of these.
    stop: tuple[str, ...] = ()


class GenerationUnavailable(RuntimeError):
    """No model backend is configured; callers should go straight to fallbacks."""


class TextGenerator(Protocol):
    """Prompt in, free text out. Any exception counts as a failed attempt."""

    async def generate(self, *, prompt: RenderedPrompt, options: GenerationOptions) -> str:  # pragma: no cover
        ...


def apply_stop(text: str, stop: tuple[str, ...]) -> str:
    """Truncate at the earliest stop sequence (the stop sequence itself is dropped)."""

    cut = len(text)
    for s in stop:
        if not s:
            continue
        idx = text.find(s)
        if idx != -1:
            cut = min(cut, idx)
    return text[:cut]
