from __future__ import annotations

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


class PromptLoadError(RuntimeError):
    pass


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load an instruction template from the repo `prompts/` directory (cached per process)."""

    path = PROMPTS_DIR / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e


def render_prompt(name: str, **fields: object) -> str:
    """Fill a `str.format` template; literal braces in the file are written `{{ }}`.

    Example:
        render_prompt("puzzle.txt", min_words=2, max_words=3, ...)
    """

    try:
        return load_prompt(name).format(**fields)
    except (KeyError, IndexError) as e:
        raise PromptLoadError(f"Prompt {name} needs field {e}") from e
