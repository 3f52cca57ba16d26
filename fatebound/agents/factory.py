from __future__ import annotations

import os
from dataclasses import dataclass
from typing import cast

from fatebound.agents.ag2_backend import Ag2TextGenerator
from fatebound.agents.autogen_config import DEFAULT_MODEL, generation_configured
from fatebound.agents.base import GenerationOptions, GenerationUnavailable, TextGenerator
from fatebound.core.context import RenderedPrompt


@dataclass(frozen=True, slots=True)
class OfflineTextGenerator:
    """Used when no model is configured: every call sends the pipeline to its fallbacks."""

    async def generate(self, *, prompt: RenderedPrompt, options: GenerationOptions) -> str:
        raise GenerationUnavailable("Text generation is not configured")


def create_default_generator(*, name: str = "fatebound-narrator") -> TextGenerator:
    """Create the default LLM-backed generator.

    Currently uses AG2/autogen and reads model configuration from env.
    """

    if not generation_configured():
        return cast(TextGenerator, OfflineTextGenerator())
    model = os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)
    return cast(TextGenerator, Ag2TextGenerator(name=name, model=model))
