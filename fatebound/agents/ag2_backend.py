from __future__ import annotations

from dataclasses import dataclass

from autogen import ConversableAgent

from fatebound.agents.autogen_config import generation_configured, llm_config_from_env
from fatebound.agents.base import GenerationOptions, GenerationUnavailable, apply_stop
from fatebound.core.context import RenderedPrompt


def _reply_text(reply: object) -> str:
    """AG2 replies are either a plain string or an OpenAI-style message dict."""

    if isinstance(reply, str):
        return reply
    if isinstance(reply, dict):
        content = reply.get("content")
        if isinstance(content, str):
            return content
    return ""


@dataclass(slots=True)
class Ag2TextGenerator:
    """Text generator backed by an AG2 `ConversableAgent`.

    Each call builds a fresh single-turn agent: the system prompt comes from the
    rendered prompt and sampling options go into the LLM config.

    Environment variables supported:
    - OPENAI_MODEL
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (for OpenAI-compatible servers like Ollama, e.g. http://127.0.0.1:11434/v1)
    """

    name: str
    model: str

    async def generate(self, *, prompt: RenderedPrompt, options: GenerationOptions) -> str:
        if not generation_configured():
            raise GenerationUnavailable("No OPENAI_API_KEY or OPENAI_BASE_URL configured")

        llm_config = llm_config_from_env(
            default_model=self.model,
            temperature=options.temperature,
            max_tokens=options.max_output_tokens,
        )
        agent = ConversableAgent(
            name=self.name,
            system_message=prompt.system_prompt,
            llm_config=llm_config,
            human_input_mode="NEVER",
        )

        reply = await agent.a_generate_reply(messages=[{"role": "user", "content": prompt.user_prompt}])
        text = _reply_text(reply)
        if not text.strip():
            raise ValueError("Empty reply from model")

        # Not every OpenAI-compatible server honors `stop`, so cut client-side.
        return apply_stop(text, options.stop).strip()
