from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PromptSection:
    """A titled block of context (scenario text, recent history, ...)."""

    title: str
    body: str


@dataclass(frozen=True, slots=True)
class RenderedPrompt:
    """Final, merged prompt passed to the text generator."""

    system_prompt: str
    user_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


def bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {i}" for i in items)


def compose_prompt(
    *,
    instructions: str,
    sections: Sequence[PromptSection] = (),
    task: str,
    repair_notes: Sequence[str] = (),
    previous_output: str | None = None,
) -> RenderedPrompt:
    """Stack instructions + context sections into a system/user prompt pair.

    Repair prompts restate the violated constraints after the original task so the
    model sees exactly what to fix.
    """

    parts: list[str] = []
    for s in sections:
        if s.body.strip():
            parts.append(f"{s.title.upper()}:\n{s.body.strip()}")

    parts.append(task.strip())

    if repair_notes:
        fix = ["REPAIR: your previous answer broke these rules. Fix every one of them:", bullet_list(repair_notes)]
        if previous_output:
            fix.append(f"PREVIOUS ANSWER:\n{previous_output.strip()}")
        fix.append("Answer again using the required output format only.")
        parts.append("\n".join(fix))

    user_prompt = "\n\n".join(p for p in parts if p.strip()).strip()
    return RenderedPrompt(system_prompt=instructions.strip(), user_prompt=user_prompt)
