from __future__ import annotations

from fatebound.core.context import PromptSection, bullet_list, compose_prompt


def test_compose_prompt_stacks_sections_then_task() -> None:
    p = compose_prompt(
        instructions="  You write scenarios.  ",
        sections=[PromptSection("Recent scenarios", bullet_list(["one", "two"])), PromptSection("Empty", "  ")],
        task="Write the next scenario now.",
    )

    assert p.system_prompt == "You write scenarios."
    assert p.user_prompt == "RECENT SCENARIOS:\n- one\n- two\n\nWrite the next scenario now."
    assert p.as_messages()[0] == {"role": "system", "content": "You write scenarios."}
    assert p.as_messages()[1]["role"] == "user"


def test_repair_block_restates_rules_and_previous_answer() -> None:
    p = compose_prompt(
        instructions="x",
        task="Do it.",
        repair_notes=["Use between 30 and 55 words in total (got 9)."],
        previous_output="A troll. What do you do?",
    )

    task_at = p.user_prompt.index("Do it.")
    repair_at = p.user_prompt.index("REPAIR:")
    assert task_at < repair_at
    assert "- Use between 30 and 55 words in total (got 9)." in p.user_prompt
    assert "PREVIOUS ANSWER:\nA troll. What do you do?" in p.user_prompt
