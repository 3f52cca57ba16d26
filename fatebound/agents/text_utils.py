from __future__ import annotations

import re

_PREAMBLE_RE = re.compile(
    r"^(?:sure|okay|ok|certainly|of course|here(?:'s| is| are)|below is|i have|as requested)\b",
    re.IGNORECASE,
)
_LABEL_RE = re.compile(r"^(?:scenario|action|answer|output|response|result)\s*:\s*", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown fence (```json ... ```), if any."""

    raw = text.strip()
    if raw.startswith("```"):
        lines = [ln for ln in raw.splitlines() if ln.strip()]
        if lines and lines[0].lstrip().startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].rstrip().endswith("```"):
            lines = lines[:-1]
        raw = "\n".join(lines).strip()
    return raw


def strip_markdown(line: str) -> str:
    line = re.sub(r"[*_#>`]+", "", line)
    return line.strip().strip('"“”').strip()


def content_lines(text: str) -> list[str]:
    """Non-empty lines with fences, markdown, labels and chatty preambles removed."""

    out: list[str] = []
    for ln in strip_code_fence(text).splitlines():
        ln = strip_markdown(ln)
        if not ln:
            continue
        # "Here is your scenario:" / "Sure!" before the real content.
        if not out and _PREAMBLE_RE.match(ln) and (ln.endswith(":") or len(ln.split()) <= 6):
            continue
        ln = _LABEL_RE.sub("", ln).strip()
        if ln:
            out.append(ln)
    return out
