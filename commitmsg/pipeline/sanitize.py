"""Sanitize raw LLM output and synthesize the deterministic fallback."""

import re

from commitmsg import COMMIT_TYPE_NAMES
from commitmsg.config import GenerationBudget
from commitmsg.prompts import MAX_SUBJECT_LENGTH

CONVENTIONAL_RE = re.compile(
    rf"^({'|'.join(COMMIT_TYPE_NAMES)})(\([\w./-]+\))?: .+"
)

FALLBACK_PREVIEW_PATHS = 3


def _trim_wrapping(text: str) -> str:
    """Drop surrounding backticks, quotes and whitespace, in any mix, until stable."""
    previous = None
    while text != previous:
        previous = text
        text = text.strip().strip('`"')
    return text


def _first_line(text: str) -> str:
    lines = text.splitlines()
    return lines[0].strip() if lines else ""


def _without_backticks(text: str) -> str:
    return _trim_wrapping(text.replace("```", "").replace("`", ""))


def sanitize_message(raw: str, budget: GenerationBudget, fallback: str) -> str:
    """Coerce raw model output into a message that satisfies the budget's policy.

    Never raises: anything that cannot be salvaged becomes the fallback.
    Sanitizing an already sanitized message returns it unchanged.
    """
    cleaned = _trim_wrapping(raw)
    message = _first_line(cleaned) if budget.one_line else cleaned
    message = _without_backticks(message)

    if budget.conventional and not CONVENTIONAL_RE.match(_first_line(message)):
        candidates = (_without_backticks(line) for line in cleaned.splitlines())
        message = next((line for line in candidates if CONVENTIONAL_RE.match(line)), fallback)

    return message or fallback


def fallback_message(paths: list[str], budget: GenerationBudget) -> str:
    """Build a non-AI message from the staged paths."""
    if paths:
        subject = "update " + ", ".join(paths[:FALLBACK_PREVIEW_PATHS])
    else:
        subject = "update files"

    subject = subject[:MAX_SUBJECT_LENGTH].rstrip()
    return f"chore: {subject}" if budget.conventional else subject
