"""Prompt injection detection for instructions sent to Copilot."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern

from .validation import ValidationError

# Share of structural characters above which text is treated as obfuscated
SPECIAL_CHAR_THRESHOLD = 0.1
SPECIAL_CHARS = frozenset("<>{}[]")

# Evaluated in order; the first match is reported.
INJECTION_PATTERNS: list[tuple[Pattern[str], str]] = [
    (
        re.compile(
            r"\b(ignore|disregard|forget)\s+(all\s+)?(previous|prior|above)\s+"
            r"(instructions|prompts|commands)\b",
            re.IGNORECASE,
        ),
        "Attempt to override previous instructions",
    ),
    (
        re.compile(r"\bnew\s+instructions\s*:", re.IGNORECASE),
        "Attempt to inject new instructions",
    ),
    (
        re.compile(r"\b(system|admin)\s+prompt\s*:", re.IGNORECASE),
        "Attempt to inject a system prompt",
    ),
    (
        re.compile(r"\byou\s+are\s+now\s+(a|an)\b", re.IGNORECASE),
        "Attempt to reassign the assistant role",
    ),
    (
        re.compile(r"\bfrom\s+now\s+on\s+you\s+(are|will)\b", re.IGNORECASE),
        "Attempt to reassign the assistant role",
    ),
    (
        re.compile(r"\[(system|admin|override)\]", re.IGNORECASE),
        "Privileged marker tag",
    ),
    (
        re.compile(r"<\s*/?\s*(system|admin)\s*>", re.IGNORECASE),
        "Privileged markup tag",
    ),
]


class PromptInjectionError(ValidationError):
    """Instructions look like a prompt injection attempt."""

    pass


@dataclass(frozen=True)
class InjectionCheck:
    """Outcome of scanning a piece of text."""

    is_valid: bool
    reason: Optional[str] = None


def special_char_ratio(text: str) -> float:
    """Return the share of characters in *text* that are in SPECIAL_CHARS."""
    if not text:
        return 0.0
    return sum(1 for ch in text if ch in SPECIAL_CHARS) / len(text)


def detect_prompt_injection(text: object) -> InjectionCheck:
    """Scan *text* for instruction-override attempts.

    Args:
        text: Instructions destined for the assistant.

    Returns:
        InjectionCheck with is_valid False and a reason when suspicious.
    """
    if not isinstance(text, str) or not text:
        return InjectionCheck(False, "Input must be a non-empty string")

    for pattern, reason in INJECTION_PATTERNS:
        if pattern.search(text):
            return InjectionCheck(False, f"{reason} (matched {pattern.pattern!r})")

    ratio = special_char_ratio(text)
    if ratio > SPECIAL_CHAR_THRESHOLD:
        return InjectionCheck(
            False,
            f"Excessive special characters ({ratio:.0%} of text)",
        )

    return InjectionCheck(True)


def ensure_safe_instructions(text: object) -> str:
    """Return *text* unchanged if it passes detect_prompt_injection().

    Raises:
        PromptInjectionError: If the text is rejected.
    """
    check = detect_prompt_injection(text)
    if not check.is_valid:
        raise PromptInjectionError(f"Potential prompt injection detected: {check.reason}")
    return text  # type: ignore[return-value]
