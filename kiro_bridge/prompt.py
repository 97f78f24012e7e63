"""Flatten a chat history into a single bounded prompt string.

CLI backends take one block of text, not a message list.  History is rendered
as ``Role: content`` paragraphs, old turns are dropped once the window is
exceeded, and the result is cut to a character budget.  The system
contribution is always the first paragraph and survives turn compaction.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from kiro_bridge.llm import Message
from kiro_bridge.logging import get_logger

log = get_logger(__name__)

# Maps a system message body to the text to send, or None to send nothing.
SystemExtractor = Callable[[str], "str | None"]

_ROLE_LABELS = {
    "user": "User",
    "assistant": "Assistant",
}

PART_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class PromptBudget:
    """Size limits applied by :func:`build_prompt`."""

    max_prompt_chars: int = 100000
    max_history_turns: int = 8

    def __post_init__(self) -> None:
        if self.max_prompt_chars < 0 or self.max_history_turns < 0:
            raise ValueError("Prompt budget limits must be non-negative")


def full_system_extractor(content: str) -> str:
    return f"System: {content}"


def anchored_system_extractor(anchor: str) -> SystemExtractor:
    """Keep only the part of a system message that starts at ``anchor``.

    For backends that inject their own system prompt: everything before the
    anchor header is already known to them.  Without the anchor the system
    message contributes nothing.
    """

    def extract(content: str) -> str | None:
        idx = content.find(anchor)
        if idx == -1:
            return None
        return content[idx:].rstrip()

    return extract


def truncate_chars(text: str, max_chars: int) -> str:
    """Cut ``text`` to at most ``max_chars`` characters.

    ``str`` indexes by code point, so a multi-byte character is never split.
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def _render_parts(
    history: Iterable[Message],
    system_extractor: SystemExtractor,
) -> list[tuple[bool, str]]:
    parts: list[tuple[bool, str]] = []
    for msg in history:
        if msg.role == "system":
            rendered = system_extractor(msg.content)
            if rendered is not None:
                parts.append((True, rendered))
        elif msg.role in _ROLE_LABELS:
            parts.append((False, f"{_ROLE_LABELS[msg.role]}: {msg.content}"))
    return parts


def _compact(parts: list[tuple[bool, str]], max_turns: int) -> list[tuple[bool, str]]:
    head: list[tuple[bool, str]] = []
    rest = parts
    if parts and parts[0][0]:
        head, rest = parts[:1], parts[1:]
    if len(rest) <= max_turns:
        return parts

    tail = rest[len(rest) - max_turns :] if max_turns else []

    log.debug(
        "Compacted prompt history",
        dropped=len(rest) - len(tail),
        kept=len(tail),
    )
    return head + tail


def build_prompt(
    history: Iterable[Message],
    budget: PromptBudget,
    system_extractor: SystemExtractor | None = None,
) -> str:
    """Build the prompt text for one CLI invocation.

    Args:
        history: Ordered messages; roles other than system/user/assistant are dropped
        budget: Turn window and character limit
        system_extractor: How system messages are rendered; ``None`` sends them
            in full as ``System: <content>``

    Returns:
        Prompt no longer than ``budget.max_prompt_chars`` characters
    """
    parts = _render_parts(history, system_extractor or full_system_extractor)
    parts = _compact(parts, budget.max_history_turns)
    prompt = PART_SEPARATOR.join(text for _, text in parts)
    if len(prompt) > budget.max_prompt_chars:
        log.debug(
            "Truncating prompt",
            length=len(prompt),
            max_chars=budget.max_prompt_chars,
        )
    return truncate_chars(prompt, budget.max_prompt_chars)


def build_single_turn(system: str | None, message: str) -> list[Message]:
    """History for a one-shot request: optional system text plus one user message."""
    history = [Message.system(system)] if system else []
    history.append(Message.user(message))
    return history
