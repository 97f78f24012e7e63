"""Clean raw CLI output before it is handed back as a model response."""

from __future__ import annotations

from enum import Enum

from kiro_bridge.attachments import synthesize_markers


ESC = "\x1b"

CONTEXT_OVERFLOW_MARKERS = ("context window has overflowed",)


class _ScanState(Enum):
    NORMAL = "normal"
    ESCAPE = "escape"


def strip_ansi_escapes(text: str) -> str:
    """Remove ``ESC [ ... <letter>`` control sequences.

    Two states: NORMAL copies characters, ESCAPE drops them up to and including
    the first ASCII letter, which terminates the sequence.  An ESC that is not
    followed by ``[`` is copied through unchanged.
    """
    out: list[str] = []
    state = _ScanState.NORMAL
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if state is _ScanState.NORMAL:
            if ch == ESC and i + 1 < length and text[i + 1] == "[":
                state = _ScanState.ESCAPE
                i += 2
                continue
            out.append(ch)
        elif ch.isascii() and ch.isalpha():
            state = _ScanState.NORMAL
        i += 1

    return "".join(out)


def _clean_line(line: str) -> str:
    if line.startswith("> "):
        line = line[2:]
    # Leftovers of colour codes some terminal renderers split across writes.
    if line.endswith("mm"):
        line = line[:-2]
    elif line.endswith("m"):
        line = line[:-1]
    return line


def clean_output_lines(text: str) -> str:
    """Strip per-line ``> `` prefixes and trailing ``m``/``mm`` artifacts."""
    lines = text.replace("\r\n", "\n").split("\n")
    return "\n".join(_clean_line(line) for line in lines).strip()


def sanitize_output(raw: str | bytes) -> str:
    """Run the full cleanup chain on raw subprocess output.

    Args:
        raw: Captured stdout, as bytes (decoded as UTF-8) or text

    Returns:
        Text with control sequences removed, line artifacts cleaned, and
        markdown images / bare image paths rewritten as ``[IMAGE:...]`` markers
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return synthesize_markers(clean_output_lines(strip_ansi_escapes(raw)))


def is_context_overflow(text: str) -> bool:
    """Check whether output reports that the backend context window overflowed."""
    lowered = text.lower()
    return any(marker in lowered for marker in CONTEXT_OVERFLOW_MARKERS)
