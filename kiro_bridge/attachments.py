"""Attachment marker grammar shared by channels and CLI output handling.

Messages carry out-of-band attachment references as ``[KIND:target]`` markers,
for example ``[IMAGE:/tmp/chart.png]`` or ``[DOCUMENT:https://host/report.pdf]``.
Channels call :func:`parse_attachment_markers` on outgoing text to split it into
display text plus an ordered attachment list.  The reverse direction,
:func:`synthesize_markers`, rewrites raw model output (markdown images, bare
image paths) into the same marker dialect.

The first ``]`` after a ``[`` always closes a marker, so a target that itself
contains ``]`` cannot be expressed.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum


IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp")

_REMOTE_PREFIXES = ("http://", "https://")
_FILE_URL_PREFIX = "file://"

_MARKDOWN_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]*)\)")
_MARKER_SPAN_RE = re.compile(r"\[([A-Za-z]+):([^\]]*)\]")
_WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")

# "." and "~" are not stripped from the front: "./a.png" must stay relative.
_LEADING_PUNCTUATION = "\"'`([{<*"
_TRAILING_PUNCTUATION = "\"'`)]}>*,.;:!?"


class AttachmentKind(Enum):
    """Kinds of media a marker can reference."""

    IMAGE = "IMAGE"
    DOCUMENT = "DOCUMENT"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    VOICE = "VOICE"

    @classmethod
    def from_marker(cls, marker: str) -> AttachmentKind | None:
        """Resolve a marker name (or accepted synonym) case-insensitively."""
        return _KIND_ALIASES.get(marker.strip().upper())

    def marker_name(self) -> str:
        """Canonical uppercase name used when emitting markers."""
        return self.value


_KIND_ALIASES: dict[str, AttachmentKind] = {
    "IMAGE": AttachmentKind.IMAGE,
    "PHOTO": AttachmentKind.IMAGE,
    "DOCUMENT": AttachmentKind.DOCUMENT,
    "FILE": AttachmentKind.DOCUMENT,
    "VIDEO": AttachmentKind.VIDEO,
    "AUDIO": AttachmentKind.AUDIO,
    "VOICE": AttachmentKind.VOICE,
}


class TargetLocation(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Attachment:
    """One attachment reference parsed out of message text."""

    kind: AttachmentKind
    target: str

    @property
    def is_local(self) -> bool:
        return is_local_path(self.target)

    @property
    def marker(self) -> str:
        return f"[{self.kind.marker_name()}:{self.target}]"


def classify(target: str) -> TargetLocation:
    """Classify a marker target by its scheme prefix.

    Only exact ``http://`` and ``https://`` prefixes are remote.  Nothing is
    resolved against the filesystem.
    """
    if target.startswith(_REMOTE_PREFIXES):
        return TargetLocation.REMOTE
    return TargetLocation.LOCAL


def is_local_path(target: str) -> bool:
    """Check if a target is a local file path (vs URL)."""
    return classify(target) is TargetLocation.LOCAL


def _parse_marker_body(body: str) -> Attachment | None:
    if ":" not in body:
        return None
    kind_name, target = body.split(":", 1)
    kind = AttachmentKind.from_marker(kind_name)
    if kind is None:
        return None
    target = target.strip()
    if not target:
        return None
    return Attachment(kind=kind, target=target)


def parse_attachment_markers(message: str) -> tuple[str, list[Attachment]]:
    """Parse attachment markers from message content.

    Recognized markers are removed from the text and returned in the order they
    appear.  Bracketed spans that are not valid markers (unknown kind, no colon,
    empty target) are kept verbatim.

    Args:
        message: Message text possibly containing ``[KIND:target]`` markers

    Returns:
        Tuple of (cleaned_text, attachments)
    """
    cleaned: list[str] = []
    attachments: list[Attachment] = []
    cursor = 0

    while cursor < len(message):
        open_idx = message.find("[", cursor)
        if open_idx == -1:
            cleaned.append(message[cursor:])
            break
        cleaned.append(message[cursor:open_idx])

        close_idx = message.find("]", open_idx)
        if close_idx == -1:
            cleaned.append(message[open_idx:])
            break

        attachment = _parse_marker_body(message[open_idx + 1 : close_idx])
        if attachment is None:
            cleaned.append(message[open_idx : close_idx + 1])
        else:
            attachments.append(attachment)
        cursor = close_idx + 1

    return "".join(cleaned).strip(), attachments


def _fits_marker(target: str) -> bool:
    # A bracket in the target would close or reopen the marker early.
    return "[" not in target and "]" not in target


def _markdown_image_to_marker(match: re.Match[str]) -> str:
    alt = match.group(1).strip()
    path = match.group(2).strip()
    if path.startswith(_FILE_URL_PREFIX):
        path = path[len(_FILE_URL_PREFIX) :]
    if not path or not _fits_marker(path):
        return match.group(0)
    # Relative strings are only trusted as images when the author labelled them.
    if os.path.isabs(path) or alt:
        return f"[{AttachmentKind.IMAGE.marker_name()}:{path}]"
    return match.group(0)


def markdown_images_to_markers(text: str) -> str:
    """Rewrite markdown images ``![alt](url)`` as ``[IMAGE:url]`` markers."""
    return _MARKDOWN_IMAGE_RE.sub(_markdown_image_to_marker, text)


def _is_bare_image_path(candidate: str) -> bool:
    return (
        os.path.isabs(candidate)
        and candidate.lower().endswith(IMAGE_EXTENSIONS)
        and _fits_marker(candidate)
    )


def _wrap_token(token: str, wrapped: set[str]) -> str:
    start = 0
    end = len(token)
    while start < end and token[start] in _LEADING_PUNCTUATION:
        start += 1
    while end > start and token[end - 1] in _TRAILING_PUNCTUATION:
        end -= 1

    candidate = token[start:end]
    if not _is_bare_image_path(candidate) or candidate in wrapped:
        return token
    wrapped.add(candidate)
    marker = f"[{AttachmentKind.IMAGE.marker_name()}:{candidate}]"
    return f"{token[:start]}{marker}{token[end:]}"


def _wrap_plain_segment(segment: str, wrapped: set[str]) -> str:
    parts = _WHITESPACE_SPLIT_RE.split(segment)
    return "".join(
        part if not part or part.isspace() else _wrap_token(part, wrapped)
        for part in parts
    )


def _marker_spans(text: str) -> list[re.Match[str]]:
    return [
        match
        for match in _MARKER_SPAN_RE.finditer(text)
        if AttachmentKind.from_marker(match.group(1)) is not None
    ]


def detect_bare_image_paths(text: str) -> str:
    """Wrap bare absolute image paths in ``[IMAGE:...]`` markers.

    Works in a single left-to-right pass that copies existing markers through
    untouched and builds a fresh string.  Each distinct path is wrapped at its
    first bare occurrence only, and never when a marker for it already exists,
    so applying the function to its own output changes nothing.
    """
    spans = _marker_spans(text)
    wrapped = {match.group(2).strip() for match in spans}

    out: list[str] = []
    cursor = 0
    for match in spans:
        out.append(_wrap_plain_segment(text[cursor : match.start()], wrapped))
        out.append(match.group(0))
        cursor = match.end()
    out.append(_wrap_plain_segment(text[cursor:], wrapped))
    return "".join(out)


def synthesize_markers(text: str) -> str:
    """Convert markdown images and bare image paths into attachment markers."""
    return detect_bare_image_paths(markdown_images_to_markers(text))
