"""kiro-bridge - use an agent CLI as a chat model provider."""

__version__ = "0.1.0"

from kiro_bridge.attachments import Attachment, AttachmentKind, parse_attachment_markers
from kiro_bridge.config import Config

__all__ = [
    "Attachment",
    "AttachmentKind",
    "Config",
    "parse_attachment_markers",
    "__version__",
]
