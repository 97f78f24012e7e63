"""Per-channel delivery instructions that teach the model the marker syntax.

Templates are plain files with a two-layer override system:
  1. Personal overrides in ``~/.kiro-bridge/instructions/`` (highest priority)
  2. Packaged defaults in ``kiro_bridge/templates/``
"""

from __future__ import annotations

import os
from pathlib import Path


_PERSONAL_DIR = Path("~/.kiro-bridge/instructions").expanduser()

DEFAULT_TEMPLATE = "delivery_default.md"
TELEGRAM_TEMPLATE = "delivery_telegram.md"

# Channels not listed here (cli, test doubles, ...) get no instructions.
CHANNEL_TEMPLATES: dict[str, str] = {
    "telegram": TELEGRAM_TEMPLATE,
    "discord": DEFAULT_TEMPLATE,
    "slack": DEFAULT_TEMPLATE,
    "mattermost": DEFAULT_TEMPLATE,
    "matrix": DEFAULT_TEMPLATE,
    "dingtalk": DEFAULT_TEMPLATE,
    "lark": DEFAULT_TEMPLATE,
    "feishu": DEFAULT_TEMPLATE,
    "signal": DEFAULT_TEMPLATE,
    "whatsapp": DEFAULT_TEMPLATE,
    "qq": DEFAULT_TEMPLATE,
}


class InstructionLoader:
    """Read instruction templates with personal-override support.

    Resolution order for every template:
      1. ``personal_dir / name``  (``~/.kiro-bridge/instructions/``)
      2. ``base_dir / name``      (packaged ``templates/``)
    """

    def __init__(
        self,
        base_dir: Path | str | None = None,
        personal_dir: Path | str | None = None,
    ):
        self.base_dir = self._resolve_base_dir(base_dir)
        self.personal_dir: Path = (
            Path(personal_dir).expanduser().resolve()
            if personal_dir is not None
            else _PERSONAL_DIR.resolve()
        )
        self._cache: dict[str, str] = {}

    @staticmethod
    def _resolve_base_dir(base_dir: Path | str | None) -> Path:
        if base_dir is not None:
            return Path(base_dir).expanduser().resolve()
        env_dir = os.getenv("KIRO_BRIDGE_INSTRUCTIONS_DIR")
        if env_dir:
            return Path(env_dir).expanduser().resolve()
        return (Path(__file__).resolve().parent / "templates").resolve()

    def _path(self, name: str) -> Path:
        """Return the effective file path, preferring the personal override."""
        personal = self.personal_dir / name
        if personal.is_file():
            return personal
        return self.base_dir / name

    def load(self, name: str) -> str:
        """Load instruction template content by filename."""
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self._path(name)
        if not path.is_file():
            raise FileNotFoundError(f"Instruction template not found: {path}")
        content = path.read_text(encoding="utf-8").strip()
        self._cache[name] = content
        return content


_loader: InstructionLoader | None = None


def get_instruction_loader() -> InstructionLoader:
    global _loader
    if _loader is None:
        _loader = InstructionLoader()
    return _loader


def channel_delivery_instructions(
    channel: str,
    loader: InstructionLoader | None = None,
) -> str | None:
    """Return delivery instructions for a channel, or ``None`` if it has none."""
    template = CHANNEL_TEMPLATES.get(channel.strip().lower())
    if template is None:
        return None
    return (loader or get_instruction_loader()).load(template)
