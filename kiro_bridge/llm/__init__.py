"""Provider interface for CLI-backed language models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kiro_bridge.attachments import Attachment

if TYPE_CHECKING:
    from kiro_bridge.config import Config


@dataclass
class Message:
    """A message in the conversation."""

    role: str  # "system", "user", "assistant"
    content: str

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)


@dataclass
class LLMResponse:
    """Response from the LLM."""

    content: str
    model: str = ""
    attachments: list[Attachment] = field(default_factory=list)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def complete(self, messages: list[Message]) -> LLMResponse:
        pass

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        pass


def create_provider(
    provider: str = "kiro",
    config: Config | None = None,
    environ: Mapping[str, str] | None = None,
) -> LLMProvider:
    """Create an LLM provider.

    Args:
        provider: Provider name (only ``kiro`` is supported)
        config: Configuration to build from (defaults to the global config)
        environ: Environment used to resolve the executable, agent and model

    Returns:
        Configured LLMProvider instance
    """
    if provider != "kiro":
        raise ValueError(f"Provider '{provider}' not supported. Use 'kiro'.")

    from kiro_bridge.config import get_config
    from kiro_bridge.llm.kiro import KiroProvider
    from kiro_bridge.llm.process import resolve_invocation

    cfg = config or get_config()
    return KiroProvider(
        invocation=resolve_invocation(cfg.cli, environ=environ),
        budget=cfg.prompt.budget(),
        system_extractor=cfg.prompt.system_extractor(),
    )


# Global provider instance
_provider: LLMProvider | None = None


def get_provider() -> LLMProvider:
    """Get the global LLM provider instance."""
    global _provider
    if _provider is None:
        _provider = create_provider()
    return _provider


def set_provider(provider: LLMProvider) -> None:
    """Set the global LLM provider instance."""
    global _provider
    _provider = provider
