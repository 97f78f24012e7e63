"""Kiro CLI provider: drives ``kiro-cli chat --no-interactive`` as an LLM."""

from __future__ import annotations

from collections.abc import Mapping

from kiro_bridge.attachments import parse_attachment_markers
from kiro_bridge.llm import LLMProvider, LLMResponse, Message
from kiro_bridge.llm.process import ProcessInvocation, run_invocation
from kiro_bridge.prompt import PromptBudget, SystemExtractor, build_prompt, build_single_turn

DEFAULT_MODEL_NAME = "kiro-default"


class KiroProvider(LLMProvider):
    """Kiro CLI as a chat provider.

    Every call flattens the conversation into one prompt, runs a fresh CLI
    process, and returns its sanitized output.  The provider holds no mutable
    state, so overlapping calls each get their own subprocess.
    """

    def __init__(
        self,
        invocation: ProcessInvocation,
        budget: PromptBudget | None = None,
        system_extractor: SystemExtractor | None = None,
        base_env: Mapping[str, str] | None = None,
    ):
        self.invocation = invocation
        self.budget = budget or PromptBudget()
        self.system_extractor = system_extractor
        self.base_env = base_env

    @property
    def name(self) -> str:
        return "kiro"

    @property
    def model(self) -> str:
        return self.invocation.model or DEFAULT_MODEL_NAME

    def messages_to_prompt(self, messages: list[Message]) -> str:
        return build_prompt(messages, self.budget, self.system_extractor)

    async def _invoke(self, prompt: str) -> str:
        return await run_invocation(self.invocation, prompt, base_env=self.base_env)

    async def chat_with_system(self, system: str | None, message: str) -> str:
        """Single turn: optional system text plus one user message."""
        return await self._invoke(self.messages_to_prompt(build_single_turn(system, message)))

    async def chat_with_history(self, messages: list[Message]) -> str:
        """History turn: the whole conversation, compacted to the budget."""
        return await self._invoke(self.messages_to_prompt(messages))

    async def complete(self, messages: list[Message]) -> LLMResponse:
        content = await self.chat_with_history(messages)
        _, attachments = parse_attachment_markers(content)
        return LLMResponse(content=content, model=self.model, attachments=attachments)

    def count_tokens(self, text: str) -> int:
        """Count tokens (rough estimate, ~4 characters per token)."""
        return len(text) // 4
