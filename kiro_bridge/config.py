"""Configuration management for kiro-bridge."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kiro_bridge.exceptions import ConfigurationError

if TYPE_CHECKING:
    from kiro_bridge.prompt import PromptBudget, SystemExtractor


# Paths
DEFAULT_CONFIG_PATH = Path("~/.kiro-bridge/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"


class CliConfig(BaseModel):
    """External CLI invocation settings.

    Empty strings mean "not set"; the environment variables named here are
    consulted once, when the invocation is resolved.
    """

    path: str = ""
    path_env: str = "KIRO_CLI_PATH"
    default_executable: str = "kiro-cli"
    agent: str = ""
    agent_env: str = "KIRO_AGENT"
    model: str = ""
    model_env: str = "KIRO_MODEL"
    subcommand: list[str] = Field(default_factory=lambda: ["chat", "--no-interactive"])
    transport: Literal["stdin", "argument"] = "stdin"
    capture_stderr: bool = True
    # Extra variables for the child; NO_COLOR and TERM are always forced.
    env: dict[str, str] = Field(default_factory=dict)


class PromptConfig(BaseModel):
    """Prompt size limits and system message handling."""

    max_prompt_chars: int = 100000
    max_history_turns: int = 8
    # Empty: system messages are sent in full.  Otherwise only the block
    # starting at this header is kept.
    system_anchor: str = ""

    @field_validator("max_prompt_chars", "max_history_turns")
    @classmethod
    def non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    def budget(self) -> PromptBudget:
        from kiro_bridge.prompt import PromptBudget

        return PromptBudget(
            max_prompt_chars=self.max_prompt_chars,
            max_history_turns=self.max_history_turns,
        )

    def system_extractor(self) -> SystemExtractor | None:
        from kiro_bridge.prompt import anchored_system_extractor

        anchor = self.system_anchor.strip()
        if not anchor:
            return None
        return anchored_system_extractor(anchor)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for kiro-bridge."""

    cli: CliConfig = Field(default_factory=CliConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="KIRO_BRIDGE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> Config:
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        data = {}
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Cannot read config {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {config_path} must be a YAML mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {config_path}: {e}") from e

    @classmethod
    def load(cls) -> Config:
        """Load configuration from YAML; environment variables take precedence."""
        return cls.from_yaml()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; let the environment override them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
