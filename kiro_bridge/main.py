"""Command-line entry point for kiro-bridge."""

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import typer

from kiro_bridge.attachments import parse_attachment_markers
from kiro_bridge.config import Config, set_config
from kiro_bridge.exceptions import ConfigurationError, KiroBridgeError
from kiro_bridge.instructions import channel_delivery_instructions
from kiro_bridge.llm import create_provider
from kiro_bridge.logging import configure_logging, get_logger

log = get_logger(__name__)

cli = typer.Typer(help="kiro-bridge - use an agent CLI as a chat model provider")


def _load_config(config: str) -> Config:
    if config:
        return Config.from_yaml(Path(config))
    return Config.load()


def _echo_parsed(text: str) -> None:
    """Print cleaned text, then one ``KIND<TAB>target`` line per attachment."""
    cleaned, attachments = parse_attachment_markers(text)
    typer.echo(cleaned)
    for attachment in attachments:
        typer.echo(f"{attachment.kind.marker_name()}\t{attachment.target}")


async def _ask(provider, system: Optional[str], message: str, timeout: float) -> str:
    work = provider.chat_with_system(system, message)
    if timeout > 0:
        # Cancellation on expiry kills the child process.
        return await asyncio.wait_for(work, timeout=timeout)
    return await work


@cli.command()
def ask(
    message: str = typer.Argument(..., help="User message to send"),
    system: str = typer.Option("", "-s", "--system", help="System prompt"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    agent: str = typer.Option("", "--agent", help="Override agent"),
    timeout: float = typer.Option(0.0, "--timeout", help="Seconds before giving up (0 = wait forever)"),
    attachments: bool = typer.Option(False, "--attachments", help="Split attachment markers from the answer"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Send one message and print the answer."""
    if verbose:
        os.environ["KIRO_BRIDGE_LOGGING__LEVEL"] = "DEBUG"

    try:
        cfg = _load_config(config)
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    if model:
        cfg.cli.model = model
    if agent:
        cfg.cli.agent = agent
    set_config(cfg)
    configure_logging(cfg)

    provider = create_provider(config=cfg)
    try:
        answer = asyncio.run(_ask(provider, system or None, message, timeout))
    except asyncio.TimeoutError:
        log.error("Request timed out", timeout=timeout)
        typer.echo(f"Timed out after {timeout}s", err=True)
        raise typer.Exit(code=1)
    except KiroBridgeError as e:
        log.error("Request failed", error=str(e))
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    if attachments:
        _echo_parsed(answer)
    else:
        typer.echo(answer)


@cli.command()
def parse(
    text: Optional[str] = typer.Argument(None, help="Text to parse (reads stdin when omitted)"),
) -> None:
    """Split attachment markers out of text."""
    _echo_parsed(text if text is not None else sys.stdin.read())


@cli.command()
def instructions(
    channel: str = typer.Argument(..., help="Channel identifier, e.g. telegram"),
) -> None:
    """Print the delivery instructions for a channel."""
    text = channel_delivery_instructions(channel)
    if text is None:
        typer.echo(f"No delivery instructions for channel '{channel}'", err=True)
        raise typer.Exit(code=1)
    typer.echo(text)


@cli.command()
def version() -> None:
    """Show version information."""
    from kiro_bridge import __version__

    typer.echo(f"kiro-bridge v{__version__}")


if __name__ == "__main__":
    cli()
