"""Run one non-interactive CLI invocation and collect its answer."""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal

from kiro_bridge.config import CliConfig
from kiro_bridge.exceptions import BackendOverflowError, NonZeroExitError, SpawnFailureError
from kiro_bridge.logging import get_logger
from kiro_bridge.sanitize import is_context_overflow, sanitize_output

log = get_logger(__name__)

# Force plain, non-interactive output regardless of the caller's terminal.
ENV_OVERRIDES = {
    "NO_COLOR": "1",
    "TERM": "dumb",
}

_STDERR_PREVIEW_CHARS = 500


@dataclass(frozen=True)
class ProcessInvocation:
    """Everything needed to start the CLI, resolved once per provider."""

    executable: str
    agent: str | None = None
    model: str | None = None
    subcommand: tuple[str, ...] = ("chat", "--no-interactive")
    transport: Literal["stdin", "argument"] = "stdin"
    capture_stderr: bool = True
    env_overrides: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        # The plain-output variables always win over caller-supplied ones.
        merged = {**dict(self.env_overrides), **ENV_OVERRIDES}
        object.__setattr__(self, "env_overrides", tuple(sorted(merged.items())))


def resolve_invocation(
    cli: CliConfig,
    environ: Mapping[str, str] | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> ProcessInvocation:
    """Resolve CLI settings against the environment.

    Executable lookup order: explicit ``cli.path``, the ``cli.path_env``
    variable, ``cli.default_executable`` on PATH, then the bare default name.
    Agent and model fall back to their environment variables.
    """
    env = os.environ if environ is None else environ

    executable = (
        cli.path.strip()
        or env.get(cli.path_env, "").strip()
        or which(cli.default_executable)
        or cli.default_executable
    )
    agent = cli.agent.strip() or env.get(cli.agent_env, "").strip() or None
    model = cli.model.strip() or env.get(cli.model_env, "").strip() or None

    return ProcessInvocation(
        executable=executable,
        agent=agent,
        model=model,
        subcommand=tuple(cli.subcommand),
        transport=cli.transport,
        capture_stderr=cli.capture_stderr,
        env_overrides=tuple(cli.env.items()),
    )


def build_argv(invocation: ProcessInvocation, prompt: str | None = None) -> list[str]:
    """Build the argument vector.

    The prompt is only part of argv for the ``argument`` transport; pass
    ``None`` to get a loggable argv without it.
    """
    argv = [invocation.executable, *invocation.subcommand]
    if invocation.agent:
        argv.extend(["--agent", invocation.agent])
    if invocation.model:
        argv.extend(["--model", invocation.model])
    if invocation.transport == "argument" and prompt is not None:
        argv.append(prompt)
    return argv


def build_env(
    invocation: ProcessInvocation,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Copy the base environment (default ``os.environ``) and apply the invocation overrides."""
    env = dict(os.environ if base_env is None else base_env)
    env.update(invocation.env_overrides)
    return env


async def run_invocation(
    invocation: ProcessInvocation,
    prompt: str,
    base_env: Mapping[str, str] | None = None,
) -> str:
    """Run the CLI once and return its sanitized output.

    Args:
        invocation: Resolved executable and flags
        prompt: Full prompt text
        base_env: Environment to extend with the fixed overrides (defaults to os.environ)

    Returns:
        Sanitized stdout

    Raises:
        SpawnFailureError: The executable could not be started
        NonZeroExitError: The process exited with a non-zero status
        BackendOverflowError: Exit status 0 but the output reports a context overflow
    """
    use_stdin = invocation.transport == "stdin"
    argv = build_argv(invocation, prompt)

    log.debug(
        "Invoking CLI",
        argv=build_argv(invocation),
        transport=invocation.transport,
        prompt_chars=len(prompt),
    )

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if use_stdin else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if invocation.capture_stderr else asyncio.subprocess.DEVNULL,
            env=build_env(invocation, base_env),
        )
    except OSError as e:
        log.warning("Failed to start CLI", executable=invocation.executable, error=str(e))
        raise SpawnFailureError(invocation.executable, e) from e

    try:
        stdout, stderr = await process.communicate(
            prompt.encode("utf-8") if use_stdin else None
        )
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise

    stderr_text = (stderr or b"").decode("utf-8", errors="replace").strip()
    if process.returncode != 0:
        log.warning(
            "CLI exited with failure status",
            executable=invocation.executable,
            returncode=process.returncode,
            stderr=stderr_text[:_STDERR_PREVIEW_CHARS],
        )
        raise NonZeroExitError(invocation.executable, process.returncode, stderr_text)

    output = sanitize_output(stdout or b"")
    if is_context_overflow(output):
        log.warning("CLI reported context overflow", executable=invocation.executable)
        raise BackendOverflowError(output)

    log.debug("CLI finished", output_chars=len(output))
    return output
