"""Custom exceptions for kiro-bridge."""


class KiroBridgeError(Exception):
    """Base exception for kiro-bridge."""

    pass


class ConfigurationError(KiroBridgeError):
    """Configuration-related errors."""

    pass


class LLMError(KiroBridgeError):
    """LLM-related errors."""

    pass


class ProcessError(LLMError):
    """A single CLI invocation failed."""

    pass


class SpawnFailureError(ProcessError):
    """The CLI executable could not be started."""

    def __init__(self, executable: str, os_error: OSError):
        super().__init__(f"Failed to start '{executable}': {os_error}")
        self.executable = executable
        self.os_error = os_error


class NonZeroExitError(ProcessError):
    """The CLI ran and exited with a failure status."""

    def __init__(self, executable: str, returncode: int, stderr: str = ""):
        message = f"'{executable}' exited with status {returncode}"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)
        self.executable = executable
        self.returncode = returncode
        self.stderr = stderr


class BackendOverflowError(ProcessError):
    """The CLI exited cleanly but reported that its context window overflowed."""

    def __init__(self, output: str):
        super().__init__("Backend reported a context window overflow")
        self.output = output
