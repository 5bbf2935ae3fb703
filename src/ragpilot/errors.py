"""Exception types raised by ragpilot.

Per-item failures (a file that cannot be embedded, a tool call that fails)
are isolated by their callers and never reach the top level as exceptions;
everything here is fatal to the operation that raised it.
"""


class RagPilotError(Exception):
    """Base class for all ragpilot errors."""


class NotInitializedError(RagPilotError):
    """The embedding provider or index store is unavailable."""


class ChunkingConfigError(RagPilotError, ValueError):
    """Chunk window parameters would produce degenerate stepping."""


class ModelUnavailableError(RagPilotError):
    """No chat model matched the selection criteria."""


class ModelRequestError(RagPilotError):
    """The chat model interface reported a structured failure."""

    def __init__(self, message: str, code: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code: {self.code})"
        return self.message


class ToolInvocationError(RagPilotError):
    """A single tool call could not be completed."""

    def __init__(self, name: str, call_id: str | None, message: str):
        super().__init__(f"Tool '{name}' failed: {message}")
        self.name = name
        self.call_id = call_id


class RepoFetchError(RagPilotError):
    """An external repository could not be parsed, cloned, updated or removed."""
