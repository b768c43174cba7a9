"""Errors that end an agent conversation.

All of them indicate a broken contract between the model and the declared tools,
not a transient condition, so they are never retried.
"""


class AgentError(Exception):
    """Base class for fatal agent-loop failures."""


class UnknownToolError(AgentError, LookupError):
    """The model asked for a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class MalformedToolCallError(AgentError):
    """The model emitted a tool call whose arguments could not be parsed."""

    def __init__(self, name: str, detail: str = "") -> None:
        message = f"Malformed call to tool: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.name = name


class RoundLimitExceededError(AgentError):
    """The model kept calling tools past the allowed number of rounds."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(f"Agent exceeded {max_rounds} model rounds without a final answer")
        self.max_rounds = max_rounds
