"""LangGraph workflow package.

Contains the graph state definition, node functions, and the bounded
tool-calling agent loop used by the store assistant.

Exports:
    AgentState        - TypedDict state for the LangGraph workflow
    AgentLoop         - converse(user_message, prior_turns) -> final text
    build_agent_graph - compile the StateGraph from a model + tool registry
    AgentError, UnknownToolError, MalformedToolCallError,
    RoundLimitExceededError - fatal loop errors
"""

from storefront.graph.builder import AgentLoop, build_agent_graph
from storefront.graph.errors import (
    AgentError,
    MalformedToolCallError,
    RoundLimitExceededError,
    UnknownToolError,
)
from storefront.graph.state import AgentState

__all__ = [
    "AgentState",
    "AgentLoop",
    "build_agent_graph",
    "AgentError",
    "UnknownToolError",
    "MalformedToolCallError",
    "RoundLimitExceededError",
]
