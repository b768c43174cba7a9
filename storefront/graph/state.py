"""LangGraph agent state definition for the store assistant."""

from typing import Annotated, TypedDict

from langgraph.graph.message import add_messages


class AgentState(TypedDict):
    """LangGraph state container for one conversation turn.

    ``messages`` is managed by the ``add_messages`` reducer: every node that
    returns ``{"messages": [...]}`` has those messages appended.
    ``rounds`` counts model calls made so far.
    """

    messages: Annotated[list, add_messages]
    rounds: int
