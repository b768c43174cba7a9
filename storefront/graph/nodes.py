"""LangGraph node functions for the store assistant agent loop.

Nodes:
    agent_node     - Calls the tool-bound model with the system prompt and history.
    tool_node      - Executes the model's (first) tool call via the registry.
    should_continue - Conditional edge: routes to 'tools' or ends the loop.
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from langchain_core.messages import AIMessage, SystemMessage, ToolMessage
from langgraph.graph import END

from storefront.graph.errors import MalformedToolCallError, RoundLimitExceededError
from storefront.graph.state import AgentState

if TYPE_CHECKING:
    from storefront.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


async def agent_node(
    state: AgentState,
    llm_with_tools: Any,
    system_prompt: str,
    max_rounds: int,
) -> dict:
    """Run one model round.

    Raises:
        RoundLimitExceededError: if ``max_rounds`` model calls were already
            made in this conversation turn.
        MalformedToolCallError: if the model tried to call a tool but none
            of its calls could be parsed.
    """
    rounds = state.get("rounds", 0)
    if rounds >= max_rounds:
        logger.error("Agent loop stopped after %d rounds without a final answer", rounds)
        raise RoundLimitExceededError(max_rounds)

    messages = [SystemMessage(content=system_prompt), *state["messages"]]
    response = await llm_with_tools.ainvoke(messages)

    tool_calls = getattr(response, "tool_calls", None) or []
    invalid_calls = getattr(response, "invalid_tool_calls", None) or []
    if not tool_calls and invalid_calls:
        bad = invalid_calls[0]
        logger.warning("Model emitted %d unparseable tool call(s): %s", len(invalid_calls), bad)
        raise MalformedToolCallError(bad.get("name") or "unknown", bad.get("error") or "")

    if len(tool_calls) > 1:
        # Only one tool call per round is supported
        logger.warning(
            "Model requested %d tool calls in one round; keeping %s, dropping %s",
            len(tool_calls),
            tool_calls[0].get("name"),
            [tc.get("name") for tc in tool_calls[1:]],
        )
        response = response.model_copy(update={"tool_calls": tool_calls[:1]})

    logger.debug("Agent round %d complete (tool call: %s)", rounds + 1, bool(tool_calls))
    return {"messages": [response], "rounds": rounds + 1}


async def tool_node(state: AgentState, registry: "ToolRegistry") -> dict:
    """Execute the pending tool call and feed its result back to the model.

    Unknown tool names raise ``UnknownToolError`` out of the graph.
    """
    last_message = state["messages"][-1]
    call = last_message.tool_calls[0]
    name = call.get("name", "")
    args = call.get("args") or {}

    result = await registry.execute(name, args)

    return {
        "messages": [
            ToolMessage(
                content=json.dumps({"result": result}, default=str),
                tool_call_id=call.get("id") or f"call_{state.get('rounds', 0)}",
                name=name,
            )
        ]
    }


def should_continue(state: AgentState) -> str:
    """Route to the tool executor while the model keeps asking for tools.

    Returns:
        ``"tools"`` if the last AI message contains a tool call, else ``END``.
    """
    last_message = state["messages"][-1]
    if isinstance(last_message, AIMessage) and last_message.tool_calls:
        return "tools"
    return END
