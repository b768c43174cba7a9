"""LangGraph StateGraph builder for the store assistant agent loop.

Wires agent_node -> (should_continue?) -> tool_node -> agent_node ... -> END.

Unlike per-user tool closures, the catalog search tool is shared by every
request, so the graph is compiled once at startup and reused.
"""

import logging
from functools import partial
from typing import TYPE_CHECKING, Any, Sequence

from langchain_core.messages import HumanMessage
from langgraph.graph import END, StateGraph

from storefront.graph.history import message_text, turns_to_messages
from storefront.graph.nodes import agent_node, should_continue, tool_node
from storefront.graph.state import AgentState
from storefront.models.request import ConversationTurn

if TYPE_CHECKING:
    from storefront.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 6


def build_agent_graph(
    llm_with_tools: Any,
    registry: "ToolRegistry",
    system_prompt: str,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
):
    """Build and compile the LangGraph StateGraph for the agent loop.

    Args:
        llm_with_tools: Chat model already bound to ``registry.tools``.
        registry: Tools the model may call.
        system_prompt: Persona and formatting rules sent on every round.
        max_rounds: Maximum model calls per user message.

    Returns:
        A compiled graph ready for ``.ainvoke()``.
    """
    workflow = StateGraph(AgentState)

    workflow.add_node(
        "agent",
        partial(
            agent_node,
            llm_with_tools=llm_with_tools,
            system_prompt=system_prompt,
            max_rounds=max_rounds,
        ),
    )
    workflow.add_node("tools", partial(tool_node, registry=registry))

    workflow.set_entry_point("agent")
    workflow.add_conditional_edges("agent", should_continue, {"tools": "tools", END: END})
    workflow.add_edge("tools", "agent")

    compiled = workflow.compile()
    logger.info(
        "Agent graph compiled with %d tool(s): %s (max %d rounds)",
        len(registry.names),
        registry.names,
        max_rounds,
    )
    return compiled


class AgentLoop:
    """Bounded tool-calling conversation with a chat model."""

    def __init__(
        self,
        llm_with_tools: Any,
        registry: "ToolRegistry",
        system_prompt: str,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        self.registry = registry
        self.max_rounds = max_rounds
        self.graph = build_agent_graph(llm_with_tools, registry, system_prompt, max_rounds)

    async def converse(self, user_message: str, prior_turns: Sequence[ConversationTurn] = ()) -> str:
        """Answer ``user_message`` given the earlier turns of the conversation.

        Raises:
            UnknownToolError: the model called an undeclared tool.
            RoundLimitExceededError: the model did not settle on an answer.
            Exception: model endpoint failures propagate unchanged.
        """
        messages = turns_to_messages(prior_turns)
        messages.append(HumanMessage(content=user_message))

        result = await self.graph.ainvoke(
            {"messages": messages, "rounds": 0},
            # Each round is at most two graph steps; keep LangGraph's own
            # limit above ours so RoundLimitExceededError is what surfaces.
            config={"recursion_limit": 2 * self.max_rounds + 4},
        )

        final_message = result["messages"][-1]
        logger.info("Agent finished after %d round(s)", result.get("rounds", 0))
        return message_text(final_message).strip()
