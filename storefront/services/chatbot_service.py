"""Store assistant chat service.

Flow per request:
  1. AgentLoop - tool-bound chat model, may call ``search_products``
  2. format_response - compile the final markdown for the chat widget
"""

import logging
from typing import Sequence

from langchain_ollama import ChatOllama

from storefront.config import Settings
from storefront.database.supabase import SupabaseClient
from storefront.graph import AgentLoop
from storefront.models.request import ChatResponse, ConversationTurn
from storefront.services.response_formatter import format_response
from storefront.tools import ToolRegistry, create_search_products_tool
from storefront.utils.helpers import truncate_text

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are the "Store Assistant".
- You are helpful, polite, and concise.
- You have access to a tool called "search_products". Use it to look up real products
  instead of guessing; never invent products, prices or categories.
- DO NOT use Markdown tables. They break the chat UI.
- When summarizing products, use a conversational list format like this:

  **Product Name** - $Price
  _Short description or key details._

- Keep responses short and easy to read on mobile."""


class ChatbotService:
    """Runs the agent loop and formats its answer for the chat widget."""

    def __init__(self, agent: AgentLoop) -> None:
        self.agent = agent

    @classmethod
    def from_settings(cls, settings: Settings, supabase: SupabaseClient) -> "ChatbotService":
        """Build the model, tool registry and agent loop for this process."""
        llm = ChatOllama(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            temperature=settings.ollama_temperature,
        )
        registry = ToolRegistry(
            [create_search_products_tool(supabase, limit=settings.search_result_limit)]
        )
        agent = AgentLoop(
            llm_with_tools=llm.bind_tools(registry.tools),
            registry=registry,
            system_prompt=SYSTEM_PROMPT,
            max_rounds=settings.agent_max_rounds,
        )
        return cls(agent)

    async def reply(self, message: str, history: Sequence[ConversationTurn] = ()) -> ChatResponse:
        """Answer one user message. Agent and model errors propagate."""
        logger.info(
            "Chat message received (%d prior turn(s)): %s",
            len(history),
            truncate_text(message, 80),
        )
        text = await self.agent.converse(message, history)
        return ChatResponse(content=text, renderable=format_response(text))
