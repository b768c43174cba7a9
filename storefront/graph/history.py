"""Conversion between client-held chat history and LangChain messages."""

import json
from typing import Any, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

from storefront.models.request import ConversationTurn


def turns_to_messages(turns: Sequence[ConversationTurn]) -> list[BaseMessage]:
    """Rebuild the model's working context from the client's history.

    A model turn carrying a ``toolCall`` becomes an ``AIMessage`` with one
    tool call; the user turn carrying its ``toolResult`` becomes the matching
    ``ToolMessage``. Empty turns are dropped.
    """
    messages: list[BaseMessage] = []
    pending_calls: dict[str, str] = {}

    for index, turn in enumerate(turns):
        if turn.role == "model":
            if turn.toolCall is not None:
                call_id = f"history_call_{index}"
                pending_calls[turn.toolCall.name] = call_id
                messages.append(
                    AIMessage(
                        content=turn.text,
                        tool_calls=[
                            {"name": turn.toolCall.name, "args": turn.toolCall.args, "id": call_id}
                        ],
                    )
                )
            elif turn.text:
                messages.append(AIMessage(content=turn.text))
            continue

        if turn.toolResult is not None:
            name = turn.toolResult.name
            call_id = pending_calls.pop(name, None)
            if call_id is None:
                # A result without its call cannot be replayed to the model
                continue
            messages.append(
                ToolMessage(
                    content=json.dumps(turn.toolResult.response, default=str),
                    tool_call_id=call_id,
                    name=name,
                )
            )
        elif turn.text:
            messages.append(HumanMessage(content=turn.text))

    return messages


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of content blocks."""
    content: Any = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)
