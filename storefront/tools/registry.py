"""Name → tool mapping consulted by the agent loop."""

import logging
from typing import Any, Iterable

from langchain_core.tools import BaseTool

from storefront.graph.errors import UnknownToolError

logger = logging.getLogger(__name__)


class ToolRegistry:
    """The tools declared to the model, and the only ones it may run."""

    def __init__(self, tools: Iterable[BaseTool]) -> None:
        self._tools: dict[str, BaseTool] = {}
        for t in tools:
            if t.name in self._tools:
                raise ValueError(f"Duplicate tool name: {t.name}")
            self._tools[t.name] = t

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> BaseTool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    async def execute(self, name: str, args: dict[str, Any]) -> Any:
        """Run a tool by name. Unknown names raise :class:`UnknownToolError`."""
        selected = self.get(name)
        logger.info("Executing tool: %s", name)
        return await selected.ainvoke(args or {})
