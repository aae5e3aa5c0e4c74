"""
Transport interface - the capability of invoking a named tool.

The engine layers all timeout and retry policy on top of a Transport;
implementations should perform exactly one call per invocation and
report failure by raising.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable

from skillchain.protocol import ToolResult


class ToolNotFound(LookupError):
    """Raised by a transport that has no tool with the requested name"""

    def __init__(self, tool_name: str):
        super().__init__(f"tool not found: {tool_name}")
        self.tool_name = tool_name


class Transport(ABC):
    """
    Abstract tool-call transport.

    A single Transport instance may be shared by concurrent skill runs,
    so call() must not depend on per-run mutable state.
    """

    @abstractmethod
    async def call(self, tool_name: str, arguments: Any) -> ToolResult:
        """
        Invoke a tool.

        Args:
            tool_name: Tool identifier
            arguments: Fully substituted argument tree

        Returns:
            ToolResult reported by the tool

        Raises:
            Exception: Any transport-level failure; its message is used
                for retry classification
        """


class CallableTransport(Transport):
    """
    Adapts a plain function into a Transport.

    The function receives (tool_name, arguments) and may be sync or async.
    A non-ToolResult return value is wrapped as a successful output.
    Sync functions run in the default thread pool so they do not block
    the event loop; a timed-out sync call keeps running in its thread.
    """

    def __init__(self, func: Callable[[str, Any], Any]):
        self.func = func

    async def call(self, tool_name: str, arguments: Any) -> ToolResult:
        if inspect.iscoroutinefunction(self.func):
            value = await self.func(tool_name, arguments)
        else:
            value = await asyncio.to_thread(self.func, tool_name, arguments)
            if inspect.isawaitable(value):
                value = await value

        if isinstance(value, ToolResult):
            return value
        return ToolResult.ok(value)
