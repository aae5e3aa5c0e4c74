"""
Pseudo transport for local testing without real tools
"""

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from skillchain.protocol import ToolResult
from skillchain.transport import ToolNotFound, Transport


@dataclass
class CallRecord:
    """A call received by the pseudo transport"""
    tool_name: str
    arguments: Any


# A scripted outcome: a ToolResult to return or an exception to raise
Outcome = Union[ToolResult, BaseException]


class PseudoTransport(Transport):
    """
    Pseudo transport - answers tool calls from an in-memory script.

    Each tool has a list of outcomes consumed one per call; the last
    outcome repeats once the list is exhausted. Optional per-tool delays
    simulate slow tools.
    """

    def __init__(self):
        self.scripts: Dict[str, List[Outcome]] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[CallRecord] = []
        self._positions: Dict[str, int] = {}

    def script(self, tool_name: str, outcomes: List[Outcome]) -> "PseudoTransport":
        """Set the outcome sequence for a tool"""
        if not outcomes:
            raise ValueError(f"script for '{tool_name}' needs at least one outcome")
        self.scripts[tool_name] = list(outcomes)
        self._positions[tool_name] = 0
        return self

    def respond(self, tool_name: str, output: Any = None) -> "PseudoTransport":
        """Make a tool always succeed with the given output"""
        return self.script(tool_name, [ToolResult.ok(output)])

    def fail(self, tool_name: str, error: Union[str, BaseException]) -> "PseudoTransport":
        """Make a tool always raise (a string becomes a RuntimeError)"""
        if isinstance(error, str):
            error = RuntimeError(error)
        return self.script(tool_name, [error])

    def delay(self, tool_name: str, seconds: float) -> "PseudoTransport":
        """Sleep before answering calls to a tool"""
        self.delays[tool_name] = seconds
        return self

    def calls_to(self, tool_name: str) -> List[CallRecord]:
        return [c for c in self.calls if c.tool_name == tool_name]

    def _next_outcome(self, tool_name: str) -> Optional[Outcome]:
        outcomes = self.scripts.get(tool_name)
        if outcomes is None:
            return None
        position = self._positions[tool_name]
        self._positions[tool_name] = position + 1
        return outcomes[min(position, len(outcomes) - 1)]

    async def call(self, tool_name: str, arguments: Any) -> ToolResult:
        self.calls.append(CallRecord(tool_name=tool_name, arguments=copy.deepcopy(arguments)))

        outcome = self._next_outcome(tool_name)

        seconds = self.delays.get(tool_name)
        if seconds:
            await asyncio.sleep(seconds)

        if outcome is None:
            raise ToolNotFound(tool_name)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
