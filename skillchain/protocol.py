"""
Result types exchanged between the executor, transports and callers.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple


@dataclass
class ToolResult:
    """
    Outcome of a single tool call as reported by a Transport.
    """
    success: bool
    output: Any = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    @classmethod
    def ok(cls, output: Any = None, duration_ms: Optional[int] = None) -> "ToolResult":
        return cls(success=True, output=output, duration_ms=duration_ms)

    @classmethod
    def failure(cls, error: str, duration_ms: Optional[int] = None) -> "ToolResult":
        return cls(success=False, error=error, duration_ms=duration_ms)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success}
        if self.output is not None:
            d["output"] = self.output
        if self.error is not None:
            d["error"] = self.error
        if self.duration_ms is not None:
            d["duration_ms"] = self.duration_ms
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolResult":
        return cls(
            success=bool(data["success"]),
            output=data.get("output"),
            error=data.get("error"),
            duration_ms=data.get("duration_ms"),
        )


@dataclass(frozen=True)
class StepResult:
    """
    Result of executing one step, built once after the step's last attempt.
    """
    step_name: str
    success: bool
    output: Any = None
    error: Optional[str] = None
    duration_ms: int = 0
    # Retries made beyond the first attempt
    retry_attempts: int = 0

    @classmethod
    def success_result(
        cls,
        step_name: str,
        output: Any,
        duration_ms: int,
        retry_attempts: int = 0,
    ) -> "StepResult":
        return cls(
            step_name=step_name,
            success=True,
            output=output,
            duration_ms=duration_ms,
            retry_attempts=retry_attempts,
        )

    @classmethod
    def failure_result(
        cls,
        step_name: str,
        error: str,
        duration_ms: int,
        retry_attempts: int = 0,
    ) -> "StepResult":
        return cls(
            step_name=step_name,
            success=False,
            error=error,
            duration_ms=duration_ms,
            retry_attempts=retry_attempts,
        )

    def to_tool_result(self) -> ToolResult:
        if self.success:
            return ToolResult.ok(self.output, duration_ms=self.duration_ms)
        return ToolResult.failure(self.error or "", duration_ms=self.duration_ms)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SkillResult:
    """
    Terminal value of one skill execution.

    step_results keeps declaration order; failed steps that were skipped
    over appear with a failed ToolResult.
    """
    success: bool
    step_results: List[Tuple[str, ToolResult]] = field(default_factory=list)
    output: Any = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str, step_results: Optional[List[Tuple[str, ToolResult]]] = None) -> "SkillResult":
        return cls(success=False, step_results=list(step_results or []), error=error)

    def get_step(self, step_name: str) -> Optional[ToolResult]:
        for name, result in self.step_results:
            if name == step_name:
                return result
        return None

    @property
    def failed_steps(self) -> List[str]:
        return [name for name, result in self.step_results if not result.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "step_results": [
                {"step_name": name, **result.to_dict()} for name, result in self.step_results
            ],
            "output": self.output,
            "error": self.error,
        }
