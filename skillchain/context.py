"""
Execution context - state carried through a skill run.

Holds the caller's inputs, the outputs of completed steps (keyed by step
name), the execution configuration and free-form metadata. Later steps
reference earlier outputs through variables().
"""

from typing import Any, Dict, Mapping, Optional

from skillchain.config import ExecutionConfig


class ExecutionContext:
    """
    Mutable state for one skill run.

    A context has a single writer: only one execute() call may use it at a time.
    """

    def __init__(
        self,
        inputs: Optional[Mapping[str, Any]] = None,
        config: Optional[ExecutionConfig] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        self._inputs: Dict[str, Any] = dict(inputs or {})
        self._outputs: Dict[str, Any] = {}
        self._config: ExecutionConfig = config or ExecutionConfig()
        self._metadata: Dict[str, Any] = dict(metadata or {})

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, Any]) -> "ExecutionContext":
        return cls(inputs=inputs)

    def with_input(self, key: str, value: Any) -> "ExecutionContext":
        self._inputs[key] = value
        return self

    def with_config(self, config: ExecutionConfig) -> "ExecutionContext":
        self._config = config
        return self

    def with_metadata(self, key: str, value: Any) -> "ExecutionContext":
        self._metadata[key] = value
        return self

    def get_input(self, key: str, default: Any = None) -> Any:
        return self._inputs.get(key, default)

    def set_input(self, key: str, value: Any) -> None:
        self._inputs[key] = value

    @property
    def inputs(self) -> Dict[str, Any]:
        return self._inputs

    def get_output(self, step_name: str, default: Any = None) -> Any:
        return self._outputs.get(step_name, default)

    def has_output(self, step_name: str) -> bool:
        return step_name in self._outputs

    def set_output(self, step_name: str, value: Any) -> None:
        """Record a step's output; a second write for the same step replaces the first"""
        self._outputs[step_name] = value

    @property
    def outputs(self) -> Dict[str, Any]:
        return self._outputs

    def clear_outputs(self) -> None:
        """Forget all step outputs, e.g. before re-running a skill"""
        self._outputs.clear()

    @property
    def config(self) -> ExecutionConfig:
        return self._config

    @config.setter
    def config(self, config: ExecutionConfig) -> None:
        self._config = config

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self._metadata.get(key, default)

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    @property
    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    def variables(self) -> Dict[str, Any]:
        """Inputs merged with outputs; outputs win on a shared key"""
        merged = dict(self._inputs)
        merged.update(self._outputs)
        return merged

    def __repr__(self) -> str:
        return (
            f"<ExecutionContext inputs={sorted(self._inputs)} "
            f"outputs={sorted(self._outputs)} metadata={sorted(self._metadata)}>"
        )
