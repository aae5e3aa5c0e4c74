"""
Skill schema definitions
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from skillchain.errors import InvalidConfigError


@dataclass
class SkillStep:
    """Single tool invocation in a skill"""
    name: str
    tool: str
    # May contain {{name}} placeholders resolved against the execution context
    arguments: Any = field(default_factory=dict)
    continue_on_error: bool = False
    timeout_s: Optional[float] = None
    max_retries: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "name": self.name,
            "tool": self.tool,
            "arguments": self.arguments,
            "continue_on_error": self.continue_on_error,
        }
        if self.timeout_s is not None:
            d["timeout_s"] = self.timeout_s
        if self.max_retries is not None:
            d["max_retries"] = self.max_retries
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillStep":
        if not isinstance(data, dict):
            raise InvalidConfigError(f"step must be a mapping, got {type(data).__name__}")
        if "name" not in data or "tool" not in data:
            raise InvalidConfigError(f"step requires 'name' and 'tool': {data}")

        timeout_s = data.get("timeout_s")
        max_retries = data.get("max_retries")
        try:
            return cls(
                name=str(data["name"]),
                tool=str(data["tool"]),
                arguments=data.get("arguments", {}),
                continue_on_error=bool(data.get("continue_on_error", False)),
                timeout_s=float(timeout_s) if timeout_s is not None else None,
                max_retries=int(max_retries) if max_retries is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"step '{data.get('name')}': {e}") from e


@dataclass
class Skill:
    """Skill definition - an ordered sequence of tool calls"""
    name: str
    description: str = ""
    inputs: List[str] = field(default_factory=list)
    steps: List[SkillStep] = field(default_factory=list)

    def with_input(self, name: str) -> "Skill":
        self.inputs.append(name)
        return self

    def with_step(self, step: SkillStep) -> "Skill":
        self.steps.append(step)
        return self

    def get_step(self, name: str) -> Optional[SkillStep]:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def validate(self) -> None:
        """
        Check structural invariants.

        Step names are the keys of step outputs in the execution context,
        so they must be non-empty and unique within the skill.

        Raises:
            InvalidConfigError: On the first violated invariant
        """
        if not self.name:
            raise InvalidConfigError("skill name must not be empty")

        seen = set()
        for index, step in enumerate(self.steps):
            if not step.name:
                raise InvalidConfigError(f"skill '{self.name}': step {index} has an empty name")
            if not step.tool:
                raise InvalidConfigError(f"skill '{self.name}': step '{step.name}' has no tool")
            if step.name in seen:
                raise InvalidConfigError(f"skill '{self.name}': duplicate step name '{step.name}'")
            if step.timeout_s is not None and step.timeout_s <= 0:
                raise InvalidConfigError(f"skill '{self.name}': step '{step.name}' timeout_s must be positive")
            if step.max_retries is not None and step.max_retries < 0:
                raise InvalidConfigError(f"skill '{self.name}': step '{step.name}' max_retries must be >= 0")
            seen.add(step.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputs": list(self.inputs),
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Skill":
        if not isinstance(data, dict):
            raise InvalidConfigError(f"skill must be a mapping, got {type(data).__name__}")
        if not data.get("name"):
            raise InvalidConfigError("skill requires a 'name'")

        inputs = data.get("inputs") or []
        steps = data.get("steps") or []
        if not isinstance(inputs, list) or not isinstance(steps, list):
            raise InvalidConfigError(f"skill '{data['name']}': 'inputs' and 'steps' must be lists")

        return cls(
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            inputs=[str(i) for i in inputs],
            steps=[SkillStep.from_dict(s) for s in steps],
        )
