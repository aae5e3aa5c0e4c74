"""
Error types for skill execution
"""

from typing import Optional


class SkillError(Exception):
    """Base class for every error raised by the skill engine"""


class ExecutionError(SkillError):
    """Failure of a step run on its own through execute_step()"""

    def __init__(self, message: str):
        super().__init__(f"Execution error: {message}")
        self.message = message


class SkillNotFoundError(SkillError):
    """Raised when a skill or tool reference cannot be resolved"""

    def __init__(self, name: str):
        super().__init__(f"Skill not found: {name}")
        self.name = name


class InvalidConfigError(SkillError):
    """Raised for malformed configuration, skill definitions or substitution failures"""

    def __init__(self, message: str):
        super().__init__(f"Invalid configuration: {message}")
        self.message = message


class StepTimeoutError(SkillError):
    """Raised when a step's last attempt exceeds its timeout"""

    def __init__(self, step: str, duration_s: float, attempts: int = 1):
        super().__init__(f"Step '{step}' timed out after {duration_s:g}s")
        self.step = step
        self.duration_s = duration_s
        self.attempts = attempts


class SkillTimeoutError(SkillError):
    """Raised when the whole skill exceeds skill_timeout_s"""

    def __init__(self, duration_s: float):
        super().__init__(f"Skill timed out after {duration_s:g}s")
        self.duration_s = duration_s


class RetryExhaustedError(SkillError):
    """Raised when a step fails and no further attempt is allowed"""

    def __init__(self, step: str, attempts: int, message: str):
        super().__init__(
            f"Step '{step}' failed after {attempts} attempt(s): {message}"
        )
        self.step = step
        self.attempts = attempts
        self.message = message


def step_attempts(error: SkillError) -> Optional[int]:
    """Number of attempts recorded on a step-level error, if any"""
    return getattr(error, "attempts", None)
