"""
Execution lifecycle hooks.

Hooks observe a skill run at skill and step boundaries and on retries,
timeouts and errors. Every method on ExecutionHooks is a no-op, so
subclasses override only the events they care about.

Hooks may be shared by concurrent runs and must not keep per-run state
that another run could clobber.
"""

import logging
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from skillchain.context import ExecutionContext
    from skillchain.errors import SkillError
    from skillchain.protocol import SkillResult, StepResult
    from skillchain.schema import Skill, SkillStep


class ExecutionHooks:
    """Base class for lifecycle observers"""

    def before_skill(self, skill: "Skill", context: "ExecutionContext") -> None:
        """Called once before any step of the skill runs"""

    def after_skill(self, skill: "Skill", result: "SkillResult", context: "ExecutionContext") -> None:
        """
        Called exactly once per run, success or failure.

        When the run ends with an exception, result is a synthesized
        failure result carrying the error text.
        """

    def before_step(self, step: "SkillStep", step_index: int, context: "ExecutionContext") -> None:
        """Called after argument substitution, before the first attempt"""

    def after_step(
        self,
        step: "SkillStep",
        step_index: int,
        result: "StepResult",
        context: "ExecutionContext",
    ) -> None:
        """Called with the step's final result"""

    def on_retry(self, step: "SkillStep", attempt: int, error: str, context: "ExecutionContext") -> None:
        """
        Called before a step is retried.

        attempt is the 1-based number of the attempt that just failed,
        so the first retry reports 1.
        """

    def on_error(self, error: "SkillError", context: "ExecutionContext") -> None:
        """Called for errors that end a step or the skill"""

    def on_timeout(self, step: "SkillStep", duration_ms: int, context: "ExecutionContext") -> None:
        """Called each time a step attempt exceeds its timeout"""


class NoOpHooks(ExecutionHooks):
    """Hooks that ignore every event"""


class LoggingHooks(ExecutionHooks):
    """Reports lifecycle events through the logging module"""

    def __init__(self, logger: Optional[logging.Logger] = None, include_debug: bool = False):
        self.logger = logger or logging.getLogger("skillchain.hooks")
        self.include_debug = include_debug

    def before_skill(self, skill, context):
        self.logger.info(
            f"Starting skill '{skill.name}' "
            f"({len(skill.steps)} steps, {len(context.inputs)} inputs)"
        )
        if self.include_debug:
            self.logger.debug(f"Skill '{skill.name}' inputs: {sorted(context.inputs)}")

    def after_skill(self, skill, result, context):
        if result.success:
            self.logger.info(
                f"Skill '{skill.name}' completed: "
                f"{len(result.step_results)} steps, {len(context.outputs)} outputs"
            )
        else:
            self.logger.warning(
                f"Skill '{skill.name}' failed after {len(result.step_results)} steps: {result.error}"
            )

    def before_step(self, step, step_index, context):
        self.logger.info(f"Starting step {step_index} '{step.name}' (tool: {step.tool})")

    def after_step(self, step, step_index, result, context):
        if result.success:
            self.logger.info(
                f"Step {step_index} '{step.name}' succeeded in {result.duration_ms}ms "
                f"({result.retry_attempts} retries)"
            )
        else:
            self.logger.warning(
                f"Step {step_index} '{step.name}' failed in {result.duration_ms}ms: {result.error}"
            )

    def on_retry(self, step, attempt, error, context):
        self.logger.warning(f"Retrying step '{step.name}' after attempt {attempt}: {error}")

    def on_error(self, error, context):
        self.logger.error(f"Skill execution error: {error}")

    def on_timeout(self, step, duration_ms, context):
        self.logger.warning(f"Step '{step.name}' timed out after {duration_ms}ms")


class CompositeHooks(ExecutionHooks):
    """Fans every event out to a list of hooks, in the order they were added"""

    def __init__(self, *hooks: ExecutionHooks):
        self.hooks: List[ExecutionHooks] = list(hooks)

    def add(self, hooks: ExecutionHooks) -> None:
        self.hooks.append(hooks)

    def with_hooks(self, hooks: ExecutionHooks) -> "CompositeHooks":
        self.add(hooks)
        return self

    def __len__(self) -> int:
        return len(self.hooks)

    def before_skill(self, skill, context):
        for h in self.hooks:
            h.before_skill(skill, context)

    def after_skill(self, skill, result, context):
        for h in self.hooks:
            h.after_skill(skill, result, context)

    def before_step(self, step, step_index, context):
        for h in self.hooks:
            h.before_step(step, step_index, context)

    def after_step(self, step, step_index, result, context):
        for h in self.hooks:
            h.after_step(step, step_index, result, context)

    def on_retry(self, step, attempt, error, context):
        for h in self.hooks:
            h.on_retry(step, attempt, error, context)

    def on_error(self, error, context):
        for h in self.hooks:
            h.on_error(error, context)

    def on_timeout(self, step, duration_ms, context):
        for h in self.hooks:
            h.on_timeout(step, duration_ms, context)
