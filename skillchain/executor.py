"""
Skill Executor - runs a skill's steps in order against a Transport.

For each step the executor:
1. Resolves the effective timeout and retry budget (step override, else config)
2. Substitutes context variables into the step arguments
3. Calls the tool, each attempt bounded by the step timeout and retried
   per the retry policy
4. Records the step result and stores the step output in the context
5. Decides whether to continue, skip past a failure, or stop

The whole step loop is bounded by the skill timeout.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from skillchain.config import ExecutionConfig, RetryConfig, RetryableError, TimeoutAction
from skillchain.context import ExecutionContext
from skillchain.errors import (
    ExecutionError,
    InvalidConfigError,
    RetryExhaustedError,
    SkillError,
    SkillTimeoutError,
    StepTimeoutError,
    step_attempts,
)
from skillchain.hooks import ExecutionHooks, NoOpHooks
from skillchain.protocol import SkillResult, StepResult, ToolResult
from skillchain.registry import SkillRegistry
from skillchain.retry import calculate_delay, is_error_retryable
from skillchain.schema import Skill, SkillStep
from skillchain.substitution import substitute_variables
from skillchain.timeout import OperationTimeout, with_timeout
from skillchain.transport import Transport

logger = logging.getLogger(__name__)


class SkillExecutor(ABC):
    """Interface for skill execution strategies"""

    @abstractmethod
    async def execute(self, skill: Skill, context: ExecutionContext) -> SkillResult:
        """
        Execute all steps of a skill in declared order.

        Args:
            skill: Skill to execute
            context: Inputs and configuration; receives step outputs

        Returns:
            SkillResult, possibly with success=False

        Raises:
            SkillError: When the configured failure policy aborts the run
        """

    @abstractmethod
    async def execute_step(self, step: SkillStep, context: ExecutionContext) -> StepResult:
        """
        Execute a single step.

        Raises:
            ExecutionError: If the step fails; the step's terminal error
                (StepTimeoutError or RetryExhaustedError) is its __cause__
        """


@dataclass
class _StepOutcome:
    result: StepResult
    tool_result: Optional[ToolResult] = None
    error: Optional[SkillError] = None


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class DefaultSkillExecutor(SkillExecutor):
    """
    Executes skills by issuing tool calls through a Transport.

    Holds only references to the transport, hooks and optional registry,
    so one instance can serve concurrent runs as long as each run uses
    its own ExecutionContext.
    """

    def __init__(
        self,
        transport: Transport,
        hooks: Optional[ExecutionHooks] = None,
        registry: Optional[SkillRegistry] = None,
    ):
        """
        Initialize executor.

        Args:
            transport: Tool-call transport
            hooks: Lifecycle hooks (default: NoOpHooks)
            registry: Skill registry used by execute_by_name
        """
        self.transport = transport
        self.hooks = hooks if hooks is not None else NoOpHooks()
        self.registry = registry

    def prepare_arguments(self, step: SkillStep, context: ExecutionContext):
        """Step arguments with context variables substituted"""
        return substitute_variables(step.arguments, context.variables())

    async def _call_with_retry(
        self,
        step: SkillStep,
        arguments,
        timeout_s: float,
        retry_config: RetryConfig,
        context: ExecutionContext,
    ) -> Tuple[ToolResult, int]:
        """
        Call the step's tool until it succeeds or no attempt is left.

        Returns:
            (tool_result, retries made)

        Raises:
            StepTimeoutError: If the final attempt timed out
            RetryExhaustedError: If the final attempt failed
        """
        attempt = 0

        while True:
            attempt += 1
            try:
                tool_result = await with_timeout(
                    timeout_s,
                    f"step '{step.name}'",
                    self.transport.call(step.tool, arguments),
                )
            except OperationTimeout:
                self.hooks.on_timeout(step, int(timeout_s * 1000), context)
                if attempt > retry_config.max_retries or not retry_config.allows(RetryableError.TIMEOUT):
                    raise StepTimeoutError(step.name, timeout_s, attempt) from None
                error_text = "timeout"
            except Exception as e:
                error_text = str(e) or type(e).__name__
                if attempt > retry_config.max_retries or not is_error_retryable(error_text, retry_config):
                    raise RetryExhaustedError(step.name, attempt, error_text) from e
            else:
                if tool_result.success:
                    return tool_result, attempt - 1
                # A tool-reported failure is classified like a transport error
                error_text = tool_result.error or f"tool '{step.tool}' reported failure"
                if attempt > retry_config.max_retries or not is_error_retryable(error_text, retry_config):
                    raise RetryExhaustedError(step.name, attempt, error_text)

            self.hooks.on_retry(step, attempt, error_text, context)
            delay = calculate_delay(retry_config, attempt)
            logger.warning(
                f"Retrying step '{step.name}' after error "
                f"(attempt {attempt}/{retry_config.max_retries + 1}, delay {delay:.3f}s): {error_text}"
            )
            await asyncio.sleep(delay)

    async def _run_step(
        self,
        step: SkillStep,
        step_index: int,
        context: ExecutionContext,
        config: ExecutionConfig,
    ) -> _StepOutcome:
        """
        Run one step and fire its hooks.

        Step failures are returned in the outcome; only argument
        substitution errors are raised.
        """
        timeout_s = step.timeout_s if step.timeout_s is not None else config.timeout.step_timeout_s
        retry_config = config.retry.with_max_retries(step.max_retries)

        arguments = self.prepare_arguments(step, context)

        self.hooks.before_step(step, step_index, context)
        logger.debug(f"Calling tool '{step.tool}' for step '{step.name}' (timeout {timeout_s:g}s)")

        start = time.monotonic()
        try:
            tool_result, retries = await self._call_with_retry(
                step, arguments, timeout_s, retry_config, context
            )
        except (StepTimeoutError, RetryExhaustedError) as e:
            attempts = step_attempts(e) or 1
            result = StepResult.failure_result(
                step.name, str(e), _elapsed_ms(start), retry_attempts=attempts - 1
            )
            self.hooks.after_step(step, step_index, result, context)
            self.hooks.on_error(e, context)
            return _StepOutcome(result=result, error=e)

        duration_ms = _elapsed_ms(start)
        if tool_result.duration_ms is None:
            tool_result = replace(tool_result, duration_ms=duration_ms)

        context.set_output(step.name, tool_result.output)

        result = StepResult.success_result(
            step.name, tool_result.output, duration_ms, retry_attempts=retries
        )
        self.hooks.after_step(step, step_index, result, context)
        return _StepOutcome(result=result, tool_result=tool_result)

    async def _execute_steps(
        self,
        skill: Skill,
        context: ExecutionContext,
        config: ExecutionConfig,
        step_results: List[Tuple[str, ToolResult]],
    ) -> SkillResult:
        """
        Run every step in order, appending to step_results as steps finish.

        step_results is owned by the caller so completed steps survive
        a skill-level timeout.
        """
        output = None
        last_index = len(skill.steps) - 1

        for index, step in enumerate(skill.steps):
            try:
                outcome = await self._run_step(step, index, context, config)
            except InvalidConfigError as e:
                self.hooks.on_error(e, context)
                raise

            if outcome.error is None:
                step_results.append((step.name, outcome.tool_result))
                if index == last_index:
                    output = outcome.tool_result.output
                continue

            error = outcome.error
            failed = ToolResult.failure(str(error), duration_ms=outcome.result.duration_ms)

            if step.continue_on_error:
                logger.warning(f"Step '{step.name}' failed, continuing (continue_on_error): {error}")
                step_results.append((step.name, failed))
                continue

            action = config.timeout.timeout_action
            if action == TimeoutAction.SKIP:
                logger.warning(f"Step '{step.name}' failed, skipping: {error}")
                step_results.append((step.name, failed))
            elif action == TimeoutAction.PARTIAL:
                logger.warning(f"Step '{step.name}' failed, returning partial results: {error}")
                return SkillResult.failed(str(error), step_results)
            else:
                raise error

        return SkillResult(success=True, step_results=list(step_results), output=output)

    async def _run_skill(
        self,
        skill: Skill,
        context: ExecutionContext,
        step_results: List[Tuple[str, ToolResult]],
    ) -> SkillResult:
        config = context.config
        skill_timeout_s = config.timeout.skill_timeout_s

        try:
            skill.validate()
        except InvalidConfigError as e:
            self.hooks.on_error(e, context)
            raise

        try:
            return await with_timeout(
                skill_timeout_s,
                f"skill '{skill.name}'",
                self._execute_steps(skill, context, config, step_results),
            )
        except OperationTimeout:
            if config.timeout.timeout_action == TimeoutAction.FAIL:
                error = SkillTimeoutError(skill_timeout_s)
                self.hooks.on_error(error, context)
                raise error from None

            logger.warning(
                f"Skill '{skill.name}' timed out after {skill_timeout_s:g}s "
                f"with {len(step_results)} completed steps"
            )
            return SkillResult.failed(
                f"Skill timed out after {skill_timeout_s:g}s", step_results
            )

    async def execute(self, skill: Skill, context: ExecutionContext) -> SkillResult:
        self.hooks.before_skill(skill, context)
        logger.info(f"Executing skill: {skill.name} ({len(skill.steps)} steps)")

        step_results: List[Tuple[str, ToolResult]] = []
        try:
            result = await self._run_skill(skill, context, step_results)
        except (Exception, asyncio.CancelledError) as e:
            error = str(e) or type(e).__name__
            logger.error(f"Skill {skill.name} failed: {error}")
            self.hooks.after_skill(skill, SkillResult.failed(error, step_results), context)
            raise

        logger.info(f"Skill {skill.name} completed: success={result.success}")
        self.hooks.after_skill(skill, result, context)
        return result

    async def execute_step(
        self,
        step: SkillStep,
        context: ExecutionContext,
        step_index: int = 0,
    ) -> StepResult:
        try:
            outcome = await self._run_step(step, step_index, context, context.config)
        except InvalidConfigError as e:
            self.hooks.on_error(e, context)
            raise

        if outcome.error is not None:
            raise ExecutionError(outcome.result.error or str(outcome.error)) from outcome.error
        return outcome.result

    async def execute_by_name(self, skill_name: str, context: ExecutionContext) -> SkillResult:
        """
        Look up a skill in the registry and execute it.

        Raises:
            SkillNotFoundError: If the registry has no such skill
            InvalidConfigError: If the executor was built without a registry
        """
        if self.registry is None:
            raise InvalidConfigError("executor has no skill registry")
        skill = self.registry.require(skill_name)
        return await self.execute(skill, context)
