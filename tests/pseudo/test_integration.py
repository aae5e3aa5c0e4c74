"""
L1.5: Pseudo integration tests - DefaultSkillExecutor against PseudoTransport
"""

import asyncio
import logging

import pytest

from skillchain.adapters import PseudoTransport
from skillchain.config import (
    BackoffStrategy,
    ExecutionConfig,
    RetryConfig,
    RetryableError,
    TimeoutAction,
    TimeoutConfig,
)
from skillchain.context import ExecutionContext
from skillchain.errors import (
    ExecutionError,
    InvalidConfigError,
    RetryExhaustedError,
    SkillNotFoundError,
    SkillTimeoutError,
    StepTimeoutError,
)
from skillchain.executor import DefaultSkillExecutor
from skillchain.hooks import CompositeHooks, ExecutionHooks, LoggingHooks
from skillchain.protocol import ToolResult
from skillchain.registry import SkillRegistry
from skillchain.schema import Skill, SkillStep


def fast_config(
    max_retries=0,
    step_timeout_s=5.0,
    skill_timeout_s=10.0,
    action=TimeoutAction.FAIL,
    retryable_errors=None,
):
    """Config with tiny delays so retries do not slow the suite down"""
    retry = RetryConfig(
        max_retries=max_retries,
        initial_delay_s=0.001,
        max_delay_s=0.005,
        backoff=BackoffStrategy.FIXED,
    )
    if retryable_errors is not None:
        retry.retryable_errors = retryable_errors
    return ExecutionConfig(
        timeout=TimeoutConfig(
            skill_timeout_s=skill_timeout_s,
            step_timeout_s=step_timeout_s,
            timeout_action=action,
        ),
        retry=retry,
    )


class RecordingHooks(ExecutionHooks):
    """Records every lifecycle event in order"""

    def __init__(self):
        self.events = []
        self.skill_results = []
        self.step_results = []
        self.errors = []

    def before_skill(self, skill, context):
        self.events.append("before_skill")

    def after_skill(self, skill, result, context):
        self.events.append("after_skill")
        self.skill_results.append(result)

    def before_step(self, step, step_index, context):
        self.events.append(f"before_step:{step.name}")

    def after_step(self, step, step_index, result, context):
        self.events.append(f"after_step:{step.name}")
        self.step_results.append(result)

    def on_retry(self, step, attempt, error, context):
        self.events.append(f"on_retry:{step.name}:{attempt}")

    def on_error(self, error, context):
        self.events.append("on_error")
        self.errors.append(error)

    def on_timeout(self, step, duration_ms, context):
        self.events.append(f"on_timeout:{step.name}:{duration_ms}")


def three_steps():
    return (
        Skill(name="three")
        .with_step(SkillStep(name="a", tool="tool_a"))
        .with_step(SkillStep(name="b", tool="tool_b"))
        .with_step(SkillStep(name="c", tool="tool_c"))
    )


@pytest.mark.asyncio
async def test_step_output_forwarding():
    """A whole placeholder forwards structured output; embedded ones get JSON text"""
    transport = PseudoTransport().respond("producer", {"value": 42}).respond("consumer", "done")
    skill = (
        Skill(name="forward", inputs=["who"])
        .with_step(SkillStep(name="step1", tool="producer", arguments={"user": "{{who}}"}))
        .with_step(SkillStep(
            name="step2",
            tool="consumer",
            arguments={"data": "{{step1}}", "label": "got {{step1}} for {{who}}"},
        ))
    )
    context = ExecutionContext({"who": "ada"}, config=fast_config())

    result = await DefaultSkillExecutor(transport).execute(skill, context)

    assert result.success
    assert result.output == "done"
    assert [name for name, _ in result.step_results] == ["step1", "step2"]
    assert transport.calls[0].arguments == {"user": "ada"}
    assert transport.calls[1].arguments == {
        "data": {"value": 42},
        "label": 'got {"value":42} for ada',
    }
    assert context.get_output("step1") == {"value": 42}
    assert context.get_output("step2") == "done"


@pytest.mark.asyncio
async def test_empty_skill_succeeds():
    """A skill without steps succeeds with no output"""
    hooks = RecordingHooks()
    result = await DefaultSkillExecutor(PseudoTransport(), hooks).execute(
        Skill(name="empty"), ExecutionContext()
    )

    assert result.success
    assert result.output is None
    assert result.step_results == []
    assert hooks.events == ["before_skill", "after_skill"]


@pytest.mark.asyncio
async def test_hook_ordering():
    """Skill hooks wrap step hooks, which fire in step order"""
    transport = PseudoTransport().respond("tool_a", 1).respond("tool_b", 2).respond("tool_c", 3)
    hooks = RecordingHooks()

    result = await DefaultSkillExecutor(transport, hooks).execute(
        three_steps(), ExecutionContext(config=fast_config())
    )

    assert result.success and result.output == 3
    assert hooks.events == [
        "before_skill",
        "before_step:a",
        "after_step:a",
        "before_step:b",
        "after_step:b",
        "before_step:c",
        "after_step:c",
        "after_skill",
    ]
    assert hooks.skill_results == [result]


@pytest.mark.asyncio
async def test_continue_on_error():
    """A failing step marked continue_on_error does not stop the run"""
    transport = PseudoTransport().fail("tool_a", ValueError("bad input")).respond("tool_b", "ok")
    skill = (
        Skill(name="tolerant")
        .with_step(SkillStep(name="a", tool="tool_a", continue_on_error=True))
        .with_step(SkillStep(name="b", tool="tool_b"))
    )
    context = ExecutionContext(config=fast_config(max_retries=3))

    result = await DefaultSkillExecutor(transport).execute(skill, context)

    assert result.success
    assert result.output == "ok"
    assert result.failed_steps == ["a"]
    assert not result.get_step("a").success
    assert "bad input" in result.get_step("a").error
    assert result.get_step("b").output == "ok"
    assert not context.has_output("a")
    # Non-retryable error: one attempt only
    assert len(transport.calls_to("tool_a")) == 1


@pytest.mark.asyncio
async def test_fail_action_propagates_step_error():
    """With the default action a failing step aborts the skill"""
    transport = PseudoTransport().respond("tool_a", 1).fail("tool_b", "invalid argument").respond("tool_c", 3)
    hooks = RecordingHooks()

    with pytest.raises(RetryExhaustedError) as exc_info:
        await DefaultSkillExecutor(transport, hooks).execute(
            three_steps(), ExecutionContext(config=fast_config(max_retries=2))
        )

    assert exc_info.value.step == "b"
    assert exc_info.value.attempts == 1
    assert transport.calls_to("tool_c") == []
    assert hooks.events[-3:] == ["after_step:b", "on_error", "after_skill"]
    synthesized = hooks.skill_results[0]
    assert not synthesized.success
    assert "invalid argument" in synthesized.error
    assert [name for name, _ in synthesized.step_results] == ["a"]


@pytest.mark.asyncio
async def test_partial_action_returns_completed_steps():
    """Partial stops at the failure and returns what completed"""
    transport = PseudoTransport().respond("tool_a", 1).fail("tool_b", "invalid argument").respond("tool_c", 3)
    context = ExecutionContext(config=fast_config(action=TimeoutAction.PARTIAL))

    result = await DefaultSkillExecutor(transport).execute(three_steps(), context)

    assert not result.success
    assert result.output is None
    assert [name for name, _ in result.step_results] == ["a"]
    assert "Step 'b'" in result.error
    assert transport.calls_to("tool_c") == []


@pytest.mark.asyncio
async def test_skip_action_continues_past_failure():
    """Skip records the failure and runs the remaining steps"""
    transport = PseudoTransport().respond("tool_a", 1).fail("tool_b", "invalid argument").respond("tool_c", 3)
    context = ExecutionContext(config=fast_config(action=TimeoutAction.SKIP))

    result = await DefaultSkillExecutor(transport).execute(three_steps(), context)

    assert result.success
    assert result.output == 3
    assert [name for name, _ in result.step_results] == ["a", "b", "c"]
    assert result.failed_steps == ["b"]


@pytest.mark.asyncio
async def test_failed_last_step_leaves_no_output():
    """Only a successful final step provides the skill output"""
    transport = PseudoTransport().respond("tool_a", 1).respond("tool_b", 2).fail("tool_c", "invalid argument")
    context = ExecutionContext(config=fast_config(action=TimeoutAction.SKIP))

    result = await DefaultSkillExecutor(transport).execute(three_steps(), context)

    assert result.success
    assert result.output is None


@pytest.mark.asyncio
async def test_step_timeout_without_retries():
    """A slow tool with no retries ends in StepTimeoutError"""
    transport = PseudoTransport().respond("slow", "late").delay("slow", 0.1)
    skill = Skill(name="slow").with_step(SkillStep(name="wait", tool="slow"))
    hooks = RecordingHooks()
    context = ExecutionContext(config=fast_config(max_retries=0, step_timeout_s=0.01))

    with pytest.raises(StepTimeoutError) as exc_info:
        await DefaultSkillExecutor(transport, hooks).execute(skill, context)

    assert exc_info.value.step == "wait"
    assert exc_info.value.attempts == 1
    assert "on_timeout:wait:10" in hooks.events
    assert hooks.events.count("after_skill") == 1


@pytest.mark.asyncio
async def test_step_timeout_override_wins():
    """A per-step timeout takes precedence over the configured step timeout"""
    transport = PseudoTransport().respond("slow", "late").delay("slow", 0.1)
    skill = Skill(name="slow").with_step(SkillStep(name="wait", tool="slow", timeout_s=1.0))
    context = ExecutionContext(config=fast_config(max_retries=0, step_timeout_s=0.01))

    result = await DefaultSkillExecutor(transport).execute(skill, context)

    assert result.success
    assert result.output == "late"


@pytest.mark.asyncio
async def test_timeouts_are_retried():
    """Timed out attempts are retried while the timeout category is enabled"""
    transport = PseudoTransport().respond("slow", "late").delay("slow", 0.2)
    skill = Skill(name="slow").with_step(SkillStep(name="wait", tool="slow"))
    hooks = RecordingHooks()
    context = ExecutionContext(config=fast_config(max_retries=1, step_timeout_s=0.01))

    with pytest.raises(StepTimeoutError) as exc_info:
        await DefaultSkillExecutor(transport, hooks).execute(skill, context)

    assert exc_info.value.attempts == 2
    assert len(transport.calls) == 2
    assert hooks.events.count("on_timeout:wait:10") == 2
    assert "on_retry:wait:1" in hooks.events
    assert hooks.step_results[0].retry_attempts == 1


@pytest.mark.asyncio
async def test_timeouts_not_retried_when_category_disabled():
    """Without the timeout category a timed out attempt is final"""
    transport = PseudoTransport().respond("slow", "late").delay("slow", 0.2)
    skill = Skill(name="slow").with_step(SkillStep(name="wait", tool="slow"))
    config = fast_config(
        max_retries=3,
        step_timeout_s=0.01,
        retryable_errors=[RetryableError.NETWORK],
    )

    with pytest.raises(StepTimeoutError):
        await DefaultSkillExecutor(transport).execute(skill, ExecutionContext(config=config))

    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_retry_until_success():
    """Transient errors are retried and counted on the step result"""
    transport = PseudoTransport().script("flaky", [
        ConnectionError("connection reset"),
        RuntimeError("Rate limit exceeded"),
        ToolResult.ok("finally"),
    ])
    step = SkillStep(name="fetch", tool="flaky")
    hooks = RecordingHooks()
    context = ExecutionContext(config=fast_config(max_retries=3))

    result = await DefaultSkillExecutor(transport, hooks).execute_step(step, context)

    assert result.success
    assert result.output == "finally"
    assert result.retry_attempts == 2
    assert len(transport.calls) == 3
    assert [e for e in hooks.events if e.startswith("on_retry")] == [
        "on_retry:fetch:1",
        "on_retry:fetch:2",
    ]
    assert context.get_output("fetch") == "finally"


@pytest.mark.asyncio
async def test_retries_exhausted():
    """max_retries=N means N+1 attempts before giving up"""
    transport = PseudoTransport().fail("down", "connection refused")
    step = SkillStep(name="fetch", tool="down")
    context = ExecutionContext(config=fast_config(max_retries=2))

    with pytest.raises(ExecutionError) as exc_info:
        await DefaultSkillExecutor(transport).execute_step(step, context)

    cause = exc_info.value.__cause__
    assert isinstance(cause, RetryExhaustedError)
    assert cause.attempts == 3
    assert "connection refused" in str(exc_info.value)
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_step_max_retries_override():
    """A per-step max_retries replaces the configured value"""
    transport = PseudoTransport().fail("down", "connection refused")
    step = SkillStep(name="fetch", tool="down", max_retries=0)
    context = ExecutionContext(config=fast_config(max_retries=3))

    with pytest.raises(ExecutionError):
        await DefaultSkillExecutor(transport).execute_step(step, context)

    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_transport_timeout_error_is_an_ordinary_failure():
    """A TimeoutError raised by the transport inside the budget is not a step timeout"""
    transport = PseudoTransport().fail("t", TimeoutError("upstream read"))
    skill = Skill(name="s").with_step(SkillStep(name="s", tool="t", timeout_s=30.0, max_retries=0))
    hooks = RecordingHooks()

    with pytest.raises(RetryExhaustedError, match="upstream read"):
        await DefaultSkillExecutor(transport, hooks).execute(skill, ExecutionContext(config=fast_config()))

    assert not any(e.startswith("on_timeout") for e in hooks.events)
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_tool_reported_failure_is_retried():
    """A failed ToolResult goes through the same retry classification"""
    transport = PseudoTransport().script("api", [
        ToolResult.failure("503 Service Unavailable"),
        ToolResult.ok({"status": "up"}),
    ])
    step = SkillStep(name="call", tool="api")
    config = fast_config(max_retries=2, retryable_errors=[RetryableError.SERVER_ERROR])

    result = await DefaultSkillExecutor(transport).execute_step(step, ExecutionContext(config=config))

    assert result.success
    assert result.output == {"status": "up"}
    assert result.retry_attempts == 1


@pytest.mark.asyncio
async def test_unknown_tool_fails_step():
    """A transport without the tool fails the step without retrying"""
    transport = PseudoTransport()
    skill = Skill(name="ghost").with_step(SkillStep(name="a", tool="ghost"))

    with pytest.raises(RetryExhaustedError, match="tool not found: ghost"):
        await DefaultSkillExecutor(transport).execute(skill, ExecutionContext(config=fast_config(max_retries=3)))

    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_skill_timeout_fail():
    """The skill timeout bounds the whole run"""
    transport = PseudoTransport().respond("tool_a", 1).respond("tool_b", 2).delay("tool_b", 1.0)
    skill = (
        Skill(name="long")
        .with_step(SkillStep(name="a", tool="tool_a"))
        .with_step(SkillStep(name="b", tool="tool_b"))
    )
    hooks = RecordingHooks()
    context = ExecutionContext(config=fast_config(skill_timeout_s=0.1))

    with pytest.raises(SkillTimeoutError):
        await DefaultSkillExecutor(transport, hooks).execute(skill, context)

    assert hooks.events[-2:] == ["on_error", "after_skill"]
    assert isinstance(hooks.errors[0], SkillTimeoutError)
    assert [name for name, _ in hooks.skill_results[0].step_results] == ["a"]


@pytest.mark.asyncio
async def test_skill_timeout_partial_keeps_completed_steps():
    """With partial results a skill timeout returns the steps that finished"""
    transport = PseudoTransport().respond("tool_a", 1).respond("tool_b", 2).delay("tool_b", 1.0)
    skill = (
        Skill(name="long")
        .with_step(SkillStep(name="a", tool="tool_a"))
        .with_step(SkillStep(name="b", tool="tool_b"))
    )
    hooks = RecordingHooks()
    context = ExecutionContext(config=fast_config(skill_timeout_s=0.1, action=TimeoutAction.PARTIAL))

    result = await DefaultSkillExecutor(transport, hooks).execute(skill, context)

    assert not result.success
    assert "timed out" in result.error
    assert [name for name, _ in result.step_results] == ["a"]
    assert hooks.events.count("after_skill") == 1
    assert hooks.skill_results == [result]


@pytest.mark.asyncio
async def test_substitution_error_aborts_run():
    """An unserializable embedded value is a configuration error"""
    transport = PseudoTransport().respond("tool_a", 1)
    skill = Skill(name="bad").with_step(
        SkillStep(name="a", tool="tool_a", arguments={"text": "value: {{obj}}"}, continue_on_error=True)
    )
    hooks = RecordingHooks()
    context = ExecutionContext({"obj": {"x": object()}}, config=fast_config())

    with pytest.raises(InvalidConfigError):
        await DefaultSkillExecutor(transport, hooks).execute(skill, context)

    assert transport.calls == []
    assert "on_error" in hooks.events
    assert hooks.events.count("after_skill") == 1


@pytest.mark.asyncio
async def test_invalid_skill_rejected():
    """Duplicate step names are rejected before any tool call"""
    transport = PseudoTransport().respond("t", 1)
    skill = Skill(name="dup").with_step(SkillStep("a", "t")).with_step(SkillStep("a", "t"))

    with pytest.raises(InvalidConfigError):
        await DefaultSkillExecutor(transport).execute(skill, ExecutionContext())

    assert transport.calls == []


@pytest.mark.asyncio
async def test_execution_is_deterministic():
    """The same skill and inputs produce the same calls and results"""
    skill = (
        Skill(name="det", inputs=["n"])
        .with_step(SkillStep(name="a", tool="tool_a", arguments={"n": "{{n}}"}))
        .with_step(SkillStep(name="b", tool="tool_b", arguments={"prev": "{{a}}", "text": "n={{n}}"}))
    )

    runs = []
    for _ in range(2):
        transport = PseudoTransport().respond("tool_a", [1, 2]).respond("tool_b", {"ok": True})
        context = ExecutionContext({"n": 5}, config=fast_config())
        result = await DefaultSkillExecutor(transport).execute(skill, context)
        runs.append((
            [(c.tool_name, c.arguments) for c in transport.calls],
            [(name, r.success, r.output) for name, r in result.step_results],
            result.output,
        ))

    assert runs[0] == runs[1]
    assert runs[0][0][1] == ("tool_b", {"prev": [1, 2], "text": "n=5"})


@pytest.mark.asyncio
async def test_concurrent_runs_share_executor():
    """Concurrent runs with separate contexts do not interfere"""
    transport = PseudoTransport().respond("echo", "pong").delay("echo", 0.01)
    executor = DefaultSkillExecutor(transport)
    skill = Skill(name="echo", inputs=["id"]).with_step(
        SkillStep(name="ping", tool="echo", arguments={"id": "{{id}}"})
    )
    contexts = [ExecutionContext({"id": i}, config=fast_config()) for i in range(5)]

    results = await asyncio.gather(*(executor.execute(skill, c) for c in contexts))

    assert all(r.success for r in results)
    assert sorted(c.arguments["id"] for c in transport.calls) == [0, 1, 2, 3, 4]
    assert all(c.get_output("ping") == "pong" for c in contexts)


@pytest.mark.asyncio
async def test_execute_by_name():
    """Skills can be run by registry name"""
    registry = SkillRegistry()
    registry.register(Skill(name="hello").with_step(SkillStep(name="a", tool="tool_a")))
    transport = PseudoTransport().respond("tool_a", "hi")
    executor = DefaultSkillExecutor(transport, registry=registry)

    result = await executor.execute_by_name("hello", ExecutionContext(config=fast_config()))
    assert result.output == "hi"

    with pytest.raises(SkillNotFoundError):
        await executor.execute_by_name("missing", ExecutionContext())

    with pytest.raises(InvalidConfigError):
        await DefaultSkillExecutor(transport).execute_by_name("hello", ExecutionContext())


@pytest.mark.asyncio
async def test_logging_and_recording_hooks_together(caplog):
    """Composite hooks drive logging and recording from one run"""
    transport = PseudoTransport().script("flaky", [
        ConnectionError("connection reset"),
        ToolResult.ok("done"),
    ])
    recorder = RecordingHooks()
    hooks = CompositeHooks(LoggingHooks(), recorder)
    skill = Skill(name="logged").with_step(SkillStep(name="fetch", tool="flaky"))

    with caplog.at_level(logging.INFO):
        result = await DefaultSkillExecutor(transport, hooks).execute(
            skill, ExecutionContext(config=fast_config(max_retries=1))
        )

    assert result.success
    assert recorder.events.count("on_retry:fetch:1") == 1
    assert "Retrying step 'fetch' after attempt 1: connection reset" in caplog.text
    assert "Skill 'logged' completed" in caplog.text
