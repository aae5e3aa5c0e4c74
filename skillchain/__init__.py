"""
Skillchain - Skill Execution Engine

Runs skills, ordered sequences of tool calls, against a pluggable tool
transport, with per-step timeouts, retries with backoff, variable
substitution between steps and lifecycle hooks.

Core components:
- Executor: Runs a skill's steps and applies the failure policy
- Config: Timeout and retry settings (code or YAML)
- Context: Inputs, step outputs and metadata for one run
- Hooks: Lifecycle observers
- Registry/Loader: Skill lookup and YAML skill files
"""

__version__ = "1.0.0"

from skillchain.config import (
    BackoffStrategy,
    ExecutionConfig,
    RetryableError,
    RetryConfig,
    TimeoutAction,
    TimeoutConfig,
    load_config,
    save_config,
)
from skillchain.context import ExecutionContext
from skillchain.errors import (
    ExecutionError,
    InvalidConfigError,
    RetryExhaustedError,
    SkillError,
    SkillNotFoundError,
    SkillTimeoutError,
    StepTimeoutError,
)
from skillchain.executor import DefaultSkillExecutor, SkillExecutor
from skillchain.hooks import CompositeHooks, ExecutionHooks, LoggingHooks, NoOpHooks
from skillchain.loader import load_skill, load_skills_from_directory
from skillchain.protocol import SkillResult, StepResult, ToolResult
from skillchain.registry import SkillRegistry
from skillchain.schema import Skill, SkillStep
from skillchain.transport import CallableTransport, ToolNotFound, Transport

__all__ = [
    "BackoffStrategy",
    "ExecutionConfig",
    "RetryableError",
    "RetryConfig",
    "TimeoutAction",
    "TimeoutConfig",
    "load_config",
    "save_config",
    "ExecutionContext",
    "ExecutionError",
    "InvalidConfigError",
    "RetryExhaustedError",
    "SkillError",
    "SkillNotFoundError",
    "SkillTimeoutError",
    "StepTimeoutError",
    "DefaultSkillExecutor",
    "SkillExecutor",
    "CompositeHooks",
    "ExecutionHooks",
    "LoggingHooks",
    "NoOpHooks",
    "load_skill",
    "load_skills_from_directory",
    "SkillResult",
    "StepResult",
    "ToolResult",
    "SkillRegistry",
    "Skill",
    "SkillStep",
    "CallableTransport",
    "ToolNotFound",
    "Transport",
]
