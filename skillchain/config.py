"""
Skillchain Execution Configuration

Timeout and retry settings applied while executing skills.
Configuration can be built in code or loaded from a YAML file.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any
from enum import Enum
import os
import yaml

from skillchain.errors import InvalidConfigError


class TimeoutAction(str, Enum):
    """Action taken when a step fails or the skill times out"""
    FAIL = "fail"
    SKIP = "skip"
    PARTIAL = "partial"


class BackoffStrategy(str, Enum):
    """Strategy for the delay between retries"""
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_JITTER = "exponential_jitter"


class RetryableError(str, Enum):
    """Error categories that may be retried"""
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    ALL = "all"


def _default_retryable_errors() -> List[RetryableError]:
    return [RetryableError.NETWORK, RetryableError.RATE_LIMIT, RetryableError.TIMEOUT]


@dataclass
class TimeoutConfig:
    """Execution timeouts, in seconds"""
    # Bound on the whole skill
    skill_timeout_s: float = 300.0
    # Bound on each step attempt unless the step overrides it
    step_timeout_s: float = 60.0
    tool_timeout_s: float = 30.0
    timeout_action: TimeoutAction = TimeoutAction.FAIL

    def validate(self) -> None:
        for name in ("skill_timeout_s", "step_timeout_s", "tool_timeout_s"):
            if getattr(self, name) <= 0:
                raise InvalidConfigError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass
class RetryConfig:
    """Retry behaviour for failed tool calls"""
    max_retries: int = 3
    initial_delay_s: float = 0.1
    # Caps exponential backoff
    max_delay_s: float = 10.0
    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL_JITTER
    retryable_errors: List[RetryableError] = field(default_factory=_default_retryable_errors)

    @classmethod
    def no_retries(cls) -> "RetryConfig":
        return cls(max_retries=0)

    def with_max_retries(self, max_retries: Optional[int]) -> "RetryConfig":
        """Copy of this config with max_retries overridden (None keeps the current value)"""
        if max_retries is None:
            return replace(self, retryable_errors=list(self.retryable_errors))
        return replace(self, max_retries=max_retries, retryable_errors=list(self.retryable_errors))

    def retry_all_errors(self) -> "RetryConfig":
        self.retryable_errors = [RetryableError.ALL]
        return self

    def allows(self, category: RetryableError) -> bool:
        """True if the category is enabled, either directly or through ALL"""
        return category in self.retryable_errors or RetryableError.ALL in self.retryable_errors

    def validate(self) -> None:
        if self.max_retries < 0:
            raise InvalidConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_delay_s < 0 or self.max_delay_s < 0:
            raise InvalidConfigError("retry delays must be >= 0")
        if self.initial_delay_s > self.max_delay_s:
            raise InvalidConfigError(
                f"initial_delay_s ({self.initial_delay_s}) exceeds max_delay_s ({self.max_delay_s})"
            )


@dataclass
class ExecutionConfig:
    """Combined execution configuration"""
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    def with_timeout(self, timeout: TimeoutConfig) -> "ExecutionConfig":
        self.timeout = timeout
        return self

    def with_retry(self, retry: RetryConfig) -> "ExecutionConfig":
        self.retry = retry
        return self

    def validate(self) -> None:
        self.timeout.validate()
        self.retry.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timeout': {
                'skill_timeout_s': self.timeout.skill_timeout_s,
                'step_timeout_s': self.timeout.step_timeout_s,
                'tool_timeout_s': self.timeout.tool_timeout_s,
                'timeout_action': self.timeout.timeout_action.value,
            },
            'retry': {
                'max_retries': self.retry.max_retries,
                'initial_delay_s': self.retry.initial_delay_s,
                'max_delay_s': self.retry.max_delay_s,
                'backoff': self.retry.backoff.value,
                'retryable_errors': [e.value for e in self.retry.retryable_errors],
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExecutionConfig":
        """
        Build configuration from a plain mapping.

        Missing sections and keys fall back to defaults.

        Raises:
            InvalidConfigError: If a value has the wrong type or an unknown enum name
        """
        data = data or {}
        if not isinstance(data, dict):
            raise InvalidConfigError("execution config must be a mapping")

        defaults_timeout = TimeoutConfig()
        defaults_retry = RetryConfig()

        try:
            # Parse timeout config
            timeout_data = data.get('timeout') or {}
            timeout = TimeoutConfig(
                skill_timeout_s=float(timeout_data.get('skill_timeout_s', defaults_timeout.skill_timeout_s)),
                step_timeout_s=float(timeout_data.get('step_timeout_s', defaults_timeout.step_timeout_s)),
                tool_timeout_s=float(timeout_data.get('tool_timeout_s', defaults_timeout.tool_timeout_s)),
                timeout_action=TimeoutAction(timeout_data.get('timeout_action', 'fail')),
            )

            # Parse retry config
            retry_data = data.get('retry') or {}
            retryable = retry_data.get('retryable_errors')
            retry = RetryConfig(
                max_retries=int(retry_data.get('max_retries', defaults_retry.max_retries)),
                initial_delay_s=float(retry_data.get('initial_delay_s', defaults_retry.initial_delay_s)),
                max_delay_s=float(retry_data.get('max_delay_s', defaults_retry.max_delay_s)),
                backoff=BackoffStrategy(retry_data.get('backoff', 'exponential_jitter')),
                retryable_errors=(
                    [RetryableError(e) for e in retryable]
                    if retryable is not None
                    else _default_retryable_errors()
                ),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise InvalidConfigError(str(e)) from e

        config = cls(timeout=timeout, retry=retry)
        config.validate()
        return config


def load_config(config_path: str) -> ExecutionConfig:
    """
    Load execution configuration from YAML file.

    Args:
        config_path: Path to config file

    Returns:
        ExecutionConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        InvalidConfigError: If config is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"{config_path}: {e}") from e

    return ExecutionConfig.from_dict(data)


def save_config(config: ExecutionConfig, config_path: str) -> None:
    """
    Save execution configuration to YAML file.

    Args:
        config: ExecutionConfig object to save
        config_path: Path to save config file
    """
    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False)
