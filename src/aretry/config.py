r"""Configuration dataclasses and defaults for the retry executor.

This module provides configuration constants and dataclass-based
configuration objects for ``RetryExecutor`` and the convenience call
API. ``RetrySettings`` reads the ``RETRY_*`` environment
variables so deployments can tune retries without code changes.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DELAY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RESPONSE_CONTENT_PATTERNS",
    "DEFAULT_RESPONSE_ERROR_CODES",
    "DEFAULT_RESPONSE_ERROR_CODE_PATHS",
    "DEFAULT_RETRYABLE_PATTERNS",
    "DEFAULT_STRATEGY",
    "DEFAULT_TIMEOUT",
    "DEFAULT_TOTAL_TIMEOUT",
    "CallbackConfig",
    "RetryConfig",
    "RetrySettings",
]

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from aretry.utils.validation import validate_retry_params

if TYPE_CHECKING:
    import re
    from collections.abc import Callable

    from aretry.callbacks import FailureInfo, RetryInfo, SuccessInfo


# Default maximum number of retry attempts
# Total attempts = max_retries + 1 (initial attempt)
DEFAULT_MAX_RETRIES = 3

# Default base delay in seconds handed to the default strategy
DEFAULT_DELAY = 5.0

# Default advisory per-attempt timeout in seconds
DEFAULT_TIMEOUT = 30.0

# No total time budget unless configured
DEFAULT_TOTAL_TIMEOUT = None

# Alias of the strategy used when none is configured
DEFAULT_STRATEGY = "exponential-backoff"

# Message patterns that mark an exception as transient
DEFAULT_RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "temporarily unavailable",
    "server error",
    "connection refused",
    "rate limit",
    "rate_limit",
    "server_error",
)

# Error codes found in response bodies that mark a failure as transient
DEFAULT_RESPONSE_ERROR_CODES = (
    "TEMPORARY_ERROR",
    "SERVER_BUSY",
    "RATE_LIMITED",
    "TRY_AGAIN_LATER",
    "RESOURCE_EXHAUSTED",
    "SERVICE_UNAVAILABLE",
    "INTERNAL_ERROR",
    "TEMPORARILY_UNAVAILABLE",
)

# Dotted paths searched for an error code in JSON response bodies
DEFAULT_RESPONSE_ERROR_CODE_PATHS = (
    "error.code",
    "error_code",
    "code",
    "status",
    "error.type",
    "errorCode",
    "error.status",
)

# Regex patterns matched against raw response bodies
DEFAULT_RESPONSE_CONTENT_PATTERNS = (
    r"temporarily unavailable",
    r"server busy",
    r"try again later",
    r"rate limit(ed)?",
    r"too many requests",
    r"service unavailable",
    r"internal (server )?error",
    r"timeout",
    r"throttl(ed|ing)",
)


@dataclass
class CallbackConfig:
    """Lifecycle callbacks of a retry executor.

    Args:
        on_retry: Optional callback called before each retry (before the
            delay).
        on_success: Optional callback called when the operation
            succeeds.
        on_failure: Optional callback called when the executor gives up.
        on_progress: Optional callback receiving the human-readable
            progress message of each retry.
    """

    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[SuccessInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None
    on_progress: Callable[[str], None] | None = None

    def merge(self, **overrides: Any) -> CallbackConfig:
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)


@dataclass
class RetryConfig:
    """Configuration of the retry executor.

    Args:
        max_retries: Maximum number of retry attempts. Must be >= 0.
        delay: Base delay in seconds handed to strategies resolved by
            name. Must be >= 0.
        timeout: Advisory per-attempt timeout in seconds. An attempt
            running longer is logged, never interrupted.
        total_timeout: Optional total time budget in seconds. When set,
            every run is bounded by a ``TotalTimeoutStrategy``.
        strategy: Alias or dotted path of the strategy resolved by
            ``StrategyFactory``.
        strategy_options: Keyword arguments of the resolved strategy.
        dispatch_events: Whether lifecycle callbacks are invoked.
        handler_paths: Dotted paths of extra exception handlers.
        retryable_patterns: Extra message patterns classified as
            retryable.
        retryable_exceptions: Extra exception types classified as
            retryable.
        response_patterns: Default body patterns of
            ``ResponseContentStrategy``.
        response_error_codes: Default error codes of
            ``ResponseContentStrategy``.
        response_error_code_paths: Default JSON paths of
            ``ResponseContentStrategy``.

    Example:
        ```pycon
        >>> from aretry.config import RetryConfig
        >>> config = RetryConfig()  # Use defaults
        >>> config.max_retries
        3
        >>> merged = config.merge(max_retries=10, delay=None)
        >>> merged.max_retries, merged.delay
        (10, 5.0)
        >>> config.max_retries  # Original unchanged
        3

        ```
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    delay: float = DEFAULT_DELAY
    timeout: float | None = DEFAULT_TIMEOUT
    total_timeout: float | None = DEFAULT_TOTAL_TIMEOUT
    strategy: str = DEFAULT_STRATEGY
    strategy_options: dict[str, Any] = field(default_factory=dict)
    dispatch_events: bool = True
    handler_paths: tuple[str, ...] = ()
    retryable_patterns: tuple[str | re.Pattern[str], ...] = ()
    retryable_exceptions: tuple[type[BaseException], ...] = ()
    response_patterns: tuple[str, ...] = DEFAULT_RESPONSE_CONTENT_PATTERNS
    response_error_codes: tuple[str, ...] = DEFAULT_RESPONSE_ERROR_CODES
    response_error_code_paths: tuple[str, ...] = DEFAULT_RESPONSE_ERROR_CODE_PATHS

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_retry_params(
            max_retries=self.max_retries,
            delay=self.delay,
            timeout=self.timeout,
            total_timeout=self.total_timeout,
        )
        if not self.strategy:
            msg = f"strategy must be a non-empty string, got {self.strategy!r}"
            raise ValueError(msg)

    def merge(self, **overrides: Any) -> RetryConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new RetryConfig instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary format.

        Example:
            ```pycon
            >>> from aretry.config import RetryConfig
            >>> RetryConfig(max_retries=5).to_dict()["max_retries"]
            5

            ```
        """
        return {
            "max_retries": self.max_retries,
            "delay": self.delay,
            "timeout": self.timeout,
            "total_timeout": self.total_timeout,
            "strategy": self.strategy,
            "strategy_options": dict(self.strategy_options),
            "dispatch_events": self.dispatch_events,
            "handler_paths": self.handler_paths,
            "retryable_patterns": self.retryable_patterns,
            "retryable_exceptions": self.retryable_exceptions,
            "response_patterns": self.response_patterns,
            "response_error_codes": self.response_error_codes,
            "response_error_code_paths": self.response_error_code_paths,
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> RetryConfig:
        """Create a config from ``RETRY_*`` environment variables.

        The variables are read through ``RetrySettings``. Unset
        variables keep their defaults and non-None keyword overrides
        win over the environment.

        Args:
            **overrides: Parameters overriding the environment.

        Returns:
            The configuration.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        params = RetrySettings().model_dump()
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)


class RetrySettings(BaseSettings):
    r"""Retry settings read from ``RETRY_*`` environment variables.

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Maximum number of retry attempts.
        RETRY_DELAY: Base delay in seconds.
        RETRY_TIMEOUT: Advisory per-attempt timeout, ``none`` to disable.
        RETRY_TOTAL_TIMEOUT: Total time budget, ``none`` to disable.
        RETRY_DISPATCH_EVENTS: Whether lifecycle callbacks are invoked.
        RETRY_STRATEGY: Alias or dotted path of the strategy.
        RETRY_HANDLER_PATHS: Comma-separated dotted paths of extra
            exception handlers.

    Example:
        ```pycon
        >>> from aretry.config import RetrySettings
        >>> RetrySettings().strategy
        'exponential-backoff'

        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="RETRY_",
        env_ignore_empty=True,
        env_parse_none_str="none",
        extra="ignore",
    )

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, alias="RETRY_MAX_ATTEMPTS")
    delay: float = DEFAULT_DELAY
    timeout: float | None = DEFAULT_TIMEOUT
    total_timeout: float | None = DEFAULT_TOTAL_TIMEOUT
    dispatch_events: bool = True
    strategy: str = DEFAULT_STRATEGY
    handler_paths: Annotated[tuple[str, ...], NoDecode] = ()

    @field_validator("strategy", mode="before")
    @classmethod
    def _strip_strategy(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or DEFAULT_STRATEGY
        return value

    @field_validator("handler_paths", mode="before")
    @classmethod
    def _split_handler_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(path.strip() for path in value.split(",") if path.strip())
        return value
