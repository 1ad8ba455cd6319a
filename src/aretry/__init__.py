r"""aretry - Resilience engine running fallible operations with retry
logic.

This package re-executes a fallible operation according to a pluggable
policy. It classifies failures to decide whether they are transient,
paces retries with backoff strategies and protects downstream
dependencies with decorator strategies such as circuit breakers, rate
limits and total time budgets.

Key Features:
    - Backoff strategies: exponential, linear, fixed, Fibonacci and
      decorrelated jitter
    - Decorator strategies: circuit breaker, rate limit, total timeout,
      response content inspection and custom options
    - Circuit breaker and rate limit state shared through a key/value
      store (in memory or Redis)
    - Exception classification following nested causes, extensible with
      plug-in handlers
    - Promise-like results with ``then``/``catch``/``finally_`` chaining
    - Lifecycle callbacks and per-run metrics for observability
    - Dead-letter queue for operations that exhausted their retries

Example:
    ```pycon
    >>> from aretry import RetryConfig, RetryExecutor
    >>> from aretry.strategies import CircuitBreakerStrategy, ExponentialBackoffStrategy
    >>> executor = RetryExecutor(
    ...     RetryConfig(max_retries=5),
    ...     strategy=CircuitBreakerStrategy(
    ...         ExponentialBackoffStrategy(base_delay=0.5, max_delay=10.0), key="payments"
    ...     ),
    ... )
    >>> result = executor.run(lambda: "done")
    >>> result.value()
    'done'

    ```
"""

from __future__ import annotations

__all__ = [
    "CallbackConfig",
    "RetryConfig",
    "RetryContext",
    "RetryError",
    "RetryExecutor",
    "RetryResult",
    "__version__",
    "retry_call",
    "retryable",
]

from importlib.metadata import PackageNotFoundError, version

from aretry.call import retry_call, retryable
from aretry.config import CallbackConfig, RetryConfig
from aretry.exceptions import RetryError
from aretry.retry import RetryContext, RetryExecutor, RetryResult

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
