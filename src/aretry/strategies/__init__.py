r"""Retry strategies.

This package provides the backoff strategies (exponential, linear,
fixed, Fibonacci and decorrelated jitter), the decorator strategies that
wrap another strategy (circuit breaker, rate limit, total timeout,
response content and custom options), a callback-defined strategy and
the factory resolving strategies by alias.
"""

from __future__ import annotations

__all__ = [
    "BaseDecoratorStrategy",
    "BaseRetryStrategy",
    "CallbackRetryStrategy",
    "CircuitBreakerState",
    "CircuitBreakerStrategy",
    "CircuitState",
    "CustomOptionsStrategy",
    "DecorrelatedJitterStrategy",
    "ExponentialBackoffStrategy",
    "FibonacciBackoffStrategy",
    "FixedDelayStrategy",
    "LinearBackoffStrategy",
    "RateLimitStrategy",
    "ResponseContentStrategy",
    "StrategyFactory",
    "TotalTimeoutStrategy",
]

from aretry.strategies.base import BaseDecoratorStrategy, BaseRetryStrategy
from aretry.strategies.callback import CallbackRetryStrategy
from aretry.strategies.circuit_breaker import (
    CircuitBreakerState,
    CircuitBreakerStrategy,
    CircuitState,
)
from aretry.strategies.custom_options import CustomOptionsStrategy
from aretry.strategies.decorrelated_jitter import DecorrelatedJitterStrategy
from aretry.strategies.exponential import ExponentialBackoffStrategy
from aretry.strategies.factory import StrategyFactory
from aretry.strategies.fibonacci import FibonacciBackoffStrategy
from aretry.strategies.fixed import FixedDelayStrategy
from aretry.strategies.linear import LinearBackoffStrategy
from aretry.strategies.rate_limit import RateLimitStrategy
from aretry.strategies.response_content import ResponseContentStrategy
from aretry.strategies.total_timeout import TotalTimeoutStrategy
