r"""Resolve strategies from aliases and dotted paths.

Configuration refers to strategies by alias (the kebab-case class name
without the ``Strategy`` suffix, e.g. ``"exponential-backoff"`` or
``"circuit-breaker"``) or by dotted path (``"pkg.module:Class"`` or
``"pkg.module.Class"``).

Example:
    ```pycon
    >>> from aretry.strategies.factory import StrategyFactory
    >>> strategy = StrategyFactory.make(
    ...     "circuit-breaker",
    ...     {"inner": "linear-backoff", "failure_threshold": 2},
    ...     base_delay=0.5,
    ... )
    >>> type(strategy).__name__, type(strategy.inner).__name__
    ('CircuitBreakerStrategy', 'LinearBackoffStrategy')
    >>> strategy.inner.base_delay
    0.5

    ```
"""

from __future__ import annotations

__all__ = ["StrategyFactory", "alias_to_class", "available_aliases", "class_to_alias"]

import importlib
import inspect
import logging
import re
from typing import Any

from aretry.exceptions import StrategyResolutionError
from aretry.strategies.base import BaseDecoratorStrategy, BaseRetryStrategy
from aretry.strategies.callback import CallbackRetryStrategy
from aretry.strategies.circuit_breaker import CircuitBreakerStrategy
from aretry.strategies.custom_options import CustomOptionsStrategy
from aretry.strategies.decorrelated_jitter import DecorrelatedJitterStrategy
from aretry.strategies.exponential import ExponentialBackoffStrategy
from aretry.strategies.fibonacci import FibonacciBackoffStrategy
from aretry.strategies.fixed import FixedDelayStrategy
from aretry.strategies.linear import LinearBackoffStrategy
from aretry.strategies.rate_limit import RateLimitStrategy
from aretry.strategies.response_content import ResponseContentStrategy
from aretry.strategies.total_timeout import TotalTimeoutStrategy

logger: logging.Logger = logging.getLogger(__name__)

BUILTIN_STRATEGIES: tuple[type[BaseRetryStrategy], ...] = (
    ExponentialBackoffStrategy,
    LinearBackoffStrategy,
    FixedDelayStrategy,
    FibonacciBackoffStrategy,
    DecorrelatedJitterStrategy,
    CircuitBreakerStrategy,
    RateLimitStrategy,
    TotalTimeoutStrategy,
    ResponseContentStrategy,
    CustomOptionsStrategy,
    CallbackRetryStrategy,
)


def class_to_alias(cls: type | str) -> str:
    """Convert a strategy class (or class name) to its alias.

    Example:
        ```pycon
        >>> from aretry.strategies import DecorrelatedJitterStrategy
        >>> from aretry.strategies.factory import class_to_alias
        >>> class_to_alias(DecorrelatedJitterStrategy)
        'decorrelated-jitter'
        >>> class_to_alias("CallbackRetryStrategy")
        'callback-retry'

        ```
    """
    name = cls if isinstance(cls, str) else cls.__name__
    name = name.rsplit(".", 1)[-1]
    if name.endswith("Strategy") and name != "Strategy":
        name = name[: -len("Strategy")]
    return re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()


def alias_to_class(alias: str) -> type[BaseRetryStrategy] | None:
    """Return the built-in strategy class of an alias, or ``None``.

    Aliases are case-insensitive and underscores are accepted in place
    of dashes.

    Example:
        ```pycon
        >>> from aretry.strategies.factory import alias_to_class
        >>> alias_to_class("fixed_delay").__name__
        'FixedDelayStrategy'
        >>> alias_to_class("unknown") is None
        True

        ```
    """
    normalized = alias.strip().lower().replace("_", "-")
    for cls in BUILTIN_STRATEGIES:
        if class_to_alias(cls) == normalized:
            return cls
    return None


def available_aliases() -> tuple[str, ...]:
    """Return the aliases of the built-in strategies."""
    return tuple(class_to_alias(cls) for cls in BUILTIN_STRATEGIES)


def _import_path(path: str) -> Any:
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        msg = f"Invalid strategy path {path!r}"
        raise StrategyResolutionError(msg)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Strategy module {module_name!r} cannot be imported: {exc}"
        raise StrategyResolutionError(msg) from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        msg = f"Strategy class {path!r} not found"
        raise StrategyResolutionError(msg) from exc


def _accepts(cls: type, name: str) -> bool:
    try:
        parameters = inspect.signature(cls).parameters
    except (TypeError, ValueError):
        return False
    return name in parameters or any(
        param.kind is inspect.Parameter.VAR_KEYWORD for param in parameters.values()
    )


class StrategyFactory:
    """Build strategies from identifiers and option dictionaries."""

    @classmethod
    def resolve(cls, identifier: str) -> type[BaseRetryStrategy]:
        """Resolve an alias or dotted path to a strategy class.

        Args:
            identifier: The alias or dotted path.

        Returns:
            The strategy class.

        Raises:
            StrategyResolutionError: If the identifier is unknown or does
                not name a ``BaseRetryStrategy`` subclass.
        """
        if ":" not in identifier and "." not in identifier:
            strategy_cls = alias_to_class(identifier)
            if strategy_cls is None:
                msg = (
                    f"Invalid strategy alias {identifier!r}. "
                    f"Available aliases: {', '.join(available_aliases())}"
                )
                raise StrategyResolutionError(msg)
            return strategy_cls

        strategy_cls = _import_path(identifier)
        if not (inspect.isclass(strategy_cls) and issubclass(strategy_cls, BaseRetryStrategy)):
            msg = f"{identifier!r} is not a valid BaseRetryStrategy implementation"
            raise StrategyResolutionError(msg)
        return strategy_cls

    @classmethod
    def make(
        cls,
        identifier: str | BaseRetryStrategy,
        options: dict[str, Any] | None = None,
        *,
        base_delay: float | None = None,
    ) -> BaseRetryStrategy:
        """Create a strategy.

        Decorator strategies accept an ``inner`` option given as a
        strategy instance, an identifier, or a dictionary
        ``{"strategy": identifier, "options": {...}}``. When ``inner`` is
        missing, an ``ExponentialBackoffStrategy`` is used.

        Args:
            identifier: The alias, dotted path, or a ready strategy
                instance (returned unchanged).
            options: Keyword arguments of the strategy constructor.
            base_delay: Base delay injected into strategies that accept
                a ``base_delay`` argument and do not set one.

        Returns:
            The strategy. If the constructor of a resolved class raises,
            the error is logged and an ``ExponentialBackoffStrategy`` using
            ``base_delay`` is returned instead.

        Raises:
            StrategyResolutionError: If the identifier cannot be
                resolved.
        """
        if isinstance(identifier, BaseRetryStrategy):
            return identifier

        strategy_cls = cls.resolve(identifier)
        options = dict(options or {})
        if issubclass(strategy_cls, BaseDecoratorStrategy):
            options["inner"] = cls._make_inner(options.get("inner"), base_delay)
        elif base_delay is not None and "base_delay" not in options and _accepts(strategy_cls, "base_delay"):
            options["base_delay"] = base_delay

        try:
            return strategy_cls(**options)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                f"Error creating retry strategy {identifier!r} with options {options!r}: {exc}. "
                "Falling back to ExponentialBackoffStrategy"
            )
            if base_delay is None:
                return ExponentialBackoffStrategy()
            return ExponentialBackoffStrategy(base_delay=base_delay)

    @classmethod
    def _make_inner(cls, inner: Any, base_delay: float | None) -> BaseRetryStrategy:
        if inner is None:
            options = {} if base_delay is None else {"base_delay": base_delay}
            return ExponentialBackoffStrategy(**options)
        if isinstance(inner, BaseRetryStrategy):
            return inner
        if isinstance(inner, str):
            return cls.make(inner, base_delay=base_delay)
        if isinstance(inner, dict) and "strategy" in inner:
            return cls.make(inner["strategy"], inner.get("options"), base_delay=base_delay)
        msg = f"Invalid inner strategy {inner!r}"
        raise StrategyResolutionError(msg)
