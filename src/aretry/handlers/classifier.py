r"""Classify exceptions as retryable or not.

The classifier walks the chain of an exception (``__cause__`` first,
then ``__context__`` unless suppressed), so a non-retryable wrapper
raised ``from`` a transient error is still retryable.
"""

from __future__ import annotations

__all__ = ["Classification", "ExceptionClassifier", "iter_exception_chain"]

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aretry.handlers.manager import ExceptionHandlerManager
from aretry.utils.patterns import compile_patterns, matches_any

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable, Iterator

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying an exception.

    Args:
        retryable: Whether the exception is retryable.
        matched: The exception of the chain that matched, if any.
        reason: A human-readable explanation.
    """

    retryable: bool
    matched: BaseException | None = None
    reason: str = ""


def iter_exception_chain(error: BaseException) -> Iterator[BaseException]:
    """Iterate over an exception and the exceptions it wraps.

    Explicit causes (``raise ... from ...``) are followed first, then
    implicit contexts unless ``__suppress_context__`` is set. Cycles are
    broken.

    Example:
        ```pycon
        >>> from aretry.handlers.classifier import iter_exception_chain
        >>> try:
        ...     try:
        ...         raise TimeoutError("read timed out")
        ...     except TimeoutError as exc:
        ...         raise ValueError("bad payload") from exc
        ... except ValueError as error:
        ...     [type(e).__name__ for e in iter_exception_chain(error)]
        ...
        ['ValueError', 'TimeoutError']

        ```
    """
    seen: set[int] = set()
    node: BaseException | None = error
    while node is not None and id(node) not in seen:
        seen.add(id(node))
        yield node
        if node.__cause__ is not None:
            node = node.__cause__
        elif not node.__suppress_context__:
            node = node.__context__
        else:
            node = None


class ExceptionClassifier:
    """Decide whether an exception is retryable.

    An exception is retryable if any exception of its chain is an
    instance of a registered exception type or its message matches a
    registered pattern. Per-call extra patterns and types augment the
    registry for one call only.

    Args:
        manager: The handler registry. Defaults to a manager with the
            built-in handlers.

    Example:
        ```pycon
        >>> from aretry.handlers import ExceptionClassifier
        >>> classifier = ExceptionClassifier()
        >>> classifier.classify(ConnectionRefusedError("refused")).retryable
        True
        >>> classifier.classify(ValueError("bad input")).retryable
        False
        >>> classifier.classify(ValueError("bad input"), extra_patterns=["bad"]).retryable
        True

        ```
    """

    def __init__(self, manager: ExceptionHandlerManager | None = None) -> None:
        self.manager = (
            manager if manager is not None else ExceptionHandlerManager().register_default_handlers()
        )

    def classify(
        self,
        error: BaseException,
        extra_patterns: Iterable[str | re.Pattern[str]] = (),
        extra_exception_types: Iterable[type[BaseException]] = (),
    ) -> Classification:
        """Classify an exception.

        Args:
            error: The exception to classify.
            extra_patterns: Additional retryable message patterns.
            extra_exception_types: Additional retryable exception types.

        Returns:
            The classification. ``matched`` is the exception of the chain
            at which the match occurred.
        """
        types = (*self.manager.all_exception_types(), *extra_exception_types)
        patterns = compile_patterns((*self.manager.all_patterns(), *extra_patterns))

        for depth, node in enumerate(iter_exception_chain(error)):
            if types and isinstance(node, types):
                reason = f"{type(node).__qualname__} is a retryable exception type"
                return self._matched(node, depth, reason)
            pattern = matches_any(str(node), patterns)
            if pattern is not None:
                reason = f"message of {type(node).__qualname__} matches {pattern.pattern!r}"
                return self._matched(node, depth, reason)

        return Classification(
            retryable=False, reason=f"{type(error).__qualname__} is not retryable"
        )

    def is_retryable(
        self,
        error: BaseException,
        extra_patterns: Iterable[str | re.Pattern[str]] = (),
        extra_exception_types: Iterable[type[BaseException]] = (),
    ) -> bool:
        return self.classify(error, extra_patterns, extra_exception_types).retryable

    @staticmethod
    def _matched(node: BaseException, depth: int, reason: str) -> Classification:
        if depth:
            reason = f"{reason} (nested at depth {depth})"
        logger.debug(f"Classified as retryable: {reason}")
        return Classification(retryable=True, matched=node, reason=reason)
