r"""Abstract base class for exception handlers.

An exception handler declares which exceptions are transient: a list of
exception types and a list of message patterns. Handlers are registered
in an ``ExceptionHandlerManager`` and consulted by the
``ExceptionClassifier``.
"""

from __future__ import annotations

__all__ = ["BaseExceptionHandler"]

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from aretry.config import DEFAULT_RETRYABLE_PATTERNS
from aretry.utils.patterns import compile_patterns

if TYPE_CHECKING:
    import re


class BaseExceptionHandler(ABC):
    """Abstract base class for exception handlers.

    Subclasses declare their own exception types and message patterns.
    ``message_patterns`` always includes the default transient patterns
    (timeouts, refused connections, server errors, rate limits).

    Example:
        ```pycon
        >>> from aretry.handlers import BaseExceptionHandler
        >>> class DatabaseHandler(BaseExceptionHandler):
        ...     def handler_exceptions(self):
        ...         return (ConnectionResetError,)
        ...     def handler_patterns(self):
        ...         return ("deadlock detected",)
        ...
        >>> handler = DatabaseHandler()
        >>> handler.exception_types()
        (<class 'ConnectionResetError'>,)
        >>> "deadlock detected" in [p.pattern for p in handler.message_patterns()]
        True

        ```
    """

    def default_patterns(self) -> tuple[str | re.Pattern[str], ...]:
        return DEFAULT_RETRYABLE_PATTERNS

    @abstractmethod
    def handler_patterns(self) -> tuple[str | re.Pattern[str], ...]:
        """Return the message patterns specific to this handler."""

    @abstractmethod
    def handler_exceptions(self) -> tuple[type[BaseException], ...]:
        """Return the exception types specific to this handler."""

    def message_patterns(self) -> tuple[re.Pattern[str], ...]:
        """Return the compiled default and handler message patterns."""
        return compile_patterns((*self.default_patterns(), *self.handler_patterns()))

    def exception_types(self) -> tuple[type[BaseException], ...]:
        return tuple(self.handler_exceptions())

    def is_applicable(self) -> bool:
        """Return whether the handler should be registered.

        Handlers depending on an optional library, or enabled only in
        some environments, override this method.
        """
        return True

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}()"
