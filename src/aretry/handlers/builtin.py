r"""Exception handler for the built-in transient exceptions."""

from __future__ import annotations

__all__ = ["BuiltinHandler"]

from aretry.handlers.base import BaseExceptionHandler


class BuiltinHandler(BaseExceptionHandler):
    """Handler for the standard library's transient exceptions.

    ``ConnectionError`` covers refused, reset and aborted connections
    and broken pipes. ``TimeoutError`` also covers ``socket.timeout``.

    Example:
        ```pycon
        >>> from aretry.handlers import BuiltinHandler
        >>> BuiltinHandler().exception_types()
        (<class 'ConnectionError'>, <class 'TimeoutError'>)

        ```
    """

    def handler_exceptions(self) -> tuple[type[BaseException], ...]:
        return (ConnectionError, TimeoutError)

    def handler_patterns(self) -> tuple[str, ...]:
        return ("connection reset", "broken pipe")
