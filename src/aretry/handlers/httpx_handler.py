r"""Exception handler for httpx transport errors."""

from __future__ import annotations

__all__ = ["HttpxHandler"]

import importlib.util

from aretry.handlers.base import BaseExceptionHandler


class HttpxHandler(BaseExceptionHandler):
    """Handler for the transient errors raised by ``httpx``.

    Timeouts, network errors, remote protocol errors and proxy errors
    are retryable. ``httpx.HTTPStatusError`` is classified by message:
    server errors (5xx) and ``429 Too Many Requests`` match the
    patterns, other client errors do not.

    Example:
        ```pycon
        >>> import httpx
        >>> from aretry.handlers import HttpxHandler
        >>> handler = HttpxHandler()
        >>> handler.is_applicable()
        True
        >>> any(issubclass(httpx.ConnectTimeout, cls) for cls in handler.exception_types())
        True

        ```
    """

    def is_applicable(self) -> bool:
        return importlib.util.find_spec("httpx") is not None

    def handler_exceptions(self) -> tuple[type[BaseException], ...]:
        import httpx  # noqa: PLC0415

        return (
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
            httpx.ProxyError,
        )

    def handler_patterns(self) -> tuple[str, ...]:
        return (
            "too many requests",
            "could not resolve host",
            "name or service not known",
            "server disconnected",
            "connection reset",
            "certificate has expired",
            "ssl connection",
        )
