r"""Decorator strategy forcing retries based on response bodies.

Many APIs report transient failures in the response body rather than
through the status code, e.g. ``{"error": {"code": "SERVER_BUSY"}}``.
``ResponseContentStrategy`` extracts the response attached to the last
error, and forces a retry when its body looks transient.
"""

from __future__ import annotations

__all__ = ["ResponseContentStrategy", "extract_response", "read_body"]

import json
import logging
from typing import TYPE_CHECKING, Any

from aretry.config import DEFAULT_RESPONSE_ERROR_CODE_PATHS
from aretry.strategies.base import BaseDecoratorStrategy
from aretry.utils.patterns import compile_patterns, matches_any

if TYPE_CHECKING:
    import re
    from collections.abc import Callable, Iterable

    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)

RESPONSE_ATTRIBUTES = ("response", "http_response", "client_response")


def extract_response(error: BaseException | None) -> Any | None:
    """Return the response attached to an error, if any.

    The error is duck-typed: the first non-None attribute among
    ``response``, ``http_response`` and ``client_response`` is returned.

    Example:
        ```pycon
        >>> from aretry.strategies.response_content import extract_response
        >>> error = RuntimeError("boom")
        >>> error.response = "body"
        >>> extract_response(error)
        'body'
        >>> extract_response(ValueError("boom")) is None
        True

        ```
    """
    if error is None:
        return None
    for name in RESPONSE_ATTRIBUTES:
        try:
            response = getattr(error, name, None)
        except RuntimeError:
            # httpx raises RuntimeError for unset request/response properties.
            continue
        if response is not None:
            return response
    return None


def read_body(response: Any) -> str | None:
    """Read the body of a response as text.

    Supports strings and bytes, objects exposing ``text``, ``content``
    or ``body`` (attribute or method), and objects with ``get_body()``.

    Returns:
        The body, or ``None`` if it cannot be read.

    Example:
        ```pycon
        >>> import httpx
        >>> from aretry.strategies.response_content import read_body
        >>> read_body(httpx.Response(503, text="server busy"))
        'server busy'
        >>> read_body(b'{"code": "RATE_LIMITED"}')
        '{"code": "RATE_LIMITED"}'

        ```
    """
    if isinstance(response, str):
        return response
    if isinstance(response, (bytes, bytearray)):
        return bytes(response).decode("utf-8", errors="replace")
    for name in ("text", "content", "body", "get_body"):
        try:
            value = getattr(response, name, None)
            if callable(value):
                value = value()
        except (RuntimeError, OSError, TypeError) as exc:
            # httpx raises ResponseNotRead (a RuntimeError) for unread streams.
            logger.debug(f"Cannot read response {name!r}: {exc}")
            continue
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, str):
            return value
    return None


def _get_nested(data: Any, path: str) -> Any | None:
    current = data
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return None
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
    return current


class ResponseContentStrategy(BaseDecoratorStrategy):
    r"""Force retries when the response attached to an error looks
    transient.

    ``should_retry`` denies once ``attempt >= max_attempts``. Otherwise,
    when a response body can be extracted from ``last_error``, a retry
    is forced if:

    - the custom ``content_checker`` returns ``True`` for the response,
    - a pattern matches the raw body, or
    - the body is JSON and a value reached through one of
      ``error_code_paths`` equals one of ``error_codes``.

    In every other case the decision is delegated to the inner strategy.

    Args:
        inner: The wrapped strategy.
        patterns: Regex patterns matched against the raw body. Strings
            are compiled case-insensitively.
        error_codes: Error codes marking the failure as transient.
        error_code_paths: Dotted paths searched in JSON bodies.
        content_checker: Optional callable receiving the response and
            returning whether to retry.

    Example:
        ```pycon
        >>> import httpx
        >>> from aretry.strategies import FixedDelayStrategy, ResponseContentStrategy
        >>> strategy = ResponseContentStrategy(
        ...     FixedDelayStrategy(),
        ...     error_codes=["SERVER_BUSY"],
        ... )
        >>> request = httpx.Request("GET", "https://api.example.com")
        >>> response = httpx.Response(
        ...     400, json={"error": {"code": "SERVER_BUSY"}}, request=request
        ... )
        >>> error = httpx.HTTPStatusError("bad request", request=request, response=response)
        >>> strategy.should_retry(0, 3, error)
        True

        ```
    """

    def __init__(
        self,
        inner: BaseRetryStrategy,
        patterns: Iterable[str | re.Pattern[str]] = (),
        error_codes: Iterable[str] = (),
        error_code_paths: Iterable[str] = DEFAULT_RESPONSE_ERROR_CODE_PATHS,
        content_checker: Callable[[Any], bool] | None = None,
    ) -> None:
        super().__init__(inner)
        self.patterns = compile_patterns(patterns)
        self.error_codes = tuple(dict.fromkeys(str(code) for code in error_codes))
        self.error_code_paths = tuple(dict.fromkeys(error_code_paths))
        self.content_checker = content_checker

    def with_content_checker(self, checker: Callable[[Any], bool]) -> ResponseContentStrategy:
        self.content_checker = checker
        return self

    def with_patterns(self, patterns: Iterable[str | re.Pattern[str]]) -> ResponseContentStrategy:
        """Add body patterns. Returns the strategy for chaining."""
        self.patterns = compile_patterns((*self.patterns, *patterns))
        return self

    def with_error_codes(self, error_codes: Iterable[str]) -> ResponseContentStrategy:
        self.error_codes = tuple(
            dict.fromkeys((*self.error_codes, *(str(code) for code in error_codes)))
        )
        return self

    def with_error_code_paths(self, paths: Iterable[str]) -> ResponseContentStrategy:
        self.error_code_paths = tuple(dict.fromkeys((*self.error_code_paths, *paths)))
        return self

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        if attempt >= max_attempts:
            return False
        response = extract_response(last_error)
        if response is not None and self.is_retryable_response(response):
            return True
        return self.inner.should_retry(attempt, max_attempts, last_error)

    def is_retryable_response(self, response: Any) -> bool:
        """Return whether a response indicates a transient failure."""
        if self.content_checker is not None and self.content_checker(response):
            logger.debug("Response marked retryable by the content checker")
            return True

        body = read_body(response)
        if not body:
            return False

        pattern = matches_any(body, self.patterns)
        if pattern is not None:
            logger.debug(f"Response body matches retryable pattern {pattern.pattern!r}")
            return True

        if not self.error_codes:
            return False
        try:
            data = json.loads(body)
        except ValueError:
            return False
        for path in self.error_code_paths:
            value = _get_nested(data, path)
            if value is not None and str(value) in self.error_codes:
                logger.debug(f"Response error code {value!r} at {path!r} is retryable")
                return True
        return False
