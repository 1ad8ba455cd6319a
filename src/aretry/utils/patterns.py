r"""Helpers for working with message regex patterns."""

from __future__ import annotations

__all__ = ["compile_patterns", "matches_any"]

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def compile_patterns(patterns: Iterable[str | re.Pattern[str]]) -> tuple[re.Pattern[str], ...]:
    """Compile message patterns, removing duplicates.

    String patterns are compiled case-insensitively. Already compiled
    patterns are kept as they are. The original order is preserved.

    Args:
        patterns: The string or compiled patterns.

    Returns:
        The compiled patterns without duplicates.

    Example:
        ```pycon
        >>> from aretry.utils.patterns import compile_patterns
        >>> patterns = compile_patterns(["timeout", "timeout", "server error"])
        >>> [p.pattern for p in patterns]
        ['timeout', 'server error']

        ```
    """
    compiled: dict[tuple[str, int], re.Pattern[str]] = {}
    for pattern in patterns:
        if not isinstance(pattern, re.Pattern):
            pattern = re.compile(pattern, re.IGNORECASE)
        compiled.setdefault((pattern.pattern, pattern.flags), pattern)
    return tuple(compiled.values())


def matches_any(text: str, patterns: Iterable[re.Pattern[str]]) -> re.Pattern[str] | None:
    """Return the first pattern found in ``text``, or ``None``.

    Example:
        ```pycon
        >>> from aretry.utils.patterns import compile_patterns, matches_any
        >>> matches_any("Connection Timed Out", compile_patterns(["timed out"])).pattern
        'timed out'
        >>> matches_any("boom", compile_patterns(["timed out"])) is None
        True

        ```
    """
    for pattern in patterns:
        if pattern.search(text):
            return pattern
    return None
