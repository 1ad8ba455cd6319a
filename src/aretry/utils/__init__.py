r"""Utility functions shared by the retry engine.

This package provides parameter validation, jitter helpers, message
pattern compilation and structured logging utilities.
"""

from __future__ import annotations

__all__ = [
    "apply_jitter",
    "compile_patterns",
    "matches_any",
    "operation_scope",
    "scale_jitter",
    "validate_delay_params",
    "validate_jitter_percent",
    "validate_retry_params",
]

from aretry.utils.jitter import apply_jitter, scale_jitter
from aretry.utils.patterns import compile_patterns, matches_any
from aretry.utils.structured_logging import operation_scope
from aretry.utils.validation import (
    validate_delay_params,
    validate_jitter_percent,
    validate_retry_params,
)
