r"""Retry execution package.

This package provides the retry executor together with the pieces it
is built from: the retry decider, the callback manager, the per-run
context and the promise-like result.
"""

from __future__ import annotations

__all__ = [
    "AttemptRecord",
    "CallbackManager",
    "RetryContext",
    "RetryDecider",
    "RetryExecutor",
    "RetryResult",
]

from aretry.retry.context import AttemptRecord, RetryContext
from aretry.retry.decider import RetryDecider
from aretry.retry.executor import RetryExecutor
from aretry.retry.manager import CallbackManager
from aretry.retry.result import RetryResult
