r"""Exception handlers and the retryability classifier."""

from __future__ import annotations

__all__ = [
    "BaseExceptionHandler",
    "BuiltinHandler",
    "Classification",
    "ExceptionClassifier",
    "ExceptionHandlerManager",
    "HttpxHandler",
]

from aretry.handlers.base import BaseExceptionHandler
from aretry.handlers.builtin import BuiltinHandler
from aretry.handlers.classifier import Classification, ExceptionClassifier
from aretry.handlers.httpx_handler import HttpxHandler
from aretry.handlers.manager import ExceptionHandlerManager
