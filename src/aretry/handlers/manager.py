r"""Registry of exception handlers."""

from __future__ import annotations

__all__ = ["DEFAULT_HANDLERS", "ENTRY_POINT_GROUP", "ExceptionHandlerManager"]

import importlib
import inspect
import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any

from aretry.exceptions import HandlerLoadError
from aretry.handlers.base import BaseExceptionHandler
from aretry.handlers.builtin import BuiltinHandler
from aretry.handlers.httpx_handler import HttpxHandler
from aretry.utils.patterns import compile_patterns

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_HANDLERS: tuple[type[BaseExceptionHandler], ...] = (BuiltinHandler, HttpxHandler)

ENTRY_POINT_GROUP = "aretry.handlers"


class ExceptionHandlerManager:
    """Registry of the exception handlers consulted by the classifier.

    Handlers are registered explicitly, from the built-in list, from
    dotted paths, or from the ``aretry.handlers`` entry point group of
    installed distributions. Registration methods return the manager for
    chaining.

    Args:
        handlers: The initial handlers.

    Example:
        ```pycon
        >>> from aretry.handlers import BuiltinHandler, ExceptionHandlerManager
        >>> manager = ExceptionHandlerManager().register_default_handlers()
        >>> manager.has_handler(BuiltinHandler)
        True
        >>> ConnectionError in manager.all_exception_types()
        True

        ```
    """

    def __init__(self, handlers: Iterable[BaseExceptionHandler] = ()) -> None:
        self._handlers: list[BaseExceptionHandler] = []
        for handler in handlers:
            self.register_handler(handler)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}(handlers={self._handlers!r})"

    @property
    def handlers(self) -> tuple[BaseExceptionHandler, ...]:
        return tuple(self._handlers)

    def register_handler(self, handler: BaseExceptionHandler) -> ExceptionHandlerManager:
        """Register a handler.

        Raises:
            TypeError: If ``handler`` is not a ``BaseExceptionHandler``.
        """
        if not isinstance(handler, BaseExceptionHandler):
            msg = f"handler must be a BaseExceptionHandler, got {type(handler).__qualname__}"
            raise TypeError(msg)
        self._handlers.append(handler)
        logger.debug(f"Registered exception handler {handler!r}")
        return self

    def register_default_handlers(self) -> ExceptionHandlerManager:
        """Register the built-in handlers that are applicable and not
        registered yet."""
        for handler_cls in DEFAULT_HANDLERS:
            if self.has_handler(handler_cls):
                continue
            self._register_if_applicable(handler_cls())
        return self

    def load_handlers(self, paths: Iterable[str]) -> ExceptionHandlerManager:
        """Register handlers from dotted paths.

        Each path (``"pkg.module:Handler"`` or ``"pkg.module.Handler"``)
        names a handler class, which is instantiated without arguments,
        or a handler instance.

        Raises:
            HandlerLoadError: If a path cannot be imported or does not
                name a handler.
        """
        for path in paths:
            self._register_if_applicable(_to_handler(_import_path(path), path))
        return self

    def discover_entry_points(self, group: str = ENTRY_POINT_GROUP) -> ExceptionHandlerManager:
        """Register the handlers advertised by installed distributions.

        Raises:
            HandlerLoadError: If an entry point cannot be loaded or does
                not name a handler.
        """
        for entry_point in entry_points(group=group):
            try:
                obj = entry_point.load()
            except Exception as exc:
                msg = f"Cannot load exception handler entry point {entry_point.name!r}: {exc}"
                raise HandlerLoadError(msg) from exc
            self._register_if_applicable(_to_handler(obj, entry_point.value))
        return self

    def remove_handler(self, handler_cls: type[BaseExceptionHandler]) -> ExceptionHandlerManager:
        self._handlers = [h for h in self._handlers if not isinstance(h, handler_cls)]
        return self

    def has_handler(self, handler_cls: type[BaseExceptionHandler]) -> bool:
        return any(isinstance(handler, handler_cls) for handler in self._handlers)

    def clear_handlers(self) -> ExceptionHandlerManager:
        self._handlers = []
        return self

    def all_patterns(self) -> tuple[re.Pattern[str], ...]:
        """Return the patterns of every applicable handler, without
        duplicates."""
        return compile_patterns(
            pattern
            for handler in self._handlers
            if handler.is_applicable()
            for pattern in handler.message_patterns()
        )

    def all_exception_types(self) -> tuple[type[BaseException], ...]:
        """Return the exception types of every applicable handler,
        without duplicates."""
        return tuple(
            dict.fromkeys(
                exc_type
                for handler in self._handlers
                if handler.is_applicable()
                for exc_type in handler.exception_types()
            )
        )

    def _register_if_applicable(self, handler: BaseExceptionHandler) -> None:
        if not handler.is_applicable():
            logger.debug(f"Skipping exception handler {handler!r}: not applicable")
            return
        self.register_handler(handler)


def _import_path(path: str) -> Any:
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        msg = f"Invalid exception handler path {path!r}"
        raise HandlerLoadError(msg)
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        msg = f"Cannot load exception handler {path!r}: {exc}"
        raise HandlerLoadError(msg) from exc


def _to_handler(obj: Any, path: str) -> BaseExceptionHandler:
    if inspect.isclass(obj) and issubclass(obj, BaseExceptionHandler):
        if inspect.isabstract(obj):
            msg = f"Exception handler {path!r} is abstract"
            raise HandlerLoadError(msg)
        return obj()
    if isinstance(obj, BaseExceptionHandler):
        return obj
    msg = f"{path!r} is not a BaseExceptionHandler"
    raise HandlerLoadError(msg)
