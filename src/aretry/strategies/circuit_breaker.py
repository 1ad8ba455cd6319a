r"""Circuit breaker strategy for preventing cascading failures.

The circuit breaker wraps another strategy and stops retrying a failing
dependency for a cooldown period. It has three states:

- CLOSED: Normal operation, retries are delegated to the inner strategy
- OPEN: After too many consecutive failures, retries are denied
- HALF_OPEN: After the reset timeout, one trial attempt is allowed

The state is persisted in a key/value store under an explicit key, so
every strategy using the same key and the same store (possibly in other
processes) shares one circuit.

Example:
    ```pycon
    >>> from aretry.store import InMemoryStore
    >>> from aretry.strategies import CircuitBreakerStrategy, FixedDelayStrategy
    >>> strategy = CircuitBreakerStrategy(
    ...     FixedDelayStrategy(base_delay=1.0),
    ...     failure_threshold=1,
    ...     key="payments",
    ...     store=InMemoryStore(),
    ... )
    >>> strategy.should_retry(0, 3, ConnectionError("boom"))
    True
    >>> strategy.should_retry(1, 3, ConnectionError("boom"))
    False
    >>> strategy.state
    <CircuitState.OPEN: 'open'>

    ```
"""

from __future__ import annotations

__all__ = ["CircuitBreakerState", "CircuitBreakerStrategy", "CircuitState"]

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from aretry.exceptions import StoreError
from aretry.store.memory import default_store
from aretry.strategies.base import BaseDecoratorStrategy

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.store.base import BaseStore
    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states.

    Attributes:
        CLOSED: Normal operation, retries are allowed.
        OPEN: Circuit is open, retries are denied.
        HALF_OPEN: Testing if the dependency recovered, allows one trial
            attempt.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True)
class CircuitBreakerState:
    """Snapshot of a circuit as persisted in the store.

    Args:
        state: The circuit state.
        failure_count: The number of consecutive failures.
        opened_at: The wall-clock time the circuit last opened, or
            ``None`` if it never opened.
    """

    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    opened_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "opened_at": self.opened_at,
        }


class CircuitBreakerStrategy(BaseDecoratorStrategy):
    r"""Circuit breaker decorator strategy.

    Transitions are evaluated on every ``should_retry`` call, in this
    order:

    1. The outcome of the previous attempt (``last_error``) is applied to
       the persisted state. In HALF_OPEN, a failure reopens the circuit
       and a success closes it. In CLOSED, a failure increments the
       failure count and opens the circuit once the count exceeds
       ``failure_threshold``. A success resets the count.
    2. If the circuit is OPEN and ``reset_timeout`` has elapsed since it
       opened, it becomes HALF_OPEN and the failure count is reset.
    3. If the circuit is still OPEN the retry is denied. Otherwise the
       decision is delegated to the inner strategy.

    ``delay`` always delegates to the inner strategy.

    Store failures never hang a retry: by default the breaker fails open
    (delegates to the inner strategy) and logs a warning. With
    ``fail_open=False`` it denies the retry instead.

    Args:
        inner: The wrapped strategy.
        failure_threshold: The number of consecutive failures tolerated
            before the circuit opens. Must be > 0. Default is 5.
        reset_timeout: Time in seconds to wait in OPEN state before
            allowing a trial attempt. Must be > 0. Default is 60.0.
        key: The identifier of the circuit in the store.
        store: The key/value store holding the state. Defaults to the
            process-wide in-memory store.
        prefix: The prefix of the store keys.
        fail_open: Whether to allow retries when the store is
            unreachable. Default is True.
        state_ttl: Optional time to live of the persisted state in
            seconds.
        on_state_change: Optional callback function called when the
            circuit state changes. Receives (old_state: CircuitState,
            new_state: CircuitState).

    Raises:
        ValueError: If failure_threshold or reset_timeout are invalid.
    """

    def __init__(
        self,
        inner: BaseRetryStrategy,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        key: str = "default",
        store: BaseStore | None = None,
        prefix: str = "circuit_breaker:",
        fail_open: bool = True,
        state_ttl: float | None = None,
        on_state_change: Callable[[CircuitState, CircuitState], None] | None = None,
    ) -> None:
        super().__init__(inner)
        if failure_threshold <= 0:
            msg = f"failure_threshold must be > 0, got {failure_threshold}"
            raise ValueError(msg)
        if reset_timeout <= 0:
            msg = f"reset_timeout must be > 0, got {reset_timeout}"
            raise ValueError(msg)
        if state_ttl is not None and state_ttl <= 0:
            msg = f"state_ttl must be positive if specified, got {state_ttl}"
            raise ValueError(msg)

        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.key = key
        self.prefix = prefix
        self.fail_open = fail_open
        self.state_ttl = state_ttl
        self._store = store if store is not None else default_store()
        self._on_state_change = on_state_change

    @property
    def store(self) -> BaseStore:
        return self._store

    @property
    def state_key(self) -> str:
        return f"{self.prefix}{self.key}:state"

    @property
    def failures_key(self) -> str:
        return f"{self.prefix}{self.key}:failures"

    @property
    def state(self) -> CircuitState:
        """The current circuit state as persisted in the store."""
        return self._load()[0]

    @property
    def failure_count(self) -> int:
        """The current count of consecutive failures."""
        return self._read_failures()

    @property
    def opened_at(self) -> float | None:
        """The wall-clock time the circuit last opened."""
        return self._load()[1]

    def get_state(self) -> CircuitBreakerState:
        """Return a snapshot of the persisted circuit.

        Example:
            ```pycon
            >>> from aretry.store import InMemoryStore
            >>> from aretry.strategies import CircuitBreakerStrategy, FixedDelayStrategy
            >>> strategy = CircuitBreakerStrategy(FixedDelayStrategy(), store=InMemoryStore())
            >>> strategy.get_state()
            CircuitBreakerState(state=<CircuitState.CLOSED: 'closed'>, failure_count=0, opened_at=None)

            ```
        """
        state, opened_at = self._load()
        return CircuitBreakerState(
            state=state, failure_count=self._read_failures(), opened_at=opened_at
        )

    def reset(self) -> None:
        """Delete the persisted circuit, which closes it."""
        old_state = self._load()[0]
        self._store.forget(self.state_key)
        self._store.forget(self.failures_key)
        logger.debug(f"Circuit breaker {self.key!r} reset")
        self._notify(old_state, CircuitState.CLOSED)

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        try:
            state = self._evaluate(last_error)
        except StoreError as exc:
            if self.fail_open:
                logger.warning(
                    f"Circuit breaker store unavailable for {self.key!r}, allowing retry: {exc}"
                )
                return self.inner.should_retry(attempt, max_attempts, last_error)
            logger.warning(
                f"Circuit breaker store unavailable for {self.key!r}, denying retry: {exc}"
            )
            return False

        if state is CircuitState.OPEN:
            logger.debug(f"Circuit breaker {self.key!r} is open, denying retry")
            return False
        return self.inner.should_retry(attempt, max_attempts, last_error)

    def record_success(self) -> None:
        try:
            state, opened_at = self._load()
            self._apply_outcome(state, opened_at, None)
        except StoreError as exc:
            logger.warning(f"Circuit breaker store unavailable for {self.key!r}: {exc}")
        self.inner.record_success()

    def _evaluate(self, last_error: BaseException | None) -> CircuitState:
        state, opened_at = self._load()
        state, opened_at = self._apply_outcome(state, opened_at, last_error)
        if state is CircuitState.OPEN and self._reset_timeout_elapsed(opened_at):
            self._reset_failures()
            self._transition(state, CircuitState.HALF_OPEN, opened_at)
            state = CircuitState.HALF_OPEN
        return state

    def _apply_outcome(
        self,
        state: CircuitState,
        opened_at: float | None,
        last_error: BaseException | None,
    ) -> tuple[CircuitState, float | None]:
        if state is CircuitState.HALF_OPEN:
            self._reset_failures()
            if last_error is not None:
                opened_at = time.time()
                self._transition(state, CircuitState.OPEN, opened_at)
                logger.debug(f"Circuit breaker {self.key!r} trial attempt failed, circuit OPEN")
                return CircuitState.OPEN, opened_at
            self._transition(state, CircuitState.CLOSED, None)
            logger.debug(f"Circuit breaker {self.key!r} recovery successful, circuit CLOSED")
            return CircuitState.CLOSED, None

        if state is CircuitState.CLOSED:
            if last_error is None:
                self._reset_failures()
                return state, opened_at
            count = self._increment_failures()
            if count > self.failure_threshold:
                opened_at = time.time()
                self._transition(state, CircuitState.OPEN, opened_at)
                logger.debug(
                    f"Circuit breaker {self.key!r} opened after {count} consecutive failures "
                    f"(threshold: {self.failure_threshold})"
                )
                return CircuitState.OPEN, opened_at
        return state, opened_at

    def _reset_timeout_elapsed(self, opened_at: float | None) -> bool:
        if opened_at is None:
            return True
        return time.time() - opened_at >= self.reset_timeout

    def _load(self) -> tuple[CircuitState, float | None]:
        raw = self._store.get(self.state_key)
        if raw is None:
            return CircuitState.CLOSED, None
        try:
            return CircuitState(raw["state"]), raw.get("opened_at")
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            msg = f"Invalid circuit state stored under {self.state_key!r}: {raw!r}"
            raise StoreError(msg, key=self.state_key) from exc

    def _save(self, state: CircuitState, opened_at: float | None) -> None:
        self._store.put(
            self.state_key, {"state": state.value, "opened_at": opened_at}, ttl=self.state_ttl
        )

    def _read_failures(self) -> int:
        value = self._store.get(self.failures_key)
        try:
            return int(value or 0)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid failure count stored under {self.failures_key!r}: {value!r}"
            raise StoreError(msg, key=self.failures_key) from exc

    def _increment_failures(self) -> int:
        count = self._store.increment(self.failures_key)
        if count is None:
            # Not atomic: concurrent writers may under-count failures.
            count = self._read_failures() + 1
            self._store.put(self.failures_key, count)
        return count

    def _reset_failures(self) -> None:
        self._store.put(self.failures_key, 0)

    def _transition(
        self, old_state: CircuitState, new_state: CircuitState, opened_at: float | None
    ) -> None:
        self._save(new_state, opened_at)
        self._notify(old_state, new_state)

    def _notify(self, old_state: CircuitState, new_state: CircuitState) -> None:
        if old_state == new_state:
            return
        logger.debug(
            f"Circuit breaker {self.key!r} state changed: {old_state.value} -> {new_state.value}"
        )
        if self._on_state_change is not None:
            try:
                self._on_state_change(old_state, new_state)
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Error in circuit breaker state change callback: {e}")
