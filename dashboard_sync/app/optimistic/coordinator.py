"""
Optimistic-mutation coordinator.

Applies a local value before the remote write, performs exactly one remote
write, then either merges the authoritative result or rolls back. Concurrent
updates to the same key are not serialized: whichever settles last wins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from shared.errors import WriteError
from shared.logging import get_logger

from ..cache.keys import values_equal
from ..cache.store import CacheStore

T = TypeVar("T")

RemoteWrite = Callable[[Any], Awaitable[Any]]
Rollback = Callable[[], None]
# (current cached value, written value) -> new cached value
Apply = Callable[[Any, Any], Any]


class UpdateState(str, Enum):
    """State of a single update attempt."""
    IDLE = "idle"
    UPDATING = "updating"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class UpdateAttempt:
    key: str
    optimistic_value: Any
    state: UpdateState = UpdateState.IDLE
    result: Any = None
    error: Optional[BaseException] = None


def replace_value(_current: Any, value: Any) -> Any:
    return value


class OptimisticUpdater(Generic[T]):
    """Coordinates optimistic writes against one ``CacheStore``.

    Args:
        store: Store holding the cached values.
        on_success: Called with the authoritative result after commit.
        on_error: Called with the remote failure after rollback.
    """

    def __init__(
        self,
        store: CacheStore,
        on_success: Optional[Callable[[T], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        self.store = store
        self.on_success = on_success
        self.on_error = on_error
        self.logger = get_logger("dashboard_sync.optimistic.coordinator")
        self.last_attempt: Optional[UpdateAttempt] = None
        self._pending = 0

    @property
    def is_updating(self) -> bool:
        """True while at least one remote write is outstanding."""
        return self._pending > 0

    async def update(
        self,
        key: str,
        optimistic_value: T,
        remote_write: RemoteWrite,
        rollback: Optional[Rollback] = None,
        *,
        apply: Apply = replace_value,
    ) -> T:
        """Apply ``optimistic_value`` locally, write it remotely, reconcile.

        ``apply`` folds the written value into the cached value (replace by
        default; collections pass a function that upserts one record). When
        no ``rollback`` is given the value cached before this call is restored
        on failure, and an entry that held nothing goes back to its
        never-populated state.

        Raises:
            WriteError: The remote write failed; rollback has already run.
        """
        attempt = UpdateAttempt(key=key, optimistic_value=optimistic_value)
        self.last_attempt = attempt

        entry = self.store.get_or_create(key)
        previous_value = entry.value
        had_value = entry.has_value

        self.store.mutate(key, lambda current: apply(current, optimistic_value))
        attempt.state = UpdateState.UPDATING
        self._pending += 1

        try:
            result = await remote_write(optimistic_value)
        except Exception as exc:
            attempt.error = exc
            self._roll_back(key, rollback, previous_value, had_value)
            attempt.state = UpdateState.ROLLED_BACK
            self._pending -= 1

            self.store.metrics.record_write(key, "rolled_back")
            self.logger.warning("Optimistic update rolled back", key=key, error=str(exc))
            self._invoke(self.on_error, exc, key)
            raise WriteError(key, exc) from exc

        self.store.mutate(key, lambda current: apply(current, result))
        attempt.result = result
        attempt.state = UpdateState.COMMITTED
        self._pending -= 1

        self.store.metrics.record_write(key, "committed")
        self.logger.debug(
            "Optimistic update committed",
            key=key,
            reconciled=not values_equal(optimistic_value, result)
        )
        self._invoke(self.on_success, result, key)
        return result

    def _roll_back(self, key: str, rollback: Optional[Rollback], previous_value: Any, had_value: bool) -> None:
        if rollback is not None:
            try:
                rollback()
                return
            except Exception as exc:
                self.logger.error("Rollback failed, restoring captured value", key=key, error=str(exc))
        if had_value:
            self.store.mutate(key, lambda _current: previous_value)
        else:
            self.store.reset(key)

    def _invoke(self, callback: Optional[Callable[[Any], None]], arg: Any, key: str) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception as exc:
            self.logger.error("Update callback failed", key=key, error=str(exc))
