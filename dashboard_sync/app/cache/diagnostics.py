"""
Diagnostics for fetch results discarded by the version check.

A discarded result is not an error: a local mutation landed while the fetch
was in flight and the newer local value wins. Hooks registered here let
developers observe those races.
"""

import collections
from dataclasses import dataclass
from typing import Any, Callable, Deque, List

from shared.logging import get_logger


@dataclass(frozen=True)
class ConcurrentSupersession:
    """A fetch result dropped because the entry moved on while it was in flight."""
    key: str
    start_version: int
    current_version: int
    discarded_value: Any
    detected_at: float


SupersessionHook = Callable[[ConcurrentSupersession], None]


class DiagnosticsHub:
    """Fans supersession events out to registered hooks and keeps a short history."""

    def __init__(self, history_size: int = 100):
        self.logger = get_logger("dashboard_sync.cache.diagnostics")
        self._hooks: List[SupersessionHook] = []
        self.history: Deque[ConcurrentSupersession] = collections.deque(maxlen=history_size)

    def add_hook(self, hook: SupersessionHook) -> Callable[[], None]:
        """Register a hook; returns a callable removing it."""
        self._hooks.append(hook)

        def remove() -> None:
            if hook in self._hooks:
                self._hooks.remove(hook)

        return remove

    def emit(self, event: ConcurrentSupersession) -> None:
        self.history.append(event)
        for hook in list(self._hooks):
            try:
                hook(event)
            except Exception as exc:
                self.logger.error("Supersession hook failed", key=event.key, error=str(exc))

    def clear(self) -> None:
        self.history.clear()
