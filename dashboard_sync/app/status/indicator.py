"""
Cache status indicator.

A pure function of what a resource binding exposes: exactly one of
loading, error (with retry), stale (with refresh) or fresh.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class IndicatorState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    STALE = "stale"
    FRESH = "fresh"


@dataclass(frozen=True)
class StatusIndicator:
    """What to show for one resource."""
    state: IndicatorState
    label: str
    tone: str
    action_label: Optional[str] = None
    on_action: Optional[Callable[[], Any]] = None

    @property
    def has_action(self) -> bool:
        return self.on_action is not None

    def trigger(self) -> Any:
        """Run the action (retry or refresh); returns whatever it returns, e.g. a coroutine."""
        if self.on_action is None:
            return None
        return self.on_action()

    def render_text(self) -> str:
        if self.action_label:
            return f"{self.label} [{self.action_label}]"
        return self.label


def resolve_status(
    is_stale: bool = False,
    loading: bool = False,
    error: Optional[BaseException] = None,
    on_refresh: Optional[Callable[[], Any]] = None,
) -> StatusIndicator:
    """Pick the indicator; precedence is loading, error, stale, fresh.

    Retry and refresh actions are offered only when ``on_refresh`` is given.
    """
    if loading:
        return StatusIndicator(IndicatorState.LOADING, "Updating...", "info")

    if error is not None:
        return StatusIndicator(
            IndicatorState.ERROR,
            "Connection error",
            "danger",
            action_label="Retry" if on_refresh else None,
            on_action=on_refresh,
        )

    if is_stale:
        return StatusIndicator(
            IndicatorState.STALE,
            "Data may be outdated",
            "warning",
            action_label="Refresh" if on_refresh else None,
            on_action=on_refresh,
        )

    return StatusIndicator(IndicatorState.FRESH, "Up to date", "success")
