from .indicator import IndicatorState, StatusIndicator, resolve_status

__all__ = ["IndicatorState", "StatusIndicator", "resolve_status"]
