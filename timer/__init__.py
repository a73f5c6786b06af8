"""Focus timer package for ChillTap Buddy."""

from timer.focus_timer import FocusTimer, TimerState, format_time

__all__ = ["FocusTimer", "TimerState", "format_time"]
