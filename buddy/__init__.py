"""Buddy interaction: tap throttling and activity sampling."""

from buddy.tap_throttle import TapThrottle, TapRecord, TapDecision, evaluate_tap
from buddy.activity_sampler import ActivitySampler, ActivityState

__all__ = [
    "TapThrottle",
    "TapRecord",
    "TapDecision",
    "evaluate_tap",
    "ActivitySampler",
    "ActivityState",
]
