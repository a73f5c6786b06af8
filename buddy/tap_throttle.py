"""
Tap bonus throttling for the buddy.

Every tap on the buddy is reported, but only taps that respect the
cooldown and the per-session cap count towards the session reward.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import config
from core.errors import require_non_negative, require_whole
from core.events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class TapRecord:
    """Per-session tap state. last_bonus_tap_time is None until the first bonus."""

    last_bonus_tap_time: Optional[float] = None
    bonus_taps_this_session: int = 0


@dataclass(frozen=True)
class TapDecision:
    granted: bool
    remaining_cooldown: float = 0.0
    cap_reached: bool = False


def evaluate_tap(now: float, record: TapRecord, cooldown_seconds: float,
                 max_per_session: int) -> TapDecision:
    """
    Decide whether a tap earns a bonus, updating the record on a grant.

    Args:
        now: Monotonic time of the tap.
        record: Session tap state (mutated only when the bonus is granted).
        cooldown_seconds: Minimum spacing between bonus taps.
        max_per_session: Bonus tap cap for the session.

    Returns:
        TapDecision. A cooldown denial carries the remaining wait; a cap
        denial has remaining_cooldown=0 and cap_reached=True.
    """
    # Once the cap is hit there is nothing left to cool down towards
    if record.bonus_taps_this_session >= max_per_session:
        return TapDecision(granted=False, remaining_cooldown=0.0, cap_reached=True)

    if record.last_bonus_tap_time is not None:
        elapsed = now - record.last_bonus_tap_time
        if elapsed < cooldown_seconds:
            return TapDecision(granted=False,
                               remaining_cooldown=max(0.0, cooldown_seconds - elapsed))

    record.last_bonus_tap_time = now
    record.bonus_taps_this_session += 1
    return TapDecision(granted=True)


class TapThrottle:
    """
    Stateful wrapper around evaluate_tap() owning the session TapRecord.

    Events:
        tap(bonus_eligible: bool)        - every tap
        tap_cooldown(remaining: float)   - only when still cooling down
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        cooldown_seconds: float = config.TAP_COOLDOWN_SECONDS,
        max_bonus_taps_per_session: int = config.MAX_BONUS_TAPS_PER_SESSION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        require_non_negative("cooldown_seconds", cooldown_seconds)
        require_non_negative("max_bonus_taps_per_session", max_bonus_taps_per_session)
        require_whole("max_bonus_taps_per_session", max_bonus_taps_per_session)

        self.events = events or EventBus()
        self.cooldown_seconds = float(cooldown_seconds)
        self.max_bonus_taps_per_session = max_bonus_taps_per_session
        self._clock = clock
        self.record = TapRecord()

    @property
    def bonus_taps_this_session(self) -> int:
        return self.record.bonus_taps_this_session

    def register_tap(self, now: Optional[float] = None) -> TapDecision:
        """Classify a tap and notify listeners."""
        if now is None:
            now = self._clock()

        decision = evaluate_tap(now, self.record, self.cooldown_seconds,
                                self.max_bonus_taps_per_session)

        if decision.granted:
            logger.info(f"Bonus tap #{self.record.bonus_taps_this_session}/"
                        f"{self.max_bonus_taps_per_session}")
        elif decision.remaining_cooldown > 0:
            self.events.emit(config.EVENT_TAP_COOLDOWN, decision.remaining_cooldown)
        else:
            logger.debug("Tap ignored for bonus: session cap reached")

        self.events.emit(config.EVENT_TAP, decision.granted)
        return decision

    def remaining_cooldown(self, now: Optional[float] = None) -> float:
        if self.record.last_bonus_tap_time is None:
            return 0.0
        if now is None:
            now = self._clock()
        elapsed = now - self.record.last_bonus_tap_time
        return max(0.0, self.cooldown_seconds - elapsed)

    def can_bonus_tap(self, now: Optional[float] = None) -> bool:
        return (self.remaining_cooldown(now) <= 0.0
                and self.record.bonus_taps_this_session < self.max_bonus_taps_per_session)

    def reset_session(self) -> None:
        """Forget the previous session so its cooldown cannot block the next first tap."""
        self.record = TapRecord()
        logger.debug("Session tap counter reset")
