"""
Low-frequency activity sampling.

Session time is split into fixed windows. A window that saw at least
one qualifying input earns a bonus, up to a per-session cap. What
counts as qualifying input (keystrokes, in the terminal front-end any
typed line) is decided by the caller; this module only sees a boolean.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import config
from core.errors import require_positive, require_non_negative, require_whole
from core.events import EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityState:
    bonuses_this_session: int
    window_elapsed_seconds: float
    activity_observed_in_window: bool


class ActivitySampler:
    """
    Fixed-window activity sampler.

    Events:
        activity_bonus(points: int)
        activity_cap_reached()
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        window_seconds: float = config.ACTIVITY_WINDOW_SECONDS,
        max_bonuses_per_session: int = config.MAX_ACTIVITY_BONUSES_PER_SESSION,
        points_per_activity: int = config.POINTS_PER_ACTIVITY,
    ) -> None:
        require_positive("window_seconds", window_seconds)
        require_non_negative("max_bonuses_per_session", max_bonuses_per_session)
        require_non_negative("points_per_activity", points_per_activity)
        require_whole("max_bonuses_per_session", max_bonuses_per_session)
        require_whole("points_per_activity", points_per_activity)

        self.events = events or EventBus()
        self.window_seconds = float(window_seconds)
        self.max_bonuses_per_session = int(max_bonuses_per_session)
        self.points_per_activity = int(points_per_activity)

        self.is_tracking: bool = False
        self.bonuses_this_session: int = 0
        self._window_elapsed: float = 0.0
        self._observed: bool = False

    @property
    def state(self) -> ActivityState:
        return ActivityState(
            bonuses_this_session=self.bonuses_this_session,
            window_elapsed_seconds=self._window_elapsed,
            activity_observed_in_window=self._observed,
        )

    @property
    def activity_points_this_session(self) -> int:
        return self.bonuses_this_session * self.points_per_activity

    def can_earn_more_bonuses(self) -> bool:
        return self.bonuses_this_session < self.max_bonuses_per_session

    # ------------------------------------------------------------------
    # Tracking lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self) -> None:
        self.is_tracking = True
        self._window_elapsed = 0.0
        self._observed = False
        logger.debug("Started tracking activity")

    def pause_tracking(self) -> None:
        """Freeze the current window; input while paused is ignored."""
        self.is_tracking = False

    def resume_tracking(self) -> None:
        """Continue the same partially elapsed window."""
        self.is_tracking = True

    def stop_tracking(self) -> None:
        self.is_tracking = False
        self._observed = False
        logger.debug(f"Stopped tracking. Bonuses this session: {self.bonuses_this_session}")

    def reset_session(self) -> None:
        self.bonuses_this_session = 0
        self._window_elapsed = 0.0
        self._observed = False

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def record_activity(self) -> None:
        """Mark the current window as active (ignored unless tracking)."""
        if self.is_tracking:
            self._observed = True

    def advance(self, elapsed_seconds: float, activity: bool = False) -> None:
        """
        Feed elapsed session time and this tick's input signal.

        Args:
            elapsed_seconds: Time since the previous call.
            activity: True if qualifying input happened during this tick.
        """
        if not self.is_tracking:
            return

        if activity:
            self._observed = True

        if elapsed_seconds > 0:
            self._window_elapsed += elapsed_seconds

        if self._window_elapsed >= self.window_seconds:
            self._close_window()

    def _close_window(self) -> None:
        if self._observed and self.bonuses_this_session < self.max_bonuses_per_session:
            self.bonuses_this_session += 1
            logger.info(f"Activity bonus #{self.bonuses_this_session}/"
                        f"{self.max_bonuses_per_session}")
            self.events.emit(config.EVENT_ACTIVITY_BONUS, self.points_per_activity)

            if self.bonuses_this_session >= self.max_bonuses_per_session:
                logger.info("Max activity bonuses reached for this session")
                self.events.emit(config.EVENT_ACTIVITY_CAP_REACHED)

        self._observed = False
        self._window_elapsed = 0.0
