"""
Pomodoro focus timer.

The timer does NOT own a clock. The caller (the engine's tick loop)
reports real elapsed time through advance(), and the timer converts it
into whole-second ticks. Fractional time is carried over in an
accumulator so drift is never lost or counted twice.

Events (via EventBus):
    started(), paused(), resumed(), stopped(), completed()
    tick(remaining_seconds: int)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import config
from core.errors import require_positive, require_whole
from core.events import EventBus

logger = logging.getLogger(__name__)

PHASE_IDLE = "idle"
PHASE_RUNNING = "running"
PHASE_PAUSED = "paused"


@dataclass(frozen=True)
class TimerState:
    """Snapshot of the countdown. paused implies running."""

    remaining_seconds: int
    total_duration_seconds: int
    running: bool
    paused: bool


def format_time(total_seconds: int) -> str:
    """Format seconds as MM:SS (minutes are not wrapped at 60)."""
    total_seconds = max(0, int(total_seconds))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


class FocusTimer:
    """
    Countdown state machine: idle -> running <-> paused -> (completed) -> idle.

    Completed is transient: the completed event fires and the timer is
    immediately back at the full duration with running=False.
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        focus_duration_seconds: int = config.FOCUS_DURATION_SECONDS,
        demo_duration_seconds: int = config.DEMO_DURATION_SECONDS,
        demo_mode: bool = config.DEMO_MODE,
    ) -> None:
        """
        Args:
            events: Shared event bus. A private one is created if omitted.
            focus_duration_seconds: Production session length.
            demo_duration_seconds: Session length used when demo_mode is on.
            demo_mode: Selects the demo profile for this timer.

        Raises:
            ConfigurationError: If either duration is not a positive whole number of seconds.
        """
        require_positive("focus_duration_seconds", focus_duration_seconds)
        require_positive("demo_duration_seconds", demo_duration_seconds)
        require_whole("focus_duration_seconds", focus_duration_seconds)
        require_whole("demo_duration_seconds", demo_duration_seconds)

        self.events = events or EventBus()
        self._focus_duration = int(focus_duration_seconds)
        self._demo_duration = int(demo_duration_seconds)
        self._demo_mode = bool(demo_mode)

        self.is_running: bool = False
        self.is_paused: bool = False
        self.remaining_seconds: int = 0
        self._elapsed_since_last_tick: float = 0.0
        self._reset()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def total_duration(self) -> int:
        return self._demo_duration if self._demo_mode else self._focus_duration

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    @property
    def phase(self) -> str:
        if not self.is_running:
            return PHASE_IDLE
        return PHASE_PAUSED if self.is_paused else PHASE_RUNNING

    @property
    def state(self) -> TimerState:
        return TimerState(
            remaining_seconds=self.remaining_seconds,
            total_duration_seconds=self.total_duration,
            running=self.is_running,
            paused=self.is_paused,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start a fresh session, or resume if currently paused."""
        if self.is_running and not self.is_paused:
            logger.debug("Start ignored: timer already running")
            return

        if self.is_paused:
            self.resume()
            return

        self._reset()
        self.is_running = True
        self.is_paused = False

        logger.info(f"Timer started with {self.remaining_seconds} seconds")
        self.events.emit(config.EVENT_STARTED)
        self.events.emit(config.EVENT_TICK, self.remaining_seconds)

    def pause(self) -> None:
        if not self.is_running or self.is_paused:
            logger.debug("Pause ignored: timer not running or already paused")
            return

        self.is_paused = True
        logger.info(f"Timer paused at {self.remaining_seconds} seconds remaining")
        self.events.emit(config.EVENT_PAUSED)

    def resume(self) -> None:
        if not self.is_running or not self.is_paused:
            logger.debug("Resume ignored: timer not paused")
            return

        self.is_paused = False
        logger.info(f"Timer resumed with {self.remaining_seconds} seconds remaining")
        self.events.emit(config.EVENT_RESUMED)

    def stop(self) -> None:
        """Cancel the session. Progress is discarded and no reward is due."""
        if not self.is_running:
            logger.debug("Stop ignored: timer not running")
            return

        self.is_running = False
        self.is_paused = False
        self._reset()
        logger.info("Timer stopped (cancelled)")
        self.events.emit(config.EVENT_STOPPED)

    def set_demo_mode(self, enabled: bool) -> bool:
        """
        Switch between the demo and production duration.

        Only allowed while idle; a running session keeps its profile.

        Returns:
            True if the profile was applied.
        """
        if self.is_running:
            logger.debug("Demo mode change ignored: session in progress")
            return False

        self._demo_mode = bool(enabled)
        self._reset()
        logger.info(f"Demo mode {'enabled' if self._demo_mode else 'disabled'} "
                    f"({self.total_duration}s sessions)")
        return True

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def advance(self, elapsed_seconds: float) -> bool:
        """
        Feed real elapsed time into the countdown.

        Args:
            elapsed_seconds: Wall time since the previous call.

        Returns:
            True if the session completed during this call.
        """
        if not self.is_running or self.is_paused or elapsed_seconds <= 0:
            return False

        self._elapsed_since_last_tick += elapsed_seconds

        while self._elapsed_since_last_tick >= 1.0:
            self._elapsed_since_last_tick -= 1.0
            self.remaining_seconds -= 1
            self.events.emit(config.EVENT_TICK, self.remaining_seconds)

            if self.remaining_seconds <= 0:
                self._complete()
                return True

        return False

    def _complete(self) -> None:
        self.is_running = False
        self.is_paused = False
        self.remaining_seconds = 0

        logger.info("Focus session completed")
        self.events.emit(config.EVENT_COMPLETED)

        self._reset()

    def _reset(self) -> None:
        self.remaining_seconds = self.total_duration
        self._elapsed_since_last_tick = 0.0
