"""
CompanionEngine — Core orchestration for ChillTap Buddy.

Wires the focus timer, tap throttle, activity sampler and reward
calculator together. This module has ZERO UI dependencies: the front-end
calls engine methods, drives tick() from its own clock and subscribes to
engine.events for updates.

Per tick, work happens in a fixed order:
    1. the timer consumes elapsed time (may complete the session)
    2. queued taps, then queued activity, are processed
    3. if the session completed, the reward is computed exactly once
"""

import logging
import threading
import time
from datetime import date
from typing import Callable, Dict, List, Optional

import config
from buddy.activity_sampler import ActivitySampler
from buddy.tap_throttle import TapThrottle
from core.events import EventBus
from rewards.catalog import UnlockCatalog, load_catalog
from rewards.reward_calculator import RewardBreakdown, RewardCalculator, UnlockResult
from timer.focus_timer import FocusTimer, format_time
from tracking.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class CompanionEngine:
    """
    Core session management engine.

    Handles:
    - Session lifecycle (start, pause/resume, stop)
    - Tap bonus classification
    - Activity window sampling
    - Reward computation and persistence on completion
    - Unlock purchases and equipping

    The engine does NOT run its own timer. The front-end calls tick()
    with the real time elapsed since the previous call.
    """

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def __init__(
        self,
        store: Optional[ProgressStore] = None,
        catalog: Optional[UnlockCatalog] = None,
        events: Optional[EventBus] = None,
        timer: Optional[FocusTimer] = None,
        taps: Optional[TapThrottle] = None,
        activity: Optional[ActivitySampler] = None,
        rewards: Optional[RewardCalculator] = None,
        clock: Callable[[], float] = time.monotonic,
        demo_mode: bool = config.DEMO_MODE,
    ) -> None:
        """
        Build the engine. Components not supplied are constructed from
        config, all sharing one event bus.

        Raises:
            ConfigurationError: If any configured value is invalid.
        """
        self.events: EventBus = events or EventBus()
        self.store: ProgressStore = store or ProgressStore()
        self.catalog: UnlockCatalog = catalog if catalog is not None else load_catalog()
        self._clock = clock

        self.timer: FocusTimer = timer or FocusTimer(self.events, demo_mode=demo_mode)
        self.taps: TapThrottle = taps or TapThrottle(self.events, clock=clock)
        self.activity: ActivitySampler = activity or ActivitySampler(self.events)
        self.rewards: RewardCalculator = rewards or RewardCalculator(
            self.store, self.catalog, self.events
        )

        # Input queued between ticks (the front-end may enqueue from another thread)
        self._input_lock = threading.Lock()
        self._pending_taps: List[float] = []
        self._pending_activity: bool = False

        self.last_reward: Optional[RewardBreakdown] = None

        self.events.subscribe(config.EVENT_STARTED, self._on_started)
        self.events.subscribe(config.EVENT_PAUSED, self._on_paused)
        self.events.subscribe(config.EVENT_RESUMED, self._on_resumed)
        self.events.subscribe(config.EVENT_STOPPED, self._on_stopped)

    def startup(self, today: Optional[date] = None) -> None:
        """Load saved progress and validate the streak. Call once per app start."""
        self.store.load()
        self.rewards.validate_streak(today)
        logger.info("Engine ready")

    # ------------------------------------------------------------------
    # User intents
    # ------------------------------------------------------------------

    def start_focus(self) -> None:
        """Start a new session, or resume the paused one."""
        self.timer.start()

    def pause_focus(self) -> None:
        self.timer.pause()

    def stop_focus(self) -> None:
        """Cancel the session. No reward is computed."""
        self.timer.stop()

    def tap(self, now: Optional[float] = None) -> None:
        """Queue a tap on the buddy for the next tick."""
        with self._input_lock:
            self._pending_taps.append(self._clock() if now is None else now)

    def record_activity(self) -> None:
        """Queue a qualifying input signal for the next tick."""
        with self._input_lock:
            self._pending_activity = True

    def unlock(self, item_id: str) -> UnlockResult:
        return self.rewards.try_unlock_item(item_id)

    def equip(self, item_id: str) -> bool:
        return self.rewards.equip(item_id)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def tick(self, elapsed_seconds: float) -> Optional[RewardBreakdown]:
        """
        Advance every component by one frame.

        Args:
            elapsed_seconds: Real time since the previous tick.

        Returns:
            The reward breakdown if the session completed on this tick.
        """
        sampling = self.timer.is_running and not self.timer.is_paused

        completed = self.timer.advance(elapsed_seconds)

        with self._input_lock:
            taps = self._pending_taps
            activity = self._pending_activity
            self._pending_taps = []
            self._pending_activity = False

        for tap_time in taps:
            self.taps.register_tap(tap_time)

        if sampling:
            self.activity.advance(elapsed_seconds, activity)

        if not completed:
            return None

        self.activity.stop_tracking()
        self.last_reward = self.rewards.compute_session_reward(
            self.taps.bonus_taps_this_session,
            self.activity.activity_points_this_session,
            self.store.state.streak,
        )
        return self.last_reward

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> Dict:
        """
        Get current engine status (polled by the front-end).

        Returns:
            dict with keys: phase, remaining_seconds, remaining_text,
            total_duration, demo_mode, bonus_taps, max_bonus_taps,
            activity_bonuses, max_activity_bonuses, total_points, streak,
            streak_bonus_percent, sessions_completed.
        """
        state = self.store.state
        return {
            "phase": self.timer.phase,
            "remaining_seconds": self.timer.remaining_seconds,
            "remaining_text": format_time(self.timer.remaining_seconds),
            "total_duration": self.timer.total_duration,
            "demo_mode": self.timer.demo_mode,
            "bonus_taps": self.taps.bonus_taps_this_session,
            "max_bonus_taps": self.taps.max_bonus_taps_per_session,
            "activity_bonuses": self.activity.bonuses_this_session,
            "max_activity_bonuses": self.activity.max_bonuses_per_session,
            "total_points": state.total_points,
            "streak": state.streak,
            "streak_bonus_percent": self.rewards.current_streak_bonus_percent(),
            "sessions_completed": state.sessions_completed,
        }

    # ------------------------------------------------------------------
    # Timer lifecycle handlers
    # ------------------------------------------------------------------

    def _on_started(self) -> None:
        # The previous session's reward has already read these counters
        self.taps.reset_session()
        self.activity.reset_session()
        self.activity.start_tracking()
        with self._input_lock:
            self._pending_taps = []
            self._pending_activity = False
        logger.info("Focus session started")

    def _on_paused(self) -> None:
        self.activity.pause_tracking()

    def _on_resumed(self) -> None:
        self.activity.resume_tracking()

    def _on_stopped(self) -> None:
        self.activity.stop_tracking()
        logger.info("Focus session cancelled")
