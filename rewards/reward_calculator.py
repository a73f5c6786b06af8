"""
Session rewards, streaks and unlock purchases.

Reward formula for a completed session:

    base     = BASE_SESSION_POINTS
    taps     = bonus taps * POINTS_PER_TAP
    streak   = prior streak + 1
    percent  = min(streak * STREAK_BONUS_PERCENT, MAX_STREAK_BONUS_PERCENT)
    bonus    = round_half_up(base * percent / 100)
    total    = base + taps + activity points + bonus

Events:
    reward_computed(breakdown: RewardBreakdown)
    item_unlocked(definition: UnlockDefinition, or the item id if not in the catalog)
    unlock_denied(result: UnlockResult)
    item_equipped(definition: UnlockDefinition)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import config
from core.errors import require_non_negative
from core.events import EventBus
from rewards.catalog import UnlockCatalog, UnlockCategory, UnlockDefinition
from tracking.progress_store import ProgressStore

logger = logging.getLogger(__name__)

# UnlockResult.reason values
REASON_UNLOCKED = "unlocked"
REASON_ALREADY_UNLOCKED = "already_unlocked"
REASON_INSUFFICIENT_POINTS = "insufficient_points"
REASON_UNKNOWN_ITEM = "unknown_item"
REASON_INVALID_COST = "invalid_cost"
REASON_SAVE_FAILED = "save_failed"


@dataclass(frozen=True)
class RewardBreakdown:
    base_points: int
    tap_bonus: int
    activity_bonus: int
    streak_bonus: int
    streak_level: int
    total_points: int

    def __str__(self) -> str:
        return (f"Base: {self.base_points}, Taps: +{self.tap_bonus}, "
                f"Activity: +{self.activity_bonus}, "
                f"Streak (x{self.streak_level}): +{self.streak_bonus} = "
                f"{self.total_points} total")


@dataclass(frozen=True)
class UnlockResult:
    granted: bool
    item_id: str
    reason: str
    points_needed: int = 0

    def __bool__(self) -> bool:
        return self.granted


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_streak_on_resume(streak: int, last_session_date: str, today: date) -> int:
    """
    Return the streak to keep after the app has been closed for a while.

    A gap of more than one calendar day breaks the streak. Consecutive
    days (or the same day) keep it. Empty or unreadable dates, and dates
    in the future, leave the streak untouched.
    """
    if not last_session_date:
        return streak

    try:
        last = datetime.strptime(last_session_date, "%Y-%m-%d").date()
    except ValueError:
        logger.warning(f"Unreadable last session date: {last_session_date!r}")
        return streak

    days_since = (today - last).days
    if days_since > 1:
        logger.info(f"Streak broken - {days_since} days since last session")
        return 0
    return streak


class RewardCalculator:
    """Turns session telemetry into points and handles purchases."""

    def __init__(
        self,
        store: ProgressStore,
        catalog: Optional[UnlockCatalog] = None,
        events: Optional[EventBus] = None,
        base_session_points: int = config.BASE_SESSION_POINTS,
        points_per_tap: int = config.POINTS_PER_TAP,
        streak_bonus_percent: int = config.STREAK_BONUS_PERCENT,
        max_streak_bonus_percent: int = config.MAX_STREAK_BONUS_PERCENT,
    ) -> None:
        require_non_negative("base_session_points", base_session_points)
        require_non_negative("points_per_tap", points_per_tap)
        require_non_negative("streak_bonus_percent", streak_bonus_percent)
        require_non_negative("max_streak_bonus_percent", max_streak_bonus_percent)

        self.store = store
        self.catalog = catalog or UnlockCatalog([])
        self.events = events or EventBus()
        self.base_session_points = int(base_session_points)
        self.points_per_tap = int(points_per_tap)
        self.streak_bonus_percent = int(streak_bonus_percent)
        self.max_streak_bonus_percent = int(max_streak_bonus_percent)

    # ------------------------------------------------------------------
    # Session rewards
    # ------------------------------------------------------------------

    def streak_percent(self, streak: int) -> int:
        return min(streak * self.streak_bonus_percent, self.max_streak_bonus_percent)

    def compute_session_reward(self, tap_bonus_count: int, activity_bonus_points: int,
                               prior_streak: int, today: Optional[date] = None) -> RewardBreakdown:
        """
        Compute and apply the reward for one completed session.

        Args:
            tap_bonus_count: Bonus taps granted during the session.
            activity_bonus_points: Points accumulated by the activity sampler.
            prior_streak: Streak before this session.
            today: Session date (defaults to date.today()).

        Returns:
            The RewardBreakdown that was credited.
        """
        base_points = self.base_session_points
        tap_bonus = max(0, tap_bonus_count) * self.points_per_tap
        activity_bonus = max(0, activity_bonus_points)

        new_streak = max(0, prior_streak) + 1
        percent = self.streak_percent(new_streak)
        streak_bonus = round_half_up(Decimal(base_points * percent) / 100)

        breakdown = RewardBreakdown(
            base_points=base_points,
            tap_bonus=tap_bonus,
            activity_bonus=activity_bonus,
            streak_bonus=streak_bonus,
            streak_level=new_streak,
            total_points=base_points + tap_bonus + activity_bonus + streak_bonus,
        )

        self.store.apply_session_reward(breakdown.total_points, new_streak, today)

        logger.info(f"Session reward: {breakdown}")
        self.events.emit(config.EVENT_REWARD_COMPUTED, breakdown)
        return breakdown

    # ------------------------------------------------------------------
    # Streaks
    # ------------------------------------------------------------------

    def validate_streak(self, today: Optional[date] = None) -> int:
        """Apply the streak gap rule to saved progress. Run once at startup."""
        state = self.store.state
        streak = validate_streak_on_resume(state.streak, state.last_session_date,
                                           today or date.today())
        if streak != state.streak:
            self.store.update_streak(streak)
        return streak

    def reset_streak(self) -> None:
        self.store.update_streak(0)
        logger.info("Streak reset to 0")

    def current_streak(self) -> int:
        return self.store.state.streak

    def current_streak_bonus_percent(self) -> int:
        return self.streak_percent(self.current_streak())

    # ------------------------------------------------------------------
    # Unlocks
    # ------------------------------------------------------------------

    def try_unlock(self, item_id: str, cost_points: int) -> UnlockResult:
        """
        Buy an item if it is not owned and the balance covers it.

        Returns:
            UnlockResult; denials carry the reason and, for a short
            balance, the number of points still needed.
        """
        if isinstance(cost_points, bool) or not isinstance(cost_points, int) or cost_points < 0:
            logger.warning(f"Refusing to unlock {item_id} at invalid cost {cost_points!r}")
            return self._deny(item_id, REASON_INVALID_COST)

        state = self.store.state

        if item_id in state.unlocked_ids:
            logger.info(f"Item {item_id} already unlocked")
            return self._deny(item_id, REASON_ALREADY_UNLOCKED)

        if state.total_points < cost_points:
            needed = cost_points - state.total_points
            logger.info(f"Cannot unlock {item_id}. Need {needed} more points")
            return self._deny(item_id, REASON_INSUFFICIENT_POINTS, needed)

        if not self.store.try_unlock(item_id, cost_points):
            # Store refused after our checks
            if self.store.is_unlocked(item_id):
                return self._deny(item_id, REASON_ALREADY_UNLOCKED)
            logger.error(f"Could not save unlock of {item_id}")
            return self._deny(item_id, REASON_SAVE_FAILED)

        definition = self.catalog.get(item_id)
        self.events.emit(config.EVENT_ITEM_UNLOCKED, definition or item_id)
        return UnlockResult(granted=True, item_id=item_id, reason=REASON_UNLOCKED)

    def try_unlock_item(self, item_id: str) -> UnlockResult:
        """Look the item up in the catalog and buy it at its listed cost."""
        definition = self.catalog.get(item_id)
        if definition is None:
            logger.warning(f"Unknown unlock ID: {item_id}")
            return self._deny(item_id, REASON_UNKNOWN_ITEM)
        return self.try_unlock(definition.id, definition.cost_points)

    def _deny(self, item_id: str, reason: str, needed: int = 0) -> UnlockResult:
        result = UnlockResult(granted=False, item_id=item_id, reason=reason, points_needed=needed)
        self.events.emit(config.EVENT_UNLOCK_DENIED, result)
        return result

    def equip(self, item_id: str) -> bool:
        """
        Equip an owned skin or background (or one of the defaults).

        Accessories and specials have no equip slot.
        """
        if item_id == config.DEFAULT_SKIN_ID:
            return self.store.equip_skin(item_id)
        if item_id == config.DEFAULT_BACKGROUND_ID:
            return self.store.equip_background(item_id)

        definition = self.catalog.get(item_id)
        if definition is None:
            logger.warning(f"Cannot equip unknown item: {item_id}")
            return False

        if definition.category == UnlockCategory.SKIN:
            equipped = self.store.equip_skin(item_id)
        elif definition.category == UnlockCategory.BACKGROUND:
            equipped = self.store.equip_background(item_id)
        else:
            logger.info(f"{definition.display_name} has no equip slot")
            return False

        if equipped:
            self.events.emit(config.EVENT_ITEM_EQUIPPED, definition)
        return equipped

    def next_unlock(self) -> Optional[UnlockDefinition]:
        locked = self.catalog.locked(self.store.state.unlocked_ids)
        return locked[0] if locked else None

    def next_unlock_progress(self) -> float:
        """Progress towards the cheapest locked item, in [0, 1]."""
        state = self.store.state
        locked = self.catalog.locked(state.unlocked_ids)
        if not locked:
            return 1.0
        cost = locked[0].cost_points
        if cost <= 0:
            return 1.0
        return max(0.0, min(1.0, state.total_points / cost))
