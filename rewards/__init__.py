"""Points, streaks and the unlock catalog."""

from rewards.catalog import UnlockCatalog, UnlockCategory, UnlockDefinition, load_catalog
from rewards.reward_calculator import (
    RewardBreakdown,
    RewardCalculator,
    UnlockResult,
    validate_streak_on_resume,
)

__all__ = [
    "UnlockCatalog",
    "UnlockCategory",
    "UnlockDefinition",
    "load_catalog",
    "RewardBreakdown",
    "RewardCalculator",
    "UnlockResult",
    "validate_streak_on_resume",
]
