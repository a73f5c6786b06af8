"""
Persistent progression for ChillTap Buddy.

Holds points, streak, unlocks and equipped items in a local JSON file.
Every mutating call saves immediately (write-through, no batching).

Loading never raises: a missing, unreadable or malformed file yields a
default ProgressionState so the rest of the app can always start.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

import config

logger = logging.getLogger(__name__)


@dataclass
class ProgressionState:
    total_points: int = 0
    streak: int = 0
    unlocked_ids: Set[str] = field(default_factory=set)
    equipped_skin_id: str = config.DEFAULT_SKIN_ID
    equipped_background_id: str = config.DEFAULT_BACKGROUND_ID
    sessions_completed: int = 0
    last_session_date: str = ""  # ISO date (YYYY-MM-DD) or empty

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_points": self.total_points,
            "streak": self.streak,
            "unlocked_ids": sorted(self.unlocked_ids),
            "equipped_skin_id": self.equipped_skin_id,
            "equipped_background_id": self.equipped_background_id,
            "sessions_completed": self.sessions_completed,
            "last_session_date": self.last_session_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressionState":
        """
        Build state from saved JSON, replacing bad fields with defaults.

        Equipped ids that are not owned fall back to the defaults so the
        equipped-implies-owned invariant holds after any load.
        """
        defaults = cls()

        def _count(key: str) -> int:
            value = data.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                if key in data:
                    logger.warning(f"Ignoring invalid {key} in saved progress: {value!r}")
                return 0
            return value

        raw_ids = data.get("unlocked_ids", [])
        unlocked = {str(i) for i in raw_ids} if isinstance(raw_ids, list) else set()

        skin = data.get("equipped_skin_id", defaults.equipped_skin_id)
        if not isinstance(skin, str) or (skin != config.DEFAULT_SKIN_ID and skin not in unlocked):
            skin = defaults.equipped_skin_id

        background = data.get("equipped_background_id", defaults.equipped_background_id)
        if not isinstance(background, str) or (
                background != config.DEFAULT_BACKGROUND_ID and background not in unlocked):
            background = defaults.equipped_background_id

        last_date = data.get("last_session_date", "")
        if not isinstance(last_date, str):
            last_date = ""

        return cls(
            total_points=_count("total_points"),
            streak=_count("streak"),
            unlocked_ids=unlocked,
            equipped_skin_id=skin,
            equipped_background_id=background,
            sessions_completed=_count("sessions_completed"),
            last_session_date=last_date,
        )

    def copy(self) -> "ProgressionState":
        return replace(self, unlocked_ids=set(self.unlocked_ids))


class ProgressStore:
    """
    JSON-backed owner of ProgressionState.

    Callers read `state` (a copy) and request changes through the
    mutators; each mutator updates memory and saves under one lock.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.data_file: Path = Path(path) if path else config.PROGRESS_FILE
        self._lock = threading.Lock()
        self._state = ProgressionState()

    @property
    def state(self) -> ProgressionState:
        with self._lock:
            return self._state.copy()

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> ProgressionState:
        """
        Load progress from disk.

        Returns:
            The loaded state, or a default state when the file is missing
            or corrupt.
        """
        state = ProgressionState()
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    state = ProgressionState.from_dict(data)
                    logger.info(f"Loaded progress: {state.total_points} points, "
                                f"{state.streak} streak")
                else:
                    logger.warning("Saved progress is not an object. Starting fresh.")
            except (json.JSONDecodeError, UnicodeDecodeError, IOError, OSError) as e:
                logger.warning(f"Failed to load progress: {e}. Starting fresh.")
        else:
            logger.info("No saved progress found, starting fresh")

        with self._lock:
            self._state = state
        return state.copy()

    def save(self, state: Optional[ProgressionState] = None) -> bool:
        """
        Save progress to disk atomically.

        Args:
            state: Replaces the in-memory state before saving, if given.

        Returns:
            True on success, False if the file could not be written.
        """
        with self._lock:
            if state is not None:
                self._state = state.copy()
            return self._write_locked()

    def _write_locked(self) -> bool:
        """Write the current state. Caller holds self._lock."""
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)

            # Atomic write: write to temp file, then rename
            temp_fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='progress_',
                dir=self.data_file.parent
            )

            try:
                with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                    json.dump(self._state.to_dict(), f, indent=2)
                os.replace(temp_path, self.data_file)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

            logger.debug(f"Saved progress: {self._state.to_dict()}")
            return True

        except (IOError, OSError, PermissionError) as e:
            logger.error(f"Failed to save progress: {e}")
            return False

    # ------------------------------------------------------------------
    # Mutators (write-through)
    # ------------------------------------------------------------------

    def add_points(self, amount: int) -> bool:
        with self._lock:
            self._state.total_points = max(0, self._state.total_points + int(amount))
            return self._write_locked()

    def update_streak(self, new_streak: int) -> bool:
        with self._lock:
            self._state.streak = max(0, int(new_streak))
            return self._write_locked()

    def record_session_completed(self, session_date: Optional[date] = None) -> bool:
        with self._lock:
            self._state.sessions_completed += 1
            self._state.last_session_date = (session_date or date.today()).isoformat()
            return self._write_locked()

    def apply_session_reward(self, points: int, new_streak: int,
                             session_date: Optional[date] = None) -> bool:
        """Award points, set the streak and mark the session completed as one save."""
        with self._lock:
            self._state.total_points = max(0, self._state.total_points + int(points))
            self._state.streak = max(0, int(new_streak))
            self._state.sessions_completed += 1
            self._state.last_session_date = (session_date or date.today()).isoformat()
            return self._write_locked()

    def is_unlocked(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._state.unlocked_ids

    def try_unlock(self, item_id: str, cost: int) -> bool:
        """
        Deduct cost and record the unlock, or change nothing.

        Returns:
            False if the cost is negative, the item is already unlocked,
            the balance is too low or the save failed.
        """
        if cost < 0:
            logger.warning(f"Refusing to unlock {item_id} at negative cost {cost}")
            return False

        with self._lock:
            if item_id in self._state.unlocked_ids:
                logger.debug(f"Item {item_id} already unlocked")
                return False
            if self._state.total_points < cost:
                logger.debug(f"Not enough points to unlock {item_id}. "
                             f"Need {cost}, have {self._state.total_points}")
                return False

            previous = self._state.copy()
            self._state.total_points -= cost
            self._state.unlocked_ids.add(item_id)
            if not self._write_locked():
                self._state = previous
                return False

        logger.info(f"Unlocked {item_id} for {cost} points")
        return True

    def equip_skin(self, skin_id: str) -> bool:
        with self._lock:
            if skin_id != config.DEFAULT_SKIN_ID and skin_id not in self._state.unlocked_ids:
                return False
            previous = self._state.equipped_skin_id
            self._state.equipped_skin_id = skin_id
            if not self._write_locked():
                self._state.equipped_skin_id = previous
                return False
        return True

    def equip_background(self, background_id: str) -> bool:
        with self._lock:
            if (background_id != config.DEFAULT_BACKGROUND_ID
                    and background_id not in self._state.unlocked_ids):
                return False
            previous = self._state.equipped_background_id
            self._state.equipped_background_id = background_id
            if not self._write_locked():
                self._state.equipped_background_id = previous
                return False
        return True

    def clear(self) -> bool:
        """Reset all progress to defaults and save."""
        with self._lock:
            self._state = ProgressionState()
            saved = self._write_locked()
        logger.info("Progress cleared")
        return saved
