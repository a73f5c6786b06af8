"""Configuration settings for ChillTap Buddy."""

import logging
import os
import sys
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def is_bundled() -> bool:
    """
    Check if the application is running from a PyInstaller bundle.

    Returns:
        True if running from a bundled executable, False otherwise.
    """
    return getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')


def get_base_dir() -> Path:
    """
    Get the base directory for the application.

    For development: Returns the directory containing this file.
    For bundled apps: Returns _MEIPASS (for bundled resources).

    Returns:
        Path to the base directory.
    """
    if is_bundled():
        meipass = getattr(sys, '_MEIPASS', None)
        if meipass:
            return Path(meipass)
        return Path(__file__).parent
    return Path(__file__).parent


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (progress, lock file).

    For development: Same as BASE_DIR/data
    For bundled apps: Uses a dedicated folder in the user's home directory
                      to persist data across updates.

    Returns:
        Path to the user data directory.
    """
    if is_bundled():
        if sys.platform == 'darwin':
            # macOS: ~/Library/Application Support/ChillTapBuddy
            data_dir = Path.home() / "Library" / "Application Support" / "ChillTapBuddy"
        elif sys.platform == 'win32':
            # Windows: %APPDATA%/ChillTapBuddy
            appdata = os.environ.get('APPDATA')
            if appdata:
                data_dir = Path(appdata) / "ChillTapBuddy"
            else:
                data_dir = Path.home() / "AppData" / "Roaming" / "ChillTapBuddy"
        else:
            # Linux: ~/.local/share/ChillTapBuddy
            data_dir = Path.home() / ".local" / "share" / "ChillTapBuddy"

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except Exception:
            data_dir = Path.home() / ".chilltapbuddy"
            data_dir.mkdir(parents=True, exist_ok=True)

        return data_dir
    else:
        # Development mode
        return Path(__file__).parent / "data"


def _env_int(name: str, default: int) -> int:
    """Read an integer override from the environment, keeping the default on bad input."""
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float override from the environment, keeping the default on bad input."""
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


# Load environment variables from .env file (only in development)
if not is_bundled():
    _env_path = Path(__file__).parent / ".env"
    load_dotenv(_env_path)

# Base directory (for bundled resources)
BASE_DIR = get_base_dir()

# User data directory (for writable data like saved progress)
USER_DATA_DIR = get_user_data_dir()

# Paths
PROGRESS_FILE = USER_DATA_DIR / "progress.json"
UNLOCKS_FILE = os.getenv("UNLOCKS_FILE", "")  # Optional JSON catalog override

# --- Focus timer ---
# Production sessions are a classic 25 minute pomodoro; demo mode is for quick testing
FOCUS_DURATION_SECONDS = _env_int("FOCUS_DURATION_SECONDS", 1500)
DEMO_DURATION_SECONDS = _env_int("DEMO_DURATION_SECONDS", 60)
DEMO_MODE = os.getenv("DEMO_MODE", "").lower() in ("true", "1", "yes")

# Clock source for the terminal front-end (seconds between ticks)
TICK_INTERVAL_SECONDS = 0.1

# --- Buddy taps ---
TAP_COOLDOWN_SECONDS = _env_float("TAP_COOLDOWN_SECONDS", 60.0)
MAX_BONUS_TAPS_PER_SESSION = _env_int("MAX_BONUS_TAPS_PER_SESSION", 5)

# --- Activity sampling ---
ACTIVITY_WINDOW_SECONDS = _env_float("ACTIVITY_WINDOW_SECONDS", 10.0)
MAX_ACTIVITY_BONUSES_PER_SESSION = _env_int("MAX_ACTIVITY_BONUSES_PER_SESSION", 6)
POINTS_PER_ACTIVITY = _env_int("POINTS_PER_ACTIVITY", 2)

# --- Rewards ---
BASE_SESSION_POINTS = _env_int("BASE_SESSION_POINTS", 100)
POINTS_PER_TAP = _env_int("POINTS_PER_TAP", 5)
STREAK_BONUS_PERCENT = _env_int("STREAK_BONUS_PERCENT", 10)  # Per streak level
MAX_STREAK_BONUS_PERCENT = _env_int("MAX_STREAK_BONUS_PERCENT", 100)

# Default equipment (always owned, never purchasable)
DEFAULT_SKIN_ID = "default_skin"
DEFAULT_BACKGROUND_ID = "default_bg"

# Unlock categories
CATEGORY_SKIN = "skin"
CATEGORY_BACKGROUND = "background"
CATEGORY_ACCESSORY = "accessory"
CATEGORY_SPECIAL = "special"

# Built-in unlock catalog (override with UNLOCKS_FILE pointing at a JSON list)
DEFAULT_UNLOCKS = [
    {"id": "sleepy_cat", "display_name": "Sleepy Cat", "cost_points": 150,
     "category": CATEGORY_SKIN, "description": "A drowsy orange tabby."},
    {"id": "cozy_room", "display_name": "Cozy Room", "cost_points": 200,
     "category": CATEGORY_BACKGROUND, "description": "Warm lamp light and a bookshelf."},
    {"id": "tiny_hat", "display_name": "Tiny Hat", "cost_points": 250,
     "category": CATEGORY_ACCESSORY, "description": "Fits exactly one buddy."},
    {"id": "night_sky", "display_name": "Night Sky", "cost_points": 400,
     "category": CATEGORY_BACKGROUND, "description": "Stars over a quiet hill."},
    {"id": "robo_buddy", "display_name": "Robo Buddy", "cost_points": 600,
     "category": CATEGORY_SKIN, "description": "Beeps politely when tapped."},
    {"id": "golden_aura", "display_name": "Golden Aura", "cost_points": 1000,
     "category": CATEGORY_SPECIAL, "description": "For the truly dedicated."},
]

# Event types (emitted by the core, consumed by the presentation layer)
EVENT_TICK = "tick"
EVENT_STARTED = "started"
EVENT_PAUSED = "paused"
EVENT_RESUMED = "resumed"
EVENT_STOPPED = "stopped"
EVENT_COMPLETED = "completed"
EVENT_TAP = "tap"
EVENT_TAP_COOLDOWN = "tap_cooldown"
EVENT_ACTIVITY_BONUS = "activity_bonus"
EVENT_ACTIVITY_CAP_REACHED = "activity_cap_reached"
EVENT_REWARD_COMPUTED = "reward_computed"
EVENT_ITEM_UNLOCKED = "item_unlocked"
EVENT_UNLOCK_DENIED = "unlock_denied"
EVENT_ITEM_EQUIPPED = "item_equipped"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
