#!/usr/bin/env python3
"""
ChillTap Buddy - Main Entry Point

A focus timer with a tappable buddy. Finish focus sessions to earn
points, keep a daily streak going and spend points on unlocks.

Usage:
    python main.py                 # Interactive focus session
    python main.py --demo          # Short demo-length sessions
    python main.py --stats         # Show progress
    python main.py --shop          # List unlocks
    python main.py --unlock ID     # Buy an unlock
    python main.py --equip ID      # Equip a skin or background
"""

import sys
import time
import logging
import threading
import argparse
import queue
from typing import Optional

import config
from core.engine import CompanionEngine
from core.errors import ConfigurationError
from instance_lock import check_single_instance, get_existing_pid
from rewards.catalog import UnlockDefinition
from rewards.reward_calculator import (
    REASON_ALREADY_UNLOCKED,
    REASON_INSUFFICIENT_POINTS,
    REASON_INVALID_COST,
    REASON_SAVE_FAILED,
    RewardBreakdown,
    UnlockResult,
)
from timer.focus_timer import format_time

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

COMMANDS_HELP = """
Commands (type and press Enter):
  s   start / resume        p   pause
  x   stop (cancel)         t   tap the buddy
  q   quit
  anything else counts as activity
"""


class ChillTapBuddy:
    """
    Terminal front-end: forwards user intents to the engine and prints
    the events it emits.
    """

    def __init__(self, engine: CompanionEngine):
        self.engine = engine
        self.should_stop = False
        self._commands: "queue.Queue[str]" = queue.Queue()
        self._last_printed_remaining: Optional[int] = None
        self._subscribe()

    def _subscribe(self) -> None:
        events = self.engine.events
        events.subscribe(config.EVENT_TICK, self._on_tick)
        events.subscribe(config.EVENT_STARTED, lambda: print("\n🎯 Focus session started"))
        events.subscribe(config.EVENT_PAUSED, lambda: print("⏸  Paused"))
        events.subscribe(config.EVENT_RESUMED, lambda: print("▶  Resumed"))
        events.subscribe(config.EVENT_STOPPED, lambda: print("⏹  Session cancelled"))
        events.subscribe(config.EVENT_COMPLETED, lambda: print("\n✨ Session complete!"))
        events.subscribe(config.EVENT_TAP, self._on_tap)
        events.subscribe(config.EVENT_TAP_COOLDOWN,
                         lambda remaining: print(f"⏳ Tap cooldown: {int(remaining + 0.999)}s"))
        events.subscribe(config.EVENT_ACTIVITY_BONUS,
                         lambda points: print(f"⌨  Activity bonus +{points}"))
        events.subscribe(config.EVENT_ACTIVITY_CAP_REACHED,
                         lambda: print("⌨  Activity bonuses maxed for this session"))
        events.subscribe(config.EVENT_REWARD_COMPUTED, self._on_reward)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_tick(self, remaining: int) -> None:
        # Print every 10 seconds (and the last 5) to keep the terminal readable
        if remaining % 10 == 0 or remaining <= 5:
            if remaining != self._last_printed_remaining:
                print(f"   {format_time(remaining)} remaining")
                self._last_printed_remaining = remaining

    def _on_tap(self, bonus_eligible: bool) -> None:
        status = self.engine.get_status()
        if bonus_eligible:
            print(f"🐾 +{self.engine.rewards.points_per_tap} tap bonus! "
                  f"({status['bonus_taps']}/{status['max_bonus_taps']})")
        else:
            print("🐾 *boop*")

    def _on_reward(self, breakdown: RewardBreakdown) -> None:
        print("\n" + "=" * 60)
        print("🏆 Session Reward")
        print("=" * 60)
        print(f"   Base:      {breakdown.base_points}")
        print(f"   Taps:      +{breakdown.tap_bonus}")
        print(f"   Activity:  +{breakdown.activity_bonus}")
        print(f"   Streak x{breakdown.streak_level}: +{breakdown.streak_bonus}")
        print(f"   Total:     {breakdown.total_points}")
        print("=" * 60)

    # ------------------------------------------------------------------
    # Session loop
    # ------------------------------------------------------------------

    def _keyboard_listener(self) -> None:
        """Read command lines on a background thread."""
        try:
            while not self.should_stop:
                line = input()
                self._commands.put(line.strip().lower())
        except (EOFError, OSError):
            self._commands.put("q")
        except Exception as e:
            logger.debug(f"Keyboard listener error: {e}")
            self._commands.put("q")

    def _handle_command(self, command: str) -> None:
        if command == "s":
            self.engine.start_focus()
        elif command == "p":
            self.engine.pause_focus()
        elif command == "x":
            self.engine.stop_focus()
        elif command == "t":
            self.engine.tap()
        elif command == "q":
            self.should_stop = True
        else:
            self.engine.record_activity()

    def run(self) -> None:
        print(COMMANDS_HELP)
        listener = threading.Thread(target=self._keyboard_listener, daemon=True)
        listener.start()

        last = time.monotonic()
        while not self.should_stop:
            while not self._commands.empty():
                self._handle_command(self._commands.get_nowait())
                if self.should_stop:
                    break

            now = time.monotonic()
            self.engine.tick(now - last)
            last = now
            time.sleep(config.TICK_INTERVAL_SECONDS)

        if self.engine.timer.is_running:
            self.engine.stop_focus()
        print("\n👋 Goodbye!")


# ----------------------------------------------------------------------
# One-shot commands
# ----------------------------------------------------------------------

def print_stats(engine: CompanionEngine) -> None:
    status = engine.get_status()
    state = engine.store.state
    print("\n" + "=" * 60)
    print("📈 Progress")
    print("=" * 60)
    print(f"   Points:             {status['total_points']}")
    print(f"   Streak:             {status['streak']} "
          f"(+{status['streak_bonus_percent']}% bonus)")
    print(f"   Sessions completed: {status['sessions_completed']}")
    print(f"   Last session:       {state.last_session_date or 'never'}")
    print(f"   Skin:               {state.equipped_skin_id}")
    print(f"   Background:         {state.equipped_background_id}")

    next_item = engine.rewards.next_unlock()
    if next_item:
        progress = engine.rewards.next_unlock_progress()
        print(f"   Next unlock:        {next_item.display_name} "
              f"({progress * 100:.0f}% of {next_item.cost_points})")


def print_shop(engine: CompanionEngine) -> None:
    owned = engine.store.state.unlocked_ids
    print("\n🛍  Unlocks")
    for definition in engine.catalog:
        mark = "✓" if definition.id in owned else " "
        print(f"  [{mark}] {definition.id:<14} {definition.display_name:<14} "
              f"{definition.cost_points:>5} pts  {definition.category.value}")


def describe_unlock(result: UnlockResult, definition: Optional[UnlockDefinition]) -> str:
    name = definition.display_name if definition else result.item_id
    if result.granted:
        return f"🎉 Unlocked: {name}!"
    if result.reason == REASON_INSUFFICIENT_POINTS:
        return f"Need {result.points_needed} more points for {name}"
    if result.reason == REASON_ALREADY_UNLOCKED:
        return f"{name} is already unlocked"
    if result.reason == REASON_INVALID_COST:
        return f"{name} has an invalid cost"
    if result.reason == REASON_SAVE_FAILED:
        return f"Could not save progress, {name} was not unlocked"
    return f"Unknown item: {result.item_id}"


def main() -> None:
    """Parse arguments and run the requested mode."""
    parser = argparse.ArgumentParser(
        description="ChillTap Buddy - focus timer with a tappable buddy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                  Start an interactive session
  python main.py --demo           Use the short demo duration
  python main.py --unlock tiny_hat
        """
    )
    parser.add_argument("--demo", action="store_true", help="Use demo-length sessions")
    parser.add_argument("--stats", action="store_true", help="Show progress and exit")
    parser.add_argument("--shop", action="store_true", help="List unlocks and exit")
    parser.add_argument("--unlock", metavar="ID", help="Buy an unlock and exit")
    parser.add_argument("--equip", metavar="ID", help="Equip a skin or background and exit")
    parser.add_argument("--reset", action="store_true", help="Clear all saved progress")

    args = parser.parse_args()

    if not check_single_instance():
        existing_pid = get_existing_pid()
        pid_info = f" (PID: {existing_pid})" if existing_pid else ""
        print(f"\nChillTap Buddy is already running{pid_info}.")
        print("Only one instance can run at a time.\n")
        sys.exit(1)

    try:
        engine = CompanionEngine(demo_mode=args.demo or config.DEMO_MODE)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"\n❌ Invalid configuration: {e}")
        sys.exit(1)

    engine.startup()

    if args.reset:
        engine.store.clear()
        print("Progress cleared.")
        return
    if args.unlock:
        result = engine.unlock(args.unlock)
        print(describe_unlock(result, engine.catalog.get(args.unlock)))
        return
    if args.equip:
        if engine.equip(args.equip):
            print(f"Equipped {args.equip}")
        else:
            print(f"Cannot equip {args.equip} (not owned, or nothing to equip)")
        return
    if args.shop:
        print_shop(engine)
        return
    if args.stats:
        print_stats(engine)
        return

    print_stats(engine)
    try:
        ChillTapBuddy(engine).run()
    except KeyboardInterrupt:
        engine.stop_focus()
        print("\n\nGoodbye!")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
