"""
Tests for core/engine.py — verifies the CompanionEngine works
independently of any front-end.
"""

import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from buddy.activity_sampler import ActivitySampler
from buddy.tap_throttle import TapThrottle
from core.engine import CompanionEngine
from core.events import EventBus
from rewards.catalog import UnlockCatalog, UnlockCategory, UnlockDefinition
from timer.focus_timer import FocusTimer, PHASE_IDLE, PHASE_PAUSED, PHASE_RUNNING
from tracking.progress_store import ProgressStore


CATALOG = UnlockCatalog([
    UnlockDefinition("sleepy_cat", "Sleepy Cat", 100, UnlockCategory.SKIN),
    UnlockDefinition("cozy_room", "Cozy Room", 300, UnlockCategory.BACKGROUND),
])


class EngineTestCase(unittest.TestCase):
    """Engine with a 30 second session, a temp store and a fake clock."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.store = ProgressStore(Path(self._tmpdir.name) / "progress.json")
        self.now = [0.0]
        bus = EventBus()
        self.engine = CompanionEngine(
            store=self.store,
            catalog=CATALOG,
            events=bus,
            timer=FocusTimer(bus, focus_duration_seconds=30, demo_duration_seconds=10,
                             demo_mode=False),
            taps=TapThrottle(bus, cooldown_seconds=60.0, max_bonus_taps_per_session=5,
                             clock=lambda: self.now[0]),
            activity=ActivitySampler(bus, window_seconds=10.0, max_bonuses_per_session=6,
                                     points_per_activity=2),
            clock=lambda: self.now[0],
        )
        self.engine.startup(date.today())

        self.rewards = []
        bus.subscribe(config.EVENT_REWARD_COMPUTED, self.rewards.append)

    def tearDown(self):
        self._tmpdir.cleanup()

    def run_seconds(self, seconds: int, active_every: int = 0):
        """Tick once per second, optionally reporting activity on a period."""
        result = None
        for i in range(seconds):
            self.now[0] += 1.0
            if active_every and i % active_every == active_every // 2:
                self.engine.record_activity()
            reward = self.engine.tick(1.0)
            if reward is not None:
                result = reward
        return result


class TestEngineStatus(EngineTestCase):

    def test_idle_status(self):
        status = self.engine.get_status()
        self.assertEqual(status["phase"], PHASE_IDLE)
        self.assertEqual(status["remaining_seconds"], 30)
        self.assertEqual(status["remaining_text"], "00:30")
        self.assertEqual(status["total_duration"], 30)
        self.assertFalse(status["demo_mode"])
        self.assertEqual(status["bonus_taps"], 0)
        self.assertEqual(status["max_bonus_taps"], 5)
        self.assertEqual(status["activity_bonuses"], 0)
        self.assertEqual(status["max_activity_bonuses"], 6)
        self.assertEqual(status["total_points"], 0)
        self.assertEqual(status["streak"], 0)
        self.assertEqual(status["streak_bonus_percent"], 0)
        self.assertEqual(status["sessions_completed"], 0)

    def test_phase_follows_timer(self):
        self.engine.start_focus()
        self.assertEqual(self.engine.get_status()["phase"], PHASE_RUNNING)
        self.engine.pause_focus()
        self.assertEqual(self.engine.get_status()["phase"], PHASE_PAUSED)
        self.engine.start_focus()
        self.assertEqual(self.engine.get_status()["phase"], PHASE_RUNNING)
        self.engine.stop_focus()
        self.assertEqual(self.engine.get_status()["phase"], PHASE_IDLE)

    def test_remaining_counts_down(self):
        self.engine.start_focus()
        self.run_seconds(12)
        status = self.engine.get_status()
        self.assertEqual(status["remaining_seconds"], 18)
        self.assertEqual(status["remaining_text"], "00:18")


class TestEngineSession(EngineTestCase):

    def test_completed_session_rewards_once(self):
        self.engine.start_focus()
        self.engine.tap()
        self.run_seconds(10, active_every=10)
        self.engine.tap()  # still cooling down
        reward = self.run_seconds(20, active_every=10)

        self.assertIsNotNone(reward)
        self.assertEqual(reward.tap_bonus, 5)
        self.assertEqual(reward.activity_bonus, 6)
        self.assertEqual(reward.streak_level, 1)
        self.assertEqual(reward.streak_bonus, 10)
        self.assertEqual(reward.total_points, 100 + 5 + 6 + 10)
        self.assertEqual(self.rewards, [reward])
        self.assertIs(self.engine.last_reward, reward)

        # Further ticks do nothing: the timer is idle again
        self.assertIsNone(self.run_seconds(5))
        self.assertEqual(len(self.rewards), 1)

        state = self.store.state
        self.assertEqual(state.total_points, 121)
        self.assertEqual(state.streak, 1)
        self.assertEqual(state.sessions_completed, 1)
        self.assertEqual(self.engine.get_status()["phase"], PHASE_IDLE)

    def test_completion_inside_one_large_tick(self):
        self.engine.start_focus()
        reward = self.engine.tick(45.0)
        self.assertIsNotNone(reward)
        self.assertEqual(len(self.rewards), 1)
        self.assertEqual(self.engine.timer.remaining_seconds, 30)

    def test_stop_gives_no_reward(self):
        self.engine.start_focus()
        self.engine.tap()
        self.run_seconds(15, active_every=10)
        self.engine.stop_focus()
        self.run_seconds(30)

        self.assertEqual(self.rewards, [])
        self.assertIsNone(self.engine.last_reward)
        state = self.store.state
        self.assertEqual(state.total_points, 0)
        self.assertEqual(state.sessions_completed, 0)

    def test_counters_reset_on_next_start(self):
        self.engine.start_focus()
        self.engine.tap()
        self.run_seconds(30, active_every=10)
        self.assertEqual(self.engine.taps.bonus_taps_this_session, 1)
        self.assertEqual(self.engine.activity.bonuses_this_session, 3)

        self.engine.start_focus()
        status = self.engine.get_status()
        self.assertEqual(status["bonus_taps"], 0)
        self.assertEqual(status["activity_bonuses"], 0)

        # A tap right away is not blocked by the previous session's cooldown
        self.engine.tap()
        self.engine.tick(0.1)
        self.assertEqual(self.engine.taps.bonus_taps_this_session, 1)

    def test_second_session_extends_streak(self):
        self.engine.start_focus()
        self.run_seconds(30)
        self.engine.start_focus()
        reward = self.run_seconds(30)
        self.assertEqual(reward.streak_level, 2)
        self.assertEqual(reward.streak_bonus, 20)
        self.assertEqual(self.store.state.total_points, 110 + 120)

    def test_pause_stops_sampling_and_countdown(self):
        self.engine.start_focus()
        self.run_seconds(5)
        self.engine.pause_focus()
        self.run_seconds(20, active_every=2)

        self.assertEqual(self.engine.timer.remaining_seconds, 25)
        self.assertEqual(self.engine.activity.state.window_elapsed_seconds, 5.0)
        self.assertEqual(self.engine.activity.bonuses_this_session, 0)

        self.engine.start_focus()
        self.engine.record_activity()
        self.run_seconds(5)
        self.assertEqual(self.engine.activity.bonuses_this_session, 1)

    def test_activity_while_idle_is_ignored(self):
        self.run_seconds(20, active_every=10)
        self.assertEqual(self.engine.activity.bonuses_this_session, 0)

    def test_taps_classified_while_idle(self):
        taps = []
        self.engine.events.subscribe(config.EVENT_TAP, taps.append)
        self.engine.tap()
        self.engine.tick(0.1)
        self.assertEqual(taps, [True])

    def test_queued_input_dropped_on_start(self):
        self.engine.tap()
        self.engine.record_activity()
        self.engine.start_focus()
        self.engine.tick(0.1)
        self.assertEqual(self.engine.taps.bonus_taps_this_session, 0)
        self.assertFalse(self.engine.activity.state.activity_observed_in_window)


class TestEngineProgress(EngineTestCase):

    def test_startup_breaks_stale_streak(self):
        state = self.store.state
        state.streak = 4
        state.last_session_date = (date.today() - timedelta(days=5)).isoformat()
        self.store.save(state)

        self.engine.startup(date.today())
        self.assertEqual(self.engine.get_status()["streak"], 0)

    def test_startup_keeps_yesterdays_streak(self):
        state = self.store.state
        state.streak = 4
        state.last_session_date = (date.today() - timedelta(days=1)).isoformat()
        self.store.save(state)

        self.engine.startup(date.today())
        status = self.engine.get_status()
        self.assertEqual(status["streak"], 4)
        self.assertEqual(status["streak_bonus_percent"], 40)

    def test_unlock_and_equip(self):
        self.assertFalse(self.engine.unlock("sleepy_cat"))
        self.engine.start_focus()
        self.run_seconds(30)

        result = self.engine.unlock("sleepy_cat")
        self.assertTrue(result)
        self.assertTrue(self.engine.equip("sleepy_cat"))
        self.assertFalse(self.engine.equip("cozy_room"))
        self.assertEqual(self.store.state.equipped_skin_id, "sleepy_cat")
        self.assertEqual(self.store.state.total_points, 10)


if __name__ == "__main__":
    unittest.main()
