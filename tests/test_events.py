"""Tests for core/events.py and core/errors.py."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    ConfigurationError,
    require_non_negative,
    require_positive,
    require_whole,
)
from core.events import EventBus


class TestEventBus(unittest.TestCase):

    def test_delivery_in_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe("tick", lambda n: calls.append(("first", n)))
        bus.subscribe("tick", lambda n: calls.append(("second", n)))
        bus.emit("tick", 7)
        self.assertEqual(calls, [("first", 7), ("second", 7)])

    def test_failing_callback_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        def broken():
            raise RuntimeError("boom")

        bus.subscribe("started", broken)
        bus.subscribe("started", lambda: calls.append("ok"))
        with self.assertLogs("core.events", level="ERROR"):
            bus.emit("started")
        self.assertEqual(calls, ["ok"])

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        callback = calls.append
        bus.subscribe("tap", callback)
        self.assertEqual(bus.subscriber_count("tap"), 1)
        bus.unsubscribe("tap", callback)
        bus.unsubscribe("tap", callback)
        bus.emit("tap", True)
        self.assertEqual(calls, [])
        self.assertEqual(bus.subscriber_count("tap"), 0)

    def test_emit_without_subscribers(self):
        EventBus().emit("nothing", 1, 2)


class TestValidators(unittest.TestCase):

    def test_require_positive(self):
        require_positive("x", 1)
        require_positive("x", 0.5)
        for bad in (0, -1, True, "5", None):
            with self.assertRaises(ConfigurationError):
                require_positive("x", bad)

    def test_require_non_negative(self):
        require_non_negative("x", 0)
        for bad in (-0.1, False, "0"):
            with self.assertRaises(ConfigurationError):
                require_non_negative("x", bad)

    def test_require_whole(self):
        require_whole("x", 3)
        require_whole("x", 0)
        for bad in (0.5, 2.0, True, "3"):
            with self.assertRaises(ConfigurationError, msg=repr(bad)):
                require_whole("x", bad)

    def test_is_a_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))


if __name__ == "__main__":
    unittest.main()
