"""Tests for the system and deterministic clocks."""
import os
import sys
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from payledger.clock import DeterministicClock, SystemClock


class TestSystemClock(unittest.TestCase):

    def test_returns_naive_utc(self):
        value = SystemClock().now()
        self.assertIsNone(value.tzinfo)
        utc_now = datetime.now(timezone.utc).replace(tzinfo=None)
        self.assertLess(abs(utc_now - value), timedelta(minutes=1))

    def test_never_goes_backwards(self):
        later = datetime(2025, 10, 26, 1, 30)
        earlier = datetime(2025, 10, 26, 0, 45)
        with patch('payledger.clock._last_now', None), \
                patch('payledger.clock._utc_now', side_effect=[later, earlier]):
            first = SystemClock().now()
            second = SystemClock().now()
        self.assertEqual(first, later)
        self.assertEqual(second, later)


class TestDeterministicClock(unittest.TestCase):

    def test_steps_and_set(self):
        clock = DeterministicClock(datetime(2025, 1, 1, 8, 0), step=timedelta(seconds=2))
        self.assertEqual(clock.now(), datetime(2025, 1, 1, 8, 0))
        self.assertEqual(clock.now(), datetime(2025, 1, 1, 8, 0, 2))
        clock.set(datetime(2025, 3, 1))
        self.assertEqual(clock.now(), datetime(2025, 3, 1))


if __name__ == '__main__':
    unittest.main()
