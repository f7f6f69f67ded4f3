import unittest

import dbcase  # noqa: F401  (puts src/ on sys.path)

from db.models import ORDER_STATUSES
from utils.lifecycle import (
    STATUS_FLOW,
    OrderStatusTracker,
    can_cancel,
    can_transition,
    is_terminal,
    next_status,
    progress_step,
)


class TransitionTestCase(unittest.TestCase):
    def test_forward_path(self):
        self.assertEqual(next_status("pending"), "accepted")
        self.assertEqual(next_status("out_for_delivery"), "delivered")
        self.assertIsNone(next_status("delivered"))
        self.assertIsNone(next_status("cancelled"))

        for current, following in zip(STATUS_FLOW, STATUS_FLOW[1:]):
            self.assertTrue(can_transition(current, following))

    def test_no_skips_or_reversals(self):
        self.assertFalse(can_transition("pending", "packed"))
        self.assertFalse(can_transition("packed", "accepted"))
        self.assertFalse(can_transition("pending", "pending"))
        self.assertFalse(can_transition("unknown", "accepted"))

    def test_cancel_only_from_pending(self):
        self.assertTrue(can_cancel("pending"))
        for status in ORDER_STATUSES[1:]:
            self.assertFalse(can_cancel(status), status)

    def test_terminal_states_have_no_exits(self):
        for terminal in ("delivered", "cancelled"):
            self.assertTrue(is_terminal(terminal))
            for status in ORDER_STATUSES:
                self.assertFalse(can_transition(terminal, status))

    def test_progress_step(self):
        self.assertEqual(progress_step("pending"), 1)
        self.assertEqual(progress_step("delivered"), 5)
        self.assertEqual(progress_step("cancelled"), 0)


class TrackerTestCase(unittest.TestCase):
    def test_replays_are_ignored(self):
        tracker = OrderStatusTracker()
        self.assertTrue(tracker.apply("o1", "accepted"))
        self.assertFalse(tracker.apply("o1", "accepted"))
        self.assertTrue(tracker.apply("o1", "packed"))
        self.assertEqual(tracker.known("o1"), "packed")

    def test_stale_and_post_terminal_events_are_ignored(self):
        tracker = OrderStatusTracker()
        tracker.seed("o1", "packed")
        self.assertFalse(tracker.apply("o1", "accepted"))
        self.assertTrue(tracker.apply("o1", "delivered"))
        self.assertFalse(tracker.apply("o1", "out_for_delivery"))
        self.assertFalse(tracker.apply("o1", "cancelled"))

        tracker.seed("o2", "pending")
        self.assertTrue(tracker.apply("o2", "cancelled"))
        self.assertFalse(tracker.apply("o2", "accepted"))

    def test_unknown_status_and_forget(self):
        tracker = OrderStatusTracker()
        self.assertFalse(tracker.apply("o1", "shipped"))
        self.assertIsNone(tracker.known("o1"))

        tracker.apply("o1", "delivered")
        tracker.forget("o1")
        self.assertTrue(tracker.apply("o1", "delivered"))


if __name__ == "__main__":
    unittest.main()
