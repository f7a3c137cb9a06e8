import io
import unittest

from utils import ProgressBar, format_timestamp

class FixedClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

class TestProgressBar(unittest.TestCase):
    def test_reports_rate_and_budget_left(self):
        clock = FixedClock()
        out = io.StringIO()
        bar = ProgressBar(budget=270, stream=out, clock=clock)

        clock.now = 10.0
        bar.update(12, 8)
        line = out.getvalue()
        self.assertIn("12 folders, 8 files reset", line)
        self.assertIn("(2.0/s)", line)
        self.assertIn("260s of budget left", line)

        clock.now = 300.0
        bar.update(12, 8)
        self.assertIn("0s of budget left", out.getvalue())

    def test_finish_ends_the_line(self):
        out = io.StringIO()
        bar = ProgressBar(stream=out, clock=FixedClock())
        bar.finish("Invocation finished")
        self.assertTrue(out.getvalue().endswith("\n"))
        self.assertIn("Invocation finished after 0.0s", out.getvalue())

    def test_format_timestamp_empty(self):
        self.assertEqual(format_timestamp(None), "-")

if __name__ == '__main__':
    unittest.main()
