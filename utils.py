import itertools
import sys
import time
from datetime import datetime

SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class ProgressBar:
    """
    One-line status for a bounded invocation: nodes reset so far, rate,
    and how much of the time budget is left before the run suspends.
    """

    def __init__(self, budget=None, stream=None, clock=time.monotonic):
        self.budget = budget
        self.stream = stream or sys.stdout
        self.clock = clock
        self.started = clock()
        self._spin = itertools.cycle(SPINNER)

    def _remaining(self, elapsed):
        if not self.budget:
            return ""
        return f" | {max(self.budget - elapsed, 0):.0f}s of budget left"

    def update(self, folders, files):
        elapsed = self.clock() - self.started
        rate = (folders + files) / elapsed if elapsed > 0 else 0.0
        line = (f"\r{next(self._spin)} {folders:,} folders, {files:,} files reset "
                f"({rate:.1f}/s){self._remaining(elapsed)}")
        self.stream.write(line.ljust(80))
        self.stream.flush()

    def finish(self, message):
        elapsed = self.clock() - self.started
        self.stream.write(f"\r{message} after {elapsed:.1f}s".ljust(80) + "\n")
        self.stream.flush()


def format_timestamp(ts):
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts).strftime('%Y-%m-%d %H:%M:%S')
