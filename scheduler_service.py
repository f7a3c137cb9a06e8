import time
import threading
import logging
from typing import Callable, Dict

from core.process import ProcessBusy
from core.triggers import ITriggerStore

logger = logging.getLogger("scheduler")

class SchedulerService:
    """
    Fires persisted resume triggers when they come due.

    Each due trigger is deleted before its entry point runs, so a crash in
    the entry point never leaves the same trigger to fire twice.
    """

    def __init__(self, store: ITriggerStore, entry_points: Dict[str, Callable[[], object]],
                 poll_interval: float = 5.0, clock: Callable[[], float] = time.time):
        self.store = store
        self.entry_points = entry_points
        self.poll_interval = poll_interval
        self.clock = clock
        self.running = False
        self.thread = None
        self._stop_event = threading.Event()

    def start(self):
        if self.running:
            return

        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._loop, daemon=True, name="SchedulerThread")
        self.thread.start()
        logger.info("Scheduler service started")

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=2.0)
        logger.info("Scheduler service stopped")

    def _loop(self):
        while self.running and not self._stop_event.is_set():
            try:
                self.run_pending()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")

            if self._stop_event.wait(self.poll_interval):
                break

    def run_pending(self) -> int:
        """Fire every trigger that is due. Returns how many fired."""
        now = self.clock()
        fired = 0
        for trigger in self.store.list_triggers():
            if trigger.fire_at > now:
                continue
            self.store.delete_trigger(trigger.handle)
            entry_point = self.entry_points.get(trigger.entry_point)
            if entry_point is None:
                logger.warning(f"Dropping trigger {trigger.handle}: unknown entry point {trigger.entry_point!r}")
                continue

            logger.info(f"⏰ Trigger {trigger.handle} due. Running {trigger.entry_point}()")
            fired += 1
            try:
                entry_point()
            except ProcessBusy:
                logger.info("Skipping trigger - invocation already running")
        return fired

    def run_until_idle(self):
        """Foreground loop: keep firing triggers until none are pending."""
        while not self._stop_event.is_set():
            if not self.store.list_triggers():
                logger.info("No pending triggers, scheduler idle")
                return
            self.run_pending()
            self._stop_event.wait(self.poll_interval)
