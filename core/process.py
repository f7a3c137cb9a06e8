import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from providers.interface import ISharingProvider
from .checkpoint import CheckpointManager, CheckpointCorruption
from .engine import TraversalEngine
from .notifications import NotificationManager
from .reset import PermissionResetter
from .triggers import ResumeTriggerController
from .types import RunResult

logger = logging.getLogger("reset_process")


class ProcessBusy(Exception):
    pass


class ResetProcess:
    """
    Entry points of a sharing reset: start, reset_process and get_status.

    start() either initializes a new traversal from the configured root or
    resumes the checkpointed one, runs it for one time budget, then cleans
    up (complete) or schedules exactly one resume trigger (suspended).
    Only one invocation may run at a time.
    """

    def __init__(self, provider: Optional[ISharingProvider], checkpoints: CheckpointManager,
                 triggers: ResumeTriggerController, root_id: str, time_budget: float,
                 dry_run: bool = False, history=None,
                 notifier: Optional[NotificationManager] = None,
                 clock: Callable[[], float] = time.monotonic,
                 on_progress: Optional[Callable[[int, int], None]] = None):
        self.checkpoints = checkpoints
        self.triggers = triggers
        self.root_id = root_id
        self.history = history
        self.notifier = notifier or NotificationManager()
        # No provider: status and reset only
        self.engine = None
        if provider is not None:
            self.engine = TraversalEngine(
                provider,
                PermissionResetter(provider, dry_run=dry_run),
                checkpoints,
                time_budget,
                clock=clock,
                on_progress=on_progress
            )
        self._lock = threading.Lock()

    def start(self) -> RunResult:
        if self.engine is None:
            raise RuntimeError("start() needs a storage provider")
        if not self._lock.acquire(blocking=False):
            raise ProcessBusy("A sharing reset invocation is already running")
        try:
            return self._run_invocation()
        finally:
            self._lock.release()

    def _run_invocation(self) -> RunResult:
        try:
            state = self.checkpoints.load_state()
        except CheckpointCorruption as e:
            logger.critical(f"Checkpoint is corrupt, refusing to continue: {e}")
            # Stop re-firing until an operator resets the process
            self.triggers.clear()
            self.notifier.invocation_failed(self.root_id, e)
            raise

        if state is None:
            state = self.checkpoints.initialize(self.root_id)
        else:
            if state.root_id != self.root_id:
                logger.warning(f"Checkpoint root {state.root_id!r} differs from configured root "
                               f"{self.root_id!r}; resuming the checkpointed traversal")
            logger.info(f"Resuming traversal: {state.counts()}")

        run_id = self.history.start_run() if self.history else None
        try:
            state, result = self.engine.run(state)
        except Exception as e:
            logger.exception("Invocation failed")
            # The checkpoint still holds the in-flight node; come back for it
            self.triggers.schedule_resume()
            if run_id is not None:
                self.history.end_run(run_id, "failed", 0, 0)
            self.notifier.invocation_failed(state.root_id, e)
            raise

        if result.is_complete:
            self.triggers.clear()
            self.checkpoints.clear_state()
            self.notifier.traversal_complete(state.root_id, state.counts())
        else:
            self.triggers.schedule_resume()

        if run_id is not None:
            self.history.end_run(
                run_id,
                "complete" if result.is_complete else "suspended",
                result.folders_processed,
                result.files_processed
            )
        logger.info(
            f"Invocation finished ({result.status.name.lower()}): "
            f"{result.folders_processed} folder(s), {result.files_processed} file(s), "
            f"{result.failures} failure(s) in {result.elapsed:.1f}s"
        )
        return result

    def reset_process(self):
        """Drop all checkpoint state and pending triggers, discarding progress."""
        if not self._lock.acquire(blocking=False):
            raise ProcessBusy("Cannot reset while an invocation is running")
        try:
            removed = self.triggers.clear()
            self.checkpoints.clear_state()
            logger.info(f"Process reset ({removed} trigger(s) removed)")
        finally:
            self._lock.release()

    def get_status(self) -> Dict[str, Any]:
        try:
            state = self.checkpoints.load_state()
        except CheckpointCorruption as e:
            return {"running": True, "corrupt": True, "message": str(e)}

        if state is None:
            return {"running": False, "message": "No process running"}

        status: Dict[str, Any] = {"running": True, "root_id": state.root_id}
        status.update(state.counts())
        pending = self.triggers.pending()
        status["next_resume_at"] = pending[0].fire_at if pending else None
        return status
