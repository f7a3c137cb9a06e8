import logging
import time
from typing import Callable, Optional, Tuple

from providers.interface import ISharingProvider, NodeType, NodeUnavailable
from .checkpoint import CheckpointManager
from .reset import PermissionResetter
from .state import TraversalState
from .types import NodeResult, NodeOutcome, RunResult

logger = logging.getLogger("traversal_engine")

class TraversalEngine:
    """
    Time-bounded breadth-first traversal.

    Each step processes one node: a pending file if there is one, otherwise
    the next folder (expand, then reset). State is checkpointed after every
    step, so an interrupted invocation repeats at most the in-flight node.
    The budget is checked between steps only; a started step always finishes.
    """

    def __init__(self, provider: ISharingProvider, resetter: PermissionResetter,
                 checkpoints: CheckpointManager, time_budget: float,
                 clock: Callable[[], float] = time.monotonic,
                 on_progress: Optional[Callable[[int, int], None]] = None):
        self.provider = provider
        self.resetter = resetter
        self.checkpoints = checkpoints
        self.time_budget = time_budget
        self.clock = clock
        self.on_progress = on_progress

    def run(self, state: TraversalState) -> Tuple[TraversalState, RunResult]:
        started = self.clock()
        counters = {"folders_processed": 0, "files_processed": 0, "skipped": 0, "failures": 0}

        while True:
            elapsed = self.clock() - started
            if state.is_quiescent():
                logger.info(f"Traversal complete: {state.counts()}")
                return state, RunResult.complete(elapsed=elapsed, **counters)
            if elapsed >= self.time_budget:
                logger.info(f"Time budget reached after {elapsed:.1f}s, suspending: {state.counts()}")
                return state, RunResult.suspended(elapsed=elapsed, **counters)

            result = self.step(state)
            if result is None:
                continue
            self.checkpoints.save_state(state)
            self._count(result, counters)

    def step(self, state: TraversalState) -> Optional[NodeResult]:
        """Process one node. None when both queues are empty."""
        file_id = state.dequeue_file()
        if file_id is not None:
            return self._process_file(state, file_id)
        folder_id = state.dequeue_folder()
        if folder_id is not None:
            return self._process_folder(state, folder_id)
        return None

    def _process_file(self, state: TraversalState, file_id: str) -> NodeResult:
        if state.is_file_processed(file_id):
            return NodeResult(file_id, NodeType.FILE, NodeOutcome.SKIPPED, reason="already processed")
        result = self.resetter.reset(file_id, NodeType.FILE)
        state.mark_file_processed(file_id)
        return result

    def _process_folder(self, state: TraversalState, folder_id: str) -> NodeResult:
        if state.is_folder_processed(folder_id):
            return NodeResult(folder_id, NodeType.FOLDER, NodeOutcome.SKIPPED, reason="already processed")

        try:
            child_folders = self.provider.list_child_folders(folder_id)
            child_files = self.provider.list_child_files(folder_id)
        except NodeUnavailable as e:
            logger.warning(f"Cannot expand folder {folder_id}, marking processed: {e}")
            state.mark_folder_processed(folder_id)
            return NodeResult(folder_id, NodeType.FOLDER, NodeOutcome.UNAVAILABLE, reason=str(e))

        state.enqueue_folders(child_folders)
        state.enqueue_files(child_files)
        logger.debug(f"Expanded {folder_id}: {len(child_folders)} folder(s), {len(child_files)} file(s)")

        result = self.resetter.reset(folder_id, NodeType.FOLDER)
        state.mark_folder_processed(folder_id)
        return result

    def _count(self, result: NodeResult, counters: dict):
        if result.outcome == NodeOutcome.SKIPPED:
            counters["skipped"] += 1
            return
        if result.node_type == NodeType.FOLDER:
            counters["folders_processed"] += 1
        else:
            counters["files_processed"] += 1
        if result.outcome in (NodeOutcome.UNAVAILABLE, NodeOutcome.PARTIAL):
            counters["failures"] += 1
        if self.on_progress:
            self.on_progress(counters["folders_processed"], counters["files_processed"])
