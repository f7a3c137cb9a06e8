import unittest
from collections import Counter

from core.checkpoint import CheckpointManager, MemoryCheckpointStore
from core.engine import TraversalEngine
from core.reset import PermissionResetter
from core.state import TraversalState
from core.types import NodeOutcome, RunStatus
from tree_fixtures import StepClock, scenario_tree, random_tree, balanced_tree, processed_ids

class TestTraversalEngine(unittest.TestCase):
    def _engine(self, provider, budget=1000.0, store=None):
        self.store = store if store is not None else MemoryCheckpointStore()
        self.checkpoints = CheckpointManager(self.store)
        return TraversalEngine(
            provider, PermissionResetter(provider), self.checkpoints, budget, clock=StepClock()
        )

    def test_scenario_step_by_step(self):
        """R{F1, S{F2}}: queue contents after each step."""
        provider = scenario_tree()
        engine = self._engine(provider)
        state = TraversalState.initialize("R")

        result = engine.step(state)
        self.assertEqual(result.node_id, "R")
        self.assertEqual(list(state.folder_queue), ["S"])
        self.assertEqual(list(state.file_queue), ["F1"])

        self.assertEqual(engine.step(state).node_id, "F1")
        self.assertEqual(engine.step(state).node_id, "S")
        self.assertEqual(list(state.folder_queue), [])
        self.assertEqual(list(state.file_queue), ["F2"])

        self.assertEqual(engine.step(state).node_id, "F2")
        self.assertTrue(state.is_quiescent())
        self.assertIsNone(engine.step(state))

        self.assertEqual(set(state.processed_folders), {"R", "S"})
        self.assertEqual(set(state.processed_files), {"F1", "F2"})
        for node_id in ("R", "S", "F1", "F2"):
            self.assertFalse(provider.is_shared(node_id))

    def test_run_to_completion(self):
        provider = scenario_tree()
        engine = self._engine(provider)
        state, result = engine.run(TraversalState.initialize("R"))

        self.assertEqual(result.status, RunStatus.COMPLETE)
        self.assertFalse(result.work_remaining)
        self.assertEqual(result.folders_processed, 2)
        self.assertEqual(result.files_processed, 2)
        self.assertEqual(set(state.processed_folders), {"R", "S"})
        # Final step was persisted
        self.assertEqual(self.checkpoints.load_state(), state)

    def test_files_drain_before_folders(self):
        provider = scenario_tree()
        provider.add_file("F3", "R")
        engine = self._engine(provider)
        state, _ = engine.run(TraversalState.initialize("R"))
        self.assertEqual(processed_ids(provider), ["R", "F1", "F3", "S", "F2"])

    def test_budget_suspends_with_work_remaining(self):
        """Budget 2 on a step clock allows exactly one node per run."""
        provider = scenario_tree()
        engine = self._engine(provider, budget=2)
        state, result = engine.run(TraversalState.initialize("R"))

        self.assertEqual(result.status, RunStatus.SUSPENDED)
        self.assertTrue(result.work_remaining)
        self.assertEqual(result.folders_processed, 1)
        self.assertEqual(processed_ids(provider), ["R"])
        self.assertEqual(self.checkpoints.load_state(), state)

    def test_no_premature_completion(self):
        """A folder with unexpanded subfolders keeps the run going."""
        provider = scenario_tree()
        engine = self._engine(provider, budget=2)
        state = TraversalState.initialize("R")
        statuses = []
        while True:
            state, result = engine.run(state)
            statuses.append(result.status)
            if result.status == RunStatus.COMPLETE:
                break
            self.assertFalse(state.is_quiescent())

        self.assertEqual(statuses[-1], RunStatus.COMPLETE)
        self.assertEqual(statuses.count(RunStatus.SUSPENDED), 3)

    def test_coverage_across_suspensions(self):
        """Every node is processed exactly once, whatever the budget."""
        for seed in range(6):
            for budget in (2, 3, 7):
                with self.subTest(seed=seed, budget=budget):
                    provider = random_tree(seed) if seed else balanced_tree()
                    engine = self._engine(provider, budget=budget)
                    state = TraversalState.initialize("root")
                    for _ in range(10000):
                        state, result = engine.run(self.checkpoints.load_state() or state)
                        if result.status == RunStatus.COMPLETE:
                            break

                    self.assertEqual(set(state.processed_folders), provider.folder_ids)
                    self.assertEqual(set(state.processed_files), provider.file_ids)
                    counts = Counter(processed_ids(provider))
                    self.assertEqual(set(counts), provider.folder_ids | provider.file_ids)
                    self.assertEqual(set(counts.values()), {1})
                    self.assertFalse(any(provider.is_shared(n) for n in counts))

    def test_resume_from_serialized_state(self):
        """A restart from stored state processes only the remaining nodes."""
        provider = balanced_tree()
        engine = self._engine(provider, budget=6)
        engine.run(TraversalState.initialize("root"))
        first = set(processed_ids(provider))
        self.assertEqual(len(first), 5)

        # New process: fresh store holding only the serialized documents
        restored_store = MemoryCheckpointStore(dict(self.store.data))
        provider.calls.clear()
        engine = self._engine(provider, store=restored_store)
        state, result = engine.run(self.checkpoints.load_state())

        self.assertTrue(result.is_complete)
        second = processed_ids(provider)
        self.assertEqual(len(second), len(set(second)))
        self.assertFalse(first & set(second))
        self.assertEqual(first | set(second), provider.folder_ids | provider.file_ids)

    def test_duplicates_are_skipped(self):
        """A file reachable from two folders is reset once."""
        provider = scenario_tree()
        provider.link("F1", "S")
        engine = self._engine(provider)
        state, result = engine.run(TraversalState.initialize("R"))

        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.files_processed, 2)
        self.assertEqual(Counter(processed_ids(provider))["F1"], 1)

    def test_unavailable_folder_is_marked_processed(self):
        """A folder that cannot be expanded is done; traversal still completes."""
        provider = scenario_tree()
        provider.unavailable.add("S")
        engine = self._engine(provider)
        state, result = engine.run(TraversalState.initialize("R"))

        self.assertTrue(result.is_complete)
        self.assertEqual(result.failures, 1)
        self.assertIn("S", state.processed_folders)
        self.assertNotIn("F2", state.processed_files)

    def test_failures_do_not_stop_traversal(self):
        provider = scenario_tree()
        provider.remove("F1")
        provider.failing_ops["F2"] = {"revoke_editor"}
        engine = self._engine(provider)
        state, result = engine.run(TraversalState.initialize("R"))

        self.assertTrue(result.is_complete)
        self.assertEqual(result.failures, 2)
        self.assertEqual(set(state.processed_files), {"F1", "F2"})

    def test_progress_callback(self):
        provider = scenario_tree()
        seen = []
        engine = self._engine(provider)
        engine.on_progress = lambda folders, files: seen.append((folders, files))
        engine.run(TraversalState.initialize("R"))
        self.assertEqual(seen, [(1, 0), (1, 1), (2, 1), (2, 2)])

    def test_step_outcome_for_processed_folder(self):
        provider = scenario_tree()
        engine = self._engine(provider)
        state = TraversalState.initialize("R")
        state.mark_folder_processed("R")
        self.assertEqual(engine.step(state).outcome, NodeOutcome.SKIPPED)
        self.assertEqual(provider.calls, [])

if __name__ == '__main__':
    unittest.main()
