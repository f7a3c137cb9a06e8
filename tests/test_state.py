import unittest
from core.state import TraversalState

class TestTraversalState(unittest.TestCase):
    def setUp(self):
        self.state = TraversalState.initialize("root")

    def test_initialize(self):
        """Fresh state has only the root queued and nothing processed."""
        self.assertTrue(self.state.processing)
        self.assertEqual(self.state.root_id, "root")
        self.assertEqual(list(self.state.folder_queue), ["root"])
        self.assertEqual(list(self.state.file_queue), [])
        self.assertEqual(self.state.processed_folders, {})
        self.assertEqual(self.state.processed_files, {})
        self.assertFalse(self.state.is_quiescent())

    def test_fifo_order(self):
        """Queues preserve discovery order."""
        self.state.dequeue_folder()
        self.state.enqueue_folders(["a", "b"])
        self.state.enqueue_folders(["c"])
        self.state.enqueue_files(["f1", "f2"])

        self.assertEqual([self.state.dequeue_folder() for _ in range(3)], ["a", "b", "c"])
        self.assertEqual(self.state.dequeue_file(), "f1")
        self.assertEqual(self.state.dequeue_file(), "f2")

    def test_dequeue_empty_returns_none(self):
        self.assertIsNone(self.state.dequeue_file())
        self.assertEqual(self.state.dequeue_folder(), "root")
        self.assertIsNone(self.state.dequeue_folder())
        self.assertTrue(self.state.is_quiescent())

    def test_dequeue_does_not_filter_processed(self):
        """Filtering processed ids is the caller's job."""
        self.state.mark_folder_processed("root")
        self.assertEqual(self.state.dequeue_folder(), "root")

    def test_mark_processed_is_idempotent(self):
        self.state.mark_file_processed("f1")
        self.state.mark_file_processed("f1")
        self.assertEqual(self.state.processed_files, {"f1": True})
        self.assertTrue(self.state.is_file_processed("f1"))
        self.assertFalse(self.state.is_folder_processed("f1"))

    def test_quiescent_requires_both_queues_empty(self):
        self.state.dequeue_folder()
        self.state.enqueue_files(["f1"])
        self.assertFalse(self.state.is_quiescent())
        self.state.dequeue_file()
        self.assertTrue(self.state.is_quiescent())

    def test_counts(self):
        self.state.enqueue_files(["f1", "f2"])
        self.state.mark_folder_processed("x")
        self.assertEqual(self.state.counts(), {
            "folder_queue": 1, "file_queue": 2, "processed_folders": 1, "processed_files": 0
        })

if __name__ == '__main__':
    unittest.main()
