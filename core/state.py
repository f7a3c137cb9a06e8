from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, Optional


@dataclass
class TraversalState:
    """
    Work queues and processed-sets for one traversal.

    The queues are FIFO in discovery order. Ids may be enqueued more than
    once; the processed maps filter them at dequeue time.
    """
    processing: bool = False
    root_id: str = ""
    folder_queue: Deque[str] = field(default_factory=deque)
    file_queue: Deque[str] = field(default_factory=deque)
    processed_folders: Dict[str, bool] = field(default_factory=dict)
    processed_files: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def initialize(cls, root_id: str) -> "TraversalState":
        return cls(processing=True, root_id=root_id, folder_queue=deque([root_id]))

    def dequeue_folder(self) -> Optional[str]:
        if not self.folder_queue:
            return None
        return self.folder_queue.popleft()

    def dequeue_file(self) -> Optional[str]:
        if not self.file_queue:
            return None
        return self.file_queue.popleft()

    def enqueue_folders(self, ids: Iterable[str]):
        self.folder_queue.extend(ids)

    def enqueue_files(self, ids: Iterable[str]):
        self.file_queue.extend(ids)

    def mark_folder_processed(self, folder_id: str):
        self.processed_folders[folder_id] = True

    def mark_file_processed(self, file_id: str):
        self.processed_files[file_id] = True

    def is_folder_processed(self, folder_id: str) -> bool:
        return self.processed_folders.get(folder_id, False)

    def is_file_processed(self, file_id: str) -> bool:
        return self.processed_files.get(file_id, False)

    def is_quiescent(self) -> bool:
        return not self.folder_queue and not self.file_queue

    def counts(self) -> Dict[str, int]:
        return {
            "folder_queue": len(self.folder_queue),
            "file_queue": len(self.file_queue),
            "processed_folders": len(self.processed_folders),
            "processed_files": len(self.processed_files),
        }
