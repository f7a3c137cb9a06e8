import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Dict, Iterable, Optional

import fsspec

from .state import TraversalState

logger = logging.getLogger("checkpoint")

# Logical keys of the persisted traversal state
PROCESSING = "processing"
ROOT_ID = "rootId"
FOLDER_QUEUE = "folderQueue"
FILE_QUEUE = "fileQueue"
PROCESSED_FOLDERS = "processedFolders"
PROCESSED_FILES = "processedFiles"
STATE_KEYS = (PROCESSING, ROOT_ID, FOLDER_QUEUE, FILE_QUEUE, PROCESSED_FOLDERS, PROCESSED_FILES)


class CheckpointCorruption(Exception):
    """Persisted state exists but cannot be trusted. Needs an operator."""
    pass


class ICheckpointStore(ABC):
    """
    Durable string key-value storage.
    save_many and delete_many apply all of their keys or none of them.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def save_many(self, values: Dict[str, str]) -> None:
        pass

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> None:
        pass

    def save(self, key: str, value: str) -> None:
        self.save_many({key: value})

    def delete(self, key: str) -> None:
        self.delete_many([key])


class MemoryCheckpointStore(ICheckpointStore):
    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    def load(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def save_many(self, values: Dict[str, str]) -> None:
        self.data.update(values)

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


class FsspecCheckpointStore(ICheckpointStore):
    """
    All keys live in one JSON document under an fsspec URL
    (e.g. "file:///var/lib/sharing-reset", "s3://bucket/checkpoints").
    Writes go to a temporary file that replaces the document in one move.
    """

    DOCUMENT = "checkpoint.json"

    def __init__(self, url: str, **storage_options):
        self.fs, self.root = fsspec.core.url_to_fs(url, **storage_options)
        self.fs.makedirs(self.root, exist_ok=True)
        self.path = f"{self.root.rstrip('/')}/{self.DOCUMENT}"

    def _read(self) -> Dict[str, str]:
        if not self.fs.exists(self.path):
            return {}
        with self.fs.open(self.path, "r", encoding="utf-8") as f:
            raw = f.read()
        try:
            document = json.loads(raw)
        except ValueError as e:
            raise CheckpointCorruption(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise CheckpointCorruption(f"{self.path}: expected an object of keys")
        return document

    def _write(self, document: Dict[str, str]):
        tmp_path = self.path + ".tmp"
        with self.fs.open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f)
        self.fs.mv(tmp_path, self.path)

    def load(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def save_many(self, values: Dict[str, str]) -> None:
        document = self._read()
        document.update(values)
        self._write(document)

    def delete_many(self, keys: Iterable[str]) -> None:
        document = self._read()
        removed = [k for k in keys if document.pop(k, None) is not None]
        if removed:
            self._write(document)


def _expect_ids(key: str, value: Any) -> list:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CheckpointCorruption(f"{key}: expected a list of ids, got {type(value).__name__}")
    return value


def _expect_id_map(key: str, value: Any) -> Dict[str, bool]:
    if not isinstance(value, dict) or not all(isinstance(v, bool) for v in value.values()):
        raise CheckpointCorruption(f"{key}: expected a map of id -> bool")
    return value


class CheckpointManager:
    """
    Serializes TraversalState to a checkpoint store.

    Every field lives under its own key so a single step only rewrites
    small documents. Loading validates each key; anything missing or
    malformed raises CheckpointCorruption rather than starting over.
    """

    def __init__(self, store: ICheckpointStore, key_prefix: str = ""):
        self.store = store
        self.key_prefix = key_prefix

    def _key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    def _read(self, name: str) -> Any:
        raw = self.store.load(self._key(name))
        if raw is None:
            raise CheckpointCorruption(f"Run in progress but '{name}' is missing")
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CheckpointCorruption(f"'{name}' is not valid JSON: {e}") from e

    def load_state(self) -> Optional[TraversalState]:
        """Persisted state, or None when no run is in progress."""
        raw = self.store.load(self._key(PROCESSING))
        if raw is None:
            return None
        processing = self._read(PROCESSING)
        if not isinstance(processing, bool):
            raise CheckpointCorruption(f"'{PROCESSING}' must be a boolean, got {raw!r}")
        if not processing:
            return None

        root_id = self._read(ROOT_ID)
        if not isinstance(root_id, str):
            raise CheckpointCorruption(f"'{ROOT_ID}' must be a string")

        state = TraversalState(
            processing=True,
            root_id=root_id,
            folder_queue=deque(_expect_ids(FOLDER_QUEUE, self._read(FOLDER_QUEUE))),
            file_queue=deque(_expect_ids(FILE_QUEUE, self._read(FILE_QUEUE))),
            processed_folders=_expect_id_map(PROCESSED_FOLDERS, self._read(PROCESSED_FOLDERS)),
            processed_files=_expect_id_map(PROCESSED_FILES, self._read(PROCESSED_FILES)),
        )
        logger.debug(f"Loaded checkpoint: {state.counts()}")
        return state

    def save_state(self, state: TraversalState):
        values = {
            PROCESSING: state.processing,
            ROOT_ID: state.root_id,
            FOLDER_QUEUE: list(state.folder_queue),
            FILE_QUEUE: list(state.file_queue),
            PROCESSED_FOLDERS: state.processed_folders,
            PROCESSED_FILES: state.processed_files,
        }
        # One batch: a crash leaves either the previous step or this one
        self.store.save_many({self._key(name): json.dumps(value) for name, value in values.items()})

    def clear_state(self):
        self.store.delete_many([self._key(name) for name in STATE_KEYS])
        logger.info("Checkpoint cleared")

    def initialize(self, root_id: str) -> TraversalState:
        state = TraversalState.initialize(root_id)
        self.save_state(state)
        logger.info(f"Initialized traversal from root {root_id!r}")
        return state
