import sqlite3
import threading
import queue
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .checkpoint import ICheckpointStore
from .triggers import ITriggerStore, Trigger

logger = logging.getLogger("state_db")

CHECKPOINT_UPSERT = """
INSERT INTO checkpoint (key, value, updated_at)
VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET
    value=excluded.value,
    updated_at=excluded.updated_at
"""

class DatabaseWorker(threading.Thread):
    """Owns the sqlite connection; every statement runs on this thread."""

    def __init__(self, db_path: str):
        super().__init__(daemon=True, name="StateDBWorker")
        self.db_path = db_path
        self.queue = queue.Queue()
        self.connection = None
        self.running = True
        self.error: Optional[Exception] = None
        self.start()

    def run(self):
        try:
            self.connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self.connection.execute("PRAGMA journal_mode=WAL;")
            self.connection.execute("PRAGMA synchronous=FULL;")
            self._create_tables()

            while self.running:
                try:
                    task = self.queue.get(timeout=1.0)
                    if task is None:
                        break
                    query, args, result_queue = task
                    try:
                        if isinstance(query, list):
                            # Batch: every statement commits together or not at all
                            for statement, statement_args in query:
                                self.connection.execute(statement, statement_args)
                            self.connection.commit()
                            result = None
                        elif query.strip().upper().startswith("SELECT"):
                            result = self.connection.execute(query, args).fetchall()
                        else:
                            cursor = self.connection.execute(query, args)
                            self.connection.commit()
                            result = cursor.lastrowid
                        result_queue.put(('success', result))
                    except Exception as e:
                        self.connection.rollback()
                        result_queue.put(('error', e))
                    finally:
                        self.queue.task_done()
                except queue.Empty:
                    continue
        except Exception as e:
            self.error = e
            logger.critical(f"Database worker failed: {e}")
        finally:
            if self.connection:
                self.connection.close()

    def _create_tables(self):
        schema = """
        CREATE TABLE IF NOT EXISTS checkpoint (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at REAL
        );
        CREATE TABLE IF NOT EXISTS triggers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_point TEXT NOT NULL,
            fire_at REAL NOT NULL
        );
        CREATE TABLE IF NOT EXISTS run_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            start_time REAL,
            end_time REAL,
            status TEXT,
            folders_processed INTEGER,
            files_processed INTEGER
        );
        """
        self.connection.executescript(schema)
        self.connection.commit()

    def execute(self, query: str, args: tuple = ()) -> Any:
        if self.error is not None or not self.is_alive():
            raise RuntimeError(f"State database unavailable: {self.error}")
        result_queue = queue.Queue()
        self.queue.put((query, args, result_queue))
        status, result = result_queue.get()
        if status == 'error':
            raise result
        return result

    def execute_batch(self, statements: List[Tuple[str, tuple]]) -> None:
        self.execute(statements)

    def close(self):
        self.running = False
        self.queue.put(None)
        self.join()

class StateDB(ICheckpointStore, ITriggerStore):
    """
    SQLite persistence for a reset process: checkpoint keys, pending
    resume triggers and per-invocation history.
    """

    def __init__(self, db_path: str = "sharing_state.db", clock=time.time):
        self.db_path = db_path
        self.clock = clock
        self.worker = DatabaseWorker(db_path)

    # Checkpoint store

    def load(self, key: str) -> Optional[str]:
        rows = self.worker.execute("SELECT value FROM checkpoint WHERE key = ?", (key,))
        if not rows:
            return None
        return rows[0][0]

    def save_many(self, values: Dict[str, str]) -> None:
        now = self.clock()
        self.worker.execute_batch([(CHECKPOINT_UPSERT, (key, value, now)) for key, value in values.items()])

    def delete_many(self, keys: Iterable[str]) -> None:
        self.worker.execute_batch([("DELETE FROM checkpoint WHERE key = ?", (key,)) for key in keys])

    def checkpoint_keys(self) -> List[str]:
        return [r[0] for r in self.worker.execute("SELECT key FROM checkpoint ORDER BY key")]

    # Trigger store

    def schedule_delayed(self, entry_point: str, delay_ms: int) -> Trigger:
        fire_at = self.clock() + delay_ms / 1000.0
        handle = self.worker.execute(
            "INSERT INTO triggers (entry_point, fire_at) VALUES (?, ?)", (entry_point, fire_at)
        )
        return Trigger(handle, entry_point, fire_at)

    def list_triggers(self) -> List[Trigger]:
        rows = self.worker.execute("SELECT id, entry_point, fire_at FROM triggers ORDER BY fire_at")
        return [Trigger(r[0], r[1], r[2]) for r in rows]

    def delete_trigger(self, handle: int) -> None:
        self.worker.execute("DELETE FROM triggers WHERE id = ?", (handle,))

    # Run history

    def start_run(self) -> int:
        return self.worker.execute(
            "INSERT INTO run_history (start_time, status) VALUES (?, ?)", (self.clock(), "running")
        )

    def end_run(self, run_id: int, status: str, folders: int, files: int):
        self.worker.execute(
            "UPDATE run_history SET end_time=?, status=?, folders_processed=?, files_processed=? WHERE id=?",
            (self.clock(), status, folders, files, run_id)
        )

    def recent_runs(self, limit: int = 20) -> List[Dict]:
        rows = self.worker.execute(
            "SELECT id, start_time, end_time, status, folders_processed, files_processed "
            "FROM run_history ORDER BY id DESC LIMIT ?", (limit,)
        )
        return [
            {"id": r[0], "start_time": r[1], "end_time": r[2], "status": r[3],
             "folders_processed": r[4], "files_processed": r[5]}
            for r in rows
        ]

    def close(self):
        self.worker.close()
