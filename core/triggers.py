import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List

logger = logging.getLogger("resume_triggers")

START_ENTRY_POINT = "start"


@dataclass
class Trigger:
    handle: int
    entry_point: str
    fire_at: float


class ITriggerStore(ABC):
    """Time-delayed re-invocation of a named entry point."""

    @abstractmethod
    def schedule_delayed(self, entry_point: str, delay_ms: int) -> Trigger:
        pass

    @abstractmethod
    def list_triggers(self) -> List[Trigger]:
        pass

    @abstractmethod
    def delete_trigger(self, handle: int) -> None:
        pass


class MemoryTriggerStore(ITriggerStore):
    def __init__(self, clock=time.time):
        self.clock = clock
        self._triggers: Dict[int, Trigger] = {}
        self._next_handle = 1

    def schedule_delayed(self, entry_point: str, delay_ms: int) -> Trigger:
        trigger = Trigger(self._next_handle, entry_point, self.clock() + delay_ms / 1000.0)
        self._triggers[trigger.handle] = trigger
        self._next_handle += 1
        return trigger

    def list_triggers(self) -> List[Trigger]:
        return sorted(self._triggers.values(), key=lambda t: t.fire_at)

    def delete_trigger(self, handle: int) -> None:
        self._triggers.pop(handle, None)


class ResumeTriggerController:
    """Keeps at most one pending resume trigger for the entry point."""

    def __init__(self, store: ITriggerStore, delay_ms: int, entry_point: str = START_ENTRY_POINT):
        self.store = store
        self.delay_ms = delay_ms
        self.entry_point = entry_point

    def pending(self) -> List[Trigger]:
        return [t for t in self.store.list_triggers() if t.entry_point == self.entry_point]

    def schedule_resume(self) -> Trigger:
        self.clear()
        trigger = self.store.schedule_delayed(self.entry_point, self.delay_ms)
        logger.info(f"Resume scheduled in {self.delay_ms / 1000:.0f}s (trigger {trigger.handle})")
        return trigger

    def clear(self) -> int:
        pending = self.pending()
        for trigger in pending:
            self.store.delete_trigger(trigger.handle)
        if pending:
            logger.debug(f"Deleted {len(pending)} pending resume trigger(s)")
        return len(pending)
