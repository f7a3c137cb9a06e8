from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List

from providers.interface import NodeType

class NodeOutcome(Enum):
    RESET = auto()          # every reset step succeeded
    PARTIAL = auto()        # node reached, some steps failed
    UNAVAILABLE = auto()    # node could not be fetched or expanded
    SKIPPED = auto()        # already processed

class RunStatus(Enum):
    COMPLETE = auto()
    SUSPENDED = auto()

@dataclass
class NodeResult:
    node_id: str
    node_type: NodeType
    outcome: NodeOutcome
    reason: str = ""
    failed_steps: List[str] = field(default_factory=list)
    revoked: int = 0

@dataclass
class RunResult:
    """
    Outcome of one bounded invocation. The host decides how to come back
    when work_remaining is set.
    """
    status: RunStatus
    work_remaining: bool
    folders_processed: int = 0
    files_processed: int = 0
    skipped: int = 0
    failures: int = 0
    elapsed: float = 0.0

    @classmethod
    def complete(cls, **counters) -> "RunResult":
        return cls(RunStatus.COMPLETE, False, **counters)

    @classmethod
    def suspended(cls, **counters) -> "RunResult":
        return cls(RunStatus.SUSPENDED, True, **counters)

    @property
    def is_complete(self) -> bool:
        return self.status == RunStatus.COMPLETE
