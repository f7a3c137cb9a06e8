import logging
from typing import Callable, Optional, Tuple

from core.checkpoint import CheckpointManager, FsspecCheckpointStore
from core.db import StateDB
from core.notifications import NotificationManager
from core.process import ResetProcess
from core.triggers import ResumeTriggerController
from providers.interface import ISharingProvider, AccessLevel
from providers.memory_provider import MemoryProvider

logger = logging.getLogger("reset_service")


def demo_provider() -> MemoryProvider:
    """Small shared tree for trying the tool without cloud credentials."""
    provider = MemoryProvider()
    provider.add_folder("root", name="My Drive")
    provider.add_file("report.pdf", "root")
    provider.add_folder("projects", "root")
    provider.add_file("plan.docx", "projects")
    provider.add_folder("archive", "projects")
    provider.add_file("old.xlsx", "archive")
    provider.share("root", editors=["alice@example.com"])
    provider.share("report.pdf", viewers=["bob@example.com"], anyone_with_link=AccessLevel.VIEW)
    provider.share("plan.docx", editors=["carol@example.com"], viewers=["dave@example.com", ""])
    provider.share("archive", anyone=AccessLevel.VIEW)
    return provider


def build_provider(config) -> ISharingProvider:
    kind = config["provider"]
    if kind == "google":
        from google_service import connect_google
        from providers.google_provider import GoogleDriveProvider
        return GoogleDriveProvider(connect_google(config))
    if kind == "dropbox":
        from dropbox_service import connect_dropbox
        from providers.dropbox_provider import DropboxProvider
        return DropboxProvider(connect_dropbox())
    return demo_provider()


def build_process(config, provider: Optional[ISharingProvider] = None, connect: bool = True,
                  on_progress: Optional[Callable[[int, int], None]] = None) -> Tuple[ResetProcess, StateDB]:
    """
    Wire a ResetProcess from configuration. Caller closes the returned StateDB.
    connect=False skips provider authentication (status and reset only).
    """
    if provider is None and connect:
        provider = build_provider(config)

    db = StateDB(config["state_db"])

    if config.get("checkpoint_url"):
        store = FsspecCheckpointStore(config["checkpoint_url"])
        logger.debug(f"Checkpoints stored at {config['checkpoint_url']}")
    else:
        store = db

    notifier = NotificationManager()
    notifier.load_from_config(config.get("notifications", {}))

    process = ResetProcess(
        provider,
        CheckpointManager(store, key_prefix=config.get("key_prefix", "")),
        ResumeTriggerController(db, delay_ms=int(config["resume_delay_seconds"] * 1000)),
        root_id=config["root_id"],
        time_budget=config["time_budget_seconds"],
        dry_run=config.get("dry_run", False),
        history=db,
        notifier=notifier,
        on_progress=on_progress
    )
    return process, db
