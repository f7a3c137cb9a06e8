#!/usr/bin/env python3
"""
Sharing Reset
=============
Strips every sharing grant (public links, editors, viewers) from a folder
tree. Work runs in time-boxed invocations; progress is checkpointed so the
next invocation resumes where the last one stopped.

Usage:
    python3 sharing_reset.py --start                  # Run one invocation (schedules a resume if needed)
    python3 sharing_reset.py --serve                  # Run and keep firing resumes until done
    python3 sharing_reset.py --status                 # Show queue sizes and progress
    python3 sharing_reset.py --reset                  # Discard progress and pending resumes
"""

import sys
import argparse
import logging

from config import load_config, ConfigError
from core.checkpoint import CheckpointCorruption
from core.process import ProcessBusy
from core.triggers import START_ENTRY_POINT
from logger_setup import setup_logger, log_exception
from providers.interface import ProviderConnectionError
from reset_service import build_process
from scheduler_service import SchedulerService
from utils import ProgressBar, format_timestamp

EXIT_CORRUPT = 2


def print_header():
    print()
    print("╔══════════════════════════════════════════════════════════════╗")
    print("║        🔒 SHARING RESET                                      ║")
    print("╚══════════════════════════════════════════════════════════════╝")
    print()


def print_status(status):
    if not status.get("running"):
        print(f"   {status.get('message', 'No process running')}")
        return
    if status.get("corrupt"):
        print(f"   ❌ Checkpoint is corrupt: {status['message']}")
        print("   Inspect the state database, then run --reset to start over.")
        return
    print(f"   Root:               {status['root_id']!r}")
    print(f"   Folders queued:     {status['folder_queue']:,}")
    print(f"   Files queued:       {status['file_queue']:,}")
    print(f"   Folders processed:  {status['processed_folders']:,}")
    print(f"   Files processed:    {status['processed_files']:,}")
    print(f"   Next resume:        {format_timestamp(status.get('next_resume_at'))}")


def print_result(result):
    print(f"\n   Folders processed:  {result.folders_processed:,}")
    print(f"   Files processed:    {result.files_processed:,}")
    print(f"   Skipped (dupes):    {result.skipped:,}")
    if result.failures:
        print(f"   ⚠️  Nodes with errors: {result.failures:,} (see log)")
    if result.is_complete:
        print("\n✅ Traversal complete. All checkpoint state removed.")
    else:
        print("\n⏸️  Time budget reached. A resume has been scheduled.")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Remove all sharing from a storage folder tree, resumably",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 sharing_reset.py --start --root 1AbCdEf          # Google Drive folder id
  python3 sharing_reset.py --provider dropbox --serve --root ''
  python3 sharing_reset.py --provider memory --serve --dry-run
        """
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--start", action="store_true", help="Run one bounded invocation")
    group.add_argument("--serve", action="store_true", help="Run, then fire resume triggers until complete")
    group.add_argument("--status", action="store_true", help="Show progress of the current run")
    group.add_argument("--reset", action="store_true", help="Clear checkpoint state and pending resumes")

    parser.add_argument("--root", metavar="ID", help="Root folder id (overrides config)")
    parser.add_argument("--provider", choices=["google", "dropbox", "memory"], help="Storage backend")
    parser.add_argument("--budget", type=float, metavar="SECONDS", help="Time budget per invocation")
    parser.add_argument("--dry-run", action="store_true", help="Log grants that would be removed")
    parser.add_argument("--config", metavar="PATH", help="Path to config.json")

    args = parser.parse_args(argv)

    setup_logger(None)
    logger = logging.getLogger("sharing_reset")

    overrides = {}
    if args.root is not None:
        overrides["root_id"] = args.root
    if args.provider:
        overrides["provider"] = args.provider
    if args.budget:
        overrides["time_budget_seconds"] = args.budget
    if args.dry_run:
        overrides["dry_run"] = True

    try:
        config = load_config(args.config, overrides)
    except ConfigError as e:
        print(f"❌ {e}")
        return 1

    print_header()

    needs_provider = args.start or args.serve
    progress = ProgressBar(budget=config["time_budget_seconds"]) if needs_provider else None
    try:
        process, db = build_process(
            config, connect=needs_provider, on_progress=progress.update if progress else None
        )
    except ProviderConnectionError as e:
        print(f"❌ Connection failed: {e}")
        return 1

    try:
        if args.status:
            print_status(process.get_status())
            return 0

        if args.reset:
            process.reset_process()
            print("✅ Checkpoint state and pending resumes cleared.")
            return 0

        result = process.start()
        progress.finish("Invocation finished")
        print_result(result)

        if args.serve and not result.is_complete:
            scheduler = SchedulerService(
                db, {START_ENTRY_POINT: process.start}, poll_interval=config["poll_interval_seconds"]
            )
            print(f"\n⏳ Waiting for resume triggers (every {config['resume_delay_seconds']}s)...")
            scheduler.run_until_idle()
            print_status(process.get_status())
        return 0

    except CheckpointCorruption as e:
        log_exception(logger, "Checkpoint corruption", e)
        print(f"\n❌ Checkpoint is corrupt: {e}")
        print("   Run with --reset to discard it and start over.")
        return EXIT_CORRUPT
    except ProcessBusy as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted. Progress up to the last node is saved; run --start to resume.")
        return 130
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
