#!/usr/bin/env python3
"""Run category syncs or the cleanup job from the command line.

Meant for cron: exits with status 1 when any requested job failed.

Usage:
    python scripts/run_category_sync.py trending popular
    python scripts/run_category_sync.py all
    python scripts/run_category_sync.py cleanup

Options:
    --init-db   Create missing tables before running
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mediahub.db import async_session_maker, dispose_db, init_db
from mediahub.services.category_sync import CategorySyncService
from mediahub.services.cleanup import cleanup_old_data
from mediahub.utils.http_client import close_all_clients
from mediahub.utils.logging import get_logger, setup_logging

logger = get_logger("mediahub.cli")

SYNC_KINDS = {
    "trending": "sync_trending",
    "popular": "sync_popular",
    "top-rated": "sync_top_rated",
    "dramas": "sync_dramas",
    "upcoming": "sync_upcoming",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Refresh media categories")
    parser.add_argument(
        "jobs",
        nargs="+",
        choices=[*SYNC_KINDS, "all", "cleanup"],
        help="Sync kinds to run in order, 'all' for every kind, or 'cleanup'",
    )
    parser.add_argument("--init-db", action="store_true", help="Create missing tables first")
    return parser.parse_args(argv)


def expand_jobs(jobs: list[str]) -> list[str]:
    """Resolve 'all' and drop duplicates, keeping the requested order."""
    expanded: list[str] = []
    for job in jobs:
        for name in SYNC_KINDS if job == "all" else [job]:
            if name not in expanded:
                expanded.append(name)
    return expanded


async def run_jobs(jobs: list[str]) -> bool:
    """Run each job in its own session. Returns True when all succeeded."""
    ok = True
    for name in jobs:
        async with async_session_maker() as db:
            if name == "cleanup":
                cleanup = await cleanup_old_data(db)
                success, job_id, error = cleanup.success, cleanup.job_id, cleanup.error
                if success:
                    print(f"cleanup: deleted {cleanup.deleted} (job {job_id})")
            else:
                service = CategorySyncService(db)
                result = await getattr(service, SYNC_KINDS[name])()
                success, job_id, error = result.success, result.job_id, result.error
                if success:
                    print(f"{name}: completed (job {job_id})")

        if not success:
            ok = False
            print(f"{name}: FAILED (job {job_id}): {error}", file=sys.stderr)
    return ok


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()

    if args.init_db:
        await init_db()
        logger.info("Database initialized")

    try:
        ok = await run_jobs(expand_jobs(args.jobs))
    finally:
        await close_all_clients()
        await dispose_db()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
