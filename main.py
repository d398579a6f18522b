#!/usr/bin/env python

"""
HabitFlow - Command-line Entry Point

Loads the configured user's habits and tasks from the backend and prints the
dashboard summary. Can also write a JSON backup or show the summary of an
existing backup file.

Usage:
    python main.py [--init-db] [--backup] [--from-backup FILE]

Configuration (environment or .env):
    HABITFLOW_BACKEND_URL, HABITFLOW_API_KEY, HABITFLOW_USER_ID
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from habitflow.domain.errors import HabitFlowError
from habitflow.infra.backend import ConfiguredBackend, create_backend
from habitflow.infra.config import get_settings
from habitflow.infra.identity import Identity, LocalIdentityProvider
from habitflow.services import AnalyticsService, AppStore, BackupService, SyncService

logger = logging.getLogger("habitflow")


def print_summary(store: AppStore, window_days: int, upcoming_limit: int):
    analytics = AnalyticsService(store.state, window_days=window_days)
    stats = analytics.dashboard_stats()

    print(f"Habits: {stats.completed_habits_today}/{stats.total_habits} done today")
    print(f"Tasks:  {stats.completed_tasks}/{stats.total_tasks} completed, "
          f"{stats.overdue_tasks} overdue")
    print(f"Longest streak: {stats.longest_streak} days, "
          f"average completion: {stats.avg_completion_rate}%")

    for stat in analytics.habit_stats():
        print(f"  {stat.name:<30} streak {stat.streak:>3}  rate {stat.completion_rate:>3}%")

    upcoming = analytics.upcoming_tasks(upcoming_limit)
    if upcoming:
        print("Upcoming:")
        for task in upcoming:
            print(f"  {task.due_date:%Y-%m-%d}  {task.title}")


async def run(args) -> int:
    settings = get_settings()
    prefs = settings.preferences
    store = AppStore()
    backups = BackupService(store)

    if args.from_backup:
        backups.restore_backup(Path(args.from_backup))
        print_summary(store, prefs.completion_window_days, prefs.upcoming_tasks_limit)
        return 0

    backend = create_backend(settings)
    if isinstance(backend, ConfiguredBackend) and args.init_db:
        await backend.engine.create_tables()

    identity = LocalIdentityProvider(Identity(user_id=settings.user_id) if settings.user_id else None)
    sync = SyncService(store, identity, backend)
    try:
        await sync.start()
        if store.state.error:
            print(f"Error: {store.state.error}", file=sys.stderr)
            return 1
        if sync.current_identity is None:
            print("Not signed in: set HABITFLOW_USER_ID", file=sys.stderr)
            return 1

        print_summary(store, prefs.completion_window_days, prefs.upcoming_tasks_limit)

        if args.backup:
            backup_dir = settings.get_backup_dir()
            path = backups.create_backup(backup_dir)
            backups.cleanup_old_backups(backup_dir, prefs.backup_retention_count)
            print(f"Backup written to {path}")
    finally:
        await sync.close()
        await backend.close()
    return 0


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="HabitFlow dashboard summary")
    parser.add_argument("--init-db", action="store_true", help="Create backend tables if missing")
    parser.add_argument("--backup", action="store_true", help="Write a JSON backup after loading")
    parser.add_argument("--from-backup", metavar="FILE", help="Summarize a backup file instead of the backend")
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    try:
        return asyncio.run(run(args))
    except (HabitFlowError, FileNotFoundError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
