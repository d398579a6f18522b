"""
Backup Service - Handles export and import of the full application state.

Architecture Decision: Why JSON for backups?
- Human-readable format for easy inspection and manual edits
- Cross-platform compatible
- Same camelCase record shape the web client used for its exports

Import only replaces in-memory state; nothing is written to the backend.
It is a convenience, not a transactional restore.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from habitflow.domain.errors import ImportFormatError
from habitflow.domain.models import Habit, HabitEntry, LocalDateTime, Task
from habitflow.services.state import AppStore, ReplaceAll

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


class ExportDocument(BaseModel):
    """Validated shape of an export file; all three collections are required"""
    model_config = ConfigDict(populate_by_name=True)

    version: str = FORMAT_VERSION
    app_name: str = Field(default="HabitFlow", alias="appName")
    export_date: LocalDateTime = Field(alias="exportDate")
    habits: List[Habit]
    tasks: List[Task]
    habit_entries: List[HabitEntry] = Field(alias="habitEntries")

    @model_validator(mode="after")
    def _check_ids(self) -> "ExportDocument":
        # Collections are keyed by id; a missing or repeated id would drop records
        for name in ("habits", "tasks", "habit_entries"):
            seen = set()
            for index, record in enumerate(getattr(self, name)):
                if not record.id:
                    raise ValueError(f"{name}[{index}] has no id")
                if record.id in seen:
                    raise ValueError(f"{name}[{index}] repeats id {record.id!r}")
                seen.add(record.id)
        return self


class BackupService:
    """
    Handles state export (backup) and import (restore) operations.

    Backup naming convention: habitflow_backup_YYYY-MM-DD_HHMMSS.json
    """

    BACKUP_PREFIX = "habitflow_backup_"
    BACKUP_EXTENSION = ".json"

    def __init__(self, store: AppStore):
        self.store = store

    def _generate_backup_filename(self) -> str:
        """Generate a timestamped backup filename"""
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        return f"{self.BACKUP_PREFIX}{timestamp}{self.BACKUP_EXTENSION}"

    def _parse_backup_date(self, filename: str) -> Optional[datetime]:
        """Extract datetime from backup filename"""
        try:
            date_part = filename.replace(self.BACKUP_PREFIX, "").replace(self.BACKUP_EXTENSION, "")
            return datetime.strptime(date_part, "%Y-%m-%d_%H%M%S")
        except ValueError:
            return None

    def export_document(self) -> Dict[str, Any]:
        """The current state as a JSON-ready export document"""
        state = self.store.state
        document = ExportDocument(
            export_date=datetime.now(),
            habits=state.habit_list(),
            tasks=state.task_list(),
            habit_entries=state.entry_list(),
        )
        return document.model_dump(mode="json", by_alias=True)

    def import_document(self, data: Any) -> Dict[str, int]:
        """
        Replace all local collections with the document's contents.

        The whole document is validated before anything changes; either all
        three collections are replaced or none is.

        Raises:
            ImportFormatError: the document is not a valid export
        """
        if not isinstance(data, dict):
            raise ImportFormatError("Import document must be a JSON object")
        try:
            document = ExportDocument.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Rejected import document: {e.error_count()} validation errors")
            raise ImportFormatError(f"Invalid import document: {e}") from e

        self.store.dispatch(ReplaceAll(
            habits=document.habits,
            tasks=document.tasks,
            habit_entries=document.habit_entries,
        ))

        restored = {
            "habits": len(document.habits),
            "tasks": len(document.tasks),
            "habit_entries": len(document.habit_entries),
        }
        logger.info(f"Data imported: {restored}")
        return restored

    def create_backup(self, backup_dir: Path) -> Path:
        """
        Write the export document to a timestamped file.

        Args:
            backup_dir: Directory for backup files (created if missing)

        Returns:
            Path to the created backup file
        """
        backup_dir.mkdir(parents=True, exist_ok=True)
        backup_file = backup_dir / self._generate_backup_filename()

        with open(backup_file, 'w', encoding='utf-8') as f:
            json.dump(self.export_document(), f, indent=2, ensure_ascii=False)

        logger.info(f"Backup created: {backup_file}")
        return backup_file

    def restore_backup(self, backup_file: Path) -> Dict[str, int]:
        """Read a backup file and import it"""
        if not backup_file.exists():
            raise FileNotFoundError(f"Backup file not found: {backup_file}")

        try:
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Invalid file format: {e}") from e

        return self.import_document(data)

    def list_backups(self, backup_dir: Path) -> List[Dict[str, Any]]:
        """
        List available backups, newest first.

        Returns:
            Dicts with filename, path, created_at and size_bytes
        """
        if not backup_dir.exists():
            return []

        backups = []
        for file in backup_dir.glob(f"{self.BACKUP_PREFIX}*{self.BACKUP_EXTENSION}"):
            created_at = self._parse_backup_date(file.name)
            if created_at is None:
                continue
            backups.append({
                "filename": file.name,
                "path": file,
                "created_at": created_at,
                "size_bytes": file.stat().st_size,
            })

        backups.sort(key=lambda b: b["created_at"], reverse=True)
        return backups

    def cleanup_old_backups(self, backup_dir: Path, retention_count: int = 5) -> int:
        """Delete all but the newest `retention_count` backups. Returns how many were removed."""
        removed = 0
        for backup in self.list_backups(backup_dir)[retention_count:]:
            try:
                backup["path"].unlink()
                removed += 1
                logger.info(f"Removed old backup: {backup['filename']}")
            except OSError as e:
                logger.warning(f"Failed to remove backup {backup['filename']}: {e}")
        return removed
