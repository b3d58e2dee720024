from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from replycore.backup_manager import BackupManager
from replycore.errors import ExportError, FormatError, PersistenceError
from replycore.models import Template
from replycore.template_store import TemplateStore
from replycore.transfer import EXPORT_FILENAME, export_all, import_from


class TemplateService:
    """File-level import/export around a `TemplateStore`.

    Confirmation before a destructive import is the caller's job; this class
    only makes sure the collection being replaced is backed up first.
    """

    def __init__(self, store: TemplateStore, backups: Optional[BackupManager] = None) -> None:
        self._store = store
        self._backups = backups

    def export_to_directory(self, directory: Path) -> Path:
        data = export_all(self._store.list_templates())
        target_dir = Path(directory).expanduser()
        target = target_dir / EXPORT_FILENAME
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise ExportError(f"Could not write {target}: {exc}") from exc
        return target

    def read_import(self, file_path: Path) -> List[Template]:
        path = Path(file_path).expanduser()
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FormatError(f"Could not read {path}: {exc}") from exc
        return import_from(data)

    def apply_import(self, templates: List[Template], reason: str = "before-import") -> None:
        self._backup_current(reason)
        self._store.replace_all(templates)

    def list_backups(self) -> List[Dict[str, str]]:
        if self._backups is None:
            return []
        return self._backups.list_backups()

    def read_backup(self, backup_name: str) -> List[Template]:
        if self._backups is None:
            raise FormatError("Backups are not enabled")
        return import_from(self._backups.read_backup(backup_name))

    def restore_backup(self, backup_name: str) -> List[Template]:
        templates = self.read_backup(backup_name)
        self.apply_import(templates, reason="before-restore")
        return templates

    def preserve_unreadable(self, data: Optional[bytes]) -> None:
        """Copy a snapshot the store failed to parse so nothing overwrites it unseen."""
        if self._backups is None or not data:
            return
        self._backups.create_backup(data, "unreadable")

    def _backup_current(self, reason: str) -> None:
        if self._backups is None:
            return
        if self._store.is_loading:
            # nothing read yet; the slot may still hold a full collection
            data = self._store.persisted_snapshot()
        elif self._store.list_templates():
            data = self._store.snapshot()
        else:
            data = None
        if not data:
            return
        try:
            self._backups.create_backup(data, reason)
        except OSError as exc:
            raise PersistenceError(f"Could not back up current templates: {exc}") from exc
