from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from replycore.errors import NotFoundError

_REASON_PATTERN = re.compile(r"[^a-z0-9]+")


class BackupManager:
    """Keeps timestamped copies of the template snapshot.

    A copy is taken before any destructive replace (import, restore) and
    whenever the saved snapshot turns out to be unreadable.
    """

    def __init__(self, backup_root: Path, max_backups: int = 20) -> None:
        self.backup_root = Path(backup_root)
        self.backup_root.mkdir(parents=True, exist_ok=True)
        self.max_backups = max(1, max_backups)

    def create_backup(self, data: bytes, reason: str = "manual") -> Dict[str, str]:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        label = _REASON_PATTERN.sub("-", reason.lower()).strip("-") or "manual"
        target = self.backup_root / f"templates_{timestamp}_{label}.json"
        suffix = 1
        while target.exists():
            suffix += 1
            target = self.backup_root / f"templates_{timestamp}_{label}-{suffix}.json"
        target.write_bytes(data)
        self._prune()
        return {"name": target.name, "path": str(target), "timestamp": timestamp, "reason": label}

    def list_backups(self) -> List[Dict[str, str]]:
        items = []
        for child in sorted(self.backup_root.glob("templates_*.json"), reverse=True):
            parts = child.stem.split("_", 2)
            items.append(
                {
                    "name": child.name,
                    "path": str(child),
                    "timestamp": parts[1] if len(parts) > 1 else "",
                    "reason": parts[2] if len(parts) > 2 else "",
                    "size": str(child.stat().st_size),
                }
            )
        return items

    def read_backup(self, backup_name: str) -> bytes:
        src = self.backup_root / Path(backup_name).name
        if not src.is_file():
            raise NotFoundError("Backup not found", name=backup_name)
        return src.read_bytes()

    def _prune(self) -> None:
        backups = sorted(self.backup_root.glob("templates_*.json"), reverse=True)
        for stale in backups[self.max_backups:]:
            try:
                stale.unlink()
            except OSError as exc:
                print(f"[WARN] Could not remove old backup {stale.name}: {exc}", flush=True)
