from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from replycore.platform_support import PLATFORM, PlatformInfo
from replycore.template_store import DEFAULT_COPY_MARKER

SETTINGS_FILENAME = "settings.yml"


class ConfigManager:
    """User settings for Canned Replies, kept in `settings.yml`.

    Unknown keys are preserved; missing keys fall back to platform defaults.
    """

    def __init__(self, base_dir: Optional[Path] = None, platform_info: PlatformInfo = PLATFORM) -> None:
        # Allow tests to override where settings are stored.
        env_home = os.environ.get("CANNED_REPLIES_HOME")
        if base_dir is not None:
            self._base = Path(base_dir)
        elif env_home:
            self._base = Path(env_home).expanduser()
        else:
            self._base = Path.home() / ".canned_replies"
        self._base.mkdir(parents=True, exist_ok=True)
        self._platform = platform_info
        self._settings_path = self._base / SETTINGS_FILENAME
        self._settings: Dict[str, Any] = self._load_settings()

    def defaults(self) -> Dict[str, Any]:
        return {
            "storageRoot": "",
            "targetApp": self._platform.default_target_app(),
            "automationBackend": "auto",
            "copyMarker": DEFAULT_COPY_MARKER,
            "sendShortcut": "",
            "maxBackups": 20,
        }

    def _load_settings(self) -> Dict[str, Any]:
        if not self._settings_path.exists():
            return {}
        try:
            data = yaml.safe_load(self._settings_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            print(f"[WARN] Ignoring unreadable settings file {self._settings_path}: {exc}", flush=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_settings(self) -> None:
        self._settings_path.write_text(
            yaml.safe_dump(self._settings, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )

    def get_settings(self) -> Dict[str, Any]:
        merged = self.defaults()
        merged.update(self._settings)
        return merged

    def get(self, key: str) -> Any:
        return self.get_settings().get(key)

    def set_setting(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self._save_settings()

    def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        self._settings.update(values)
        self._save_settings()
        return self.get_settings()

    def get_data_root(self) -> Path:
        override = self._settings.get("storageRoot")
        if override:
            try:
                root = Path(override).expanduser()
                root.mkdir(parents=True, exist_ok=True)
                return root
            except OSError as exc:
                print(f"[WARN] Storage root {override} unusable, falling back: {exc}", flush=True)
        self._base.mkdir(parents=True, exist_ok=True)
        return self._base

    def get_backup_dir(self) -> Path:
        return self.get_data_root() / "backups"

    def get_max_backups(self) -> int:
        try:
            return int(self.get("maxBackups"))
        except (TypeError, ValueError):
            return 20
