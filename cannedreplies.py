"""PyWebView-based Canned Replies application."""

from __future__ import annotations

import atexit
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import webview

from replycore.automation import HostAutomation, create_automation
from replycore.backup_manager import BackupManager
from replycore.config_manager import ConfigManager
from replycore.errors import AutomationError, PersistenceError, ReplyError, ValidationError
from replycore.insertion import InsertionPipeline
from replycore.persistence import FilePersistence, PersistencePort
from replycore.platform_support import PLATFORM, PlatformInfo
from replycore.template_service import TemplateService
from replycore.template_store import TemplateStore

SETTING_KEYS = {"storageRoot", "targetApp", "automationBackend", "copyMarker", "sendShortcut", "maxBackups"}


class ReplyAPI:
    """Exposes the backend surface to the JavaScript frontend.

    Every method returns a plain dict with a `status` key; failures carry the
    error `code` from `replycore.errors` and a human readable `detail`.
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        persistence: Optional[PersistencePort] = None,
        automation: Optional[HostAutomation] = None,
        platform_info: PlatformInfo = PLATFORM,
        autoload: bool = True,
    ) -> None:
        self._config = config_manager or ConfigManager(platform_info=platform_info)
        self.platform = platform_info
        data_root = self._config.get_data_root()
        self._persistence = persistence or FilePersistence(data_root)
        self._store = TemplateStore(self._persistence, copy_marker=self._config.get("copyMarker"))
        self._backups = BackupManager(self._config.get_backup_dir(), max_backups=self._config.get_max_backups())
        self._service = TemplateService(self._store, self._backups)
        self._automation_override = automation
        settings = self._config.get_settings()
        try:
            self._pipeline = self._build_pipeline(settings)
        except AutomationError as exc:
            print(f"[WARN] {exc.message}; using the platform default instead", flush=True)
            self._pipeline = self._build_pipeline(dict(settings, automationBackend="auto"))
        self._tray: Any = None
        self._load_error: Optional[str] = None
        self._loader: Optional[threading.Thread] = None
        if autoload:
            self.start_loading()

    # -------------------------
    # Wiring
    # -------------------------
    def _build_pipeline(self, settings: Dict[str, Any]) -> InsertionPipeline:
        # resolve the backend even when automation is injected so a bad name is always rejected
        automation = create_automation(
            self.platform,
            backend=settings.get("automationBackend"),
            send_shortcut=settings.get("sendShortcut") or None,
        )
        return InsertionPipeline(
            self._automation_override or automation,
            target_app=settings.get("targetApp"),
            release_focus=self._release_window_focus,
        )

    def attach_tray(self, tray: Any) -> None:
        self._tray = tray

    def start_loading(self) -> None:
        """Read the saved snapshot off the UI thread; `list_templates` reports `loading` meanwhile."""
        if self._loader is not None:
            return
        self._loader = threading.Thread(target=self._load_templates, daemon=True)
        self._loader.start()

    def wait_until_loaded(self, timeout: Optional[float] = None) -> None:
        if self._loader is not None:
            self._loader.join(timeout)

    def _load_templates(self) -> None:
        try:
            templates = self._store.load()
            self._load_error = None
            print(f"[INFO] Canned Replies ready with {len(templates)} templates", flush=True)
        except PersistenceError as exc:
            self._load_error = exc.message
            print(f"[ERROR] {exc.message}", flush=True)
            try:
                self._service.preserve_unreadable(self._persistence.load())
            except OSError as backup_exc:
                print(f"[WARN] Could not back up unreadable snapshot: {backup_exc}", flush=True)

    @staticmethod
    def _release_window_focus() -> None:
        if not webview.windows:
            return
        webview.windows[0].minimize()

    @staticmethod
    def _restore_window() -> None:
        if not webview.windows:
            return
        try:
            webview.windows[0].restore()
        except Exception as exc:
            print(f"[WARN] Could not restore window: {exc}", flush=True)

    def _guard(self, action: str, fn: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        try:
            return fn()
        except ReplyError as exc:
            print(f"[WARN] {action} failed: {exc.message}", flush=True)
            return exc.to_dict()
        except Exception as exc:
            print(f"[ERROR] {action} failed unexpectedly: {exc}", flush=True)
            return {"status": "error", "code": "internal", "detail": str(exc)}

    def _settle_load(self) -> None:
        """Finish the first load so a destructive command sees the real collection."""
        if not self._store.is_loading:
            return
        if self._loader is None:
            self._load_templates()
        else:
            self.wait_until_loaded()

    def _requires_confirmation(self, confirmed: bool, incoming: int, action: str) -> Optional[Dict[str, Any]]:
        self._settle_load()
        existing = len(self._store.list_templates())
        if confirmed or existing == 0:
            return None
        return {
            "status": "confirm",
            "detail": f"{action} will replace your {existing} existing templates with {incoming} templates",
            "existing": existing,
            "incoming": incoming,
        }

    # -------------------------
    # Frontend API
    # -------------------------
    def ping(self) -> Dict[str, Any]:
        return {
            "status": "success",
            "ready": not self._store.is_loading,
            "platform": self.platform.system,
            "targetApp": self._pipeline.target_app,
        }

    def list_templates(self, query: str = "") -> Dict[str, Any]:
        if self._load_error:
            return {"status": "error", "code": PersistenceError.code, "detail": self._load_error}
        if self._store.is_loading:
            return {"status": "success", "loading": True, "count": 0, "templates": []}
        templates = self._store.search_templates(query)
        return {
            "status": "success",
            "loading": False,
            "count": len(templates),
            "templates": [t.to_dict() for t in templates],
        }

    def create_template(self, title: str, body: str) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            template = self._store.create_template(title, body)
            return {"status": "success", "detail": f"Created {template.title}", "template": template.to_dict()}

        return self._guard("Create template", action)

    def edit_template(self, template_id: str, title: str, body: str) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            template = self._store.edit_template(template_id, title, body)
            return {"status": "success", "detail": f"Updated {template.title}", "template": template.to_dict()}

        return self._guard("Edit template", action)

    def duplicate_template(self, template_id: str) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            template = self._store.duplicate_template(template_id)
            return {"status": "success", "detail": f"Created {template.title}", "template": template.to_dict()}

        return self._guard("Duplicate template", action)

    def delete_template(self, template_id: str) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            self._store.delete_template(template_id)
            return {"status": "success", "detail": "Template deleted"}

        return self._guard("Delete template", action)

    def import_templates(self, file_path: str, confirmed: bool = False) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            if not file_path:
                raise ValidationError("Choose a file to import")
            templates = self._service.read_import(Path(file_path))
            pending = self._requires_confirmation(confirmed, len(templates), "Importing")
            if pending:
                return pending
            self._service.apply_import(templates)
            self._load_error = None
            return {"status": "success", "detail": f"Imported {len(templates)} templates", "count": len(templates)}

        return self._guard("Import templates", action)

    def export_templates(self, directory: str) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            if not directory:
                raise ValidationError("Choose a folder to export to")
            target = self._service.export_to_directory(Path(directory))
            count = len(self._store.list_templates())
            return {"status": "success", "detail": f"Exported {count} templates", "path": str(target)}

        return self._guard("Export templates", action)

    def insert(self, template_id: str, send: bool = False) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            template = self._store.get_template(template_id)
            outcome = self._pipeline.insert(template.body, bool(send))
            if not outcome.succeeded:
                self._restore_window()
                print(f"[WARN] Insertion failed: {outcome.detail}", flush=True)
                return {"status": "error", "code": "automation", "detail": outcome.detail}
            if self._tray is not None:
                self._tray.notify(f"{outcome.detail}: {template.title}")
            return {"status": "success", "detail": outcome.detail, "sent": outcome.sent}

        return self._guard("Insert template", action)

    def list_backups(self) -> Dict[str, Any]:
        return self._guard("List backups", lambda: {"status": "success", "backups": self._service.list_backups()})

    def restore_backup(self, backup_name: str, confirmed: bool = False) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            templates = self._service.read_backup(backup_name)
            pending = self._requires_confirmation(confirmed, len(templates), "Restoring")
            if pending:
                return pending
            self._service.apply_import(templates, reason="before-restore")
            self._load_error = None
            return {"status": "success", "detail": f"Restored {len(templates)} templates"}

        return self._guard("Restore backup", action)

    def get_settings(self) -> Dict[str, Any]:
        return {"status": "success", "settings": self._config.get_settings()}

    def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        def action() -> Dict[str, Any]:
            unknown = sorted(set(values or {}) - SETTING_KEYS)
            if unknown:
                raise ValidationError(f"Unknown settings: {', '.join(unknown)}")
            if self._pipeline.busy:
                raise AutomationError("Settings cannot change while an insertion is in progress")
            # validate against the merged settings before anything reaches disk
            pipeline = self._build_pipeline(dict(self._config.get_settings(), **values))
            settings = self._config.update_settings(dict(values))
            self._store.copy_marker = settings.get("copyMarker")
            self._pipeline = pipeline
            return {"status": "success", "settings": settings}

        return self._guard("Update settings", action)

    def pick_path_dialog(self, prompt: str = "Select a file", directory: bool = False) -> Dict[str, Any]:
        """Expose a pywebview file/folder picker to the frontend."""
        try:
            window = webview.windows[0]
        except IndexError:
            return {"status": "error", "code": "internal", "detail": "No active window"}

        dialog_type = webview.FOLDER_DIALOG if directory else webview.OPEN_DIALOG
        try:
            result = window.create_file_dialog(
                dialog_type,
                directory=str(Path.home()),
                allow_multiple=False,
                file_types=() if directory else ("JSON files (*.json)", "All files (*.*)"),
            )
        except Exception as exc:
            return {"status": "error", "code": "internal", "detail": f"Picker failed: {exc}"}

        if not result:
            return {"status": "cancelled"}
        path = result if isinstance(result, str) else result[0]
        return {"status": "success", "path": path}


def _log_gui_attempt(backend: Optional[str]) -> None:
    label = backend or "auto"
    print(f"[DEBUG] Attempting to start PyWebView backend '{label}'", flush=True)


def _start_webview(window: Any, platform_info: PlatformInfo) -> None:
    last_error: Optional[Exception] = None
    if platform_info.is_wsl:
        print("[WARN] Running inside WSL; a GUI needs WSLg. Automation goes through powershell.exe.", flush=True)

    for preferred in platform_info.gui_preferences():
        try:
            _log_gui_attempt(preferred)
            webview.start(gui=preferred, debug=False, http_server=False)
            return
        except webview.errors.WebViewException as exc:  # type: ignore[attr-defined]
            last_error = exc
            label = preferred or "auto"
            print(f"[WARNING] GUI backend '{label}' failed: {exc}", flush=True)
            continue
    print(
        "[ERROR] PyWebView could not initialize a GUI backend. "
        f"{platform_info.gui_dependency_hint()}",
        flush=True,
    )
    if last_error:
        raise last_error
    raise webview.errors.WebViewException("No GUI backend available")  # type: ignore[attr-defined]


def _start_tray(window: Any, api: ReplyAPI) -> Any:
    from replycore.tray_manager import TrayManager

    def show_window():
        try:
            window.show()
            window.restore()
        except Exception as e:
            print(f"[WARN] Could not restore window: {e}", flush=True)

    def exit_app():
        try:
            window.destroy()
        except Exception as e:
            print(f"[WARN] Could not close window: {e}", flush=True)

    tray = TrayManager(on_show=show_window, on_exit=exit_app)
    if not tray.start():
        print("[INFO] System tray not available - running without tray icon", flush=True)
        return None
    tray.update_tooltip("Canned Replies - Running")
    api.attach_tray(tray)
    return tray


def main() -> None:
    print("[DEBUG] ReplyAPI init starting", flush=True)
    api = ReplyAPI()
    html_path = Path(__file__).with_name("webview_ui") / "canned_replies.html"

    window = webview.create_window(
        "Canned Replies",
        html=html_path.read_text(encoding="utf-8"),
        js_api=api,
        width=900,
        height=640,
        min_size=(640, 480),
    )

    tray = None
    try:
        tray = _start_tray(window, api)
    except Exception as e:
        print(f"[WARN] System tray initialization failed: {e}", flush=True)
    if tray is not None:
        atexit.register(tray.stop)

    print("[DEBUG] Starting PyWebView", flush=True)
    _start_webview(window, api.platform)


if __name__ == "__main__":
    main()
