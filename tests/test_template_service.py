import json
from pathlib import Path
import tempfile

from replycore.backup_manager import BackupManager
from replycore.errors import ExportError, FormatError
from replycore.persistence import FilePersistence
from replycore.template_service import TemplateService
from replycore.template_store import TemplateStore
from replycore.transfer import EXPORT_FILENAME


def _service(root: Path):
    store = TemplateStore(FilePersistence(root / "data"))
    store.load()
    backups = BackupManager(root / "backups")
    return store, backups, TemplateService(store, backups)


def test_export_writes_named_file_in_directory():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        store, _, service = _service(root)
        store.create_template("Thanks", "Thank you")

        target = service.export_to_directory(root / "out")
        assert target == root / "out" / EXPORT_FILENAME
        payload = json.loads(target.read_text(encoding="utf-8"))
        assert payload[0]["title"] == "Thanks"


def test_export_of_empty_store_writes_nothing():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        _, _, service = _service(root)
        try:
            service.export_to_directory(root / "out")
        except ExportError:
            pass
        else:
            raise AssertionError("expected ExportError")
        assert not (root / "out" / EXPORT_FILENAME).exists()


def test_import_replaces_and_backs_up_previous_collection():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        store, backups, service = _service(root)
        store.create_template("Old", "old body")
        pack = root / "pack.json"
        pack.write_text(json.dumps([{"id": "n1", "title": "New", "body": "new body"}]), encoding="utf-8")

        templates = service.read_import(pack)
        service.apply_import(templates)

        assert [t.title for t in store.list_templates()] == ["New"]
        saved = backups.list_backups()
        assert len(saved) == 1 and saved[0]["reason"] == "before-import"

        restored = service.restore_backup(saved[0]["name"])
        assert [t.title for t in restored] == ["Old"]
        assert [t.title for t in store.list_templates()] == ["Old"]


def test_bad_import_leaves_store_untouched():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        store, backups, service = _service(root)
        store.create_template("Keep", "")
        before = store.list_templates()
        pack = root / "pack.json"
        pack.write_text("not json", encoding="utf-8")

        for path in (pack, root / "missing.json"):
            try:
                service.read_import(path)
            except FormatError:
                pass
            else:
                raise AssertionError("expected FormatError")
        assert store.list_templates() == before
        assert backups.list_backups() == []


def test_preserve_unreadable_snapshot():
    with tempfile.TemporaryDirectory() as td:
        _, backups, service = _service(Path(td))
        service.preserve_unreadable(b"{broken")
        saved = backups.list_backups()
        assert saved[0]["reason"] == "unreadable"
        assert backups.read_backup(saved[0]["name"]) == b"{broken"


def test_import_before_first_load_backs_up_saved_slot():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        persistence = FilePersistence(root / "data")
        persistence.save(json.dumps([{"id": "a", "title": "Saved"}]).encode("utf-8"))
        store = TemplateStore(persistence)
        backups = BackupManager(root / "backups")
        service = TemplateService(store, backups)
        assert store.is_loading

        service.apply_import([])

        saved = backups.list_backups()
        assert len(saved) == 1 and saved[0]["reason"] == "before-import"
        restored = service.read_backup(saved[0]["name"])
        assert [t.title for t in restored] == ["Saved"]
