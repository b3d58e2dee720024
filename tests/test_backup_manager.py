from pathlib import Path
import tempfile

from replycore.backup_manager import BackupManager
from replycore.errors import NotFoundError


def test_backup_create_list_and_read():
    with tempfile.TemporaryDirectory() as td:
        bm = BackupManager(Path(td) / "backups")
        info = bm.create_backup(b"[1]", "Before Import")
        assert info["reason"] == "before-import"
        assert Path(info["path"]).read_bytes() == b"[1]"

        items = bm.list_backups()
        assert [item["name"] for item in items] == [info["name"]]
        assert items[0]["reason"] == "before-import"
        assert bm.read_backup(info["name"]) == b"[1]"


def test_backup_prunes_oldest_beyond_limit():
    with tempfile.TemporaryDirectory() as td:
        bm = BackupManager(Path(td), max_backups=3)
        names = [bm.create_backup(str(i).encode("utf-8"))["name"] for i in range(5)]
        remaining = [item["name"] for item in bm.list_backups()]
        assert len(remaining) == 3
        assert names[0] not in remaining
        assert names[-1] in remaining


def test_read_unknown_backup_raises():
    with tempfile.TemporaryDirectory() as td:
        bm = BackupManager(Path(td))
        try:
            bm.read_backup("../../etc/passwd")
        except NotFoundError:
            pass
        else:
            raise AssertionError("expected NotFoundError")
