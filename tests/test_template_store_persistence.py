import json
import threading
import time

from replycore.errors import PersistenceError
from replycore.models import Template
from replycore.template_store import TemplateStore


class MemoryPersistence:
    def __init__(self, data=None):
        self.data = data
        self.saves = []

    def load(self):
        return self.data

    def save(self, data):
        self.saves.append(data)
        self.data = data


class FlakyPersistence(MemoryPersistence):
    def __init__(self, data=None):
        super().__init__(data)
        self.fail = False

    def save(self, data):
        if self.fail:
            raise OSError("disk full")
        super().save(data)


class SlowPersistence(MemoryPersistence):
    """Records overlapping saves so the test can detect unserialized writes."""

    def __init__(self):
        super().__init__()
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def save(self, data):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.01)
        super().save(data)
        with self._guard:
            self.active -= 1


def test_absent_slot_loads_as_empty():
    store = TemplateStore(MemoryPersistence(None))
    assert store.is_loading
    assert store.load() == []
    assert not store.is_loading


def test_load_repairs_entries_in_saved_snapshot():
    raw = json.dumps([{"id": "a", "title": "Saved", "body": "x", "createdAt": "t0", "updatedAt": "t1"}, {"body": 3}])
    store = TemplateStore(MemoryPersistence(raw.encode("utf-8")))
    loaded = store.load()
    assert loaded[0] == Template(id="a", title="Saved", body="x", created_at="t0", updated_at="t1")
    assert loaded[1].title == "Untitled"


def test_corrupted_snapshot_raises_persistence_error():
    store = TemplateStore(MemoryPersistence(b"{not json"))
    try:
        store.load()
    except PersistenceError as exc:
        assert "corrupted" in exc.message
    else:
        raise AssertionError("expected PersistenceError")
    assert store.is_loading


def test_mutation_before_load_keeps_saved_templates():
    saved = json.dumps([{"id": "a", "title": "Saved", "body": "", "createdAt": "t", "updatedAt": "t"}])
    persistence = MemoryPersistence(saved.encode("utf-8"))
    store = TemplateStore(persistence)
    store.create_template("New", "")
    titles = [item["title"] for item in json.loads(persistence.data.decode("utf-8"))]
    assert titles == ["Saved", "New"]


def test_replace_all_recovers_from_corrupted_snapshot():
    persistence = MemoryPersistence(b"garbage")
    store = TemplateStore(persistence)
    replacement = [Template(id="x", title="Fresh", body="", created_at="t", updated_at="t")]
    store.replace_all(replacement)
    assert store.list_templates() == replacement
    assert not store.is_loading
    assert json.loads(persistence.data.decode("utf-8"))[0]["id"] == "x"


def test_failed_save_rolls_back_every_mutation():
    persistence = FlakyPersistence()
    store = TemplateStore(persistence)
    store.load()
    kept = store.create_template("Kept", "body")
    snapshot = persistence.data
    persistence.fail = True

    attempts = [
        lambda: store.create_template("Lost", ""),
        lambda: store.edit_template(kept.id, "Changed", "changed"),
        lambda: store.duplicate_template(kept.id),
        lambda: store.delete_template(kept.id),
        lambda: store.replace_all([]),
    ]
    for attempt in attempts:
        try:
            attempt()
        except PersistenceError as exc:
            assert "disk full" in exc.message
        else:
            raise AssertionError("expected PersistenceError")
        assert store.list_templates() == [kept]
    assert persistence.data == snapshot


def test_concurrent_mutations_are_serialized():
    persistence = SlowPersistence()
    store = TemplateStore(persistence)
    store.load()

    threads = [threading.Thread(target=store.create_template, args=(f"T{i}", "")) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert persistence.max_active == 1
    assert len(store.list_templates()) == 10
    # the last snapshot written contains every template
    assert len(json.loads(persistence.data.decode("utf-8"))) == 10


def test_snapshot_has_all_fields():
    store = TemplateStore(MemoryPersistence())
    store.load()
    store.create_template("A", "")
    entry = json.loads(store.snapshot().decode("utf-8"))[0]
    assert set(entry) == {"id", "title", "body", "createdAt", "updatedAt"}
