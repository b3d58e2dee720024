from pathlib import Path
import tempfile

from replycore.errors import NotFoundError, ValidationError
from replycore.persistence import FilePersistence
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


def _store():
    store = TemplateStore(MemoryPersistence())
    store.load()
    return store


def test_create_edit_delete_template():
    with tempfile.TemporaryDirectory() as td:
        store = TemplateStore(FilePersistence(Path(td)))
        assert store.load() == []

        created = store.create_template("  Greeting ", "Hello there")
        assert created.title == "Greeting"
        assert created.created_at == created.updated_at
        assert [t.id for t in store.list_templates()] == [created.id]

        edited = store.edit_template(created.id, "Salute", "Hi")
        assert edited.id == created.id
        assert edited.created_at == created.created_at
        assert edited.updated_at >= created.updated_at
        assert (edited.title, edited.body) == ("Salute", "Hi")

        # a fresh store sees what was persisted
        reloaded = TemplateStore(FilePersistence(Path(td)))
        assert [t.title for t in reloaded.load()] == ["Salute"]

        store.delete_template(created.id)
        assert store.list_templates() == []
        assert TemplateStore(FilePersistence(Path(td))).load() == []


def test_ids_are_unique_across_many_creates():
    store = _store()
    ids = [store.create_template(f"Reply {i}", "").id for i in range(200)]
    assert len(set(ids)) == 200


def test_create_rejects_blank_titles_without_writing():
    persistence = MemoryPersistence()
    store = TemplateStore(persistence)
    store.load()
    for title in ("", "   "):
        try:
            store.create_template(title, "x")
        except ValidationError as exc:
            assert exc.code == "validation"
        else:
            raise AssertionError("blank title accepted")
    assert store.list_templates() == []
    assert persistence.saves == []
    assert persistence.data is None


def test_edit_keeps_position_and_validates():
    store = _store()
    first = store.create_template("First", "1")
    second = store.create_template("Second", "2")
    third = store.create_template("Third", "3")

    store.edit_template(second.id, "Second v2", "two")
    assert [t.title for t in store.list_templates()] == ["First", "Second v2", "Third"]

    try:
        store.edit_template(first.id, " ", "x")
    except ValidationError:
        pass
    else:
        raise AssertionError("blank title accepted on edit")
    assert store.get_template(first.id) == first

    try:
        store.edit_template("missing", "Title", "x")
    except NotFoundError:
        pass
    else:
        raise AssertionError("unknown id accepted on edit")
    assert store.get_template(third.id) == third


def test_duplicate_appends_copy_and_leaves_source_alone():
    store = _store()
    source = store.create_template("Thanks", "Thank you")
    store.create_template("Other", "")

    copy = store.duplicate_template(source.id)
    assert copy.id != source.id
    assert copy.title == "Thanks (Copy)"
    assert copy.body == source.body
    assert store.list_templates()[-1] == copy
    assert store.get_template(source.id) == source

    try:
        store.duplicate_template("missing")
    except NotFoundError:
        pass
    else:
        raise AssertionError("unknown id accepted on duplicate")


def test_duplicate_uses_configured_marker():
    store = TemplateStore(MemoryPersistence(), copy_marker=" - copy")
    store.load()
    source = store.create_template("Hi", "")
    assert store.duplicate_template(source.id).title == "Hi - copy"


def test_delete_unknown_id_is_noop():
    persistence = MemoryPersistence()
    store = TemplateStore(persistence)
    store.load()
    store.create_template("Keep", "me")
    before = store.list_templates()
    store.delete_template("does-not-exist")
    assert store.list_templates() == before


def test_search_matches_title_and_body():
    store = _store()
    store.create_template("Shipping delay", "Your order is late")
    store.create_template("Refund", "We issued a refund for the ORDER")
    store.create_template("Hello", "Hi!")

    assert [t.title for t in store.search_templates("order")] == ["Shipping delay", "Refund"]
    assert [t.title for t in store.search_templates("REFUND")] == ["Refund"]
    assert len(store.search_templates("")) == 3


def test_get_unknown_template_raises():
    store = _store()
    try:
        store.get_template("nope")
    except NotFoundError as exc:
        assert exc.to_dict()["code"] == "not_found"
    else:
        raise AssertionError("expected NotFoundError")


def test_non_text_fields_are_validation_errors():
    persistence = MemoryPersistence()
    store = TemplateStore(persistence)
    store.load()
    for title, body in ((42, "x"), (["a"], "x"), ("Title", 7)):
        try:
            store.create_template(title, body)
        except ValidationError as exc:
            assert exc.code == "validation"
        else:
            raise AssertionError(f"accepted {title!r} / {body!r}")
    assert persistence.saves == []
