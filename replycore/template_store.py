from __future__ import annotations

import threading
from typing import Callable, List, Optional

from replycore.errors import FormatError, NotFoundError, PersistenceError, ValidationError
from replycore.models import Template, new_template_id, utc_now_iso
from replycore.persistence import PersistencePort
from replycore.transfer import normalize_entries, parse_array, serialize

DEFAULT_COPY_MARKER = " (Copy)"


class TemplateStore:
    """Ordered template collection backed by a single persisted snapshot.

    Every mutation rewrites the full snapshot. Mutations run one at a time
    under `_lock`; the in-memory list is swapped first and put back if the
    write fails, so memory never drifts ahead of what is on disk.
    """

    def __init__(self, persistence: PersistencePort, copy_marker: str = DEFAULT_COPY_MARKER) -> None:
        self._persistence = persistence
        self.copy_marker = copy_marker
        self._templates: List[Template] = []
        self._lock = threading.Lock()
        self._loaded = threading.Event()

    @property
    def is_loading(self) -> bool:
        return not self._loaded.is_set()

    def load(self) -> List[Template]:
        """Read the persisted snapshot. A missing slot is an empty collection."""
        with self._lock:
            self._load_locked()
            return list(self._templates)

    def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        return self._loaded.wait(timeout)

    def list_templates(self) -> List[Template]:
        return list(self._templates)

    def get_template(self, template_id: str) -> Template:
        return self._templates[self._index_of(self._templates, template_id)]

    def search_templates(self, query: str = "") -> List[Template]:
        q = (query or "").strip().lower()
        if not q:
            return self.list_templates()
        return [t for t in self._templates if q in t.title.lower() or q in t.body.lower()]

    def snapshot(self) -> bytes:
        return serialize(self._templates)

    def persisted_snapshot(self) -> Optional[bytes]:
        """Raw bytes currently in the slot, whether or not they have been loaded."""
        try:
            return self._persistence.load()
        except OSError as exc:
            raise PersistenceError(f"Could not read saved templates: {exc}") from exc

    # -------------------------
    # Mutations
    # -------------------------
    def create_template(self, title: str, body: str) -> Template:
        clean_title = self._require_title(title)
        clean_body = self._require_body(body)
        holder: List[Template] = []

        def apply(current: List[Template]) -> List[Template]:
            now = utc_now_iso()
            template = Template(
                id=self._fresh_id(current),
                title=clean_title,
                body=clean_body,
                created_at=now,
                updated_at=now,
            )
            holder.append(template)
            return current + [template]

        self._mutate(apply)
        return holder[0]

    def edit_template(self, template_id: str, title: str, body: str) -> Template:
        clean_title = self._require_title(title)
        clean_body = self._require_body(body)
        holder: List[Template] = []

        def apply(current: List[Template]) -> List[Template]:
            index = self._index_of(current, template_id)
            updated = current[index].with_changes(title=clean_title, body=clean_body, updated_at=utc_now_iso())
            holder.append(updated)
            return current[:index] + [updated] + current[index + 1:]

        self._mutate(apply)
        return holder[0]

    def duplicate_template(self, template_id: str) -> Template:
        holder: List[Template] = []

        def apply(current: List[Template]) -> List[Template]:
            source = current[self._index_of(current, template_id)]
            now = utc_now_iso()
            copy = Template(
                id=self._fresh_id(current),
                title=f"{source.title}{self.copy_marker}",
                body=source.body,
                created_at=now,
                updated_at=now,
            )
            holder.append(copy)
            return current + [copy]

        self._mutate(apply)
        return holder[0]

    def delete_template(self, template_id: str) -> None:
        """Remove a template; an unknown id leaves the collection as it is."""
        self._mutate(lambda current: [t for t in current if t.id != template_id])

    def replace_all(self, templates: List[Template]) -> None:
        replacement = list(templates)
        self._mutate(lambda current: replacement, overwrite=True)

    # -------------------------
    # Internals
    # -------------------------
    def _load_locked(self) -> None:
        try:
            raw = self._persistence.load()
        except OSError as exc:
            raise PersistenceError(f"Could not read saved templates: {exc}") from exc
        if raw is None:
            templates: List[Template] = []
        else:
            try:
                templates = normalize_entries(parse_array(raw))
            except FormatError as exc:
                raise PersistenceError(f"Saved templates are corrupted: {exc.message}") from exc
        self._templates = templates
        self._loaded.set()

    def _mutate(self, change: Callable[[List[Template]], List[Template]], overwrite: bool = False) -> None:
        with self._lock:
            # A mutation issued before the first load must not overwrite the saved snapshot.
            if not overwrite and not self._loaded.is_set():
                self._load_locked()
            previous = self._templates
            updated = change(list(previous))
            self._templates = updated
            try:
                self._persistence.save(serialize(updated))
            except Exception as exc:
                self._templates = previous
                raise PersistenceError(f"Could not save templates: {exc}") from exc
            self._loaded.set()

    @staticmethod
    def _require_title(title: str) -> str:
        if title is not None and not isinstance(title, str):
            raise ValidationError("Title must be text", title=repr(title))
        clean = (title or "").strip()
        if not clean:
            raise ValidationError("Title is required")
        return clean

    @staticmethod
    def _require_body(body: str) -> str:
        if body is not None and not isinstance(body, str):
            raise ValidationError("Body must be text", body=repr(body))
        return body or ""

    @staticmethod
    def _index_of(templates: List[Template], template_id: str) -> int:
        for index, template in enumerate(templates):
            if template.id == template_id:
                return index
        raise NotFoundError("Template not found", id=template_id)

    @staticmethod
    def _fresh_id(current: List[Template]) -> str:
        taken = {t.id for t in current}
        candidate = new_template_id()
        while candidate in taken:
            candidate = new_template_id()
        return candidate
