from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict


def new_template_id() -> str:
    """Return a random identifier; ids travel across stores via export/import."""
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Template:
    """A single canned reply."""

    id: str
    title: str
    body: str
    created_at: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def with_changes(self, **changes: Any) -> "Template":
        return replace(self, **changes)
