"""Import/export of the template collection as a JSON array.

Export writes every template with all five fields. Import is forgiving: each
element of the array is repaired into a valid template instead of being
dropped, so a hand-edited or foreign file never loses entries.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Set

from replycore.errors import ExportError, FormatError
from replycore.models import Template, new_template_id, utc_now_iso

EXPORT_FILENAME = "canned-replies.json"
UNTITLED = "Untitled"


def serialize(templates: Iterable[Template]) -> bytes:
    payload = [template.to_dict() for template in templates]
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def export_all(templates: List[Template]) -> bytes:
    if not templates:
        raise ExportError("There are no templates to export")
    return serialize(templates)


def parse_array(data: bytes) -> List[Any]:
    try:
        text = data.decode("utf-8-sig") if isinstance(data, (bytes, bytearray)) else str(data)
        parsed = json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise FormatError(f"File is not valid JSON: {exc}") from exc
    if not isinstance(parsed, list):
        raise FormatError("Expected a JSON array of templates")
    return parsed


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _timestamp(value: Any, fallback: str) -> str:
    if value is None:
        return fallback
    return str(value)


def repair_entry(raw: Any, used_ids: Set[str], now: str) -> Template:
    entry: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    template_id = _text_or_none(entry.get("id"))
    if template_id is None or template_id in used_ids:
        template_id = new_template_id()
    used_ids.add(template_id)
    body = entry.get("body")
    return Template(
        id=template_id,
        title=_text_or_none(entry.get("title")) or UNTITLED,
        body=body if isinstance(body, str) else "",
        created_at=_timestamp(entry.get("createdAt"), now),
        updated_at=_timestamp(entry.get("updatedAt"), now),
    )


def normalize_entries(entries: List[Any]) -> List[Template]:
    now = utc_now_iso()
    used_ids: Set[str] = set()
    return [repair_entry(raw, used_ids, now) for raw in entries]


def import_from(data: bytes) -> List[Template]:
    """Parse an exported file into templates without touching any store."""
    return normalize_entries(parse_array(data))
