"""Error taxonomy shared by the template store, import/export and insertion layers.

Core modules raise these; the GUI facade turns them into tagged result dicts
so the frontend never sees a raw exception.
"""

from __future__ import annotations

from typing import Any, Dict


class ReplyError(Exception):
    """Base class for every failure surfaced to the shell."""

    code = "error"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": "error", "code": self.code, "detail": self.message}
        if self.context:
            payload["context"] = {k: str(v) for k, v in self.context.items()}
        return payload


class ValidationError(ReplyError):
    """Bad user input, e.g. an empty title."""

    code = "validation"


class NotFoundError(ReplyError):
    """A template id (or backup name) that no longer exists."""

    code = "not_found"


class FormatError(ReplyError):
    """Import payload could not be parsed into a template array."""

    code = "format"


class PersistenceError(ReplyError):
    """The snapshot could not be read or durably written."""

    code = "persistence"


class ExportError(ReplyError):
    """Nothing to export, or the export file could not be written."""

    code = "export"


class AutomationError(ReplyError):
    """The host automation step failed (app missing, permission denied, ...)."""

    code = "automation"
