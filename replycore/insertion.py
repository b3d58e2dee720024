from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from replycore.automation import HostAutomation, Instruction, build_instructions
from replycore.errors import AutomationError


class InsertionState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class InsertionOutcome:
    state: InsertionState
    sent: bool = False
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is InsertionState.SUCCEEDED


class InsertionPipeline:
    """Push a reply body to the top of the focused compose window.

    The steps run once, in order, and stop at the first failure. Nothing is
    retried: a partial paste or keystroke cannot be replayed without risking a
    duplicate insertion or a duplicate send.
    """

    def __init__(
        self,
        automation: HostAutomation,
        target_app: str,
        release_focus: Optional[Callable[[], None]] = None,
    ) -> None:
        self._automation = automation
        self.target_app = target_app
        self.release_focus = release_focus
        self.state = InsertionState.IDLE
        self.last_instructions: List[Instruction] = []
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self.state is InsertionState.DISPATCHING

    def insert(self, body: str, send: bool = False) -> InsertionOutcome:
        # clipboard and keyboard focus are shared; refuse overlapping runs
        if not self._in_flight.acquire(blocking=False):
            raise AutomationError("Insertion already in progress")
        try:
            self.state = InsertionState.DISPATCHING
            outcome = self._dispatch(body, send)
            self.state = outcome.state
            return outcome
        finally:
            self._in_flight.release()

    def _dispatch(self, body: str, send: bool) -> InsertionOutcome:
        instructions = build_instructions(send)
        self.last_instructions = instructions
        try:
            if self.release_focus is not None:
                self.release_focus()
            self._automation.dispatch(instructions, body, self.target_app)
        except AutomationError as exc:
            return InsertionOutcome(InsertionState.FAILED, detail=exc.message)
        except Exception as exc:
            return InsertionOutcome(InsertionState.FAILED, detail=f"Could not insert reply: {exc}")
        return InsertionOutcome(InsertionState.SUCCEEDED, sent=send, detail="Inserted and sent" if send else "Inserted")
