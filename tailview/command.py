"""The active "what to stream" intent.

``CommandState`` is mutated by whatever configuration surface drives the
viewer (file picker, mode picker, script input).  Every effective change
raises exactly one notification carrying an immutable ``Command``
snapshot, which the dispatcher turns into a request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from tailview.schemas import CommandRequest

logger = logging.getLogger(__name__)

TAIL = "tail"
MODES = ("tail", "grep", "awk", "sed")

# Used when a script is submitted empty.
SCRIPT_PLACEHOLDERS = {
    "awk": "{print $0; fflush()}",
    "sed": "s|.*|&,",
    "grep": ".*",
}

_FIELDS = frozenset({"source", "mode", "script", "tail_lines"})


def requires_script(mode: str) -> bool:
    return mode != TAIL


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str | None = None
    mode: str = TAIL
    script: str | None = None
    tail_lines: int = Field(60, ge=0)

    @property
    def awaiting_input(self) -> bool:
        """True when the mode needs a script and none was given yet."""
        return requires_script(self.mode) and not self.script

    def to_request(self) -> CommandRequest:
        if self.source is None:
            raise ValueError("command has no source")
        return CommandRequest(
            mode=self.mode,
            source=self.source,
            last=self.tail_lines,
            script=self.script if requires_script(self.mode) else None,
        )


CommandListener = Callable[[Command], None]


class CommandState:
    def __init__(self, tail_lines: int = 60) -> None:
        self._command = Command(tail_lines=tail_lines)
        self._listeners: list[CommandListener] = []

    @property
    def command(self) -> Command:
        return self._command

    @property
    def source(self) -> str | None:
        return self._command.source

    @property
    def mode(self) -> str:
        return self._command.mode

    @property
    def script(self) -> str | None:
        return self._command.script

    @property
    def tail_lines(self) -> int:
        return self._command.tail_lines

    def subscribe(self, listener: CommandListener) -> None:
        self._listeners.append(listener)

    def set(self, **changes) -> bool:
        """Apply *changes* atomically; return True if anything changed.

        A new mode clears the script unless a script is given in the same
        call.
        """
        unknown = set(changes) - _FIELDS
        if unknown:
            raise TypeError(f"unknown command field(s): {', '.join(sorted(unknown))}")

        current = self._command
        if "mode" in changes and changes["mode"] != current.mode and "script" not in changes:
            changes["script"] = None

        updated = Command.model_validate({**current.model_dump(), **changes})
        if updated == current:
            return False

        self._command = updated
        logger.debug("command changed: %s", updated)
        for listener in list(self._listeners):
            listener(updated)
        return True

    def submit_script(self, value: str) -> bool:
        mode = self._command.mode
        if not value and mode in SCRIPT_PLACEHOLDERS:
            value = SCRIPT_PLACEHOLDERS[mode]
        return self.set(script=value)
