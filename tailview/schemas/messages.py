"""Wire schemas for the log-streaming protocol.

Client → Server (one object per command):
    {"<mode>": "<source>", "last": <int>, "script": "<text>"}

    ``script`` is present only for modes that take input.

Server → Client (one object per push):
    {"<source>": ["<line>", ...], ...}            lines
    {"err": "truncated", "fn": "<source>"}        source was truncated
    {"err": ["<message>", ...]}                   generic error
"""

import json
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError


class MalformedMessage(ValueError):
    """Inbound frame that is not JSON or matches none of the known shapes."""


# ── Outbound ──────────────────────────────────────────────────────────────────


class CommandRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: str
    source: str
    last: int = Field(ge=0)
    script: str | None = None

    def to_wire(self) -> dict:
        msg: dict = {self.mode: self.source, "last": self.last}
        if self.script is not None:
            msg["script"] = self.script
        return msg

    def dumps(self) -> str:
        return json.dumps(self.to_wire())


# ── Inbound ───────────────────────────────────────────────────────────────────


class TruncatedNotice(BaseModel):
    err: Literal["truncated"]
    fn: str


class ErrorNotice(BaseModel):
    err: list[str]


class LinesBatch(RootModel[dict[str, list[str]]]):
    """Mapping of source identifier to the raw lines it produced, in order."""


InboundMessage = Union[TruncatedNotice, ErrorNotice, LinesBatch]


def parse_inbound(raw: str | bytes) -> InboundMessage:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedMessage(f"undecodable frame: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessage(f"expected a JSON object, got {type(data).__name__}")

    try:
        if "err" in data:
            if data["err"] == "truncated":
                return TruncatedNotice.model_validate(data)
            return ErrorNotice.model_validate(data)
        return LinesBatch.model_validate(data)
    except ValidationError as exc:
        raise MalformedMessage(f"unexpected payload shape: {exc.error_count()} error(s)") from exc
