from tailview.schemas.messages import (
    CommandRequest,
    ErrorNotice,
    InboundMessage,
    LinesBatch,
    MalformedMessage,
    TruncatedNotice,
    parse_inbound,
)

__all__ = [
    "CommandRequest",
    "ErrorNotice",
    "InboundMessage",
    "LinesBatch",
    "MalformedMessage",
    "TruncatedNotice",
    "parse_inbound",
]
