from tailview.app import Viewer
from tailview.command import Command, CommandState
from tailview.dispatcher import CommandDispatcher
from tailview.line_buffer import EntryKind, LineBuffer, LogEntry, Viewport
from tailview.transport import ConnectionState, InvalidState, TransportSession

__all__ = [
    "Viewer",
    "Command",
    "CommandState",
    "CommandDispatcher",
    "EntryKind",
    "LineBuffer",
    "LogEntry",
    "Viewport",
    "ConnectionState",
    "InvalidState",
    "TransportSession",
]
