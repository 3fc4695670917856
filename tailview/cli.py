"""Terminal front end: stream one source to stdout."""

import argparse
import asyncio
import sys

from tailview.app import Viewer, configure_logging
from tailview.command import MODES, requires_script
from tailview.config import Settings
from tailview.projection import TerminalProjection


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tailview", description="Stream a remote log to the terminal.")
    parser.add_argument("source", help="Log source to stream, as named by the server")
    parser.add_argument("--url", help="WebSocket endpoint (default: $TAILVIEW_WS_URL)")
    parser.add_argument("--mode", default="tail", help=f"Filter mode, one of {', '.join(MODES)}")
    parser.add_argument("--script", help="Filter script for grep/awk/sed; empty uses the mode's default")
    parser.add_argument("--lines", type=int, help="Number of history lines to request")
    parser.add_argument("--log-level", help="Logging level for diagnostics")
    return parser


def make_viewer(args: argparse.Namespace) -> Viewer:
    overrides = {}
    if args.url:
        overrides["ws_url"] = args.url
    if args.lines is not None:
        overrides["tail_lines"] = args.lines
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = Settings(**overrides)
    configure_logging(config.log_level)

    viewer = Viewer(config)
    viewer.buffer.subscribe(TerminalProjection(sys.stdout))
    viewer.command.set(source=args.source, mode=args.mode)
    if args.script is not None or requires_script(args.mode):
        viewer.command.submit_script(args.script or "")
    return viewer


async def _run(viewer: Viewer) -> None:
    try:
        await viewer.run()
    finally:
        await viewer.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    viewer = make_viewer(args)
    try:
        asyncio.run(_run(viewer))
    except KeyboardInterrupt:
        return 130
    return 0
