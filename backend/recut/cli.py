#!/usr/bin/env python3
"""
Recut CLI - thin entrypoint for rendering one file.

Commands:
- render: apply edits to a source and write edited_<name>
- probe: print a source's duration
- serve: run the HTTP backend

Design Principles:
==================
- CLI is a dispatcher only
- Surface errors verbatim from the execution layer
- Exit non-zero on failure
- No interactive prompts

Exit Codes:
===========
- 0: Success
- 1: Validation error (bad edit, unsupported source, trim without duration)
- 2: Execution error (render failed, workspace cleanup failed)
- 4: System error (file not found, engine unavailable, probe failed)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import LOG_DATE_FORMAT, LOG_FORMAT, RecutSettings, load_settings
from .edits.errors import EditError
from .edits.models import AspectTarget, AudioMode, format_timestamp
from .edits.state import EditState
from .execution.command import Command
from .execution.compiler import compile_command
from .execution.errors import (
    EngineLoadFailedError,
    InvalidStateError,
    RenderFailedError,
    WorkspaceCleanupError,
)
from .execution.ffmpeg import FFmpegEngine
from .execution.naming import output_path
from .execution.runner import JobRunner
from .execution.session import EngineSession
from .metadata.errors import MetadataError
from .metadata.probe import probe_duration
from .persistence.errors import PersistenceError
from .persistence.preferences import PreferenceStore

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_EXECUTION_ERROR = 2
EXIT_SYSTEM_ERROR = 4


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recut",
        description="Trim, flip, rotate, crop, reframe and caption a single video file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Render a source with edits")
    render.add_argument("source", type=Path, help="Source video file")
    render.add_argument("--output-dir", type=Path, default=None,
                        help="Output directory (default: source directory)")
    render.add_argument("--trim", nargs=2, type=float, metavar=("START_PCT", "END_PCT"),
                        help="Trim window as percentages of the duration")
    render.add_argument("--flip-h", action="store_true", default=None, help="Flip horizontally")
    render.add_argument("--flip-v", action="store_true", default=None, help="Flip vertically")
    render.add_argument("--rotate", type=int, choices=[0, 90, 180, 270], help="Clockwise rotation")
    render.add_argument("--crop", nargs=2, type=float, metavar=("WIDTH_PCT", "HEIGHT_PCT"),
                        help="Centered crop in percent (10-100)")
    render.add_argument("--aspect", choices=[a.value for a in AspectTarget], help="Output aspect")
    render.add_argument("--audio", choices=[m.value for m in AudioMode], help="Audio mode")
    render.add_argument("--caption", help="Burned-in caption text (first 10 seconds)")
    render.add_argument("--duration", type=float, default=None,
                        help="Source duration in seconds (skips ffprobe)")
    render.add_argument("--no-preferences", action="store_true",
                        help="Ignore stored preferences and do not save them")

    probe = subparsers.add_parser("probe", help="Print a source's duration")
    probe.add_argument("source", type=Path, help="Source video file")

    serve = subparsers.add_parser("serve", help="Run the HTTP backend")
    serve.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--port", type=int, default=8085, help="Port to listen on")

    return parser


def _configure_logging(settings: RecutSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _apply_arguments(state: EditState, args: argparse.Namespace) -> None:
    """Apply only the edits given on the command line."""
    if args.flip_h is not None or args.flip_v is not None:
        state.set_flip(horizontal=args.flip_h, vertical=args.flip_v)
    if args.rotate is not None:
        state.set_rotation(args.rotate)
    if args.crop is not None:
        state.set_crop(*args.crop)
    if args.aspect is not None:
        state.set_aspect_target(args.aspect)
    if args.audio is not None:
        state.set_audio_mode(args.audio)
    if args.caption is not None:
        state.set_caption(args.caption)
    if args.trim is not None:
        state.set_trim(*args.trim)


async def _run_render(settings: RecutSettings, command: Command, source: Path) -> bytes:
    engine = FFmpegEngine(ffmpeg_path=settings.ffmpeg_path, workspace_root=settings.workspace_root)
    session = EngineSession(engine)
    runner = JobRunner(session)

    def show_progress(percent: int) -> None:
        print(f"  {percent}%", file=sys.stderr)

    def show_status(message: str) -> None:
        print(message, file=sys.stderr)

    try:
        await session.load()
        input_bytes = await asyncio.to_thread(source.read_bytes)
        job = await runner.run(command, input_bytes, on_progress=show_progress, on_status=show_status)
    finally:
        engine.close()

    return job.output_bytes or b""


def _cmd_render(args: argparse.Namespace, settings: RecutSettings) -> int:
    source: Path = args.source
    if not source.is_file():
        print(f"ERROR: Source file not found: {source}", file=sys.stderr)
        return EXIT_SYSTEM_ERROR

    store = None if args.no_preferences else PreferenceStore(db_path=settings.db_path)

    state = EditState()
    try:
        if store is not None:
            state.apply_preferences(store.load())
        state.open_source(source.name)

        duration = args.duration
        if duration is None:
            duration = probe_duration(str(source), settings.ffprobe_path)
        state.set_source_duration(duration)

        _apply_arguments(state, args)
        edits = state.snapshot()
        command = compile_command(edits, edits.source_duration_seconds)
    except (EditError, InvalidStateError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except MetadataError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SYSTEM_ERROR

    if store is not None:
        try:
            store.save(state.to_preferences())
        except PersistenceError as e:
            logger.error(f"[CLI] Preferences not saved: {e}")

    start, end = edits.trim_window_seconds(edits.source_duration_seconds)
    print(f"Trim: {format_timestamp(start)} - {format_timestamp(end)}")

    destination = output_path(source, args.output_dir, settings.output_prefix)

    try:
        output = asyncio.run(_run_render(settings, command, source))
    except EngineLoadFailedError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SYSTEM_ERROR
    except (RenderFailedError, WorkspaceCleanupError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_EXECUTION_ERROR

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(output)
    print(f"Wrote {destination}")
    return EXIT_SUCCESS


def _cmd_probe(args: argparse.Namespace, settings: RecutSettings) -> int:
    try:
        duration = probe_duration(str(args.source), settings.ffprobe_path)
    except MetadataError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SYSTEM_ERROR
    print(f"{duration:.3f}")
    return EXIT_SUCCESS


def _cmd_serve(args: argparse.Namespace, settings: RecutSettings) -> int:
    import uvicorn

    from .main import create_app

    print(f"Starting Recut backend on {args.host}:{args.port}")
    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    _configure_logging(settings)

    if args.command == "render":
        return _cmd_render(args, settings)
    if args.command == "probe":
        return _cmd_probe(args, settings)
    if args.command == "serve":
        return _cmd_serve(args, settings)

    parser.error(f"Unknown command: {args.command}")
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    sys.exit(main())
