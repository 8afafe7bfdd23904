from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .banner import build_banner_info, print_startup_banner
from .config import Settings, load_settings
from .errors import AutoVerifyError
from .logging_utils import configure_logging, render_fields_block
from .movies import registered_formats
from .pipeline import VerificationPipeline
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

COMMANDS = ("run", "inspect")


def _submission_id(value: str) -> int:
    try:
        submission_id = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"submission number must be an integer, got {value!r}") from exc
    if submission_id <= 0:
        raise argparse.ArgumentTypeError("submission number must be positive")
    return submission_id


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("submission", type=_submission_id, help="TASVideos submission number, e.g. 7890")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file (default: $AUTOVERIFY_CONFIG)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to the console")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write a full debug log to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoverify",
        description="Build the exact libTAS (and Ruffle) a TASVideos submission was recorded with and replay it.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Fetch, build and replay a submission")
    _add_common_arguments(run_parser)
    run_parser.add_argument("rom", type=Path, help="ROM file (or game directory) the movie was recorded against")

    inspect_parser = subparsers.add_parser("inspect", help="Show the tool revisions a submission needs")
    _add_common_arguments(inspect_parser)

    return parser


def _normalize_argv(argv: Sequence[str]) -> list[str]:
    """Accept the short ``autoverify <submission> <rom>`` form as ``run``."""
    args = list(argv)
    if args and args[0] not in COMMANDS and args[0].isdigit():
        args.insert(0, "run")
    return args


def replay_exit_status(returncode: int) -> int:
    """Map a replay return code to a process exit status.

    subprocess reports a signal kill as ``-N``; shells report it as ``128 + N``.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


def _setup(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    level = "DEBUG" if args.verbose else settings.log_level
    configure_logging(level, log_file=args.log_file, console=CONSOLE)
    return settings


def run_verify(args: argparse.Namespace) -> int:
    try:
        settings = _setup(args)
    except ValueError as exc:
        CONSOLE.print(f"[red]Invalid configuration:[/red] {exc}")
        return 1

    rom_path: Path = args.rom
    if not rom_path.exists():
        CONSOLE.print(f"[red]ROM not found:[/red] {rom_path}")
        return 1

    print_startup_banner(
        build_banner_info(settings, command="run", submission_id=args.submission, rom_path=rom_path),
        CONSOLE,
    )

    pipeline = VerificationPipeline(settings)
    try:
        result = pipeline.run(args.submission, rom_path)
    except AutoVerifyError as exc:
        LOGGER.debug("Verification aborted", exc_info=True)
        CONSOLE.print(f"[red]Verification of submission #{args.submission} failed:[/red] {exc}")
        return 1
    finally:
        pipeline.close()

    LOGGER.info(
        render_fields_block(
            "Verification Finished",
            {
                "Submission": f"#{result.submission_id}",
                "Game": result.movie.display_name,
                "Working Dir": result.workdir,
                "Replay Exit": result.replay.returncode,
            },
        )
    )
    if settings.replay.fail_on_nonzero_exit and not result.replay.ok:
        return replay_exit_status(result.replay.returncode)
    return 0


def run_inspect(args: argparse.Namespace) -> int:
    try:
        settings = _setup(args)
    except ValueError as exc:
        CONSOLE.print(f"[red]Invalid configuration:[/red] {exc}")
        return 1

    print_startup_banner(build_banner_info(settings, command="inspect", submission_id=args.submission), CONSOLE)

    pipeline = VerificationPipeline(settings)
    try:
        movie = pipeline.inspect(args.submission)
    except AutoVerifyError as exc:
        LOGGER.debug("Inspection aborted", exc_info=True)
        CONSOLE.print(f"[red]Inspection of submission #{args.submission} failed:[/red] {exc}")
        return 1
    finally:
        pipeline.close()

    table = Table(title=f"Submission #{args.submission}", show_header=False)
    table.add_column("Field", style="cyan bold", no_wrap=True)
    table.add_column("Value")
    table.add_row("Format", f"{movie.format_tag} (supported: {', '.join(registered_formats())})")
    table.add_row("Game", movie.display_name)
    table.add_row("libTAS", movie.revisions.primary_tag)
    table.add_row("Ruffle", movie.revisions.secondary_tag or "[dim]not needed[/dim]")
    CONSOLE.print(table)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))

    if args.command == "inspect":
        return run_inspect(args)
    return run_verify(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
