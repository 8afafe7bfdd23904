from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .version import __version__


@dataclass
class BannerInfo:
    version: str
    command: str
    submission_id: int
    rom_path: str | None
    temp_dir: str
    work_root: str
    fail_on_replay_exit: bool


def build_banner_info(
    settings: Settings,
    *,
    command: str,
    submission_id: int,
    rom_path: Path | None = None,
) -> BannerInfo:
    return BannerInfo(
        version=__version__,
        command=command,
        submission_id=submission_id,
        rom_path=str(rom_path) if rom_path is not None else None,
        temp_dir=str(settings.temp_dir),
        work_root=str(settings.work_root.resolve()),
        fail_on_replay_exit=settings.replay.fail_on_nonzero_exit,
    )


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{info.version}[/bold]")
    table.add_row("Command", f"[cyan]{info.command.upper()}[/cyan]")
    table.add_row("Submission", f"#{info.submission_id}")
    if info.rom_path is not None:
        table.add_row("ROM", info.rom_path)
    table.add_row("Temp", info.temp_dir)
    table.add_row("Work Root", info.work_root)
    if info.command == "run":
        status = "[green]enforced[/green]" if info.fail_on_replay_exit else "[dim]logged only[/dim]"
        table.add_row("Replay Exit", status)

    console.print(Panel(table, title="[bold]AutoVerify[/bold]", border_style="cyan", expand=False))
