from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from autoverify.process import ProcessResult
from autoverify.provisioning import ProvisionedEnvironment
from autoverify.replay import ReplayInvoker, build_replay_command
from autoverify.resolver import ToolRevisionSet


def make_environment(path: Path, *, flash: bool) -> ProvisionedEnvironment:
    return ProvisionedEnvironment(
        path=path,
        revisions=ToolRevisionSet("v1.4.2", "nightly-2023-03-11" if flash else None),
        driver=path / "libTAS.elf",
        libraries=(path / "libtas.so", path / "libtas32.so"),
        player=path / "ruffle_desktop" if flash else None,
    )


def test_native_command_passes_rom_directly(tmp_path) -> None:
    environment = make_environment(tmp_path, flash=False)

    command = build_replay_command(environment, Path("/tmp/x_game.ltm"), Path("/roms/game.elf"))

    assert command == [str(tmp_path / "libTAS.elf"), "-r", "/tmp/x_game.ltm", "/roms/game.elf"]


def test_flash_command_runs_rom_through_player(tmp_path) -> None:
    environment = make_environment(tmp_path, flash=True)

    command = build_replay_command(environment, Path("/tmp/x_game.ltm"), Path("/roms/game.swf"))

    assert command == [
        str(tmp_path / "libTAS.elf"),
        "-r",
        "/tmp/x_game.ltm",
        str(tmp_path / "ruffle_desktop"),
        "/roms/game.swf",
    ]


def test_replay_runs_in_foreground_inside_workdir(tmp_path) -> None:
    runner = MagicMock()
    runner.run.return_value = ProcessResult(command=("libTAS.elf",), returncode=0)
    environment = make_environment(tmp_path, flash=False)

    result = ReplayInvoker(runner).replay(environment, Path("/tmp/m.ltm"), Path("/roms/game.elf"))

    assert result.ok is True
    runner.run.assert_called_once_with(
        str(tmp_path / "libTAS.elf"),
        ["-r", "/tmp/m.ltm", "/roms/game.elf"],
        tmp_path,
        foreground=True,
        stage="replay",
    )


def test_nonzero_replay_exit_is_returned_not_raised(tmp_path, caplog) -> None:
    runner = MagicMock()
    runner.run.return_value = ProcessResult(command=("libTAS.elf",), returncode=3)

    result = ReplayInvoker(runner).replay(make_environment(tmp_path, flash=True), Path("m.ltm"), Path("g.swf"))

    assert result.returncode == 3
    assert "Replay exited with status 3" in caplog.text
