from __future__ import annotations

import logging
from pathlib import Path

from .logging_utils import render_fields_block
from .process import ProcessResult, ProcessRunner
from .provisioning import ProvisionedEnvironment

LOGGER = logging.getLogger(__name__)

REPLAY_FLAG = "-r"


def build_replay_command(environment: ProvisionedEnvironment, movie_path: Path, rom_path: Path) -> list[str]:
    """libTAS drives the game; for Flash the "game" is Ruffle with the SWF as its argument."""
    command = [str(environment.driver), REPLAY_FLAG, str(movie_path)]
    if environment.player is not None:
        command.append(str(environment.player))
    command.append(str(rom_path))
    return command


class ReplayInvoker:
    def __init__(self, runner: ProcessRunner) -> None:
        self.runner = runner

    def replay(self, environment: ProvisionedEnvironment, movie_path: Path, rom_path: Path) -> ProcessResult:
        executable, *args = build_replay_command(environment, movie_path, rom_path)
        LOGGER.info(
            render_fields_block(
                "Starting Replay",
                {
                    "Driver": executable,
                    "Movie": movie_path,
                    "Player": environment.player or "(native)",
                    "ROM": rom_path,
                },
            )
        )
        result = self.runner.run(executable, args, environment.path, foreground=True, stage="replay")
        if result.ok:
            LOGGER.info("Replay finished")
        else:
            LOGGER.warning("Replay exited with status %d", result.returncode)
        return result
