from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import AutoVerifyError
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


class ProcessError(AutoVerifyError):
    """Raised when an external command cannot be started or exits non-zero."""

    def __init__(self, message: str, *, stage: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.returncode = returncode


@dataclass(frozen=True, slots=True)
class ProcessResult:
    command: tuple[str, ...]
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, stage: str) -> ProcessResult:
        if not self.ok:
            raise ProcessError(
                f"{stage} failed: '{shlex.join(self.command)}' exited with status {self.returncode}",
                stage=stage,
                returncode=self.returncode,
            )
        return self


class ProcessRunner:
    """Runs external commands to completion without capturing their output."""

    def run(
        self,
        executable: str | Path,
        args: Sequence[str | Path],
        workdir: Path,
        *,
        foreground: bool = False,
        stage: str = "process",
    ) -> ProcessResult:
        command = (str(executable), *(str(arg) for arg in args))
        LOGGER.debug(
            render_fields_block(
                "Running Command",
                {
                    "Stage": stage,
                    "Command": shlex.join(command),
                    "Workdir": workdir,
                    "Foreground": foreground,
                },
                pad_top=False,
            )
        )
        try:
            completed = subprocess.run(
                command,
                cwd=workdir,
                # background steps must never block waiting on the terminal
                stdin=None if foreground else subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            raise ProcessError(f"{stage} could not start {command[0]!r}: {exc}", stage=stage) from exc

        LOGGER.debug("%s exited with status %d", stage, completed.returncode)
        return ProcessResult(command=command, returncode=completed.returncode)
