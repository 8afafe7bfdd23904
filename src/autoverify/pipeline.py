"""End-to-end verification of one submission.

fetch -> parse -> provision -> replay. Every temp file created along the way
is released on every exit path; the per-run working directory is kept so the
built tools can be inspected or reused by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .errors import AutoVerifyError
from .movies import ParsedMovie, parse_movie
from .process import ProcessResult, ProcessRunner
from .provisioning import ProvisionedEnvironment, Provisioner
from .replay import ReplayInvoker
from .submission import SubmissionClient
from .tempfiles import TempFileStore
from .utils import ensure_directory, random_id

LOGGER = logging.getLogger(__name__)


class WorkdirError(AutoVerifyError):
    """Raised when the per-run working directory cannot be created."""


@dataclass(slots=True)
class VerificationResult:
    submission_id: int
    movie: ParsedMovie
    environment: ProvisionedEnvironment
    replay: ProcessResult

    @property
    def workdir(self) -> Path:
        return self.environment.path


class VerificationPipeline:
    def __init__(
        self,
        settings: Settings,
        *,
        client: SubmissionClient | None = None,
        runner: ProcessRunner | None = None,
        temp_store: TempFileStore | None = None,
    ) -> None:
        self.settings = settings
        self.client = client or SubmissionClient(settings.submissions)
        runner = runner or ProcessRunner()
        self.provisioner = Provisioner(runner, settings)
        self.invoker = ReplayInvoker(runner)
        self.temp_store = temp_store or TempFileStore(settings.temp_dir)

    def inspect(self, submission_id: int) -> ParsedMovie:
        """Fetch and parse a submission without building anything."""
        return parse_movie(self.client.fetch(submission_id))

    def create_workdir(self, movie: ParsedMovie) -> Path:
        if movie.game_name is None or not movie.game_name.strip():
            LOGGER.warning("Movie has no game name, using 'untitled' for the working directory")
        workdir = self.settings.work_root / movie.workdir_name(random_id())
        try:
            ensure_directory(workdir)
        except OSError as exc:
            raise WorkdirError(f"Could not create working directory {workdir}: {exc}") from exc
        return workdir.resolve()

    def run(self, submission_id: int, rom_path: Path) -> VerificationResult:
        submission = self.client.fetch(submission_id)

        with self.temp_store.scoped_input(rom_path) as rom:
            movie = parse_movie(submission)
            workdir = self.create_workdir(movie)
            environment = self.provisioner.provision(movie.revisions, workdir)
            with self.temp_store.scoped(movie.movie_bytes, movie.movie_filename) as movie_file:
                result = self.invoker.replay(environment, movie_file.path, rom.path)

        return VerificationResult(
            submission_id=submission_id,
            movie=movie,
            environment=environment,
            replay=result,
        )

    def close(self) -> None:
        self.client.close()
