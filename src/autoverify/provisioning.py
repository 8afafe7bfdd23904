"""Build libTAS and Ruffle from source at the revisions a movie needs.

Release binaries are not used: libTAS .deb packages drag in distribution
specific dependencies, and Ruffle downloads do not reliably match a nightly.
Both tools are cloned at the resolved tag and built inside the run's working
directory. The two builds share the directory but write disjoint names, so
they run concurrently and are joined before replay starts.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .errors import AutoVerifyError
from .logging_utils import render_fields_block, render_section_block
from .process import ProcessError, ProcessRunner
from .resolver import ToolRevisionSet

LOGGER = logging.getLogger(__name__)

LIBTAS_DRIVER = "libTAS.elf"
LIBTAS_LIBRARY = "libtas.so"
LIBTAS_LIBRARY_32 = "libtas32.so"
RUFFLE_PLAYER = "ruffle_desktop"

# build output (relative to the checkout) -> artifact name in the work dir
LIBTAS_ARTIFACTS = {
    "src/library/libtas.so": LIBTAS_LIBRARY,
    "src/library/libtas32.so": LIBTAS_LIBRARY_32,
    "src/program/libTAS": LIBTAS_DRIVER,
}


class ProvisioningError(AutoVerifyError):
    """Raised when a tool cannot be fetched, built, or relocated."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


@dataclass(frozen=True, slots=True)
class ProvisionedEnvironment:
    path: Path
    revisions: ToolRevisionSet
    driver: Path
    libraries: tuple[Path, ...]
    player: Path | None = None


class Provisioner:
    def __init__(self, runner: ProcessRunner, settings: Settings) -> None:
        self.runner = runner
        self.settings = settings

    def _run_step(self, executable: str, args: list[str], workdir: Path, stage: str) -> None:
        try:
            self.runner.run(executable, args, workdir, stage=stage).check(stage)
        except ProcessError as exc:
            raise ProvisioningError(str(exc), stage=stage) from exc

    def _clone(self, repository: str, tag: str, target: Path, stage: str) -> None:
        self._run_step(self.settings.git_binary, ["clone", "-b", tag, repository], target, stage)

    @staticmethod
    def _relocate(source: Path, destination: Path, stage: str) -> Path:
        if not source.exists():
            raise ProvisioningError(f"{stage}: expected build output {source} is missing", stage=stage)
        shutil.move(source, destination)
        return destination

    def build_libtas(self, tag: str, target: Path) -> list[Path]:
        libtas = self.settings.libtas
        checkout = target / libtas.checkout_dir
        self._clone(libtas.repository, tag, target, "libtas:clone")
        self._run_step(libtas.build_command, list(libtas.build_args), checkout, "libtas:build")
        return [
            self._relocate(checkout / relative, target / name, "libtas:relocate")
            for relative, name in LIBTAS_ARTIFACTS.items()
        ]

    def build_ruffle(self, tag: str, target: Path) -> Path:
        ruffle = self.settings.ruffle
        checkout = target / ruffle.checkout_dir
        self._clone(ruffle.repository, tag, target, "ruffle:clone")
        self._run_step(ruffle.build_command, ruffle.build_args, checkout, "ruffle:build")
        return self._relocate(
            checkout / "target" / "release" / ruffle.package,
            target / RUFFLE_PLAYER,
            "ruffle:relocate",
        )

    def provision(self, revisions: ToolRevisionSet, target: Path) -> ProvisionedEnvironment:
        """Build every tool ``revisions`` asks for into ``target`` and wait for all of them.

        Raises:
            ProvisioningError: for the first build sequence that fails. The
                other sequence is not waited on once a failure is known.
        """
        started = time.monotonic()
        jobs: dict[str, Callable[[], object]] = {
            "libtas": lambda: self.build_libtas(revisions.primary_tag, target),
        }
        if revisions.secondary_tag is not None:
            secondary_tag = revisions.secondary_tag
            jobs["ruffle"] = lambda: self.build_ruffle(secondary_tag, target)

        LOGGER.info(
            render_fields_block(
                "Provisioning Tools",
                {
                    "Directory": target,
                    "libTAS": revisions.primary_tag,
                    "Ruffle": revisions.secondary_tag or "(not needed)",
                },
            )
        )

        executor = ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="provision")
        futures: dict[Future, str] = {executor.submit(job): name for name, job in jobs.items()}
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [future for future in done if future.exception() is not None]
        if failed:
            # running builds cannot be interrupted; let them finish in the background
            executor.shutdown(wait=False, cancel_futures=True)
            error = failed[0].exception()
            LOGGER.error(
                render_fields_block(
                    "Provisioning Failed",
                    {"Sequence": futures[failed[0]], "Error": error},
                )
            )
            if isinstance(error, ProvisioningError):
                raise error
            raise ProvisioningError(f"{futures[failed[0]]} build failed: {error}", stage=futures[failed[0]]) from error
        executor.shutdown(wait=True)

        results = {name: future.result() for future, name in futures.items()}
        libraries = [path for path in results["libtas"] if path.name != LIBTAS_DRIVER]
        player = results.get("ruffle")

        environment = ProvisionedEnvironment(
            path=target,
            revisions=revisions,
            driver=target / LIBTAS_DRIVER,
            libraries=tuple(libraries),
            player=player,
        )
        LOGGER.info(
            render_section_block(
                f"Provisioning Complete ({time.monotonic() - started:.0f}s)",
                [("Artifacts", [str(path) for path in results["libtas"]] + ([str(player)] if player else []))],
            )
        )
        return environment
