from __future__ import annotations

import io
import tarfile
import threading
import time
from pathlib import Path

import pytest

from autoverify.process import ProcessResult

CONFIG_1_4_2 = "\n".join(
    [
        "[General]",
        "game_name=Super Flash Bros",
        "libtas_major_version=1",
        "libtas_minor_version=4",
        "libtas_patch_version=2",
        "frame_count=1200",
    ]
)


def _build_ltm_archive(entries: dict[str, str], *, directories: tuple[str, ...] = (), prefix: str = "") -> bytes:
    """Build an in-memory gzipped tar shaped like a libTAS movie."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name in directories:
            info = tarfile.TarInfo(prefix + name)
            info.type = tarfile.DIRTYPE
            archive.addfile(info)
        for name, text in entries.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(prefix + name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class FakeRunner:
    """Pretends to clone, build and replay by creating the files a real build would."""

    def __init__(
        self,
        *,
        delays: dict[str, float] | None = None,
        exit_codes: dict[str, int] | None = None,
        skip_outputs: set[str] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.exit_codes = exit_codes or {}
        self.skip_outputs = skip_outputs or set()
        self.calls: list[tuple[str, tuple[str, ...], Path, str]] = []
        self.foreground: dict[str, bool] = {}
        self.finished: dict[str, float] = {}
        self._lock = threading.Lock()

    def run(self, executable, args, workdir, *, foreground=False, stage="process") -> ProcessResult:
        args = tuple(str(arg) for arg in args)
        with self._lock:
            self.calls.append((str(executable), args, Path(workdir), stage))
            self.foreground[stage] = foreground

        time.sleep(self.delays.get(stage, 0))
        returncode = self.exit_codes.get(stage, 0)
        if returncode == 0 and stage not in self.skip_outputs:
            self._create_outputs(stage, args, Path(workdir))
        with self._lock:
            self.finished[stage] = time.monotonic()
        return ProcessResult(command=(str(executable), *args), returncode=returncode)

    @staticmethod
    def _create_outputs(stage: str, args: tuple[str, ...], workdir: Path) -> None:
        if stage.endswith(":clone"):
            repository = args[-1].rstrip("/").rsplit("/", 1)[-1]
            (workdir / repository).mkdir(parents=True, exist_ok=True)
        elif stage == "libtas:build":
            for relative in ("src/library/libtas.so", "src/library/libtas32.so", "src/program/libTAS"):
                output = workdir / relative
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(b"\x7fELF")
        elif stage == "ruffle:build":
            output = workdir / "target" / "release" / "ruffle_desktop"
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(b"\x7fELF")

    def stages(self) -> list[str]:
        return [call[3] for call in self.calls]

    def call_for(self, stage: str) -> tuple[str, tuple[str, ...], Path, str]:
        return next(call for call in self.calls if call[3] == stage)


@pytest.fixture
def ltm_config() -> str:
    """``config.ini`` of a libTAS 1.4.2 movie named "Super Flash Bros"."""
    return CONFIG_1_4_2


@pytest.fixture
def build_ltm():
    return _build_ltm_archive


@pytest.fixture
def make_runner():
    return FakeRunner
