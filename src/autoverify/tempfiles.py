"""Temporary file handles for movies and ROMs.

Synthesized files are written under a shared temp root with a random prefix so
concurrent runs never collide. Handles wrapping a user-supplied path are never
deleted.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from .errors import AutoVerifyError
from .utils import ensure_directory, random_id

LOGGER = logging.getLogger(__name__)


class TempFileError(AutoVerifyError):
    """Raised when a file cannot be written to or copied into the temp store."""


@dataclass(slots=True)
class TempFile:
    path: Path
    synthesized: bool


class TempFileStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def _allocate(self, name: str) -> Path:
        try:
            ensure_directory(self.root)
        except OSError as exc:
            raise TempFileError(f"Temp directory {self.root} is not usable: {exc}") from exc
        return self.root / f"{random_id()}_{Path(name).name}"

    def materialize(self, content: bytes | BinaryIO, name: str) -> TempFile:
        """Write ``content`` to a new uniquely named file and return its handle."""
        path = self._allocate(name)
        try:
            if isinstance(content, (bytes, bytearray, memoryview)):
                path.write_bytes(content)
            else:
                if content.seekable():
                    content.seek(0)
                with path.open("wb") as handle:
                    shutil.copyfileobj(content, handle)
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise TempFileError(f"Could not write {name} to {path}: {exc}") from exc
        LOGGER.debug("Materialized %s at %s", name, path)
        return TempFile(path=path, synthesized=True)

    def copy_from(self, source: Path) -> TempFile:
        path = self._allocate(source.name)
        try:
            shutil.copyfile(source, path)
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise TempFileError(f"Could not copy {source} into {self.root}: {exc}") from exc
        LOGGER.debug("Copied %s to %s", source, path)
        return TempFile(path=path, synthesized=True)

    @staticmethod
    def wrap(path: Path) -> TempFile:
        return TempFile(path=path, synthesized=False)

    @staticmethod
    def dispose(handle: TempFile) -> None:
        if not handle.synthesized:
            return
        handle.path.unlink(missing_ok=True)
        LOGGER.debug("Removed temp file %s", handle.path)

    @contextmanager
    def scoped(self, content: bytes | BinaryIO, name: str) -> Iterator[TempFile]:
        handle = self.materialize(content, name)
        try:
            yield handle
        finally:
            self.dispose(handle)

    @contextmanager
    def scoped_input(self, path: Path) -> Iterator[TempFile]:
        """Directories are used in place; files are copied into the store."""
        handle = self.wrap(path) if path.is_dir() else self.copy_from(path)
        try:
            yield handle
        finally:
            self.dispose(handle)
