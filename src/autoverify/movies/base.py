from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..errors import AutoVerifyError
from ..resolver import ToolRevisionSet
from ..utils import sanitize_component


class MovieParseError(AutoVerifyError):
    """Raised when a movie container holds malformed metadata."""


class UnsupportedMovieFormatError(AutoVerifyError):
    """Raised when no parser is registered for a submission's movie format."""


@dataclass(frozen=True, slots=True)
class ParsedMovie:
    """Everything the provisioning and replay steps need from a movie."""

    format_tag: str
    extension: str
    movie_bytes: bytes
    game_name: str | None
    revisions: ToolRevisionSet

    @property
    def display_name(self) -> str:
        return self.game_name or "untitled"

    @property
    def movie_filename(self) -> str:
        return f"{sanitize_component(self.game_name)}.{self.extension}"

    def workdir_name(self, run_id: str) -> str:
        return f"{run_id}_{sanitize_component(self.game_name)}"


class MovieFormat(ABC):
    tag: str
    extension: str

    @abstractmethod
    def parse(self, movie_bytes: bytes, emulator_version: str | None) -> ParsedMovie:
        """Inspect ``movie_bytes`` and resolve the tool revisions needed to replay it."""
