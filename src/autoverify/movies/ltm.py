"""libTAS movie (``.ltm``) inspection.

An ``.ltm`` file is a compressed tar archive. Only two members matter here:

- ``config.ini``: ``key=value`` lines carrying the libTAS version that
  recorded the movie and the game name.
- ``annotations.txt``: free text written by the author; a line reading
  ``platform: flash`` (any case or spacing) marks a Ruffle movie.

The archive is read as a stream and no other member is ever opened.
"""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import BinaryIO

from ..logging_utils import render_fields_block
from ..resolver import RecordingToolVersion, resolve_revisions
from ..utils import remove_whitespace
from .base import MovieFormat, MovieParseError, ParsedMovie

LOGGER = logging.getLogger(__name__)

CONFIG_ENTRY = "config.ini"
ANNOTATIONS_ENTRY = "annotations.txt"
FLASH_ANNOTATION = "platform:flash"

_VERSION_KEYS = {
    "libtas_major_version": "major",
    "libtas_minor_version": "minor",
    "libtas_patch_version": "patch",
}


@dataclass(frozen=True, slots=True)
class LtmMetadata:
    version: RecordingToolVersion = field(default_factory=RecordingToolVersion)
    game_name: str | None = None
    is_flash: bool = False


def _entry_name(member: tarfile.TarInfo) -> str:
    return member.name.removeprefix("./")


def _text_lines(handle: BinaryIO) -> list[str]:
    # members are small; stream-mode tar handles do not support seekable()
    text = handle.read().decode("utf-8", errors="replace")
    # only CR, LF and CRLF end a line; splitlines() also breaks on \x1c-\x1e and \x85
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def _parse_config(lines: Iterable[str]) -> tuple[dict[str, int], str | None]:
    version_fields: dict[str, int] = {}
    game_name: str | None = None
    for line in lines:
        key, sep, value = line.partition("=")
        if not sep or not key or not value:
            continue
        if key in _VERSION_KEYS:
            try:
                version_fields[_VERSION_KEYS[key]] = int(value)
            except ValueError as exc:
                raise MovieParseError(f"{CONFIG_ENTRY}: {key} is not an integer: {value!r}") from exc
        elif key == "game_name":
            game_name = value
    return version_fields, game_name


def _has_flash_annotation(lines: Iterable[str]) -> bool:
    for line in lines:
        if remove_whitespace(line).lower() == FLASH_ANNOTATION:
            return True
    return False


def extract_ltm_metadata(stream: BinaryIO) -> LtmMetadata:
    """Read libTAS version, game name and Flash flag from an ``.ltm`` stream.

    Missing members are not an error: the corresponding fields keep their
    defaults (version fields stay at the unset sentinel).
    """
    version_fields: dict[str, int] = {}
    game_name: str | None = None
    is_flash = False

    try:
        with tarfile.open(fileobj=stream, mode="r|*") as archive:
            for member in archive:
                if not member.isfile():
                    continue
                name = _entry_name(member)
                if name not in (CONFIG_ENTRY, ANNOTATIONS_ENTRY):
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                if name == CONFIG_ENTRY:
                    found_fields, found_name = _parse_config(_text_lines(handle))
                    version_fields.update(found_fields)
                    if found_name is not None:
                        game_name = found_name
                else:
                    is_flash = is_flash or _has_flash_annotation(_text_lines(handle))
    except tarfile.TarError as exc:
        raise MovieParseError(f"Movie is not a readable libTAS archive: {exc}") from exc

    return LtmMetadata(
        version=RecordingToolVersion(**version_fields),
        game_name=game_name,
        is_flash=is_flash,
    )


class LtmFormat(MovieFormat):
    tag = "ltm"
    extension = "ltm"

    def parse(self, movie_bytes: bytes, emulator_version: str | None) -> ParsedMovie:
        metadata = extract_ltm_metadata(io.BytesIO(movie_bytes))
        revisions = resolve_revisions(
            metadata.version,
            is_flash=metadata.is_flash,
            emulator_version=emulator_version,
        )
        LOGGER.info(
            render_fields_block(
                "Movie Inspected",
                {
                    "Format": self.tag,
                    "Game": metadata.game_name,
                    "libTAS Version": str(metadata.version),
                    "Flash": metadata.is_flash,
                    "libTAS Tag": revisions.primary_tag,
                    "Ruffle Tag": revisions.secondary_tag,
                },
            )
        )
        return ParsedMovie(
            format_tag=self.tag,
            extension=self.extension,
            movie_bytes=movie_bytes,
            game_name=metadata.game_name,
            revisions=revisions,
        )
