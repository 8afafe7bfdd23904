"""Movie format registry.

Each supported movie container registers a :class:`MovieFormat` under the
extension TASVideos reports for it. Adding a format means adding a parser
here; provisioning and replay only ever see a :class:`ParsedMovie`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import MovieFormat, MovieParseError, ParsedMovie, UnsupportedMovieFormatError
from .ltm import LtmFormat, LtmMetadata, extract_ltm_metadata

if TYPE_CHECKING:
    from ..submission import Submission

LOGGER = logging.getLogger(__name__)

_FORMATS: dict[str, MovieFormat] = {}


def _normalize_tag(tag: str) -> str:
    return tag.strip().lstrip(".").lower()


def register_format(movie_format: MovieFormat) -> None:
    _FORMATS[_normalize_tag(movie_format.tag)] = movie_format


def get_format(tag: str) -> MovieFormat:
    try:
        return _FORMATS[_normalize_tag(tag)]
    except KeyError:
        supported = ", ".join(sorted(_FORMATS)) or "(none)"
        raise UnsupportedMovieFormatError(
            f"No parser registered for movie format {tag!r} (supported: {supported})"
        ) from None


def registered_formats() -> list[str]:
    return sorted(_FORMATS)


def parse_movie(submission: Submission) -> ParsedMovie:
    movie_format = get_format(submission.movie_extension)
    LOGGER.debug("Parsing submission %s as %s", submission.submission_id, movie_format.tag)
    return movie_format.parse(submission.movie_bytes, submission.emulator_version)


register_format(LtmFormat())

__all__ = [
    "LtmFormat",
    "LtmMetadata",
    "MovieFormat",
    "MovieParseError",
    "ParsedMovie",
    "UnsupportedMovieFormatError",
    "extract_ltm_metadata",
    "get_format",
    "parse_movie",
    "register_format",
    "registered_formats",
]
