"""Map movie metadata to the source revisions of libTAS and Ruffle.

libTAS writes its own version into every movie, so its tag is exact. Ruffle
leaves nothing usable in the movie (at best an executable hash), so the
nightly is picked from the date that submitters conventionally put in the
submission's free-text emulator version field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import AutoVerifyError

LOGGER = logging.getLogger(__name__)

UNSET_VERSION = -1

# Searched in order; the first year found wins
NIGHTLY_YEARS = ("2022", "2023")
DATE_TOKEN_LENGTH = 10


class RevisionResolutionError(AutoVerifyError):
    """Raised when a tool revision cannot be derived."""


class DateNotFoundError(RevisionResolutionError):
    """Raised when no nightly date can be found in the emulator version string."""


@dataclass(frozen=True, slots=True)
class RecordingToolVersion:
    major: int = UNSET_VERSION
    minor: int = UNSET_VERSION
    patch: int = UNSET_VERSION

    @property
    def is_complete(self) -> bool:
        return UNSET_VERSION not in (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class ToolRevisionSet:
    primary_tag: str
    secondary_tag: str | None = None

    @property
    def needs_secondary(self) -> bool:
        return self.secondary_tag is not None


def libtas_tag(version: RecordingToolVersion) -> str:
    """Return the libTAS release tag, ``v<major>.<minor>.<patch>``.

    Unset fields are rendered as-is (``v-1.-1.-1``); the tag is not repaired.
    """
    if not version.is_complete:
        LOGGER.warning("Movie is missing libTAS version fields, tag will be v%s", version)
    return f"v{version.major}.{version.minor}.{version.patch}"


def ruffle_tag(emulator_version: str, years: tuple[str, ...] = NIGHTLY_YEARS) -> str:
    """Return the Ruffle nightly tag for the date embedded in ``emulator_version``.

    The 10 characters starting at the first matching year are taken and the
    characters at offsets 4 and 7 are overwritten with ``-``, so both
    ``2023-03-11`` and ``2023_03_11`` become ``nightly-2023-03-11``.

    Raises:
        DateNotFoundError: if none of ``years`` occurs, or the token is truncated.
    """
    for year in years:
        start = emulator_version.find(year)
        if start != -1:
            break
    else:
        raise DateNotFoundError(
            f"date not found in emulator version {emulator_version!r} (looked for {', '.join(years)})"
        )

    token = list(emulator_version[start : start + DATE_TOKEN_LENGTH])
    if len(token) < DATE_TOKEN_LENGTH:
        raise DateNotFoundError(f"date token in emulator version {emulator_version!r} is truncated")

    token[4] = "-"
    token[7] = "-"
    return f"nightly-{''.join(token)}"


def resolve_revisions(
    version: RecordingToolVersion,
    *,
    is_flash: bool,
    emulator_version: str | None,
) -> ToolRevisionSet:
    secondary: str | None = None
    if is_flash:
        if not emulator_version:
            raise DateNotFoundError("date not found: submission has no emulator version for Flash content")
        secondary = ruffle_tag(emulator_version)
    return ToolRevisionSet(primary_tag=libtas_tag(version), secondary_tag=secondary)
