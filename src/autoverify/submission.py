"""TASVideos submission retrieval."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import SubmissionSettings
from .errors import AutoVerifyError
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


class SubmissionError(AutoVerifyError):
    """Raised when a submission cannot be fetched or decoded."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SubmissionArchiveError(SubmissionError):
    """Raised when the downloaded movie zip does not hold exactly one file."""


class SubmissionResponse(BaseModel):
    """The parts of the submission API payload that verification needs."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    movie_extension: str = Field(alias="movieExtension")
    emulator_version: str | None = Field(default=None, alias="emulatorVersion")


@dataclass(frozen=True, slots=True)
class Submission:
    submission_id: int
    movie_bytes: bytes
    movie_extension: str
    emulator_version: str | None


def extract_single_movie(archive_bytes: bytes) -> bytes:
    """Return the only file stored in a submission's movie zip."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(archive_bytes))
    except zipfile.BadZipFile as exc:
        raise SubmissionError(f"Movie download is not a zip archive: {exc}") from exc

    with archive:
        entries = archive.infolist()
        if len(entries) != 1:
            raise SubmissionArchiveError(f"unexpected entry count in movie archive: expected 1, found {len(entries)}")
        # damaged data (bad CRC or deflate stream), unknown compression, encryption
        try:
            return archive.read(entries[0])
        except (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError) as exc:
            raise SubmissionError(f"Movie archive entry {entries[0].filename!r} could not be read: {exc}") from exc


class SubmissionClient:
    def __init__(self, settings: SubmissionSettings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", settings.user_agent)

    def _get(self, url: str) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.settings.timeout)
        except requests.RequestException as exc:
            raise SubmissionError(f"Request to {url} failed: {exc}") from exc
        if not response.ok:
            raise SubmissionError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def fetch_movie(self, submission_id: int) -> bytes:
        response = self._get(self.settings.download_url(submission_id))
        return extract_single_movie(response.content)

    def fetch_info(self, submission_id: int) -> SubmissionResponse:
        response = self._get(self.settings.api_url(submission_id))
        try:
            return SubmissionResponse.model_validate(response.json())
        except ValueError as exc:
            # pydantic's ValidationError is a ValueError, as is a JSON decode failure
            snippet = response.text[:200]
            kind = "invalid" if isinstance(exc, ValidationError) else "malformed"
            raise SubmissionError(
                f"Submission {submission_id} returned {kind} JSON: {snippet}",
                status_code=response.status_code,
            ) from exc

    def fetch(self, submission_id: int) -> Submission:
        """Download the movie and its submission metadata.

        The movie archive is checked before the metadata request is made, so an
        archive with the wrong number of entries fails without further traffic.
        """
        movie_bytes = self.fetch_movie(submission_id)
        info = self.fetch_info(submission_id)
        LOGGER.info(
            render_fields_block(
                "Submission Fetched",
                {
                    "Submission": f"#{submission_id}",
                    "Movie Format": info.movie_extension,
                    "Movie Size": f"{len(movie_bytes)} bytes",
                    "Emulator Version": info.emulator_version,
                },
            )
        )
        return Submission(
            submission_id=submission_id,
            movie_bytes=movie_bytes,
            movie_extension=info.movie_extension,
            emulator_version=info.emulator_version,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> SubmissionClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
