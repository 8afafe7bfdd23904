"""Version detection with support for development checkouts."""

from __future__ import annotations

import os
import subprocess
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version
from pathlib import Path

DISTRIBUTION_NAME = "autoverify-tas"

_FALLBACK_VERSION = "unknown"


def _get_git_sha() -> str | None:
    """Short SHA of the checkout this package lives in, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=Path(__file__).parent,
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    sha = result.stdout.strip()
    return sha if result.returncode == 0 and sha else None


def get_version() -> str:
    """Get the current version string.

    Priority:
    1. AUTOVERIFY_BUILD_VERSION environment variable
    2. Installed distribution metadata, plus the Git SHA when run from a checkout
    3. Git SHA alone
    4. Fallback to "unknown"
    """
    build_version = os.environ.get("AUTOVERIFY_BUILD_VERSION")
    if build_version:
        return build_version.strip()

    try:
        installed = distribution_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        installed = None

    sha = _get_git_sha()
    if installed and sha:
        return f"{installed} ({sha})"
    if installed:
        return installed
    if sha:
        return f"dev ({sha})"
    return _FALLBACK_VERSION


__version__ = get_version()
