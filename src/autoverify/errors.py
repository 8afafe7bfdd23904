"""Exception hierarchy shared by every autoverify module."""

from __future__ import annotations


class AutoVerifyError(Exception):
    """Base class for failures that abort a verification run."""
