from __future__ import annotations

import os
import re
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml

WHITESPACE_PATTERN = re.compile(r"\s+")
PATH_SEPARATOR_PATTERN = re.compile(r"[/\\]+")

# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def remove_whitespace(value: str) -> str:
    """Return ``value`` with every whitespace character removed."""
    return WHITESPACE_PATTERN.sub("", value)


def sanitize_component(component: Optional[str], replacement: str = "_") -> str:
    """Turn a game name into a single path component.

    Whitespace is dropped entirely and path separators are replaced so the
    result can never escape the directory it is joined onto.
    """
    if component is None:
        return "untitled"

    cleaned = PATH_SEPARATOR_PATTERN.sub(replacement, remove_whitespace(component))
    if not cleaned or cleaned in {".", ".."}:
        return "untitled"
    return cleaned


def random_id() -> str:
    return str(uuid.uuid4())


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return expand_env(data)


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean from an environment variable string.

    Returns None if value is None or not a recognized boolean string.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    return parse_env_bool(os.getenv(name))


def env_list(name: str, separator: str = ",") -> Optional[List[str]]:
    """Get a list of strings from an environment variable.

    Returns None if not set, empty list if set but empty.
    """
    raw = os.getenv(name)
    if raw is None:
        return None
    return [part.strip() for part in raw.split(separator) if part.strip()]


def validate_url(url: Optional[str]) -> bool:
    """Validate that URL is a valid http/https URL."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False
