from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .utils import env_bool, env_list, load_yaml_file, validate_url

CONFIG_ENV_VAR = "AUTOVERIFY_CONFIG"

DEFAULT_TEMP_DIR = Path("/tmp/autojudgetas")


@dataclass
class SubmissionSettings:
    """Where submissions are fetched from."""

    api_base_url: str = "https://tasvideos.org/api/v1/Submissions/"
    download_url_template: str = "https://tasvideos.org/{submission_id}S?handler=Download"
    timeout: float = 60.0
    user_agent: str = "autoverify"

    def api_url(self, submission_id: int) -> str:
        return self.api_base_url.rstrip("/") + f"/{submission_id}"

    def download_url(self, submission_id: int) -> str:
        return self.download_url_template.format(submission_id=submission_id)


@dataclass
class LibTASSettings:
    repository: str = "https://github.com/clementgallet/libTAS"
    checkout_dir: str = "libTAS"
    build_command: str = "sh"
    build_args: list[str] = field(
        default_factory=lambda: ["build.sh", "--disable-hud", "--with-i386", "--disable-build-date"]
    )


@dataclass
class RuffleSettings:
    repository: str = "https://github.com/ruffle-rs/ruffle"
    checkout_dir: str = "ruffle"
    build_command: str = "cargo"
    package: str = "ruffle_desktop"

    @property
    def build_args(self) -> list[str]:
        return ["build", "--release", f"--package={self.package}"]


@dataclass
class ReplaySettings:
    # Non-zero replay exits are only logged unless this is enabled
    fail_on_nonzero_exit: bool = False


@dataclass
class Settings:
    temp_dir: Path = DEFAULT_TEMP_DIR
    work_root: Path = Path(".")
    git_binary: str = "git"
    log_level: str = "INFO"
    submissions: SubmissionSettings = field(default_factory=SubmissionSettings)
    libtas: LibTASSettings = field(default_factory=LibTASSettings)
    ruffle: RuffleSettings = field(default_factory=RuffleSettings)
    replay: ReplaySettings = field(default_factory=ReplaySettings)


def _ensure_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{field_name}' must be provided as a mapping when specified")
    return value


def _ensure_string(value: Any, default: str, *, field_name: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{field_name}' must be a non-empty string")
    return value.strip()


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list of strings or a string")
    result: list[str] = []
    for entry in value:
        if not isinstance(entry, (str, int, float)):
            raise ValueError(f"'{field_name}' entries must be strings")
        result.append(str(entry))
    return result


def _build_submission_settings(data: dict[str, Any]) -> SubmissionSettings:
    defaults = SubmissionSettings()
    api_base_url = _ensure_string(
        data.get("api_base_url"), defaults.api_base_url, field_name="submissions.api_base_url"
    )
    if not validate_url(api_base_url):
        raise ValueError(f"'submissions.api_base_url' must be an http(s) URL, got {api_base_url!r}")

    download_url_template = _ensure_string(
        data.get("download_url_template"),
        defaults.download_url_template,
        field_name="submissions.download_url_template",
    )
    if "{submission_id}" not in download_url_template:
        raise ValueError("'submissions.download_url_template' must contain the '{submission_id}' placeholder")

    try:
        timeout = float(data.get("timeout", defaults.timeout))
    except (TypeError, ValueError) as exc:
        raise ValueError("'submissions.timeout' must be a number") from exc
    if timeout <= 0:
        raise ValueError("'submissions.timeout' must be greater than zero")

    return SubmissionSettings(
        api_base_url=api_base_url,
        download_url_template=download_url_template,
        timeout=timeout,
        user_agent=_ensure_string(data.get("user_agent"), defaults.user_agent, field_name="submissions.user_agent"),
    )


def _build_libtas_settings(data: dict[str, Any]) -> LibTASSettings:
    defaults = LibTASSettings()
    build_args = defaults.build_args
    if "build_args" in data:
        build_args = _ensure_string_list(data["build_args"], field_name="libtas.build_args")
    env_args = env_list("AUTOVERIFY_LIBTAS_BUILD_ARGS", separator=" ")
    if env_args is not None:
        build_args = env_args

    return LibTASSettings(
        repository=_ensure_string(data.get("repository"), defaults.repository, field_name="libtas.repository"),
        checkout_dir=_ensure_string(data.get("checkout_dir"), defaults.checkout_dir, field_name="libtas.checkout_dir"),
        build_command=_ensure_string(
            data.get("build_command"), defaults.build_command, field_name="libtas.build_command"
        ),
        build_args=build_args,
    )


def _build_ruffle_settings(data: dict[str, Any]) -> RuffleSettings:
    defaults = RuffleSettings()
    return RuffleSettings(
        repository=_ensure_string(data.get("repository"), defaults.repository, field_name="ruffle.repository"),
        checkout_dir=_ensure_string(data.get("checkout_dir"), defaults.checkout_dir, field_name="ruffle.checkout_dir"),
        build_command=_ensure_string(
            data.get("build_command"), defaults.build_command, field_name="ruffle.build_command"
        ),
        package=_ensure_string(data.get("package"), defaults.package, field_name="ruffle.package"),
    )


def _build_replay_settings(data: dict[str, Any]) -> ReplaySettings:
    fail_on_nonzero_exit = bool(data.get("fail_on_nonzero_exit", False))
    override = env_bool("AUTOVERIFY_FAIL_ON_REPLAY_EXIT")
    if override is not None:
        fail_on_nonzero_exit = override
    return ReplaySettings(fail_on_nonzero_exit=fail_on_nonzero_exit)


def build_settings(data: dict[str, Any]) -> Settings:
    """Build typed settings from a raw mapping, applying environment overrides."""
    data = _ensure_mapping(data, field_name="settings")

    temp_dir = Path(os.getenv("AUTOVERIFY_TEMP_DIR") or data.get("temp_dir") or DEFAULT_TEMP_DIR).expanduser()
    work_root = Path(os.getenv("AUTOVERIFY_WORK_ROOT") or data.get("work_root") or ".").expanduser()
    log_level = str(os.getenv("AUTOVERIFY_LOG_LEVEL") or data.get("log_level") or "INFO").upper()

    return Settings(
        temp_dir=temp_dir,
        work_root=work_root,
        git_binary=_ensure_string(data.get("git_binary"), "git", field_name="git_binary"),
        log_level=log_level,
        submissions=_build_submission_settings(
            _ensure_mapping(data.get("submissions"), field_name="submissions")
        ),
        libtas=_build_libtas_settings(_ensure_mapping(data.get("libtas"), field_name="libtas")),
        ruffle=_build_ruffle_settings(_ensure_mapping(data.get("ruffle"), field_name="ruffle")),
        replay=_build_replay_settings(_ensure_mapping(data.get("replay"), field_name="replay")),
    )


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from ``path`` (or ``$AUTOVERIFY_CONFIG``); defaults when neither is set."""
    if path is None:
        env_path = os.getenv(CONFIG_ENV_VAR)
        path = Path(env_path).expanduser() if env_path else None

    if path is None:
        return build_settings({})

    if not path.exists():
        raise ValueError(f"Config file not found: {path}")

    data = load_yaml_file(path)
    return build_settings(data.get("settings", {}))
