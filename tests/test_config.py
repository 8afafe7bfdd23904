from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from autoverify.config import DEFAULT_TEMP_DIR, Settings, build_settings, load_settings


def write_yaml(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in (
        "AUTOVERIFY_CONFIG",
        "AUTOVERIFY_TEMP_DIR",
        "AUTOVERIFY_WORK_ROOT",
        "AUTOVERIFY_LOG_LEVEL",
        "AUTOVERIFY_LIBTAS_BUILD_ARGS",
        "AUTOVERIFY_FAIL_ON_REPLAY_EXIT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file() -> None:
    settings = load_settings()

    assert settings == Settings()
    assert settings.temp_dir == DEFAULT_TEMP_DIR
    assert settings.work_root == Path(".")
    assert settings.submissions.api_url(7890) == "https://tasvideos.org/api/v1/Submissions/7890"
    assert settings.submissions.download_url(7890) == "https://tasvideos.org/7890S?handler=Download"
    assert settings.libtas.build_args == ["build.sh", "--disable-hud", "--with-i386", "--disable-build-date"]
    assert settings.ruffle.build_args == ["build", "--release", "--package=ruffle_desktop"]
    assert settings.replay.fail_on_nonzero_exit is False


def test_loads_yaml_file(tmp_path) -> None:
    config_path = write_yaml(
        tmp_path / "autoverify.yaml",
        f"""
        settings:
          temp_dir: "{tmp_path / 'temp'}"
          work_root: "{tmp_path / 'runs'}"
          log_level: debug
          submissions:
            api_base_url: https://example.org/api/Submissions
            download_url_template: "https://example.org/{{submission_id}}S?handler=Download"
            timeout: 5
          libtas:
            build_args: build.sh --disable-hud
          ruffle:
            package: ruffle_scanner
          replay:
            fail_on_nonzero_exit: true
        """,
    )

    settings = load_settings(config_path)

    assert settings.temp_dir == tmp_path / "temp"
    assert settings.work_root == tmp_path / "runs"
    assert settings.log_level == "DEBUG"
    assert settings.submissions.api_url(12) == "https://example.org/api/Submissions/12"
    assert settings.submissions.download_url(12) == "https://example.org/12S?handler=Download"
    assert settings.submissions.timeout == 5.0
    assert settings.libtas.build_args == ["build.sh", "--disable-hud"]
    assert settings.ruffle.build_args == ["build", "--release", "--package=ruffle_scanner"]
    assert settings.replay.fail_on_nonzero_exit is True


def test_config_path_from_environment(tmp_path, monkeypatch) -> None:
    config_path = write_yaml(tmp_path / "env.yaml", "settings:\n  work_root: /srv/runs\n")
    monkeypatch.setenv("AUTOVERIFY_CONFIG", str(config_path))

    assert load_settings().work_root == Path("/srv/runs")


def test_environment_overrides(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("AUTOVERIFY_TEMP_DIR", str(tmp_path / "t"))
    monkeypatch.setenv("AUTOVERIFY_WORK_ROOT", str(tmp_path / "w"))
    monkeypatch.setenv("AUTOVERIFY_LIBTAS_BUILD_ARGS", "build.sh --with-i386")
    monkeypatch.setenv("AUTOVERIFY_FAIL_ON_REPLAY_EXIT", "yes")

    settings = build_settings({"temp_dir": "/ignored"})

    assert settings.temp_dir == tmp_path / "t"
    assert settings.work_root == tmp_path / "w"
    assert settings.libtas.build_args == ["build.sh", "--with-i386"]
    assert settings.replay.fail_on_nonzero_exit is True


def test_empty_settings_section(tmp_path) -> None:
    config_path = write_yaml(tmp_path / "empty.yaml", "settings:\n")

    assert load_settings(config_path) == Settings()


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ValueError, match="Config file not found"):
        load_settings(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"submissions": {"api_base_url": "ftp://example.org"}}, "api_base_url"),
        ({"submissions": {"download_url_template": "https://example.org/download"}}, "submission_id"),
        ({"submissions": {"timeout": "soon"}}, "timeout"),
        ({"submissions": {"timeout": 0}}, "greater than zero"),
        ({"submissions": ["not", "a", "mapping"]}, "submissions"),
        ({"libtas": {"build_args": {"a": 1}}}, "libtas.build_args"),
        ({"libtas": {"repository": ""}}, "libtas.repository"),
        ({"git_binary": 3}, "git_binary"),
    ],
)
def test_invalid_values_name_the_field(data, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        build_settings(data)


def test_top_level_must_be_mapping(tmp_path) -> None:
    config_path = write_yaml(tmp_path / "list.yaml", "- one\n- two\n")

    with pytest.raises(ValueError, match="mapping"):
        load_settings(config_path)
