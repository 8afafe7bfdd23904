from __future__ import annotations

import pytest

from autoverify.utils import (
    env_bool,
    env_list,
    expand_env,
    load_yaml_file,
    parse_env_bool,
    random_id,
    remove_whitespace,
    sanitize_component,
    validate_url,
)


def test_remove_whitespace_drops_every_kind() -> None:
    assert remove_whitespace(" Platform :\tFlash \r\n") == "Platform:Flash"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Super Mario Bros.", "SuperMarioBros."),
        ("  Celeste  ", "Celeste"),
        ("AC/DC Rocks", "AC_DCRocks"),
        ("a\\b", "a_b"),
        (None, "untitled"),
        ("   ", "untitled"),
        ("..", "untitled"),
    ],
)
def test_sanitize_component(value, expected: str) -> None:
    assert sanitize_component(value) == expected


def test_random_id_is_unique() -> None:
    assert len({random_id() for _ in range(50)}) == 50


def test_expand_env_nested(monkeypatch) -> None:
    monkeypatch.setenv("AV_ROOT", "/srv")

    assert expand_env({"a": ["$AV_ROOT/x", 3], "b": "${AV_ROOT}"}) == {"a": ["/srv/x", 3], "b": "/srv"}


def test_load_yaml_file_expands_env(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("AV_TEMP", "/scratch")
    path = tmp_path / "c.yaml"
    path.write_text("settings:\n  temp_dir: $AV_TEMP/autojudge\n", encoding="utf-8")

    assert load_yaml_file(path) == {"settings": {"temp_dir": "/scratch/autojudge"}}


def test_load_yaml_file_empty(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_yaml_file(path) == {}


class TestParseEnvBool:
    @pytest.mark.parametrize("value", ["true", "True", "1", "yes", "ON"])
    def test_parses_truthy_values(self, value: str) -> None:
        assert parse_env_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "Off"])
    def test_parses_falsy_values(self, value: str) -> None:
        assert parse_env_bool(value) is False

    @pytest.mark.parametrize("value", [None, "", "maybe"])
    def test_unrecognized_values(self, value) -> None:
        assert parse_env_bool(value) is None


def test_env_bool_and_env_list(monkeypatch) -> None:
    monkeypatch.setenv("AV_FLAG", "yes")
    monkeypatch.setenv("AV_LIST", "a, b,,c")
    monkeypatch.delenv("AV_MISSING", raising=False)

    assert env_bool("AV_FLAG") is True
    assert env_bool("AV_MISSING") is None
    assert env_list("AV_LIST") == ["a", "b", "c"]
    assert env_list("AV_MISSING") is None


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://tasvideos.org/api/v1/Submissions/", True),
        ("http://localhost:8080", True),
        ("ftp://tasvideos.org", False),
        ("tasvideos.org", False),
        ("", False),
        (None, False),
    ],
)
def test_validate_url(url, expected: bool) -> None:
    assert validate_url(url) is expected
