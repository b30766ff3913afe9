from __future__ import annotations

import re
from pathlib import Path

import pytest

from reformation.config import DEFAULT_CONFIG, ReformationConfig, load_config


def test_load_default_config() -> None:
    config = load_config()

    assert config == DEFAULT_CONFIG
    assert config.mode == "full"
    assert config.strict is False


def test_load_config_from_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("mode: search\nignore_case: true\n", encoding="utf-8")

    config = load_config(path)

    assert config.mode == "search"
    assert config.regex_flags() == re.IGNORECASE


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == DEFAULT_CONFIG


def test_load_config_raises_for_unknown_key(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("mode: full\nanchor: true\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid config schema"):
        load_config(path)


def test_load_config_raises_for_bad_mode(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("mode: partial\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid config schema"):
        load_config(path)


def test_load_config_raises_for_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Config file not found"):
        load_config(tmp_path / "missing.yaml")


def test_load_config_raises_for_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- full\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config(path)


def test_regex_flags_combine() -> None:
    config = ReformationConfig(ignore_case=True, multiline=True, dotall=True)

    assert config.regex_flags() == re.IGNORECASE | re.MULTILINE | re.DOTALL
