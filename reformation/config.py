"""Matching configuration loaded from YAML."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, ValidationError


class ReformationConfig(BaseModel):
    """Defaults applied to every record compiled with this configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: Literal["full", "search"] = "full"
    strict: bool = False
    ignore_case: bool = False
    multiline: bool = False
    dotall: bool = False

    def regex_flags(self) -> int:
        flags = 0
        if self.ignore_case:
            flags |= re.IGNORECASE
        if self.multiline:
            flags |= re.MULTILINE
        if self.dotall:
            flags |= re.DOTALL
        return flags


DEFAULT_CONFIG = ReformationConfig()


def load_config(path: Path | None = None) -> ReformationConfig:
    """Load and validate matching configuration from YAML."""

    config_path = path or Path(__file__).with_name("config.yaml")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {config_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file: {config_path}") from exc

    if raw is None:
        return DEFAULT_CONFIG
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    try:
        return ReformationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid config schema: {config_path}") from exc
