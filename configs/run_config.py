#!/usr/bin/env python3
"""Run configuration loaded once from a TOML file at process start.

The model is frozen: every run shares the same instance read-only.
"""

from __future__ import annotations

import logging
import os
import tomllib
from typing import Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from configs.config import Config
from utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RunConfig(BaseModel):
    """Repository identity and mutation ranges for every run."""

    username: str = Field(..., description="GitHub username operating the bot")
    repo: str = Field(..., description="Repository in owner/name form")
    repo_path: str = Field(..., description="Local path of the working copy")
    cron_schedule: str = Field("0 */8 * * *", description="Cron cadence for scheduled runs")
    min_files: int = Field(1, ge=0, description="Minimum number of files to change")
    max_files: int = Field(3, ge=0, description="Maximum number of files to change")
    min_lines: int = Field(1, ge=0, description="Minimum number of edits per file")
    max_lines: int = Field(5, ge=0, description="Maximum number of edits per file")
    debug: bool = Field(False, description="Verbose diagnostics")

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        parts = value.split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ValueError("Repository should be in the format 'owner/repo'")
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> "RunConfig":
        if self.min_files > self.max_files:
            raise ValueError(f"min_files ({self.min_files}) must not exceed max_files ({self.max_files})")
        if self.min_lines > self.max_lines:
            raise ValueError(f"min_lines ({self.min_lines}) must not exceed max_lines ({self.max_lines})")
        return self

    @property
    def owner(self) -> str:
        return self.repo.split("/")[0]

    @property
    def name(self) -> str:
        return self.repo.split("/")[1]

    @property
    def file_range(self) -> Tuple[int, int]:
        return self.min_files, self.max_files

    @property
    def line_range(self) -> Tuple[int, int]:
        return self.min_lines, self.max_lines


def load_run_config(path: str) -> RunConfig:
    """Load and validate the TOML run configuration.

    Args:
        path: Path to the TOML file

    Returns:
        Validated RunConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"Config file not found: {path}", code="NOT_FOUND")
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}", code="PARSE")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config {path}: {e}", code="IO")

    try:
        config = RunConfig(**data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid config {path}: {errors}", code="VALIDATION")

    logger.debug(f"Loaded run config from {path}: {config.model_dump()}")
    return config


def require_token() -> str:
    """Return the GitHub token from the environment or fail at startup."""
    token = Config.GITHUB_TOKEN or os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
    if not token:
        raise ConfigurationError("GITHUB_TOKEN environment variable not set", code="NO_TOKEN")
    return token
