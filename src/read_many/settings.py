from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field

from read_many.config import DEFAULT_MAX_BYTES, DEFAULT_MAX_LINES, Budget

ENV_FILE = find_dotenv(usecwd=True)

MAX_BYTES_ENV = "READ_MANY_MAX_BYTES"
MAX_LINES_ENV = "READ_MANY_MAX_LINES"


def env_int(name: str, default: int) -> int:
    """Read an integer override from the environment, then from the `.env` file.

    Args:
        name (str): variable name
        default (int): value used when the variable is unset or blank

    Raises:
        ValueError: if the value is not an integer

    Returns:
        int: the configured value
    """
    raw = os.environ.get(name)
    if raw is None and ENV_FILE:
        raw = dotenv_values(ENV_FILE).get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from e


class Settings(BaseModel):
    """Configuration settings for the read_many command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    files: list[str] = Field(default_factory=list, description="File specs: path[:offset[:limit]].")
    request: Path | None = Field(default=None, description="JSON or YAML request document.")
    cwd: Path = Field(default_factory=Path.cwd, description="Base directory for relative paths.")
    output: Path | None = Field(default=None, description="Write combined text here instead of stdout.")
    report: Path | None = Field(default=None, description="Write the report here (.json, .yaml, .yml).")
    stop_on_error: bool = Field(default=False, description="Stop on first error.")
    log_file: str = Field(default="", description="Log file path.")

    max_bytes: int = Field(
        default_factory=lambda: env_int(MAX_BYTES_ENV, DEFAULT_MAX_BYTES),
        gt=0,
        description="Combined output byte ceiling.",
    )
    max_lines: int = Field(
        default_factory=lambda: env_int(MAX_LINES_ENV, DEFAULT_MAX_LINES),
        gt=0,
        description="Combined output line ceiling.",
    )

    @property
    def budget(self) -> Budget:
        """Combined ceilings as a `Budget`."""
        return Budget(max_bytes=self.max_bytes, max_lines=self.max_lines)
