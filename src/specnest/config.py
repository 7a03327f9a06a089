"""Configuration loaded from the ``[tool.specnest]`` table of pyproject.toml."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from specnest.exceptions import SpecConfigurationError

CheckMode = Literal["ignore", "warn", "error"]


class SpecnestConfig(BaseModel):
    """Runner settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    duplicate_descriptions: CheckMode = "warn"
    late_hooks: CheckMode = "warn"


def load_config(path: str | Path = "pyproject.toml") -> SpecnestConfig:
    """Load configuration, falling back to defaults when nothing is configured."""
    config_path = Path(path)
    if not config_path.exists():
        return SpecnestConfig()

    try:
        content = tomllib.loads(config_path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise SpecConfigurationError(f"Unable to read {config_path}: {e}") from e

    table = content.get("tool", {}).get("specnest", {})
    try:
        return SpecnestConfig.model_validate(table)
    except ValidationError as e:
        raise SpecConfigurationError(
            f"Invalid [tool.specnest] configuration in {config_path}: {e}"
        ) from e
