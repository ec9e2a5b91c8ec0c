"""Configuration models for codehealth.

Configuration is read from ``.codehealth.toml`` at the project root, or from
the ``[tool.codehealth]`` table of ``pyproject.toml``. Every field has a
default, so an empty or missing file yields the standard configuration.

Example ``.codehealth.toml``::

    ignore = ["legacy/", "*.stories.tsx"]

    [checks]
    nextjs = false
    accessibility = true

    [autofix]
    min_confidence = 95
"""

import logging
from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, Field, ValidationError

from ..constants import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_MAX_FILES,
    DEFAULT_MIN_CONFIDENCE,
    MAX_WATCHER_ISSUES,
    WATCHED_EXTENSIONS,
)
from .exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".codehealth.toml"


class CheckToggles(BaseModel):
    """Which categories the batch health check runs."""

    bugs: bool = True
    performance: bool = True
    consistency: bool = True
    imports: bool = True
    nextjs: bool = True
    accessibility: bool = Field(
        default=False,
        description="Accessibility findings feed the auto-fixer; scoring them is opt-in",
    )
    dead_code: bool = True
    package_health: bool = True
    directory_structure: bool = True
    large_files: bool = True
    complexity: bool = True
    todo_comments: bool = True
    outdated_patterns: bool = True
    naming: bool = True

    def enabled(self) -> list[str]:
        return [name for name, value in self.model_dump().items() if value]


class Thresholds(BaseModel):
    """Score thresholds used when reporting."""

    minimum: float = Field(default=70, ge=0, le=100, description="Score below which a check fails")
    target: float = Field(default=90, ge=0, le=100, description="Score the project aims for")


class AutoFixConfig(BaseModel):
    """Auto-fix behaviour."""

    enabled: bool = False
    min_confidence: int = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0, le=100)
    dry_run: bool = False


class WatcherConfig(BaseModel):
    """File watcher behaviour."""

    debounce_ms: int = Field(default=DEFAULT_DEBOUNCE_MS, ge=0)
    max_issues: int = Field(default=MAX_WATCHER_ISSUES, ge=1)
    extensions: list[str] = Field(default_factory=lambda: list(WATCHED_EXTENSIONS))


class HealthConfig(BaseModel):
    """Top-level codehealth configuration."""

    checks: CheckToggles = Field(default_factory=CheckToggles)
    ignore: list[str] = Field(
        default_factory=list,
        description="Additional ignore patterns (directory names, path fragments or globs)",
    )
    thresholds: Thresholds = Field(default_factory=Thresholds)
    autofix: AutoFixConfig = Field(default_factory=AutoFixConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    use_ast_bug_detector: bool = Field(
        default=False, description="Use the tree-sitter bug detector instead of line heuristics"
    )
    max_files: int = Field(default=DEFAULT_MAX_FILES, ge=1)


def load_config(root: str | Path = ".") -> HealthConfig:
    """Load configuration for the project at *root*.

    Args:
        root: Project root directory.

    Returns:
        The parsed configuration, or defaults when no configuration exists.

    Raises:
        InvalidConfigError: If a configuration file exists but cannot be
            parsed or fails validation.
    """
    root_path = Path(root)
    config_file = root_path / CONFIG_FILE_NAME
    pyproject = root_path / "pyproject.toml"

    data: dict[str, Any] | None = None
    source: Path | None = None

    if config_file.is_file():
        data = _read_toml(config_file)
        source = config_file
    elif pyproject.is_file():
        section = _read_toml(pyproject).get("tool", {}).get("codehealth")
        if section is not None:
            data = section
            source = pyproject

    if data is None:
        return HealthConfig()

    try:
        config = HealthConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid configuration in {source}: {e}") from e

    logger.debug(f"Loaded configuration from {source}")
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise InvalidConfigError(f"Failed to parse {path.name}: {e}") from e
