"""Utilities for retrieving the backend package version."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Final

import tomllib

DISTRIBUTION_NAME: Final[str] = "telegram-claude-chat"

_PYPROJECT_PATH = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _read_pyproject_version(path: Path = _PYPROJECT_PATH) -> str | None:
    """Fall back to pyproject.toml when the distribution is not installed."""
    if not path.exists():
        return None

    with path.open("rb") as fp:
        project = tomllib.load(fp).get("project")

    if isinstance(project, dict) and isinstance(project.get("version"), str):
        return project["version"]
    return None


def _resolve_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return _read_pyproject_version() or "0.0.0"


APP_VERSION: Final[str] = _resolve_version()

__all__ = ["APP_VERSION", "DISTRIBUTION_NAME"]
