"""lessonlink: linked code/display lesson viewer."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]


def _source_tree_version() -> str | None:
    """Return [project].version from the nearest pyproject.toml, if running from a checkout."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError:
            return None
        project = data.get("project")
        if isinstance(project, dict) and project.get("name") == "lessonlink":
            raw = project.get("version")
            return str(raw) if raw else None
        return None
    return None


_checkout_version = _source_tree_version()
if _checkout_version is not None:
    __version__ = _checkout_version
else:
    try:
        __version__ = version("lessonlink")
    except PackageNotFoundError:
        __version__ = "0+unknown"
