"""Report the kepayroll version for health checks and metadata endpoints."""

from __future__ import annotations

import re
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Final

PACKAGE_NAME: Final = "kepayroll"
PYPROJECT_PATH: Final = Path(__file__).resolve().parents[3] / "pyproject.toml"

_VERSION_LINE = re.compile(r'^version\s*=\s*"(?P<version>[^"]+)"\s*$')


@lru_cache(maxsize=1)
def get_project_version() -> str:
    """Return the installed distribution version.

    Source checkouts without package metadata (tests running against ``src``)
    fall back to the ``[project]`` table of ``pyproject.toml``.
    """

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        return read_pyproject_version(PYPROJECT_PATH)


def read_pyproject_version(path: Path) -> str:
    if not path.exists():
        raise RuntimeError(f"Unable to locate project metadata at {path}")

    in_project = False
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("["):
            in_project = line == "[project]"
            continue
        if not in_project:
            continue
        match = _VERSION_LINE.match(line)
        if match:
            return match.group("version")

    raise RuntimeError(f"No [project] version declared in {path.name}")


__all__ = ["PACKAGE_NAME", "get_project_version", "read_pyproject_version"]
