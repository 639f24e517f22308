"""Service discovery: find framework projects under a directory tree.

Markers:
    - ``manage.py`` → django
    - ``artisan`` → laravel
    - ``prisma/*.prisma`` → prisma

Hidden directories, ``node_modules`` and ``venv`` are never entered, and
the walk does not descend into a directory once it is recognised as a
service. Services are named after their directory and returned sorted by
path so discovery is deterministic.
"""

from __future__ import annotations

import os
from pathlib import Path

from migra.core.errors import ConfigError
from migra.core.logging import get_logger
from migra.models import Service

logger = get_logger(__name__)

SKIP_DIRS = frozenset({"node_modules", "venv"})


def detect_framework(path: Path) -> str | None:
    """Return the adapter type for ``path``, or None if it is not a service."""
    if (path / "manage.py").is_file():
        return "django"
    if (path / "artisan").is_file():
        return "laravel"
    prisma_dir = path / "prisma"
    if prisma_dir.is_dir() and any(p.suffix == ".prisma" for p in prisma_dir.iterdir()):
        return "prisma"
    return None


def discover_services(root: str | Path) -> list[Service]:
    """Walk ``root`` and return a Service for every recognised project.

    Raises:
        ConfigError: ``root`` does not exist or is not a directory.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise ConfigError(f"discovery root is not a directory: {root_path}")

    services: list[Service] = []
    for dirpath, dirnames, _ in os.walk(root_path):
        current = Path(dirpath)
        framework = detect_framework(current)
        if framework is not None:
            services.append(
                Service(name=current.name, type=framework, path=str(current), working_dir=str(current))
            )
            dirnames.clear()
            continue
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS
        )

    logger.debug("config.discovery.done", root=str(root_path), found=len(services))
    return services


__all__ = ["detect_framework", "discover_services"]
