#!/usr/bin/env python3
"""Post-build integrity check of the produced .deb."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import (
    ArtifactNotFoundError,
    CommandExecutionError,
    CorruptArtifactError,
    human_size,
    run_command,
)


@dataclass(frozen=True)
class PackageReport:
    """Outcome of validating a built package."""

    path: Path
    size_bytes: int
    info: list[str]


def validate_package(
    package_path: Path,
    verbose: bool = False,
    logger: Optional[logging.Logger] = None,
) -> PackageReport:
    """Check the artifact with ``dpkg-deb --info`` and report its size."""
    logger = logger or logging.getLogger("cursor2deb.validator")
    logger.info("Validating package...")

    if not package_path.is_file():
        raise ArtifactNotFoundError(f"Package not found: {package_path}")

    try:
        _, info = run_command(["dpkg-deb", "--info", str(package_path)], logger)
    except CommandExecutionError as exc:
        raise CorruptArtifactError(f"Package is corrupted or invalid: {package_path}") from exc

    size_bytes = package_path.stat().st_size
    logger.info("Package validated successfully (size: %s)", human_size(size_bytes))

    if verbose:
        logger.info("Package information:")
        for line in info:
            logger.info("  %s", line)

    return PackageReport(path=package_path, size_bytes=size_bytes, info=info)
