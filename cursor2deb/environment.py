#!/usr/bin/env python3
"""Host probing: architecture tag and required external tools."""

from __future__ import annotations

import logging
import platform
from typing import Iterable, Optional

from .config import RunConfig
from .utils import MissingDependencyError, UnsupportedPlatformError, command_exists

MACHINE_TO_DEB_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

INSTALL_HINTS = {
    "dpkg-deb": "sudo apt-get install dpkg",
    "rsync": "sudo apt-get install rsync",
    "fakeroot": "sudo apt-get install fakeroot",
}

logger = logging.getLogger("cursor2deb.environment")


def detect_architecture(machine: Optional[str] = None) -> str:
    """Return the Debian architecture tag for the host (or the given machine id)."""
    raw = machine if machine is not None else platform.machine()
    arch = MACHINE_TO_DEB_ARCH.get(raw.strip().lower())
    if arch is None:
        raise UnsupportedPlatformError(f"Unsupported architecture: {raw}")

    logger.debug("Detected architecture: %s", arch)
    return arch


def required_tools(config: RunConfig) -> set[str]:
    """Return the external tools a run with ``config`` needs on PATH."""
    tools = {"dpkg-deb"}
    if config.use_rsync:
        tools.add("rsync")
    return tools


def check_dependencies(tools: Iterable[str]) -> None:
    """Fail once, naming every tool missing from PATH."""
    missing = sorted(tool for tool in set(tools) if not command_exists(tool))
    if missing:
        logger.error("Missing dependencies: %s", " ".join(missing))
        for tool in missing:
            hint = INSTALL_HINTS.get(tool)
            if hint:
                logger.info("Install %s with: %s", tool, hint)
        raise MissingDependencyError(missing)

    logger.debug("All dependencies satisfied")
