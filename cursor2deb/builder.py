#!/usr/bin/env python3
"""Build backend wrapping dpkg-deb with ordered fallbacks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .assembler import PACKAGE_NAME
from .utils import CommandExecutionError, PackagingError, command_exists, run_command


@dataclass(frozen=True)
class BuildStrategy:
    """One way of invoking dpkg-deb."""

    name: str
    command: list[str]
    env: dict[str, str] = field(default_factory=dict)
    requires: Optional[str] = None


@dataclass
class BuildResult:
    """Structured result of a successful package build."""

    package_path: Path
    method: str
    attempts: list[str]


def artifact_name(version: str, architecture: str) -> str:
    """Return the Debian file name for a cursor-ide build."""
    return f"{PACKAGE_NAME}_{version}_{architecture}.deb"


class DebPackageBuilder:
    """Build a .deb from a staged tree, trying each strategy until one works.

    Order: plain dpkg-deb, then under fakeroot (ownership problems in
    restricted environments), then without compression (compressor failures).
    """

    def __init__(
        self,
        output_dir: Path,
        architecture: str,
        jobs: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.output_dir = output_dir
        self.architecture = architecture
        self.jobs = jobs
        self.logger = logger or logging.getLogger("cursor2deb.builder")

    def strategies(self, package_dir: Path, output_path: Path) -> list[BuildStrategy]:
        """Return the build invocations in the order they are tried."""
        primary = ["dpkg-deb", "--root-owner-group", "-Zxz", "--build", str(package_dir), str(output_path)]
        # dpkg-deb compresses in-process; older releases ignore the variable.
        env = {"DPKG_DEB_THREADS_MAX": str(self.jobs)} if self.jobs else {}
        return [
            BuildStrategy("primary", primary, env),
            BuildStrategy("fakeroot", ["fakeroot"] + primary, env, requires="fakeroot"),
            BuildStrategy(
                "uncompressed",
                ["dpkg-deb", "--root-owner-group", "-Znone", "--build", str(package_dir), str(output_path)],
            ),
        ]

    def build(self, package_dir: Path, version: str) -> BuildResult:
        """Build the package into the output directory and return where it landed."""
        package_dir = package_dir.resolve()
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PackagingError(f"Cannot create output directory {self.output_dir}: {exc}") from exc
        output_path = self.output_dir.resolve() / artifact_name(version, self.architecture)

        self.logger.info("Building .deb package...")
        self.logger.debug("Building package from: %s", package_dir)
        self.logger.debug("Output path: %s", output_path)

        attempts: list[str] = []
        for strategy in self.strategies(package_dir, output_path):
            if strategy.requires and not command_exists(strategy.requires):
                self.logger.info("Skipping %s build: %s is not installed", strategy.name, strategy.requires)
                continue

            attempts.append(strategy.name)
            if len(attempts) > 1:
                self.logger.info("Previous build failed, trying %s build...", strategy.name)

            if self._attempt(strategy, output_path):
                self.logger.info("Package created successfully: %s (method: %s)", output_path, strategy.name)
                return BuildResult(package_path=output_path, method=strategy.name, attempts=attempts)

        output_path.unlink(missing_ok=True)
        raise PackagingError(
            f"Failed to build .deb package with all methods (tried: {', '.join(attempts)})"
        )

    def _attempt(self, strategy: BuildStrategy, output_path: Path) -> bool:
        try:
            run_command(strategy.command, self.logger, env=strategy.env or None)
        except CommandExecutionError as exc:
            self.logger.warning("%s build failed: %s", strategy.name, exc)
            output_path.unlink(missing_ok=True)
            return False

        if not output_path.is_file():
            self.logger.warning("%s build reported success but produced no file", strategy.name)
            return False
        return True
