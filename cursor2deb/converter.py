#!/usr/bin/env python3
"""Conversion pipeline turning the Cursor AppImage into a Debian package."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .assembler import PackageAssembler
from .builder import DebPackageBuilder
from .config import RunConfig
from .download import ImageDownloader
from .environment import check_dependencies, detect_architecture, required_tools
from .extractor import extract_image
from .release import ReleaseInfo, VersionResolver
from .utils import UsageError
from .validator import PackageReport, validate_package
from .workspace import CleanupHandler, WorkspaceLayout


@dataclass
class ConversionResult:
    """Result of a conversion run, including where the package ended up."""

    release: ReleaseInfo
    architecture: str
    package_path: Path
    build_method: str
    workspace: WorkspaceLayout
    icon_path: Optional[Path]
    report: PackageReport
    duration: float


class CursorDebConverter:
    """Run probe, resolve, download, extract, assemble, build and validate in order."""

    def __init__(
        self,
        config: RunConfig,
        logger: Optional[logging.Logger] = None,
        machine: Optional[str] = None,
        metadata_url: Optional[str] = None,
        workspace_base: Optional[Path] = None,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger("cursor2deb.converter")
        self.machine = machine
        self.metadata_url = metadata_url
        self.workspace_base = workspace_base

    def convert(self, cleanup: Optional[CleanupHandler] = None) -> ConversionResult:
        """Produce and validate the .deb.

        Without a registered ``cleanup`` handler the workspace is cleaned up
        before returning; with one, the handler owns that step.
        """
        owns_cleanup = cleanup is None
        if cleanup is None:
            cleanup = CleanupHandler(keep_temp=self.config.keep_temp, logger=self.logger)

        exit_code = 1
        try:
            result = self._run(cleanup)
            exit_code = 0
            return result
        finally:
            if owns_cleanup:
                cleanup.run(exit_code)

    def _run(self, cleanup: CleanupHandler) -> ConversionResult:
        started = time.monotonic()
        config = self.config
        self.logger.info("Starting Cursor AppImage to DEB converter")

        architecture = detect_architecture(self.machine)
        check_dependencies(required_tools(config))

        try:
            config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise UsageError(f"Cannot use output directory {config.output_dir}: {exc}") from exc

        workspace = WorkspaceLayout.create(self.workspace_base)
        cleanup.attach(workspace)
        self.logger.info("Temporary directory created: %s", workspace.root)

        resolver = VersionResolver(architecture, metadata_url=self.metadata_url)
        release = resolver.resolve(config.version)

        downloader = ImageDownloader(workspace.download_dir, architecture)
        image_path = downloader.download(release.download_url, release.version)

        extraction_root = extract_image(image_path, workspace.extract_dir)

        assembler = PackageAssembler(workspace.package_dir, architecture, copy_strategy=config.copy_strategy)
        package_dir = assembler.assemble(extraction_root, release.version)

        builder = DebPackageBuilder(config.output_dir, architecture, jobs=config.jobs)
        build = builder.build(package_dir, release.version)

        report = validate_package(build.package_path, verbose=config.verbose)

        duration = time.monotonic() - started
        self.logger.info("Conversion completed successfully in %ds", int(duration))
        self.logger.info("Package available at: %s", build.package_path)
        self.logger.info("Install with: sudo dpkg -i %s", build.package_path)

        return ConversionResult(
            release=release,
            architecture=architecture,
            package_path=build.package_path,
            build_method=build.method,
            workspace=workspace,
            icon_path=assembler.icon_source,
            report=report,
            duration=duration,
        )
