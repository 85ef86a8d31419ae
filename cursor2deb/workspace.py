#!/usr/bin/env python3
"""Per-run temporary workspace and the process-exit cleanup hook."""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import AssemblyError, cleanup_dir

WORKSPACE_PREFIX = "cursor-convert-"


@dataclass(frozen=True)
class WorkspaceLayout:
    """Temporary directory tree owned by a single conversion run."""

    root: Path
    download_dir: Path
    extract_dir: Path
    package_dir: Path

    @classmethod
    def create(cls, base_dir: Optional[Path] = None) -> "WorkspaceLayout":
        """Make a fresh temporary tree with download, extract and deb subdirectories."""
        try:
            root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=str(base_dir) if base_dir else None))
        except OSError as exc:
            raise AssemblyError(f"Cannot create temporary directory: {exc}") from exc

        layout = cls(
            root=root,
            download_dir=root / "download",
            extract_dir=root / "extract",
            package_dir=root / "deb",
        )
        try:
            for path in (layout.download_dir, layout.extract_dir, layout.package_dir):
                path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            cleanup_dir(root)
            raise AssemblyError(f"Cannot prepare workspace {root}: {exc}") from exc
        return layout


class CleanupHandler:
    """Remove the workspace once per process, whichever way the run ends."""

    def __init__(
        self,
        keep_temp: bool = False,
        log_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.keep_temp = keep_temp
        self.log_path = log_path
        self.logger = logger or logging.getLogger("cursor2deb.workspace")
        self.workspace: Optional[WorkspaceLayout] = None
        self.registered = False
        self.completed = False

    def register(self) -> None:
        if self.registered:
            return
        atexit.register(self.run, 0)
        signal.signal(signal.SIGTERM, self._on_sigterm)
        self.registered = True

    def attach(self, workspace: WorkspaceLayout) -> None:
        self.workspace = workspace

    def _on_sigterm(self, signum, frame) -> None:
        raise SystemExit(128 + signum)

    def run(self, exit_code: int = 0) -> None:
        if self.completed:
            return
        self.completed = True

        workspace = self.workspace
        if workspace is not None and workspace.root.is_dir():
            if self.keep_temp:
                self.logger.info("Temporary files kept at: %s", workspace.root)
            else:
                self.logger.info("Cleaning up temporary files...")
                cleanup_dir(workspace.root, self.logger)

        if exit_code != 0:
            self.logger.error("Conversion terminated with error (code: %s)", exit_code)
            if self.log_path is not None:
                print(f"Check log file for details: {self.log_path}", file=sys.stderr)
