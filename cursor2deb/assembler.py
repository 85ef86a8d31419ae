#!/usr/bin/env python3
"""Staging of the Debian package tree from an extracted AppImage."""

from __future__ import annotations

import logging
import os
import shutil
from collections import deque
from pathlib import Path
from typing import Optional

from .utils import AssemblyError, CommandExecutionError, run_command

PACKAGE_NAME = "cursor-ide"
APP_NAME = "cursor"
INSTALL_DIR = Path("/opt") / APP_NAME
ENTRY_POINT = "AppRun"
ICON_SUBDIR = Path("usr/share/icons/hicolor/512x512/apps")

ICON_CANDIDATES = ("code.png", "co.anysphere.cursor.png", "cursor.png")

PACKAGE_DEPENDS = (
    "libc6",
    "libgtk-3-0",
    "libxss1",
    "libasound2",
    "libdrm2",
    "libxkbcommon0",
    "libxcomposite1",
    "libxdamage1",
    "libxrandr2",
    "libgbm1",
    "libxft2",
    "libxinerama1",
)
PACKAGE_RECOMMENDS = ("git", "nodejs", "npm")
MAINTAINER = "Cursor DEB Packager <cursor@auto-convert.local>"
HOMEPAGE = "https://cursor.com"

EXECUTABLE_MODE = 0o755


def find_app_icon(extract_root: Path) -> Optional[Path]:
    """Return the application icon inside ``extract_root``, if any.

    Known filenames at the top level win; otherwise the first ``*.png`` found
    by a breadth-first walk with entries visited in name order.
    """
    for name in ICON_CANDIDATES:
        candidate = extract_root / name
        if candidate.is_file():
            return candidate

    queue = deque([extract_root])
    while queue:
        current = queue.popleft()
        try:
            entries = sorted(current.iterdir(), key=lambda item: item.name)
        except OSError:
            continue
        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_dir():
                queue.append(entry)
            elif entry.is_file() and entry.name.lower().endswith(".png"):
                return entry
    return None


def compute_installed_size(package_dir: Path) -> int:
    """Installed-Size in KiB, counted per entry the way dpkg-gencontrol does."""
    total = 0
    for root, dirs, files in os.walk(package_dir):
        root_path = Path(root)
        if root_path == package_dir:
            dirs[:] = [name for name in dirs if name != "DEBIAN"]
        total += len(dirs)
        for name in files:
            path = root_path / name
            if path.is_symlink():
                total += 1
            else:
                total += (path.stat().st_size + 1023) // 1024
    return total


class PackageAssembler:
    """Build the on-disk package tree consumed by ``dpkg-deb --build``."""

    def __init__(
        self,
        package_dir: Path,
        architecture: str,
        copy_strategy: str = "rsync",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.package_dir = package_dir
        self.architecture = architecture
        self.copy_strategy = copy_strategy
        self.logger = logger or logging.getLogger("cursor2deb.assembler")
        self.icon_source: Optional[Path] = None
        self.warnings: list[str] = []

    @property
    def install_root(self) -> Path:
        return self.package_dir / INSTALL_DIR.relative_to("/")

    def assemble(self, extraction_root: Path, version: str) -> Path:
        """Stage every file of the package and return the tree root."""
        self.logger.info("Creating .deb package structure...")
        try:
            self._create_skeleton()
            self.copy_application(extraction_root, self.install_root)
            self._write_launcher()
            self._install_icon(extraction_root)
            self._write_file(
                self.package_dir / "usr/share/applications" / f"{APP_NAME}.desktop",
                self.render_desktop_entry(),
            )
            installed_size = compute_installed_size(self.package_dir)
            self._write_file(
                self.package_dir / "DEBIAN" / "control",
                self.render_control(version, installed_size),
            )
            self._write_file(self.package_dir / "DEBIAN" / "postinst", self.render_postinst(), EXECUTABLE_MODE)
            self._write_file(self.package_dir / "DEBIAN" / "postrm", self.render_postrm(), EXECUTABLE_MODE)
        except OSError as exc:
            raise AssemblyError(f"Failed to assemble package tree: {exc}") from exc

        return self.package_dir

    def _create_skeleton(self) -> None:
        for relative in (
            Path("DEBIAN"),
            Path("usr/bin"),
            Path("usr/share/applications"),
            ICON_SUBDIR,
            INSTALL_DIR.relative_to("/"),
        ):
            (self.package_dir / relative).mkdir(parents=True, exist_ok=True)

    def copy_application(self, src: Path, dst: Path) -> None:
        """Mirror ``src`` into ``dst`` with the configured copy strategy."""
        self.logger.info("Copying files: application files")
        dst.mkdir(parents=True, exist_ok=True)

        if self.copy_strategy == "rsync":
            cmd = ["rsync", "-a", f"{src}/", f"{dst}/"]
            try:
                run_command(cmd, self.logger)
            except CommandExecutionError as exc:
                raise AssemblyError(f"rsync failed copying application files: {exc}") from exc
            return

        self._copy_tree_contents(src, dst)

    def _copy_tree_contents(self, src: Path, dst: Path) -> None:
        """Copy direct children from src to dst, keeping symlinks and modes."""
        for child in src.iterdir():
            target = dst / child.name
            if child.is_symlink():
                target.unlink(missing_ok=True)
                target.symlink_to(os.readlink(child))
            elif child.is_dir():
                shutil.copytree(child, target, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(child, target)

    def _write_file(self, path: Path, content: str, mode: Optional[int] = None) -> None:
        path.write_text(content, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)

    def _write_launcher(self) -> None:
        launcher = self.package_dir / "usr/bin" / APP_NAME
        self._write_file(launcher, self.render_launcher(), EXECUTABLE_MODE)

    def _install_icon(self, extraction_root: Path) -> None:
        icon_path = find_app_icon(extraction_root)
        if icon_path is None:
            message = "No icon found. Desktop entry may not display correctly."
            self.logger.warning(message)
            self.warnings.append(message)
            return

        shutil.copyfile(icon_path, self.package_dir / ICON_SUBDIR / f"{APP_NAME}.png")
        self.icon_source = icon_path
        self.logger.debug("Icon copied from: %s", icon_path)

    def render_launcher(self) -> str:
        return f"""#!/bin/bash
exec {INSTALL_DIR / ENTRY_POINT} --no-sandbox "$@"
"""

    def render_desktop_entry(self) -> str:
        return f"""[Desktop Entry]
Name=Cursor IDE
Comment=AI-first code editor
GenericName=Code Editor
Exec=/usr/bin/{APP_NAME} %U
Terminal=false
Type=Application
Icon={APP_NAME}
Categories=Development;IDE;TextEditor;
StartupWMClass=Cursor
MimeType=text/plain;application/x-cursor-project;
Keywords=editor;development;ide;ai;code;
"""

    def render_control(self, version: str, installed_size: int) -> str:
        return f"""Package: {PACKAGE_NAME}
Version: {version}
Section: development
Priority: optional
Architecture: {self.architecture}
Installed-Size: {installed_size}
Depends: {", ".join(PACKAGE_DEPENDS)}
Recommends: {", ".join(PACKAGE_RECOMMENDS)}
Maintainer: {MAINTAINER}
Homepage: {HOMEPAGE}
Description: Cursor IDE - AI-first code editor
 Cursor is an AI-first code editor based on VSCode.
 It offers advanced AI-powered code assistance features
 for modern development workflows.
 .
 This package was automatically created from the official AppImage.
"""

    def render_postinst(self) -> str:
        return f"""#!/bin/bash
set -e
chmod +x {INSTALL_DIR / ENTRY_POINT} || true
update-desktop-database -q || true
gtk-update-icon-cache -q /usr/share/icons/hicolor || true
"""

    def render_postrm(self) -> str:
        return f"""#!/bin/bash
set -e
case "$1" in
    remove|purge)
        update-desktop-database -q || true
        gtk-update-icon-cache -q /usr/share/icons/hicolor || true
        ;;
esac
if [ "$1" = "purge" ]; then
    rm -rf {INSTALL_DIR} || true
fi
"""
