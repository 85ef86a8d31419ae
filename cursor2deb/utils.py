#!/usr/bin/env python3
"""Utility helpers for cursor2deb."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Optional

ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~]|[\(\)][0-9A-Za-z])")
URL_SHAPE_RE = re.compile(r"^https?://")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "[%(levelname)s] %(message)s"


class Cursor2DebError(Exception):
    """Base exception for all cursor2deb errors."""


class UsageError(Cursor2DebError):
    """Raised for invalid command-line or configuration input."""


class UnsupportedPlatformError(Cursor2DebError):
    """Raised when the host architecture has no matching package target."""


class MissingDependencyError(Cursor2DebError):
    """Raised when required external tools are not installed."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(set(missing))
        super().__init__(f"Missing dependencies: {' '.join(self.missing)}")


class NetworkError(Cursor2DebError):
    """Raised when the release metadata endpoint cannot be reached."""


class MetadataError(Cursor2DebError):
    """Raised when release metadata is missing or malformed."""


class DownloadError(Cursor2DebError):
    """Raised when fetching the application image fails."""

    def __init__(self, message: str, reason: str = "unknown") -> None:
        self.reason = reason
        super().__init__(message)


class CommandExecutionError(Cursor2DebError):
    """Raised when a subprocess returns a non-zero exit status."""

    def __init__(self, message: str, returncode: int = -1, output: Optional[list[str]] = None) -> None:
        self.returncode = returncode
        self.output = output or []
        super().__init__(message)


class ExtractionError(Cursor2DebError):
    """Raised when the application image cannot be unpacked."""


class AssemblyError(Cursor2DebError):
    """Raised when the package tree cannot be staged."""


class PackagingError(Cursor2DebError):
    """Raised when every package build strategy failed."""


class CorruptArtifactError(Cursor2DebError):
    """Raised when the produced package fails its integrity check."""


class ArtifactNotFoundError(CorruptArtifactError):
    """Raised when the produced package is missing on disk."""


def setup_logging(
    log_path: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
    name: str = "cursor2deb",
) -> logging.Logger:
    """Configure the package logger: full record to file, leveled console output.

    Safe to call more than once; handlers are replaced, not stacked.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    if quiet:
        stream_handler.setLevel(logging.CRITICAL + 1)
    elif verbose:
        stream_handler.setLevel(logging.DEBUG)
    else:
        stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(stream_handler)
    return logger


def cleanup_dir(path: Path, logger: Optional[logging.Logger] = None) -> None:
    """Best-effort directory cleanup."""
    try:
        shutil.rmtree(path, ignore_errors=False)
    except FileNotFoundError:
        return
    except OSError as exc:  # pragma: no cover - best effort cleanup
        if logger:
            logger.warning("Failed to cleanup %s: %s", path, exc)


def command_exists(binary: str) -> bool:
    """Return True if a binary is available in PATH."""
    return shutil.which(binary) is not None


def is_http_url(value: object) -> bool:
    """Return True for strings that look like an http(s) URL."""
    return isinstance(value, str) and bool(URL_SHAPE_RE.match(value))


def sanitize_deb_version(version: str) -> str:
    """Convert a version label into a Debian-safe version string.

    Debian versions allow alphanumerics and ``. + ~ -``; anything else
    (including path separators) collapses to a dot.
    """
    if not version:
        return ""

    cleaned = re.sub(r"[^A-Za-z0-9.+~-]", ".", version.strip())
    cleaned = re.sub(r"\.+", ".", cleaned)
    return cleaned.strip(".-")


def human_size(num_bytes: int) -> str:
    """Format a byte count the way ``du -h`` does."""
    size = float(num_bytes)
    for unit in ("B", "K", "M"):
        if size < 1024:
            return f"{int(size)}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"


def strip_ansi_escapes(text: str) -> str:
    """Remove ANSI terminal escape codes from a log line."""
    return ANSI_ESCAPE_RE.sub("", text)


def run_command(
    cmd: list[str],
    logger: logging.Logger,
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    check: bool = True,
) -> tuple[int, list[str]]:
    """Run a command and stream combined stdout/stderr line-by-line to the debug log."""
    logger.debug("Running command: %s", " ".join(cmd))

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    try:
        process = subprocess.Popen(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=process_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except OSError as exc:
        raise CommandExecutionError(f"Failed to start {cmd[0]}: {exc}") from exc

    output_lines: list[str] = []
    assert process.stdout is not None

    for line in iter(process.stdout.readline, ""):
        stripped = strip_ansi_escapes(line.rstrip("\n")).strip()
        output_lines.append(stripped)
        if stripped:
            logger.debug(stripped)

    process.wait()

    if check and process.returncode != 0:
        joined = "\n".join(output_lines[-20:])
        raise CommandExecutionError(
            f"Command failed with exit code {process.returncode}: {' '.join(cmd)}\n{joined}",
            returncode=process.returncode,
            output=output_lines,
        )

    return process.returncode, output_lines
