#!/usr/bin/env python3
"""Streaming download of the application image."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional

import requests

from .utils import DownloadError, is_http_url

DOWNLOAD_FAILURE_REASONS = {
    "malformed_url": "URL malformed or contains invalid characters",
    "host_resolution": "Couldn't resolve host",
    "connection": "Couldn't connect to server",
    "http_status": "HTTP error response (404, 403, etc.)",
    "timeout": "Timeout reached",
    "unknown": "Unknown download error",
}

DEB_ARCH_TO_IMAGE_MACHINE = {
    "amd64": "x86_64",
    "arm64": "aarch64",
}

IMAGE_NAME_TEMPLATE = "Cursor-{version}-{machine}.AppImage"
USER_AGENT = "Mozilla/5.0 (Linux; x86_64) AppleWebKit/537.36"
CHUNK_SIZE = 1024 * 1024

# (connect, read) seconds
DEFAULT_DOWNLOAD_TIMEOUT = (30.0, 1800.0)

_NAME_RESOLUTION_MARKERS = (
    "NameResolutionError",
    "Name or service not known",
    "nodename nor servname",
    "Temporary failure in name resolution",
    "getaddrinfo failed",
)


def classify_request_error(exc: requests.RequestException) -> str:
    """Map a requests exception onto a DOWNLOAD_FAILURE_REASONS key."""
    if isinstance(exc, requests.Timeout):
        return "timeout"
    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                        requests.exceptions.InvalidSchema)):
        return "malformed_url"
    if isinstance(exc, requests.HTTPError):
        return "http_status"
    if isinstance(exc, requests.ConnectionError):
        text = str(exc)
        if any(marker in text for marker in _NAME_RESOLUTION_MARKERS):
            return "host_resolution"
        return "connection"
    return "unknown"


class ImageDownloader:
    """Fetch an AppImage into the workspace download directory."""

    def __init__(
        self,
        download_dir: Path,
        architecture: str = "amd64",
        timeout: tuple[float, float] = DEFAULT_DOWNLOAD_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.download_dir = download_dir
        self.architecture = architecture
        self.timeout = timeout
        self.logger = logger or logging.getLogger("cursor2deb.download")

    def image_path_for(self, version: str) -> Path:
        machine = DEB_ARCH_TO_IMAGE_MACHINE.get(self.architecture, "x86_64")
        return self.download_dir / IMAGE_NAME_TEMPLATE.format(version=version, machine=machine)

    def _fail(self, url: str, reason: str, detail: str = "") -> DownloadError:
        description = DOWNLOAD_FAILURE_REASONS[reason]
        self.logger.error("Download failed: %s", description)
        self.logger.error("URL that failed: %s", url)
        message = f"Download failed ({description})"
        if detail:
            message = f"{message}: {detail}"
        return DownloadError(message, reason=reason)

    def download(self, url: str, version: str) -> Path:
        """Stream ``url`` to disk and return the executable image path."""
        target = self.image_path_for(version)
        self.logger.info("Downloading Cursor IDE v%s...", version)
        self.logger.debug("Download URL: %s", url)
        self.logger.debug("Target path: %s", target)

        if not is_http_url(url):
            raise self._fail(str(url), "malformed_url")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DownloadError(f"Cannot create download directory {target.parent}: {exc}", reason="unknown") from exc

        try:
            with requests.get(
                url,
                stream=True,
                allow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                with target.open("wb") as output:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            output.write(chunk)
        except requests.RequestException as exc:
            target.unlink(missing_ok=True)
            raise self._fail(url, classify_request_error(exc), str(exc)) from exc
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise DownloadError(f"Cannot write {target}: {exc}", reason="unknown") from exc

        self._verify(target)
        self.logger.info("Download completed successfully")
        return target

    def _verify(self, target: Path) -> None:
        if not target.is_file():
            raise DownloadError("AppImage file not found after download", reason="unknown")

        if target.stat().st_size == 0:
            target.unlink(missing_ok=True)
            raise DownloadError("Downloaded file is empty", reason="unknown")

        try:
            mode = target.stat().st_mode
            target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as exc:
            raise DownloadError(f"Cannot make {target} executable: {exc}", reason="unknown") from exc
        if not os.access(target, os.X_OK):
            raise DownloadError(f"Downloaded file is not executable: {target}", reason="unknown")
