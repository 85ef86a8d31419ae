#!/usr/bin/env python3
"""Release metadata lookup against the Cursor download API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .utils import MetadataError, NetworkError, is_http_url, sanitize_deb_version

METADATA_URL_TEMPLATE = "https://cursor.com/api/download?platform={platform}&releaseTrack=stable"

DEB_ARCH_TO_API_PLATFORM = {
    "amd64": "linux-x64",
    "arm64": "linux-arm64",
}

# (connect, read) seconds
DEFAULT_METADATA_TIMEOUT = (30.0, 60.0)


@dataclass(frozen=True)
class ReleaseInfo:
    """Where to fetch the image and which version label to package it under."""

    download_url: str
    version: str


def metadata_url_for(architecture: str) -> str:
    """Return the stable-track download API URL for a Debian architecture."""
    platform_id = DEB_ARCH_TO_API_PLATFORM.get(architecture, "linux-x64")
    return METADATA_URL_TEMPLATE.format(platform=platform_id)


class VersionResolver:
    """Resolve the latest release, optionally relabelling its version."""

    def __init__(
        self,
        architecture: str = "amd64",
        metadata_url: Optional[str] = None,
        timeout: tuple[float, float] = DEFAULT_METADATA_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.metadata_url = metadata_url or metadata_url_for(architecture)
        self.timeout = timeout
        self.logger = logger or logging.getLogger("cursor2deb.release")

    def _fetch_metadata(self) -> dict:
        try:
            response = requests.get(
                self.metadata_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            self.logger.debug("API URL: %s", self.metadata_url)
            raise NetworkError(f"Failed to contact release API: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MetadataError(f"Release API returned invalid JSON: {exc}") from exc

        self.logger.debug("API response: %s", payload)
        if not isinstance(payload, dict):
            raise MetadataError("Release API response is not a JSON object")
        return payload

    def resolve(self, explicit_version: Optional[str] = None) -> ReleaseInfo:
        """Return the download URL and version label for the release to package.

        An explicit version replaces the label only; the binary fetched is
        still whatever the API currently points at.
        """
        self.logger.info("Fetching latest version information...")
        payload = self._fetch_metadata()

        download_url = payload.get("downloadUrl")
        if download_url is None or download_url == "":
            raise MetadataError("Failed to get download URL from release metadata")
        if not is_http_url(download_url):
            raise MetadataError(f"Invalid download URL format: {download_url}")

        if explicit_version:
            version_label = explicit_version
            self.logger.info("Using specified version: %s", explicit_version)
            self.logger.warning(
                "Version label %s is applied to the latest download; the API does not "
                "serve version-specific builds",
                explicit_version,
            )
        else:
            version_label = payload.get("version")
            if not isinstance(version_label, str) or not version_label.strip():
                raise MetadataError("Release metadata does not contain a version")

        version = sanitize_deb_version(version_label)
        if not version:
            raise MetadataError(f"Unusable version label: {version_label!r}")
        if explicit_version and version != explicit_version:
            self.logger.warning(
                "Version %r is not a valid Debian version; packaging as %s", explicit_version, version
            )

        self.logger.debug("Download URL: %s", download_url)
        self.logger.debug("Version: %s", version)
        return ReleaseInfo(download_url=download_url, version=version)
