#!/usr/bin/env python3
"""AppImage self-extraction."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .utils import CommandExecutionError, ExtractionError, run_command

EXTRACTION_ROOT_NAME = "squashfs-root"


def extract_image(image_path: Path, extract_dir: Path, logger: Optional[logging.Logger] = None) -> Path:
    """Unpack ``image_path`` into ``extract_dir`` and return the squashfs root.

    A zero exit status without the root directory is treated as a failure too.
    """
    logger = logger or logging.getLogger("cursor2deb.extractor")
    logger.info("Extracting AppImage...")

    image_path = image_path.resolve()
    extract_dir = extract_dir.resolve()
    extract_dir.mkdir(parents=True, exist_ok=True)

    try:
        run_command([str(image_path), "--appimage-extract"], logger, cwd=extract_dir)
    except CommandExecutionError as exc:
        raise ExtractionError(f"Failed to extract AppImage: {exc}") from exc

    extraction_root = extract_dir / EXTRACTION_ROOT_NAME
    if not extraction_root.is_dir():
        raise ExtractionError(f"{EXTRACTION_ROOT_NAME} directory not found after extraction")

    logger.info("Extraction completed successfully")
    return extraction_root
