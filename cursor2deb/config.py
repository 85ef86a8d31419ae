#!/usr/bin/env python3
"""Run configuration: defaults, YAML config file and CLI overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .utils import UsageError

COPY_STRATEGIES = ("rsync", "copy")

# Shell-style names are accepted so existing KEY=value habits carry over.
CONFIG_KEY_ALIASES = {
    "keep_temp": "keep_temp",
    "verbose": "verbose",
    "quiet": "quiet",
    "output_dir": "output_dir",
    "version": "version",
    "specific_version": "version",
    "copy_strategy": "copy_strategy",
    "use_rsync": "use_rsync",
    "jobs": "jobs",
}

BOOLEAN_KEYS = {"keep_temp", "verbose", "quiet", "use_rsync"}

logger = logging.getLogger("cursor2deb.config")


@dataclass(frozen=True)
class RunConfig:
    """Resolved operator choices for one conversion run."""

    keep_temp: bool = False
    verbose: bool = False
    quiet: bool = False
    output_dir: Path = Path(".")
    config_file: Optional[Path] = None
    version: Optional[str] = None
    copy_strategy: str = "rsync"
    jobs: Optional[int] = None

    @property
    def use_rsync(self) -> bool:
        return self.copy_strategy == "rsync"


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "1", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "0", "off", ""}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise UsageError(f"Invalid boolean for {key}: {value!r}")


def _coerce_jobs(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        jobs = int(value)
    except (TypeError, ValueError) as exc:
        raise UsageError(f"Invalid jobs value: {value!r}") from exc
    if jobs < 1:
        raise UsageError(f"jobs must be a positive integer, got {jobs}")
    return jobs


def normalize_config_values(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map user-facing keys onto RunConfig fields and coerce their types."""
    values: dict[str, Any] = {}

    for key, value in raw.items():
        canonical = CONFIG_KEY_ALIASES.get(str(key).strip().lower())
        if canonical is None:
            logger.warning("Ignoring unknown configuration key: %s", key)
            continue

        if canonical in BOOLEAN_KEYS:
            value = _coerce_bool(canonical, value)

        if canonical == "use_rsync":
            values["copy_strategy"] = "rsync" if value else "copy"
        elif canonical == "copy_strategy":
            strategy = str(value).strip().lower()
            if strategy not in COPY_STRATEGIES:
                raise UsageError(f"Unknown copy strategy: {value}")
            values["copy_strategy"] = strategy
        elif canonical == "jobs":
            values["jobs"] = _coerce_jobs(value)
        elif canonical == "output_dir":
            values["output_dir"] = Path(str(value)).expanduser()
        elif canonical == "version":
            values["version"] = str(value).strip() if value is not None else None
        else:
            values[canonical] = value

    return values


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML mapping of overrides.

    A missing file only logs a warning; an unreadable or non-mapping document
    is a usage error.
    """
    path = path.expanduser()
    if not path.is_file():
        logger.warning("Configuration file not found, ignoring: %s", path)
        return {}

    logger.info("Loading configuration from: %s", path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise UsageError(f"Cannot read configuration file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise UsageError(f"Configuration file must contain a mapping: {path}")

    return normalize_config_values(data)


def build_run_config(
    cli_values: Mapping[str, Any],
    file_values: Optional[Mapping[str, Any]] = None,
    cwd: Optional[Path] = None,
) -> RunConfig:
    """Merge defaults < config file < explicit CLI flags into a RunConfig.

    ``cli_values`` entries set to None mean "flag not given".
    """
    merged: dict[str, Any] = {}
    merged.update(file_values or {})
    merged.update({key: value for key, value in cli_values.items() if value is not None})

    output_dir = merged.get("output_dir")
    if output_dir is None:
        output_dir = cwd or Path.cwd()
    config_file = merged.get("config_file")

    return RunConfig(
        keep_temp=bool(merged.get("keep_temp", False)),
        verbose=bool(merged.get("verbose", False)),
        quiet=bool(merged.get("quiet", False)),
        output_dir=Path(output_dir).expanduser().resolve(),
        config_file=Path(config_file) if config_file else None,
        version=merged.get("version") or None,
        copy_strategy=merged.get("copy_strategy", "rsync"),
        jobs=merged.get("jobs"),
    )
