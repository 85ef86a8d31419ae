#!/usr/bin/env python3
"""Entry point for cursor2deb."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import NoReturn, Optional

from .config import COPY_STRATEGIES, RunConfig, build_run_config, load_config_file
from .converter import CursorDebConverter
from .utils import Cursor2DebError, UsageError, setup_logging
from .workspace import CleanupHandler

EXAMPLES = """examples:
  cursor2deb                        standard conversion
  cursor2deb -v -k                  verbose mode, keep temp files
  cursor2deb -o /tmp/packages       output to /tmp/packages
  cursor2deb --version 0.42.0       label the package with a specific version
"""


def default_log_path() -> Path:
    return Path("/tmp") / f"cursor-convert-{int(time.time())}.log"


class HelpOnErrorParser(argparse.ArgumentParser):
    """Print the full help, not just usage, on invalid arguments."""

    def error(self, message: str) -> NoReturn:
        self.print_help(sys.stderr)
        self.exit(2, f"\n{self.prog}: error: {message}\n")


def build_parser(log_path: Optional[Path] = None) -> argparse.ArgumentParser:
    """Build command-line parser."""
    parser = HelpOnErrorParser(
        prog="cursor2deb",
        description="Convert the Cursor IDE AppImage into a Debian/Ubuntu .deb package.",
        epilog=EXAMPLES + (f"\nlog file: {log_path}\n" if log_path else ""),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-k", "--keep-temp", action="store_true", default=None,
                        help="Keep temporary files after completion")
    parser.add_argument("-v", "--verbose", action="store_true", default=None,
                        help="Verbose mode with additional details")
    parser.add_argument("-q", "--quiet", action="store_true", default=None,
                        help="Quiet mode (suppress console messages)")
    parser.add_argument("-o", "--output", dest="output_dir", metavar="DIR",
                        help="Output directory for the .deb package (default: current directory)")
    parser.add_argument("-c", "--config", dest="config_file", metavar="FILE",
                        help="YAML configuration file with option overrides")
    parser.add_argument("--version", dest="version", metavar="VERSION",
                        help="Version label for the produced package")
    parser.add_argument("--no-rsync", dest="copy_strategy", action="store_const", const="copy",
                        help="Use a plain recursive copy instead of rsync")
    parser.add_argument("--copy-strategy", dest="copy_strategy", choices=COPY_STRATEGIES,
                        help="How application files are copied into the package tree")
    parser.add_argument("-j", "--jobs", type=int, metavar="N",
                        help="Parallel jobs hint for package compression")
    return parser


def resolve_config(args: argparse.Namespace) -> RunConfig:
    """Merge parsed flags with the optional config file."""
    if args.jobs is not None and args.jobs < 1:
        raise UsageError(f"--jobs must be a positive integer, got {args.jobs}")

    file_values = {}
    if args.config_file:
        file_values = load_config_file(Path(args.config_file))

    cli_values = {
        "keep_temp": args.keep_temp,
        "verbose": args.verbose,
        "quiet": args.quiet,
        "output_dir": Path(args.output_dir).expanduser() if args.output_dir else None,
        "config_file": args.config_file,
        "version": args.version,
        "copy_strategy": args.copy_strategy,
        "jobs": args.jobs,
    }
    return build_run_config(cli_values, file_values)


def main(argv: Optional[list[str]] = None) -> int:
    """Program entrypoint."""
    log_path = default_log_path()
    parser = build_parser(log_path)
    args = parser.parse_args(argv)

    logger = setup_logging(log_path, verbose=bool(args.verbose), quiet=bool(args.quiet))
    try:
        config = resolve_config(args)
    except UsageError as exc:
        logger.error("%s", exc)
        print(f"Check log file for details: {log_path}", file=sys.stderr)
        return 1

    logger = setup_logging(log_path, verbose=config.verbose, quiet=config.quiet)
    cleanup = CleanupHandler(keep_temp=config.keep_temp, log_path=log_path, logger=logger)
    cleanup.register()

    exit_code = 1
    try:
        CursorDebConverter(config).convert(cleanup)
        exit_code = 0
    except Cursor2DebError as exc:
        logger.error("%s", exc)
    except OSError as exc:
        logger.error("Unexpected system error: %s", exc)
        logger.debug("Traceback:", exc_info=True)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        exit_code = 130
    except SystemExit as exc:
        exit_code = exc.code if isinstance(exc.code, int) else 1
        raise
    finally:
        cleanup.run(exit_code)

    if exit_code == 0 and config.verbose:
        logger.info("Full log available at: %s", log_path)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
