"""
timestamp_rename

Renames the image and video files of a folder to the timestamp they were
captured at, e.g. ``2023-05-25_19-47-30.jpg``.

Features:
    - Reads EXIF DateTimeOriginal of the primary image (never the thumbnail).
    - Falls back to the CreationDate and then CreateDate tags via exiftool.
      Names derived from CreateDate carry a " (utc)" marker because the tag
      has no timezone offset.
    - Refuses to rename anything if two files resolve to the same timestamp.
    - Asks for confirmation if any file had to be skipped.

Usage:
    timestamp-rename --folder <folder_path> [--dry-run] [--yes] [--verbose]

Dependencies:
    - Pillow
    - pillow-heif (for reading EXIF from .heic files)
    - exiftool (must be installed and in PATH, or passed via --exiftool)
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from datetime import timedelta
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
import sys
from timeit import default_timer as timer
from typing import Callable, Optional

from . import __version__
from .errors import SkippedFileError
from .executor import execute_plan
from .plan import build_plan, scan_folder
from .resolver import TimestampResolver
from .sources import default_sources

PROG_NAME = 'timestamp-rename'
CONFIRM_PROMPT = 'Are all the warnings okay with you? [y/n] '


@dataclass
class RenameConfig:
    """Options controlling a run."""
    dry_run: bool = False
    assume_yes: bool = False
    exiftool: str = 'exiftool'


@dataclass
class ProcessingStats:  # pylint: disable=too-many-instance-attributes
    """Statistics from processing a folder of media files."""
    scanned_count: int = 0
    planned_count: int = 0
    rename_count: int = 0
    failed_count: int = 0
    warning_count: int = 0
    collision_count: int = 0
    dry_run: bool = False
    elapsed: timedelta = field(default_factory=timedelta)


class _BelowLevelFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def setup_logger(verbose: bool = False,
                 log_file: Optional[str] = None) -> logging.Logger:
    """Configures and returns the logger for the package.

    Progress messages go to stdout, warnings and errors to stderr.

    Args:
        verbose (bool): If True, set log level to DEBUG; otherwise INFO.
        log_file (str, optional): Also write to this file, rotated daily.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger('timestamp_rename')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_formatter = logging.Formatter("%(message)s")
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(console_formatter)
    stdout_handler.addFilter(_BelowLevelFilter(logging.WARNING))
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(console_formatter)
    stderr_handler.setLevel(logging.WARNING)
    logger.addHandler(stderr_handler)

    if log_file:
        file_handler = TimedRotatingFileHandler(
            log_file, when="d", backupCount=10, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return logger


def confirm(warnings: list[SkippedFileError],
            logger: logging.Logger,
            input_func: Callable[[str], str] = input) -> bool:
    """Ask the operator whether to continue despite the warnings.

    Only ``Y``/``y`` and ``N``/``n`` are recognized. Any other answer, or no
    answer at all, declines without asking again.

    Returns:
        bool: True to proceed with the renames.
    """
    logger.warning("%d file(s) will not be renamed:", len(warnings))
    for warning in warnings:
        logger.warning('  - "%s": %s', warning.path, warning.reason)

    try:
        response = input_func(CONFIRM_PROMPT).strip()
    except EOFError:
        response = ''

    if response in ('Y', 'y'):
        return True
    if response in ('N', 'n'):
        logger.info("Exiting...")
        return False
    logger.error("Invalid response, exiting...")
    return False


def log_summary(stats: ProcessingStats, logger: logging.Logger) -> None:
    """Log processing summary statistics."""
    logger.info("\nScanned %d files", stats.scanned_count)
    logger.info("  - %d planned for renaming", stats.planned_count)
    logger.info("  - %d skipped with warnings", stats.warning_count)

    if stats.dry_run:
        logger.info("Would rename %d files. Run without --dry-run to apply changes.",
                    stats.rename_count)
    else:
        logger.info("Renamed %d files", stats.rename_count)
    if stats.failed_count:
        logger.info("Failed to rename %d files", stats.failed_count)

    logger.info("Finished in %s seconds", stats.elapsed)


def process_folder(folder: str,
                   config: RenameConfig,
                   logger: logging.Logger,
                   input_func: Callable[[str], str] = input) -> int:
    """
    Renames the media files of a folder to their capture timestamp.

    This function performs four steps:
    1. Lists the files directly inside the folder.
    2. Resolves each file's timestamp and builds a collision-free plan.
    3. Asks for confirmation if any file was skipped with a warning.
    4. Renames the planned files in timestamp order.

    Nothing is renamed if two files resolve to the same timestamp.

    Args:
        folder (str): Absolute or relative path to the folder containing media files.
        config (RenameConfig): Options for this run.
        logger (logging.Logger): Logger instance for recording progress.
        input_func (Callable): Reads the confirmation answer.

    Returns:
        int: Exit code. 0 when the run completed or was declined, 1 otherwise.
    """
    start = timer()
    logger.info('-=[ %s - v%s ]=-', PROG_NAME, __version__)
    logger.info('Processing folder: %s', folder)

    folder_path = Path(folder)
    try:
        files, scan_warnings = scan_folder(folder_path, logger)
    except OSError as e:
        logger.error("The folder isn't a valid, accessible directory: %s", e)
        return 1

    resolver = TimestampResolver(default_sources(executable=config.exiftool), logger=logger)
    batch = build_plan(files, resolver, logger)
    batch.warnings[:0] = scan_warnings

    stats = ProcessingStats(
        scanned_count=len(files) + len(scan_warnings),
        planned_count=len(batch.plan),
        warning_count=len(batch.warnings),
        collision_count=len(batch.collisions),
        dry_run=config.dry_run,
    )

    if batch.must_abort:
        logger.error("Error: Found %d conflicting timestamps, exiting...",
                     stats.collision_count)
        return 1

    if batch.needs_confirmation:
        if config.assume_yes:
            logger.warning("Continuing despite %d warnings (--yes)", stats.warning_count)
        else:
            try:
                accepted = confirm(batch.warnings, logger, input_func)
            except KeyboardInterrupt:
                logger.error("Interrupted, exiting...")
                return 1
            if not accepted:
                return 0

    outcomes = execute_plan(batch.plan, dry_run=config.dry_run, logger=logger)
    stats.rename_count = sum(1 for o in outcomes if o.success)
    stats.failed_count = sum(1 for o in outcomes if not o.success)
    stats.elapsed = timedelta(seconds=timer() - start)
    log_summary(stats, logger)

    return 1 if stats.failed_count else 0


def main():
    """Parses arguments, sets up logging, and runs the folder processing."""
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description='Rename image/video files to the timestamp they were captured at.'
    )
    parser.add_argument(
        '--folder',
        type=str,
        default='.',
        help='Folder containing files to process (default: current directory)'
    )
    parser.add_argument(
        '-n',
        '--dry-run',
        action='store_true',
        default=False,
        help='Only show what would be renamed'
    )
    parser.add_argument(
        '-y',
        '--yes',
        action='store_true',
        default=False,
        help='Continue without asking when some files were skipped'
    )
    parser.add_argument(
        '--exiftool',
        type=str,
        default='exiftool',
        help='Name or path of the exiftool executable'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file (rotated daily)'
    )
    parser.add_argument(
        '-v',
        '--verbose',
        action='store_true',
        default=False,
        help='Enable verbose (DEBUG) logging'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    args = parser.parse_args()

    folder = args.folder.strip()
    if not Path(folder).is_dir():
        print(f"Invalid folder: {folder}", file=sys.stderr)
        sys.exit(1)

    logger = setup_logger(verbose=args.verbose, log_file=args.log_file)
    config = RenameConfig(
        dry_run=args.dry_run,
        assume_yes=args.yes,
        exiftool=args.exiftool,
    )

    sys.exit(process_folder(folder, config, logger))

if __name__ == '__main__':  # pragma: no cover
    main()
