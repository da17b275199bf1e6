"""Apply a validated rename plan to the filesystem."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional

from .plan import RenamePlan, RenamePlanEntry


@dataclass(frozen=True)
class RenameOutcome:
    """Result of renaming one plan entry."""
    entry: RenamePlanEntry
    destination: Path
    success: bool
    error: Optional[str] = None


def rename_file(src_path: Path,
                dst_path: Path,
                dry_run: bool,
                logger: logging.Logger) -> Optional[str]:
    """Rename a file within its directory without overwriting anything.

    Args:
        src_path (Path): Source file path.
        dst_path (Path): Destination file path.
        dry_run (bool): If True, only report what would be renamed.
        logger (logging.Logger): Logger instance.

    Returns:
        Optional[str]: None if the rename succeeded (or was not needed),
        otherwise a description of the failure.
    """
    if src_path == dst_path:
        logger.info(
            "Skipping rename: source and destination are the same (%s)", src_path.name
        )
        return None

    if dst_path.exists() and not _same_file(src_path, dst_path):
        return f'destination "{dst_path.name}" already exists'

    if dry_run:
        logger.info('Would rename "%s" to "%s"', src_path, dst_path.name)
        return None

    try:
        src_path.rename(dst_path)
    except OSError as e:
        return str(e)
    return None


def _same_file(src_path: Path, dst_path: Path) -> bool:
    # Case-only renames on case-insensitive filesystems
    try:
        return src_path.samefile(dst_path)
    except OSError:
        return False


def execute_plan(plan: RenamePlan,
                 dry_run: bool,
                 logger: logging.Logger) -> list[RenameOutcome]:
    """Rename every planned file in timestamp order.

    Each rename is independent: a failure is reported and the remaining entries
    are still processed. Renames already performed are never rolled back.

    Args:
        plan (RenamePlan): Collision-free plan.
        dry_run (bool): If True, only report what would be renamed.
        logger (logging.Logger): Logger instance.

    Returns:
        list[RenameOutcome]: One outcome per plan entry, in plan order.
    """
    outcomes: list[RenameOutcome] = []

    for entry in plan:
        src_path = entry.source.path
        dst_path = src_path.with_name(entry.target_name)
        error = rename_file(src_path, dst_path, dry_run=dry_run, logger=logger)

        if error is None:
            if not dry_run:
                logger.info('Renaming success for "%s" to timestamp "%s".',
                            src_path, entry.target_name)
            outcomes.append(RenameOutcome(entry, dst_path, success=True))
        else:
            logger.error('Error: Renaming failed for "%s" - %s', src_path, error)
            outcomes.append(RenameOutcome(entry, dst_path, success=False, error=error))

    return outcomes
