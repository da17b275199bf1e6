"""
Collision-aware rename planning.

A batch is planned in a single pass over the directory: every file is resolved
to a timestamp and inserted into a :class:`RenamePlan` keyed by that timestamp.
A second file with the same timestamp would overwrite the first one on
rename, so it is a collision that invalidates the whole plan. The pass still
continues so that every collision in the directory is reported at once.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from .errors import (
    SkippedFileError,
    TimestampCollisionError,
    UnopenableFileError,
    UnreadableEntryError,
)
from .sources import SourceFile

if TYPE_CHECKING:  # pragma: no cover
    from .resolver import TimestampResolver


@dataclass(frozen=True)
class RenamePlanEntry:
    """A file paired with the name it will be renamed to."""
    source: SourceFile
    timestamp: str
    target_name: str
    source_name: str


class RenamePlan:
    """Entries keyed by timestamp, iterated in ascending timestamp order.

    The canonical timestamp format sorts lexically in chronological order.
    Keys are unique: :meth:`insert` refuses to replace an existing entry.
    """

    def __init__(self) -> None:
        self._keys: list[str] = []
        self._entries: dict[str, RenamePlanEntry] = {}

    def insert(self, entry: RenamePlanEntry) -> None:
        """Add an entry to the plan.

        Raises:
            TimestampCollisionError: An entry with the same timestamp already exists.
        """
        if entry.timestamp in self:
            raise TimestampCollisionError(self._entries[entry.timestamp], entry)
        bisect.insort(self._keys, entry.timestamp)
        self._entries[entry.timestamp] = entry

    def __contains__(self, timestamp: object) -> bool:
        return timestamp in self._entries

    def __iter__(self) -> Iterator[RenamePlanEntry]:
        for key in self._keys:
            yield self._entries[key]

    def __len__(self) -> int:
        return len(self._keys)


@dataclass
class BatchResult:
    """Outcome of planning one directory."""
    plan: RenamePlan = field(default_factory=RenamePlan)
    warnings: list[SkippedFileError] = field(default_factory=list)
    collisions: list[TimestampCollisionError] = field(default_factory=list)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.warnings)

    @property
    def must_abort(self) -> bool:
        return bool(self.collisions)


def _check_readable(path: Path) -> None:
    try:
        with path.open('rb'):
            pass
    except OSError as e:
        raise UnopenableFileError(path, f"failed to open the file ({e.strerror or e})") from e


def scan_folder(folder: Path,
                logger: logging.Logger) -> tuple[list[SourceFile], list[SkippedFileError]]:
    """List the files directly inside a folder.

    Directories are ignored. Entries whose type can't be determined and files
    that can't be opened for reading are returned as warnings instead.

    Args:
        folder (Path): Directory to scan. It is not descended into.
        logger (logging.Logger): Logger instance.

    Returns:
        Tuple of (files sorted by name, warnings).

    Raises:
        OSError: If the folder itself can't be listed.
    """
    files: list[SourceFile] = []
    warnings: list[SkippedFileError] = []

    with os.scandir(folder) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            path = folder / entry.name
            try:
                if entry.is_dir():
                    logger.debug('Ignoring directory %s', entry.name)
                    continue
            except OSError as e:
                warning = UnreadableEntryError(path, f"entry can't be read ({e})")
                logger.warning('Warning: A file can\'t be read: "%s"', path)
                warnings.append(warning)
                continue

            try:
                _check_readable(path)
            except UnopenableFileError as e:
                logger.warning('Warning: Failed to open the file: "%s"', path)
                warnings.append(e)
                continue

            files.append(SourceFile.from_path(path))

    return files, warnings


def build_plan(files: list[SourceFile],
               resolver: TimestampResolver,
               logger: logging.Logger) -> BatchResult:
    """Resolve every file and accumulate the rename plan.

    Files that can't be resolved are recorded as warnings and left out of the
    plan. Duplicate timestamps are recorded as collisions; both files are
    logged and planning carries on so all duplicates are surfaced.

    Args:
        files (list[SourceFile]): Files of the batch.
        resolver (TimestampResolver): Resolver used for each file.
        logger (logging.Logger): Logger instance.

    Returns:
        BatchResult: The plan together with warnings and collisions.
    """
    result = BatchResult()

    for source_file in files:
        try:
            entry = resolver.resolve(source_file)
        except SkippedFileError as e:
            logger.warning('Warning: Not renaming "%s": %s', source_file.path, e.reason)
            result.warnings.append(e)
            continue

        try:
            result.plan.insert(entry)
        except TimestampCollisionError as e:
            logger.error('Error: Attempted to add "%s"\n\t...but the timestamp (%s) '
                         'already exists in file: "%s"',
                         e.duplicate.source.path, e.duplicate.timestamp,
                         e.existing.source.path)
            result.collisions.append(e)
            continue

        logger.debug('Planned %s -> %s (%s)',
                     source_file.path.name, entry.target_name, entry.source_name)

    return result
