"""Exceptions raised while resolving timestamps and building a rename plan."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .plan import RenamePlanEntry


class TimestampRenameError(Exception):
    """Base error for the project."""


class SourceError(TimestampRenameError):
    """A single metadata source could not produce a timestamp for a file."""

    def __init__(self, path: Path, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.path = path
        self.source = source
        self.reason = reason


class NoMetadataError(SourceError):
    """The container can't be decoded or carries no EXIF."""


class MissingTagError(SourceError):
    """The metadata is readable but the tag is absent."""


class ToolExecutionError(SourceError):
    """The external metadata tool could not be run or failed."""


class EmptyOutputError(SourceError):
    """The tool printed nothing, i.e. the tag is not set."""


class DecodeError(SourceError):
    """The value is not UTF-8 or not a valid timestamp."""


class SkippedFileError(TimestampRenameError):
    """A file was excluded from the batch. Never fatal for the run."""

    def __init__(self, path: Path, reason: str):
        super().__init__(reason)
        self.path = path
        self.reason = reason


class UnreadableEntryError(SkippedFileError):
    """The directory entry itself could not be inspected."""


class UnopenableFileError(SkippedFileError):
    """The file could not be opened for reading."""


class UnsupportedExtensionError(SkippedFileError):
    """The extension is neither a supported image nor video type."""


class UnresolvedFileError(SkippedFileError):
    """Every eligible metadata source failed for the file."""

    def __init__(self, path: Path, failures: Sequence[SourceError]):
        details = "; ".join(str(failure) for failure in failures) or "no eligible source"
        super().__init__(path, f"no usable timestamp ({details})")
        self.failures = list(failures)


class TimestampCollisionError(TimestampRenameError):
    """Two files resolved to the same timestamp."""

    def __init__(self, existing: RenamePlanEntry, duplicate: RenamePlanEntry):
        super().__init__(
            f'Attempted to add "{duplicate.source.path}" but the timestamp '
            f'({duplicate.timestamp}) already exists in file: "{existing.source.path}"'
        )
        self.existing = existing
        self.duplicate = duplicate
