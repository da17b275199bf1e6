"""Timestamp Rename - rename media files to the timestamp they were captured at."""

__version__ = "1.0.0"

from .errors import (  # noqa: E402
    DecodeError,
    EmptyOutputError,
    MissingTagError,
    NoMetadataError,
    SkippedFileError,
    SourceError,
    TimestampCollisionError,
    TimestampRenameError,
    ToolExecutionError,
    UnopenableFileError,
    UnreadableEntryError,
    UnresolvedFileError,
    UnsupportedExtensionError,
)
from .executor import RenameOutcome, execute_plan, rename_file  # noqa: E402
from .plan import BatchResult, RenamePlan, RenamePlanEntry, build_plan, scan_folder  # noqa: E402
from .resolver import TIMEZONE_MARKER, TimestampResolver, build_target_name  # noqa: E402
from .sources import (  # noqa: E402
    ALLOWED_SUFFIXES,
    IMG_FORMATS,
    VIDEO_FORMATS,
    ExifSource,
    ExifToolSource,
    SourceFile,
    TimestampSource,
    default_sources,
    normalize_timestamp,
    run_exiftool,
)

__all__ = [
    "__version__",
    "ALLOWED_SUFFIXES", "IMG_FORMATS", "VIDEO_FORMATS", "TIMEZONE_MARKER",
    "BatchResult", "DecodeError", "EmptyOutputError", "ExifSource", "ExifToolSource",
    "MissingTagError", "NoMetadataError", "RenameOutcome", "RenamePlan",
    "RenamePlanEntry", "SkippedFileError", "SourceError", "SourceFile",
    "TimestampCollisionError", "TimestampRenameError", "TimestampResolver",
    "TimestampSource", "ToolExecutionError", "UnopenableFileError",
    "UnreadableEntryError", "UnresolvedFileError", "UnsupportedExtensionError",
    "build_plan", "build_target_name", "default_sources", "execute_plan",
    "normalize_timestamp", "rename_file", "run_exiftool", "scan_folder",
]
