"""Resolve a single file to its timestamp and target name."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .errors import DecodeError, SourceError, UnresolvedFileError, UnsupportedExtensionError
from .plan import RenamePlanEntry
from .sources import ALLOWED_SUFFIXES, SourceFile, TimestampSource, default_sources

# Marks names built from a timestamp that carried no timezone offset
TIMEZONE_MARKER = ' (utc)'


def build_target_name(timestamp: str,
                      extension: Optional[str],
                      timezone_ambiguous: bool = False) -> str:
    """Build the new filename for a resolved timestamp.

    Args:
        timestamp (str): Canonical ``YYYY-MM-DD_HH-MM-SS`` timestamp.
        extension (str, optional): Lowercase extension with leading dot.
        timezone_ambiguous (bool): Insert the timezone marker before the extension.

    Returns:
        str: e.g. ``2023-05-14_21-34-06.jpg`` or ``2023-05-14_21-34-06 (utc).mov``.
    """
    name = timestamp
    if timezone_ambiguous:
        name += TIMEZONE_MARKER
    if extension:
        name += extension.lower()
    return name


class TimestampResolver:
    """Tries each metadata source in order until one yields a timestamp."""

    def __init__(self,
                 sources: Optional[Sequence[TimestampSource]] = None,
                 logger: Optional[logging.Logger] = None):
        self.sources = list(sources) if sources is not None else default_sources()
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, source_file: SourceFile) -> RenamePlanEntry:
        """Resolve the timestamp and target name of a file.

        Raises:
            UnsupportedExtensionError: The extension is not an allowed image or video type.
            UnresolvedFileError: Every eligible source failed, or one returned
                a malformed value.
        """
        if source_file.extension not in ALLOWED_SUFFIXES:
            raise UnsupportedExtensionError(
                source_file.path,
                f"unsupported extension {source_file.extension or '(none)'!r}"
            )

        failures: list[SourceError] = []
        for source in self.sources:
            if not source.accepts(source_file):
                self.logger.debug("%s skipping %s", source_file.path.name, source.name)
                continue
            try:
                timestamp = source.resolve(source_file)
            except DecodeError as e:
                # Malformed values end the chain for this file
                self.logger.debug("%s %s", source_file.path.name, e)
                failures.append(e)
                break
            except SourceError as e:
                self.logger.debug("%s %s", source_file.path.name, e)
                failures.append(e)
                continue

            self.logger.debug("%s timestamp extracted from %s: %s",
                              source_file.path.name, source.name, timestamp)
            return RenamePlanEntry(
                source=source_file,
                timestamp=timestamp,
                target_name=build_target_name(timestamp,
                                              source_file.extension,
                                              source.timezone_ambiguous),
                source_name=source.name,
            )

        raise UnresolvedFileError(source_file.path, failures)
