"""
Metadata sources that extract a capture timestamp from a single media file.

Each source implements :meth:`TimestampSource.resolve`, which either returns a
canonical ``YYYY-MM-DD_HH-MM-SS`` string or raises a :class:`SourceError`
subclass describing why it could not. The resolver tries the sources in a
fixed order, so adding a new source only means adding a subclass to the chain
returned by :func:`default_sources`.

Sources:
    - ExifSource: EXIF DateTimeOriginal of the primary image (Pillow).
    - ExifToolSource("CreationDate"): QuickTime/XMP creation date with a UTC
      offset, read through exiftool.
    - ExifToolSource("CreateDate"): creation date without an offset, read
      through exiftool. Its timestamps are timezone-ambiguous.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import re
import struct
import subprocess
from typing import Callable, Optional, Union

from PIL import ExifTags, Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from .errors import (
    DecodeError,
    EmptyOutputError,
    MissingTagError,
    NoMetadataError,
    ToolExecutionError,
)

register_heif_opener()

# File format constants - frozensets for O(1) lookup
IMG_FORMATS = frozenset({'.png', '.jpg', '.jpeg', '.heic', '.heif', '.tif', '.tiff'})
VIDEO_FORMATS = frozenset({'.m4v', '.mov', '.mp4'})
ALLOWED_SUFFIXES = IMG_FORMATS | VIDEO_FORMATS

RAW_TIMESTAMP_FORMAT = "%Y:%m:%d %H:%M:%S"
CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

# exiftool prints CreationDate as "YYYY:MM:DD HH:MM:SS+HH:MM"
TIMEZONE_OFFSET = re.compile(r'[+-]\d{2}:\d{2}$')

ExifToolRunner = Callable[[str, str, Path], bytes]


@dataclass(frozen=True)
class SourceFile:
    """A directory entry selected for renaming."""
    path: Path
    extension: Optional[str]  # lowercase with leading dot, None if absent

    @classmethod
    def from_path(cls, path: Path) -> SourceFile:
        suffix = path.suffix.lower()
        return cls(path=path, extension=suffix or None)

    @property
    def is_image(self) -> bool:
        return self.extension in IMG_FORMATS

    @property
    def is_video(self) -> bool:
        return self.extension in VIDEO_FORMATS


def normalize_timestamp(raw: str) -> str:
    """Convert an EXIF-style ``YYYY:MM:DD HH:MM:SS`` value to the canonical form.

    Args:
        raw (str): Raw tag value. Trailing NULs and whitespace are ignored.

    Returns:
        str: The timestamp formatted as ``YYYY-MM-DD_HH-MM-SS``.

    Raises:
        ValueError: If the value is not a valid colon/space delimited timestamp.
    """
    parsed = datetime.strptime(raw.strip('\x00 \t\r\n'), RAW_TIMESTAMP_FORMAT)
    return parsed.strftime(CANONICAL_TIMESTAMP_FORMAT)


class TimestampSource:
    """Base class for a metadata source in the fallback chain."""

    name = 'unknown'
    timezone_ambiguous = False

    def accepts(self, source_file: SourceFile) -> bool:  # pylint: disable=unused-argument
        """Whether this source should be tried for the given file."""
        return True

    def resolve(self, source_file: SourceFile) -> str:
        """Return the canonical timestamp or raise a ``SourceError``."""
        raise NotImplementedError

    def _normalize(self, source_file: SourceFile, raw: Union[str, bytes]) -> str:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode('utf-8')
            except UnicodeDecodeError as e:
                raise DecodeError(source_file.path, self.name,
                                  f"value is not valid UTF-8 ({e})") from e
        if not isinstance(raw, str):
            raise DecodeError(source_file.path, self.name, f"unexpected value {raw!r}")
        try:
            return normalize_timestamp(raw)
        except ValueError as e:
            raise DecodeError(source_file.path, self.name,
                              f"malformed timestamp {raw!r}") from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ExifSource(TimestampSource):
    """Reads DateTimeOriginal from the primary image's EXIF directories.

    DateTime (306) is deliberately ignored: it changes whenever the image is
    edited. The IFD1 directory describes the embedded thumbnail and is never
    consulted, since its values often disagree with the main image.
    """

    name = 'EXIF DateTimeOriginal'

    def accepts(self, source_file: SourceFile) -> bool:
        return source_file.is_image

    def resolve(self, source_file: SourceFile) -> str:
        path = source_file.path
        try:
            with Image.open(path) as img_file:
                exif = img_file.getexif()
                if not exif:
                    raise NoMetadataError(path, self.name, "file contains no EXIF metadata")
                raw_ts = self._primary_datetime_original(exif)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError,
                ValueError, KeyError, TypeError, struct.error) as e:
            raise NoMetadataError(path, self.name,
                                  f"EXIF container can't be decoded ({e})") from e

        if raw_ts is None:
            raise MissingTagError(path, self.name,
                                  "EXIF metadata is present but has no DateTimeOriginal")
        return self._normalize(source_file, raw_ts)

    @staticmethod
    def _primary_datetime_original(exif: Image.Exif) -> Optional[Union[str, bytes]]:
        tag = ExifTags.Base.DateTimeOriginal
        exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        if tag in exif_ifd:
            return exif_ifd[tag]
        # Some writers put it straight into IFD0, which is still the primary image
        return exif.get(tag)


def run_exiftool(executable: str, tag: str, path: Path) -> bytes:
    """Run exiftool for a single tag and return its raw standard output.

    ``-s3`` prints the value only, without the tag label.

    Args:
        executable (str): Name or path of the exiftool executable.
        tag (str): Tag name, e.g. ``CreationDate``.
        path (Path): File to inspect.

    Returns:
        bytes: Standard output of the tool, empty when the tag is absent.

    Raises:
        ToolExecutionError: If the tool can't be started or exits with an error.
    """
    source = f"exiftool {tag}"
    try:
        result = subprocess.run(
            [executable, '-s3', f'-{tag}', str(path)],
            capture_output=True,
            check=False,
        )
    except OSError as e:
        raise ToolExecutionError(path, source, f"failed to run {executable!r} ({e})") from e

    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise ToolExecutionError(
            path, source, f"{executable!r} exited with status {result.returncode}: {stderr}"
        )
    return result.stdout


class ExifToolSource(TimestampSource):
    """Reads a single date tag through the exiftool executable."""

    def __init__(self,
                 tag: str,
                 strip_offset: bool = False,
                 timezone_ambiguous: bool = False,
                 executable: str = 'exiftool',
                 runner: ExifToolRunner = run_exiftool):
        self.tag = tag
        self.name = f"exiftool {tag}"
        self.strip_offset = strip_offset
        self.timezone_ambiguous = timezone_ambiguous
        self.executable = executable
        self.runner = runner

    def resolve(self, source_file: SourceFile) -> str:
        path = source_file.path
        output = self.runner(self.executable, self.tag, path)
        if not output:
            raise EmptyOutputError(path, self.name, f"{self.tag} tag not present")

        try:
            value = output.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(path, self.name, f"tool output is not valid UTF-8 ({e})") from e
        value = value.rstrip('\r\n')

        if self.strip_offset:
            if not TIMEZONE_OFFSET.search(value):
                raise DecodeError(path, self.name,
                                  f"expected a timezone offset in {value!r}")
            value = TIMEZONE_OFFSET.sub('', value)
        return self._normalize(source_file, value)


def default_sources(executable: str = 'exiftool',
                    runner: ExifToolRunner = run_exiftool) -> list[TimestampSource]:
    """Return the metadata sources in priority order."""
    return [
        ExifSource(),
        ExifToolSource('CreationDate', strip_offset=True,
                       executable=executable, runner=runner),
        ExifToolSource('CreateDate', timezone_ambiguous=True,
                       executable=executable, runner=runner),
    ]
