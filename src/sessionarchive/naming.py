"""Archive file naming: ``<YYYYMMDDHHmm>-<archive name><extension>``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y%m%d%H%M"
DATE_FORMAT = "%Y%m%d"

_ARCHIVE_FILE = re.compile(r"^(\d{12})-(.+?)(\.[^.]+)$")


@dataclass(frozen=True)
class ArchiveFileName:
    """The parts of an archive file name."""

    timestamp: str
    archive_name: str
    extension: str

    @property
    def file_name(self) -> str:
        return f"{self.timestamp}-{self.archive_name}{self.extension}"


def format_timestamp(epoch_seconds: float) -> str:
    """UTC ``YYYYMMDDHHmm`` for *epoch_seconds*."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)


def archive_file_name(epoch_seconds: float, archive_name: str, extension: str) -> str:
    return ArchiveFileName(format_timestamp(epoch_seconds), archive_name, extension).file_name


def parse_archive_file_name(file_name: str) -> ArchiveFileName | None:
    """Split *file_name* into its parts, or ``None`` if it is not an archive file."""
    match = _ARCHIVE_FILE.match(file_name)
    if match is None:
        return None
    return ArchiveFileName(*match.groups())


def parse_cutoff(value: str) -> float:
    """Epoch seconds of UTC midnight on the ``YYYYMMDD`` date *value*.

    Raises ``ValueError`` when *value* is not a real calendar date.
    """
    if not re.fullmatch(r"\d{8}", value):
        raise ValueError(f"expected YYYYMMDD, got {value!r}")
    day = datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)
    return day.timestamp()


def parse_iso_timestamp(value: object) -> float | None:
    """Epoch seconds for an ISO 8601 string such as ``2025-01-02T03:04:05.123Z``.

    Naive values are taken as UTC; anything unparsable gives ``None``.
    """
    if not isinstance(value, str) or not value:
        return None
    text = re.sub(r"\.\d+", "", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
