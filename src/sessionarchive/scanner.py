"""File discovery helpers shared by the session providers.

All helpers treat a missing directory or an unreadable file as "nothing
here" and never raise :class:`OSError`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannedFile:
    """Metadata for a discovered session file."""

    path: Path
    mtime: float
    ctime: float | None
    size: int


def stat_file(path: Path) -> ScannedFile | None:
    """Stat *path*, returning ``None`` if it is missing or not a regular file.

    ``ctime`` is the birth time where the platform reports one, otherwise
    ``None``: the inode change time moves on every write.
    """
    try:
        st = path.stat()
    except OSError:
        return None
    if not path.is_file():
        return None
    ctime = getattr(st, "st_birthtime", None) or None
    return ScannedFile(path=path, mtime=st.st_mtime, ctime=ctime, size=st.st_size)


def list_files(
    directory: Path,
    *,
    extensions: tuple[str, ...],
    exclude: frozenset[str] = frozenset(),
) -> list[ScannedFile]:
    """Files directly inside *directory* with one of *extensions*."""
    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []
    results = []
    for entry in entries:
        if entry.suffix.lower() not in extensions or entry.name in exclude:
            continue
        scanned = stat_file(entry)
        if scanned is not None:
            results.append(scanned)
    return results


def list_dirs(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return []


def scan_tree(
    root: Path,
    *,
    extensions: tuple[str, ...],
    ignore_hidden: bool = True,
) -> list[ScannedFile]:
    """Recursively collect files under *root* with one of *extensions*.

    Hidden files/dirs (starting with ``"."``) are skipped when
    *ignore_hidden* is ``True``.
    """
    results: list[ScannedFile] = []
    if not root.is_dir():
        return results
    for dirpath, dirnames, filenames in os.walk(root):
        if ignore_hidden:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for fname in filenames:
            if ignore_hidden and fname.startswith("."):
                continue
            fp = Path(dirpath) / fname
            if fp.suffix.lower() not in extensions:
                continue
            scanned = stat_file(fp)
            if scanned is not None:
                results.append(scanned)
    results.sort(key=lambda f: f.path)
    return results


def read_text(path: Path) -> str | None:
    """Decode *path* as UTF-8, or ``None`` if it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Could not read %s: %s", path, exc)
        return None


def read_first_line(path: Path) -> str | None:
    try:
        with path.open(encoding="utf-8", errors="replace") as fh:
            return fh.readline()
    except OSError as exc:
        logger.debug("Could not read %s: %s", path, exc)
        return None
