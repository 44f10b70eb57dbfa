"""Filesystem operations used by the archive service.

The service only talks to the disk through this interface so tests can swap
in a failing or recording implementation.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    def read_bytes(self, path: Path) -> bytes: ...

    def write_text(self, path: Path, text: str) -> None: ...

    def copy(self, src: Path, dest: Path) -> None: ...

    def delete(self, path: Path) -> None: ...

    def delete_tree(self, path: Path) -> None: ...

    def mkdir(self, path: Path) -> None: ...

    def list_dir(self, path: Path) -> list[Path]: ...

    def is_file(self, path: Path) -> bool: ...


class LocalFileSystem:
    """:class:`FileSystem` backed by :mod:`pathlib` and :mod:`shutil`."""

    def read_bytes(self, path: Path) -> bytes:
        return path.read_bytes()

    def write_text(self, path: Path, text: str) -> None:
        path.write_text(text, encoding="utf-8")

    def copy(self, src: Path, dest: Path) -> None:
        shutil.copyfile(src, dest)

    def delete(self, path: Path) -> None:
        path.unlink()

    def delete_tree(self, path: Path) -> None:
        shutil.rmtree(path)

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True)

    def list_dir(self, path: Path) -> list[Path]:
        return sorted(path.iterdir())

    def is_file(self, path: Path) -> bool:
        return path.is_file()
