"""Session provider protocol and helpers shared by the providers."""

from __future__ import annotations

import os
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import unquote

from ..scanner import ScannedFile, read_text


@dataclass(frozen=True)
class SessionFile:
    """A session transcript found on disk.

    ``archive_name`` identifies the logical session and stays the same across
    runs; it is the key used to replace an earlier archive of the session.
    """

    path: Path
    provider_key: str
    archive_name: str
    display_name: str
    mtime: float
    extension: str
    ctime: float | None = None
    session_id: str = ""

    @classmethod
    def from_scan(
        cls,
        scanned: ScannedFile,
        *,
        provider_key: str,
        archive_name: str,
        display_name: str,
        extension: str,
        session_id: str = "",
        ctime: float | None = None,
    ) -> SessionFile:
        """Build from a scan; *ctime* overrides the filesystem creation time."""
        return cls(
            path=scanned.path,
            provider_key=provider_key,
            archive_name=archive_name,
            display_name=display_name,
            mtime=scanned.mtime,
            ctime=ctime if ctime is not None else scanned.ctime,
            extension=extension,
            session_id=session_id or archive_name,
        )


@dataclass(frozen=True)
class WatchPattern:
    base_dir: Path
    glob: str


class SessionProvider(Protocol):
    key: str
    display_name: str

    def find_sessions(self, project_root: str) -> list[SessionFile]: ...


@runtime_checkable
class WatchableProvider(Protocol):
    """A provider whose storage location is known without scanning."""

    def get_watch_patterns(self, project_root: str) -> list[WatchPattern]: ...


def mentions_path(text: str, project_root: str) -> bool:
    """True if *project_root* occurs in *text* as a whole path.

    ``/a/app`` matches ``/a/app`` and ``/a/app/src`` but not ``/a/app-2``.
    JSON-escaped backslashes are accepted for Windows paths.
    """
    root = os.path.normpath(project_root)
    candidates = {root, root.replace("\\", "\\\\")}
    return any(
        re.search(re.escape(c) + r"(?![\w.-])", text) for c in candidates if c
    )


def belongs_to_project(path: Path, project_root: str) -> bool:
    text = read_text(path)
    return text is not None and mentions_path(text, project_root)


def same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.normpath(a)) == os.path.normcase(os.path.normpath(b))


def vscode_user_dirs(home: Path | None = None) -> list[Path]:
    """``User`` directories of VS Code Stable and Insiders for this platform."""
    home = home or Path.home()
    system = platform.system()
    if system == "Windows":
        appdata = os.environ.get("APPDATA", "")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
    elif system == "Darwin":
        base = home / "Library" / "Application Support"
    else:
        base = home / ".config"
    return [base / "Code" / "User", base / "Code - Insiders" / "User"]


def folder_from_uri(uri: str) -> str | None:
    """Filesystem path of a ``file://`` workspace folder URI."""
    if not uri.startswith("file://"):
        return None
    folder = unquote(uri[len("file://"):])
    if re.match(r"^/[A-Za-z]:", folder):
        # Windows paths like /C:/path
        folder = folder[1:]
    return folder or None
