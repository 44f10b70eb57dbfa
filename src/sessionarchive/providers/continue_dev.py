"""Continue keeps every session as a JSON file in ``~/.continue/sessions``."""

from __future__ import annotations

from pathlib import Path

from ..scanner import list_files
from .base import SessionFile, WatchPattern, belongs_to_project

INDEX_FILE = "sessions.json"


class ContinueProvider:
    key = "continue"
    display_name = "Continue"

    def __init__(self, home: Path | None = None) -> None:
        self._sessions_dir = (home or Path.home()) / ".continue" / "sessions"

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        found = list_files(
            self._sessions_dir, extensions=(".json",), exclude=frozenset({INDEX_FILE})
        )
        return [
            SessionFile.from_scan(
                scanned,
                provider_key=self.key,
                archive_name=f"continue-{scanned.path.stem}",
                display_name=f"Continue session {scanned.path.stem}",
                extension=".json",
                session_id=scanned.path.stem,
            )
            for scanned in found
            if belongs_to_project(scanned.path, project_root)
        ]

    def get_watch_patterns(self, project_root: str) -> list[WatchPattern]:
        return [WatchPattern(self._sessions_dir, "*.json")]
