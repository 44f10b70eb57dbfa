"""Aider keeps its history as dotfiles in the project root."""

from __future__ import annotations

from pathlib import Path

from ..scanner import stat_file
from .base import SessionFile, WatchPattern

# (file name, archive name, archive extension)
HISTORY_FILES = (
    (".aider.chat.history.md", "aider-chat-history", ".md"),
    (".aider.input.history", "aider-input-history", ".txt"),
)


class AiderProvider:
    key = "aider"
    display_name = "Aider"

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        sessions = []
        for name, archive_name, extension in HISTORY_FILES:
            scanned = stat_file(Path(project_root) / name)
            if scanned is None:
                continue
            sessions.append(
                SessionFile.from_scan(
                    scanned,
                    provider_key=self.key,
                    archive_name=archive_name,
                    display_name=f"Aider {name}",
                    extension=extension,
                )
            )
        return sessions

    def get_watch_patterns(self, project_root: str) -> list[WatchPattern]:
        return [WatchPattern(Path(project_root), ".aider.*")]
