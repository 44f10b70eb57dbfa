"""Claude Code stores one JSONL transcript per session under ``~/.claude/projects``."""

from __future__ import annotations

import re
from pathlib import Path

from ..scanner import list_files
from .base import SessionFile, WatchPattern


def project_dir_name(project_root: str) -> str:
    """Claude Code's directory name for a project: non-alphanumerics become ``-``."""
    return re.sub(r"[^A-Za-z0-9]", "-", project_root)


class ClaudeCodeProvider:
    key = "claude-code"
    display_name = "Claude Code"

    def __init__(self, home: Path | None = None) -> None:
        self._projects_dir = (home or Path.home()) / ".claude" / "projects"

    def project_dir(self, project_root: str) -> Path:
        return self._projects_dir / project_dir_name(project_root)

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        return [
            SessionFile.from_scan(
                scanned,
                provider_key=self.key,
                archive_name=f"claude-code-{scanned.path.stem}",
                display_name=f"Claude Code {scanned.path.name}",
                extension=scanned.path.suffix,
                session_id=scanned.path.stem,
            )
            for scanned in list_files(self.project_dir(project_root), extensions=(".jsonl",))
        ]

    def get_watch_patterns(self, project_root: str) -> list[WatchPattern]:
        return [WatchPattern(self.project_dir(project_root), "*.jsonl")]
