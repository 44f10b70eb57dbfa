"""Copilot Chat sessions live in VS Code's per-workspace storage."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..scanner import list_dirs, list_files, read_text
from .base import SessionFile, folder_from_uri, same_path

logger = logging.getLogger(__name__)

SESSIONS_DIR = "chatSessions"


def workspace_folder(storage_dir: Path) -> str | None:
    """Project folder recorded in ``workspace.json`` of a storage directory."""
    text = read_text(storage_dir / "workspace.json")
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Ignoring malformed workspace.json in %s", storage_dir)
        return None
    folder = data.get("folder") if isinstance(data, dict) else None
    return folder_from_uri(folder) if isinstance(folder, str) else None


class CopilotChatProvider:
    key = "copilot-chat"
    display_name = "GitHub Copilot Chat"

    def __init__(self, user_dirs: list[Path]) -> None:
        self._storage_roots = [d / "workspaceStorage" for d in user_dirs]

    def storage_dirs(self, project_root: str) -> list[Path]:
        """Workspace storage directories that belong to *project_root*."""
        matches = []
        for root in self._storage_roots:
            for storage_dir in list_dirs(root):
                folder = workspace_folder(storage_dir)
                if folder is not None and same_path(folder, project_root):
                    matches.append(storage_dir)
        return matches

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        sessions = []
        for storage_dir in self.storage_dirs(project_root):
            for scanned in list_files(storage_dir / SESSIONS_DIR, extensions=(".json", ".jsonl")):
                stem = scanned.path.stem
                sessions.append(
                    SessionFile.from_scan(
                        scanned,
                        provider_key=self.key,
                        archive_name=f"copilot-chat-{stem}",
                        display_name=f"Copilot Chat {stem}",
                        extension=scanned.path.suffix,
                        session_id=stem,
                    )
                )
        return sessions
