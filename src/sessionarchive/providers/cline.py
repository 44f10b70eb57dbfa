"""Cline and Roo Code keep one task directory per conversation in VS Code global storage."""

from __future__ import annotations

from pathlib import Path

from ..scanner import list_dirs, stat_file
from .base import SessionFile, belongs_to_project

HISTORY_FILE = "api_conversation_history.json"


def task_started(task_id: str) -> float | None:
    """Task ids are the epoch milliseconds at which the task was created."""
    return int(task_id) / 1000 if task_id.isdigit() else None


class TaskHistoryProvider:
    """Discover task histories of a Cline-family extension.

    Task directories are not grouped by project, so each history file is
    kept only if it mentions the project path.
    """

    def __init__(
        self,
        key: str,
        display_name: str,
        extension_id: str,
        user_dirs: list[Path],
    ) -> None:
        self.key = key
        self.display_name = display_name
        self._tasks_dirs = [d / "globalStorage" / extension_id / "tasks" for d in user_dirs]

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        sessions = []
        for tasks_dir in self._tasks_dirs:
            for task_dir in list_dirs(tasks_dir):
                scanned = stat_file(task_dir / HISTORY_FILE)
                if scanned is None or not belongs_to_project(scanned.path, project_root):
                    continue
                task_id = task_dir.name
                sessions.append(
                    SessionFile.from_scan(
                        scanned,
                        provider_key=self.key,
                        archive_name=f"{self.key}-{task_id}",
                        display_name=f"{self.display_name} task {task_id}",
                        extension=".json",
                        session_id=task_id,
                        ctime=task_started(task_id),
                    )
                )
        return sessions


def cline_provider(user_dirs: list[Path]) -> TaskHistoryProvider:
    return TaskHistoryProvider("cline", "Cline", "saoudrizwan.claude-dev", user_dirs)


def roo_code_provider(user_dirs: list[Path]) -> TaskHistoryProvider:
    return TaskHistoryProvider("roo-code", "Roo Code", "rooveterinaryinc.roo-cline", user_dirs)
