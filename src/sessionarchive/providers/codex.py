"""Codex writes rollouts under ``~/.codex/sessions/YYYY/MM/DD``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..naming import parse_cutoff, parse_iso_timestamp
from ..scanner import read_first_line, scan_tree
from .base import SessionFile, WatchPattern, same_path


def read_session_meta(path: Path) -> dict[str, Any] | None:
    """Payload of the ``session_meta`` record on the first line, if any."""
    line = read_first_line(path)
    if not line:
        return None
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict) or record.get("type") != "session_meta":
        return None
    payload = record.get("payload")
    return payload if isinstance(payload, dict) else None


def session_start(meta: dict[str, Any], path: Path, sessions_dir: Path) -> float | None:
    """Creation time from the meta ``timestamp``, else the ``YYYY/MM/DD`` folder."""
    started = parse_iso_timestamp(meta.get("timestamp"))
    if started is not None:
        return started
    try:
        year, month, day = path.relative_to(sessions_dir).parts[:3]
        return parse_cutoff(f"{year}{month}{day}")
    except ValueError:
        return None


class CodexProvider:
    key = "codex"
    display_name = "OpenAI Codex"

    def __init__(self, home: Path | None = None) -> None:
        self._sessions_dir = (home or Path.home()) / ".codex" / "sessions"

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        sessions = []
        for scanned in scan_tree(self._sessions_dir, extensions=(".jsonl",)):
            meta = read_session_meta(scanned.path)
            cwd = meta.get("cwd") if meta else None
            if not isinstance(cwd, str) or not cwd or not same_path(cwd, project_root):
                continue
            meta_id = meta.get("id")
            session_id = meta_id if isinstance(meta_id, str) and meta_id else scanned.path.stem
            sessions.append(
                SessionFile.from_scan(
                    scanned,
                    provider_key=self.key,
                    archive_name=f"codex-{session_id}",
                    display_name=f"{self.display_name} {scanned.path.name}",
                    extension=".jsonl",
                    session_id=session_id,
                    ctime=session_start(meta, scanned.path, self._sessions_dir),
                )
            )
        return sessions

    def get_watch_patterns(self, project_root: str) -> list[WatchPattern]:
        return [WatchPattern(self._sessions_dir, "**/*.jsonl")]
