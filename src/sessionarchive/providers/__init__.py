"""Session providers, one per assistant tool."""

from __future__ import annotations

from pathlib import Path

from .aider import AiderProvider
from .base import (
    SessionFile,
    SessionProvider,
    WatchableProvider,
    WatchPattern,
    belongs_to_project,
    vscode_user_dirs,
)
from .claude_code import ClaudeCodeProvider
from .cline import TaskHistoryProvider, cline_provider, roo_code_provider
from .codex import CodexProvider
from .continue_dev import ContinueProvider
from .copilot_chat import CopilotChatProvider


def default_providers(
    home: Path | None = None,
    user_dirs: list[Path] | None = None,
) -> list[SessionProvider]:
    """All built-in providers.

    *home* replaces the user's home directory and *user_dirs* the VS Code
    ``User`` directories, mainly for tests.
    """
    if user_dirs is None:
        user_dirs = vscode_user_dirs(home)
    return [
        AiderProvider(),
        ClaudeCodeProvider(home),
        cline_provider(user_dirs),
        roo_code_provider(user_dirs),
        CodexProvider(home),
        ContinueProvider(home),
        CopilotChatProvider(user_dirs),
    ]


__all__ = [
    "AiderProvider",
    "ClaudeCodeProvider",
    "CodexProvider",
    "ContinueProvider",
    "CopilotChatProvider",
    "SessionFile",
    "SessionProvider",
    "TaskHistoryProvider",
    "WatchPattern",
    "WatchableProvider",
    "belongs_to_project",
    "default_providers",
    "vscode_user_dirs",
]
