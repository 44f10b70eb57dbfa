"""Transcript parsers, looked up by provider key."""

from __future__ import annotations

from typing import Iterable, Mapping

from ..session import SessionParser
from .claude_code import ClaudeCodeParser
from .cline import ClineParser
from .codex import CodexParser
from .continue_dev import ContinueParser
from .copilot_chat import CopilotChatParser


def build_registry(parsers: Iterable[SessionParser]) -> dict[str, SessionParser]:
    """Index *parsers* by provider key, rejecting duplicate keys."""
    registry: dict[str, SessionParser] = {}
    for parser in parsers:
        if parser.provider_key in registry:
            raise ValueError(f"Duplicate parser for provider {parser.provider_key!r}")
        registry[parser.provider_key] = parser
    return registry


def default_parsers() -> list[SessionParser]:
    return [
        ClaudeCodeParser(),
        ClineParser("cline", "Cline"),
        ClineParser("roo-code", "Roo Code"),
        CodexParser(),
        ContinueParser(),
        CopilotChatParser(),
    ]


PARSERS: Mapping[str, SessionParser] = build_registry(default_parsers())


def get_parser(provider_key: str) -> SessionParser | None:
    """Return the parser for *provider_key*, or ``None`` (e.g. for Aider)."""
    return PARSERS.get(provider_key)


__all__ = [
    "PARSERS",
    "build_registry",
    "default_parsers",
    "get_parser",
    "ClaudeCodeParser",
    "ClineParser",
    "CodexParser",
    "ContinueParser",
    "CopilotChatParser",
]
