"""Accumulators shared by the transcript parsers.

Parsers fold a sequence of heterogeneous events into a list of
:class:`TurnDraft` objects and only materialize :class:`NormalizedTurn`
values at the end, so tool outputs that arrive after their turn was closed
can still be attached to the right call.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..session import NormalizedTurn, Role, ToolCall

FRAGMENT_SEPARATOR = "\n\n"


def join_fragments(parts: list[str]) -> str:
    return FRAGMENT_SEPARATOR.join(p for p in parts if p)


def non_blank_lines(content: str) -> list[str]:
    return [line for line in content.splitlines() if line.strip()]


def load_json(text: str) -> Any | None:
    """Decode *text*, returning ``None`` instead of raising on bad input."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def block_text(content: Any) -> str:
    """Text of an Anthropic-style content field (string or list of blocks)."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts = [
        b["text"]
        for b in content
        if isinstance(b, dict) and b.get("type") == "text" and isinstance(b.get("text"), str)
    ]
    return join_fragments(parts)


@dataclass
class PendingCall:
    name: str
    input: str | None = None
    output: str | None = None
    call_id: str | None = None

    def to_tool_call(self) -> ToolCall:
        return ToolCall(name=self.name, input=self.input, output=self.output)


@dataclass
class TurnDraft:
    role: Role
    text_parts: list[str] = field(default_factory=list)
    calls: list[PendingCall] = field(default_factory=list)
    thinking_parts: list[str] = field(default_factory=list)
    files_read: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)

    def add_text(self, text: str) -> None:
        if text:
            self.text_parts.append(text)

    def add_thinking(self, text: str) -> None:
        if text:
            self.thinking_parts.append(text)

    @property
    def has_content(self) -> bool:
        return bool(
            join_fragments(self.text_parts)
            or self.calls
            or join_fragments(self.thinking_parts)
            or self.files_read
            or self.files_modified
        )

    def build(self) -> NormalizedTurn:
        return NormalizedTurn(
            role=self.role,
            content=join_fragments(self.text_parts),
            tool_calls=[c.to_tool_call() for c in self.calls],
            thinking=join_fragments(self.thinking_parts) or None,
            files_read=list(self.files_read),
            files_modified=list(self.files_modified),
        )


class CallTracker:
    """Attach tool outputs to the calls they belong to.

    An output carrying a known correlation id goes to that call.  Otherwise
    it goes to the oldest call without an id that is still missing output.
    This fallback is a heuristic and can misattribute interleaved calls.
    """

    def __init__(self) -> None:
        self._calls: list[PendingCall] = []
        self._by_id: dict[str, PendingCall] = {}

    def register(self, call: PendingCall) -> PendingCall:
        self._calls.append(call)
        if call.call_id:
            self._by_id[call.call_id] = call
        return call

    def find(self, call_id: str | None) -> PendingCall | None:
        if call_id and call_id in self._by_id:
            return self._by_id[call_id]
        for call in self._calls:
            if call.output is None and not call.call_id:
                return call
        return None

    def resolve(self, call_id: str | None, output: str) -> PendingCall | None:
        if not output:
            return None
        call = self.find(call_id)
        if call is not None:
            call.output = output
        return call


def build_turns(drafts: list[TurnDraft]) -> list[NormalizedTurn]:
    return [d.build() for d in drafts if d.has_content]
