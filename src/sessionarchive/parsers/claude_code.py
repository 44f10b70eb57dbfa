"""Claude Code transcripts: one JSON event per line with nested content blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import Any

from ..session import NormalizedSession, Parsed, ParseResult, Unrecognized
from ._common import (
    CallTracker,
    PendingCall,
    TurnDraft,
    block_text,
    build_turns,
    load_json,
    non_blank_lines,
    pretty_json,
)

READ_TOOLS = {"Read": "file_path"}
MODIFY_TOOLS = {
    "Write": "file_path",
    "Edit": "file_path",
    "MultiEdit": "file_path",
    "NotebookEdit": "notebook_path",
}


@dataclass
class _State:
    drafts: list[TurnDraft] = field(default_factory=list)
    pending: TurnDraft | None = None
    tracker: CallTracker = field(default_factory=CallTracker)

    def open_turn(self) -> TurnDraft:
        if self.pending is None:
            self.pending = TurnDraft(role="assistant")
        return self.pending

    def flush(self) -> None:
        if self.pending is not None and self.pending.has_content:
            self.drafts.append(self.pending)
        self.pending = None


def _blocks(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return []
    return [b for b in content if isinstance(b, dict)]


def _record_file_refs(name: str, tool_input: Any, turn: TurnDraft) -> None:
    if not isinstance(tool_input, dict):
        return
    if name in READ_TOOLS:
        path = tool_input.get(READ_TOOLS[name])
        if isinstance(path, str):
            turn.files_read.append(path)
    if name in MODIFY_TOOLS:
        path = tool_input.get(MODIFY_TOOLS[name])
        if isinstance(path, str):
            turn.files_modified.append(path)


def _tool_use(state: _State, block: dict[str, Any]) -> None:
    turn = state.open_turn()
    name = block.get("name")
    name = name if isinstance(name, str) and name else "unknown"
    tool_input = block.get("input")
    call_id = block.get("id")
    call = PendingCall(
        name=name,
        input=pretty_json(tool_input) if tool_input is not None else None,
        call_id=call_id if isinstance(call_id, str) else None,
    )
    turn.calls.append(state.tracker.register(call))
    _record_file_refs(name, tool_input, turn)


def _tool_result(state: _State, block: dict[str, Any]) -> None:
    call_id = block.get("tool_use_id")
    state.tracker.resolve(
        call_id if isinstance(call_id, str) else None,
        block_text(block.get("content")),
    )


def _user_event(state: _State, content: Any) -> None:
    for block in _blocks(content):
        if block.get("type") == "tool_result":
            _tool_result(state, block)
    text = block_text(content)
    if text:
        state.flush()
        state.drafts.append(TurnDraft(role="user", text_parts=[text]))


def _assistant_event(state: _State, content: Any) -> None:
    turn = state.open_turn()
    if isinstance(content, str):
        turn.add_text(content)
    for block in _blocks(content):
        kind = block.get("type")
        if kind == "text" and isinstance(block.get("text"), str):
            turn.add_text(block["text"])
        elif kind == "thinking" and isinstance(block.get("thinking"), str):
            turn.add_thinking(block["thinking"])
        elif kind == "tool_use":
            _tool_use(state, block)
        elif kind == "tool_result":
            _tool_result(state, block)
    state.flush()


def _apply_line(state: _State, line: str) -> _State:
    event = load_json(line)
    if not isinstance(event, dict):
        return state
    message = event.get("message")
    content = message.get("content") if isinstance(message, dict) else None

    event_type = event.get("type")
    if event_type == "user":
        _user_event(state, content)
    elif event_type == "assistant":
        _assistant_event(state, content)
    elif event_type == "tool_use":
        for block in _blocks(content):
            if block.get("type") == "tool_use":
                _tool_use(state, block)
    elif event_type == "tool_result":
        for block in _blocks(content):
            if block.get("type") == "tool_result":
                _tool_result(state, block)
    return state


class ClaudeCodeParser:
    provider_key = "claude-code"
    display_name = "Claude Code"

    def parse(self, content: str, session_id: str) -> ParseResult:
        lines = non_blank_lines(content)
        if not lines:
            return Unrecognized("transcript is empty")
        first = load_json(lines[0])
        if not isinstance(first, dict) or not isinstance(first.get("type"), str):
            return Unrecognized("first line is not a JSON event with a type")

        state = reduce(_apply_line, lines, _State())
        state.flush()
        return Parsed(
            NormalizedSession(
                provider_key=self.provider_key,
                provider_display_name=self.display_name,
                session_id=session_id,
                turns=build_turns(state.drafts),
            )
        )
