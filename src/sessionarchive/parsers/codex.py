"""OpenAI Codex rollouts: JSON Lines of ``event_msg`` and ``response_item`` records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Callable

from ..session import NormalizedSession, Parsed, ParseResult, Unrecognized
from ._common import (
    CallTracker,
    PendingCall,
    TurnDraft,
    build_turns,
    join_fragments,
    load_json,
    non_blank_lines,
)

REQUEST_MARKER = "## My request for Codex:\n"
EXEC_OUTPUT_MARKER = "\nOutput:\n"
PATCH_TOOLS = frozenset({"apply_patch"})
_CHANGED_FILE = re.compile(r"^[MAD] (.+)$")


@dataclass
class _State:
    drafts: list[TurnDraft] = field(default_factory=list)
    pending: TurnDraft | None = None
    tracker: CallTracker = field(default_factory=CallTracker)
    call_names: dict[str, str] = field(default_factory=dict)
    call_turns: dict[str, TurnDraft] = field(default_factory=dict)

    def open_turn(self) -> TurnDraft:
        if self.pending is None:
            self.pending = TurnDraft(role="assistant")
        return self.pending

    def flush(self) -> None:
        if self.pending is not None and self.pending.has_content:
            self.drafts.append(self.pending)
        self.pending = None


def _typed_text(items: Any, item_type: str) -> str:
    if not isinstance(items, list):
        return ""
    return join_fragments(
        [
            i["text"]
            for i in items
            if isinstance(i, dict) and i.get("type") == item_type and isinstance(i.get("text"), str)
        ]
    )


def extract_user_request(message: str) -> str:
    """Drop the IDE context preamble the Codex extension prepends."""
    idx = message.find(REQUEST_MARKER)
    if idx == -1:
        return message.strip()
    return message[idx + len(REQUEST_MARKER):].strip()


def _command_input(arguments: str) -> str:
    args = load_json(arguments)
    if isinstance(args, dict):
        if isinstance(args.get("cmd"), str):
            return args["cmd"]
        command = args.get("command")
        if isinstance(command, list) and all(isinstance(c, str) for c in command):
            return " ".join(command)
    return arguments


def _unwrap_output(raw: str) -> str:
    """Return the text of a tool output, stripping Codex's wrappers."""
    wrapped = load_json(raw) if raw.lstrip().startswith("{") else None
    if isinstance(wrapped, dict) and isinstance(wrapped.get("output"), str):
        raw = wrapped["output"]
    idx = raw.find(EXEC_OUTPUT_MARKER)
    return raw[idx + len(EXEC_OUTPUT_MARKER):] if idx != -1 else raw


def modified_files(output: str) -> list[str]:
    """Paths listed with a single-letter status in a patch tool result."""
    wrapped = load_json(output)
    if not isinstance(wrapped, dict) or not isinstance(wrapped.get("output"), str):
        return []
    files = []
    for line in wrapped["output"].splitlines():
        match = _CHANGED_FILE.match(line)
        if match and match.group(1).strip():
            files.append(match.group(1).strip())
    return files


def _add_reasoning(state: _State, text: str) -> None:
    turn = state.open_turn()
    if text and text not in turn.thinking_parts:
        turn.add_thinking(text)


def _event_msg(state: _State, payload: dict[str, Any]) -> None:
    kind = payload.get("type")
    if kind == "user_message" and isinstance(payload.get("message"), str):
        request = extract_user_request(payload["message"])
        state.flush()
        if request:
            state.drafts.append(TurnDraft(role="user", text_parts=[request]))
    elif kind == "agent_reasoning" and isinstance(payload.get("text"), str):
        _add_reasoning(state, payload["text"])
    elif kind == "task_complete":
        state.flush()


def _message(state: _State, payload: dict[str, Any]) -> None:
    if payload.get("role") == "assistant":
        state.open_turn().add_text(_typed_text(payload.get("content"), "output_text"))


def _reasoning(state: _State, payload: dict[str, Any]) -> None:
    _add_reasoning(state, _typed_text(payload.get("summary"), "summary_text"))


def _register_call(state: _State, payload: dict[str, Any], tool_input: str) -> None:
    name = payload.get("name") if isinstance(payload.get("name"), str) else "unknown"
    call_id = payload.get("call_id") if isinstance(payload.get("call_id"), str) else None
    call = PendingCall(name=name, input=tool_input or None, call_id=call_id)
    turn = state.open_turn()
    turn.calls.append(state.tracker.register(call))
    if call_id:
        state.call_names[call_id] = name
        state.call_turns[call_id] = turn


def _function_call(state: _State, payload: dict[str, Any]) -> None:
    arguments = payload.get("arguments")
    _register_call(state, payload, _command_input(arguments) if isinstance(arguments, str) else "")


def _custom_tool_call(state: _State, payload: dict[str, Any]) -> None:
    tool_input = payload.get("input")
    _register_call(state, payload, tool_input if isinstance(tool_input, str) else "")


def _call_output(state: _State, payload: dict[str, Any]) -> None:
    call_id = payload.get("call_id")
    raw = payload.get("output")
    if not isinstance(call_id, str) or not call_id or not isinstance(raw, str):
        return
    state.tracker.resolve(call_id, _unwrap_output(raw))
    if state.call_names.get(call_id) in PATCH_TOOLS:
        # The owning turn may already be flushed; drafts are built at the end.
        state.call_turns[call_id].files_modified.extend(modified_files(raw))


_RESPONSE_HANDLERS: dict[str, Callable[[_State, dict[str, Any]], None]] = {
    "message": _message,
    "reasoning": _reasoning,
    "function_call": _function_call,
    "function_call_output": _call_output,
    "custom_tool_call": _custom_tool_call,
    "custom_tool_call_output": _call_output,
}


def _apply_line(state: _State, line: str) -> _State:
    record = load_json(line)
    if not isinstance(record, dict) or not isinstance(record.get("payload"), dict):
        return state
    payload = record["payload"]
    if record.get("type") == "event_msg":
        _event_msg(state, payload)
    elif record.get("type") == "response_item":
        kind = payload.get("type")
        handler = _RESPONSE_HANDLERS.get(kind) if isinstance(kind, str) else None
        if handler is not None:
            handler(state, payload)
    return state


class CodexParser:
    provider_key = "codex"
    display_name = "OpenAI Codex"

    def parse(self, content: str, session_id: str) -> ParseResult:
        lines = non_blank_lines(content)
        if not lines:
            return Unrecognized("transcript is empty")
        first = load_json(lines[0])
        if not isinstance(first, dict) or first.get("type") != "session_meta":
            return Unrecognized("first line is not a Codex session_meta record")

        state = reduce(_apply_line, lines[1:], _State())
        state.flush()
        return Parsed(
            NormalizedSession(
                provider_key=self.provider_key,
                provider_display_name=self.display_name,
                session_id=session_id,
                turns=build_turns(state.drafts),
            )
        )
