"""Cline and Roo Code task histories: a JSON array of role-tagged messages."""

from __future__ import annotations

from typing import Any

from ..session import NormalizedSession, Parsed, ParseResult, Unrecognized
from ._common import (
    CallTracker,
    PendingCall,
    TurnDraft,
    build_turns,
    block_text,
    load_json,
    pretty_json,
)

READ_TOOLS = frozenset({"read_file"})
MODIFY_TOOLS = frozenset(
    {
        "write_to_file",
        "apply_diff",
        "replace_in_file",
        "insert_content",
        "search_and_replace",
    }
)


def _message_draft(message: dict[str, Any], tracker: CallTracker) -> TurnDraft:
    draft = TurnDraft(role="user" if message.get("role") == "user" else "assistant")
    content = message.get("content")
    if isinstance(content, str):
        draft.add_text(content)
        return draft
    if not isinstance(content, list):
        return draft

    draft.add_text(block_text(content))
    for block in content:
        if not isinstance(block, dict):
            continue
        kind = block.get("type")
        if kind == "tool_use" and isinstance(block.get("name"), str) and block["name"]:
            _add_tool_use(draft, block, tracker)
        elif kind == "tool_result":
            call_id = block.get("tool_use_id")
            tracker.resolve(
                call_id if isinstance(call_id, str) else None,
                block_text(block.get("content")),
            )
    return draft


def _add_tool_use(draft: TurnDraft, block: dict[str, Any], tracker: CallTracker) -> None:
    name = block["name"]
    tool_input = block.get("input")
    call_id = block.get("id")
    draft.calls.append(
        tracker.register(
            PendingCall(
                name=name,
                input=pretty_json(tool_input) if tool_input is not None else None,
                call_id=call_id if isinstance(call_id, str) else None,
            )
        )
    )
    path = tool_input.get("path") if isinstance(tool_input, dict) else None
    if not isinstance(path, str):
        return
    if name in READ_TOOLS:
        draft.files_read.append(path)
    elif name in MODIFY_TOOLS:
        draft.files_modified.append(path)


class ClineParser:
    """Parser for the Anthropic-message history both extensions persist.

    Cline and Roo Code share the on-disk format, so one class serves both
    provider keys.
    """

    def __init__(self, provider_key: str, display_name: str) -> None:
        self.provider_key = provider_key
        self.display_name = display_name

    def parse(self, content: str, session_id: str) -> ParseResult:
        if not content.lstrip().startswith("["):
            return Unrecognized("content is not a JSON array")
        messages = load_json(content)
        if not isinstance(messages, list):
            return Unrecognized("content is not a JSON array")

        tracker = CallTracker()
        drafts = [
            _message_draft(message, tracker)
            for message in messages
            if isinstance(message, dict)
        ]
        return Parsed(
            NormalizedSession(
                provider_key=self.provider_key,
                provider_display_name=self.display_name,
                session_id=session_id,
                turns=build_turns(drafts),
            )
        )
