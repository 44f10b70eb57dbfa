"""Continue sessions: a single JSON object with ``history``, ``context`` and ``steps``."""

from __future__ import annotations

from typing import Any

from ..session import NormalizedSession, Parsed, ParseResult, Unrecognized
from ._common import (
    PendingCall,
    TurnDraft,
    build_turns,
    join_fragments,
    load_json,
    pretty_json,
)


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    return "\n".join(
        p["text"] for p in content if isinstance(p, dict) and isinstance(p.get("text"), str)
    )


def context_files(items: Any) -> list[str]:
    """Names of context items, preferring the item's URI."""
    if not isinstance(items, list):
        return []
    files = []
    for item in items:
        if not isinstance(item, dict):
            continue
        uri = item.get("uri")
        value = uri.get("value") if isinstance(uri, dict) else None
        name = value if isinstance(value, str) and value else item.get("name")
        if isinstance(name, str) and name:
            files.append(name)
    return files


def _step_call(step: dict[str, Any]) -> PendingCall:
    params = step.get("params")
    output = step.get("output")
    return PendingCall(
        name=step.get("name") if isinstance(step.get("name"), str) else "unknown",
        input=pretty_json(params) if params else None,
        output=output if isinstance(output, str) and output else None,
    )


def _tool_state_call(state: Any) -> PendingCall | None:
    if not isinstance(state, dict):
        return None
    call = state.get("toolCall")
    function = call.get("function") if isinstance(call, dict) else None
    if not isinstance(function, dict) or not isinstance(function.get("name"), str):
        return None
    arguments = function.get("arguments")
    results = state.get("output") if isinstance(state.get("output"), list) else []
    output_text = join_fragments(
        [r["content"] for r in results if isinstance(r, dict) and isinstance(r.get("content"), str)]
    )
    return PendingCall(
        name=function["name"],
        input=arguments if isinstance(arguments, str) and arguments else None,
        output=output_text or None,
    )


def _item_draft(item: dict[str, Any]) -> TurnDraft:
    message = item.get("message") if isinstance(item.get("message"), dict) else item
    draft = TurnDraft(role="user" if message.get("role") == "user" else "assistant")
    draft.add_text(_content_text(message.get("content")))
    draft.files_read.extend(context_files(item.get("contextItems")))
    call = _tool_state_call(item.get("toolCallState"))
    if call is not None:
        draft.calls.append(call)
    return draft


class ContinueParser:
    provider_key = "continue"
    display_name = "Continue"

    def parse(self, content: str, session_id: str) -> ParseResult:
        if not content.lstrip().startswith("{"):
            return Unrecognized("content is not a JSON object")
        data = load_json(content)
        if not isinstance(data, dict):
            return Unrecognized("content is not a JSON object")
        history = data.get("history", [])
        if not isinstance(history, list):
            return Unrecognized("history is not a list")

        drafts = [_item_draft(item) for item in history if isinstance(item, dict)]
        drafts = [d for d in drafts if d.has_content]

        first_user = next((d for d in drafts if d.role == "user"), None)
        if first_user is not None:
            first_user.files_read[:0] = context_files(data.get("context"))

        steps = data.get("steps")
        first_assistant = next((d for d in drafts if d.role == "assistant"), None)
        if first_assistant is not None and isinstance(steps, list):
            first_assistant.calls[:0] = [_step_call(s) for s in steps if isinstance(s, dict)]

        return Parsed(
            NormalizedSession(
                provider_key=self.provider_key,
                provider_display_name=self.display_name,
                session_id=session_id,
                turns=build_turns(drafts),
            )
        )
