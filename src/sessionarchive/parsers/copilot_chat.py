"""GitHub Copilot Chat sessions.

Older VS Code builds write one JSON document per session; newer builds write
a delta log (see :mod:`.delta`) that must be replayed first.  Both end up as a
document with a ``requests`` list.
"""

from __future__ import annotations

from typing import Any

from ..session import NormalizedSession, Parsed, ParseResult, Unrecognized
from ._common import PendingCall, TurnDraft, build_turns, load_json, non_blank_lines
from .delta import reconstruct
from .tool_data import extract_tool_data


def _message_value(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return value["value"] or None
    return None


def _user_text(request: dict[str, Any]) -> str:
    message = request.get("message")
    if not isinstance(message, dict):
        return ""
    if isinstance(message.get("text"), str) and message["text"]:
        return message["text"]
    parts = message.get("parts")
    if not isinstance(parts, list):
        return ""
    return "\n".join(
        p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str) and p["text"]
    )


def _tool_call(item: dict[str, Any], prepared_name: str | None) -> PendingCall:
    candidates = (item.get("toolName"), prepared_name, item.get("toolId"))
    name = next((c for c in candidates if isinstance(c, str) and c), "unknown")
    tool_input = _message_value(item.get("invocationMessage"))
    output = _message_value(item.get("pastTenseMessage"))
    if tool_input is None or output is None:
        extra = extract_tool_data(item.get("toolSpecificData"))
        if extra is not None:
            tool_input = tool_input or extra.input
            output = output or extra.output
    return PendingCall(name=name, input=tool_input, output=output)


def _edited_path(item: dict[str, Any]) -> str | None:
    uri = item.get("uri")
    if not isinstance(uri, dict):
        return None
    for key in ("fsPath", "path"):
        if isinstance(uri.get(key), str) and uri[key]:
            return uri[key]
    return None


def _response_draft(items: list[Any]) -> TurnDraft:
    draft = TurnDraft(role="assistant")
    prepared_name: str | None = None
    for item in items:
        if not isinstance(item, dict):
            continue
        kind = item.get("kind")
        if kind in (None, "markdownContent") and isinstance(item.get("value"), str):
            draft.add_text(item["value"])
        elif kind == "thinking" and isinstance(item.get("value"), str):
            draft.add_thinking(item["value"])
        elif kind == "prepareToolInvocation":
            prepared_name = item.get("toolName") if isinstance(item.get("toolName"), str) else None
        elif kind == "toolInvocationSerialized":
            draft.calls.append(_tool_call(item, prepared_name))
            prepared_name = None
        elif kind == "textEditGroup":
            path = _edited_path(item)
            if path and path not in draft.files_modified:
                draft.files_modified.append(path)
    return draft


def _request_drafts(request: dict[str, Any]) -> list[TurnDraft]:
    drafts = [TurnDraft(role="user", text_parts=[_user_text(request)])]
    response = request.get("response")
    if isinstance(response, list):
        drafts.append(_response_draft(response))
    return drafts


def load_document(content: str) -> dict[str, Any] | None:
    """Decode either storage layout into a session document."""
    stripped = content.strip()
    if not stripped:
        return None
    whole = load_json(stripped)
    if isinstance(whole, dict) and "requests" in whole:
        return whole
    first = load_json(non_blank_lines(stripped)[0])
    if isinstance(first, dict) and isinstance(first.get("kind"), int) and not isinstance(first["kind"], bool):
        return reconstruct(stripped)
    return whole if isinstance(whole, dict) else None


class CopilotChatParser:
    provider_key = "copilot-chat"
    display_name = "GitHub Copilot Chat"

    def parse(self, content: str, session_id: str) -> ParseResult:
        document = load_document(content)
        if document is None:
            return Unrecognized("content is neither a session document nor a delta log")
        requests = document.get("requests")
        if not isinstance(requests, list):
            return Unrecognized("session document has no requests list")

        drafts = [
            draft
            for request in requests
            if isinstance(request, dict)
            for draft in _request_drafts(request)
        ]
        return Parsed(
            NormalizedSession(
                provider_key=self.provider_key,
                provider_display_name=self.display_name,
                session_id=session_id,
                turns=build_turns(drafts),
            )
        )
