"""Render a :class:`~sessionarchive.session.NormalizedSession` as Markdown."""

from __future__ import annotations

import re

from .session import NormalizedSession, NormalizedTurn, ToolCall

_BACKTICK_RUN = re.compile(r"`{3,}")


def _fence_for(text: str) -> str:
    """A backtick fence longer than any run of backticks inside *text*."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(text)), default=2)
    return "`" * max(3, longest + 1)


def _indented_block(text: str, indent: str = "  ") -> list[str]:
    fence = _fence_for(text)
    body = [f"{indent}{line}" if line else "" for line in text.split("\n")]
    return [f"{indent}{fence}", *body, f"{indent}{fence}"]


def _render_tool_call(call: ToolCall) -> list[str]:
    lines = [f"- **{call.name}**"]
    if call.input is not None:
        lines.append("")
        lines.extend(_indented_block(call.input))
    if call.output is not None:
        lines.extend(
            [
                "",
                "  <details>",
                "  <summary>Output</summary>",
                "",
                *_indented_block(call.output),
                "",
                "  </details>",
            ]
        )
    lines.append("")
    return lines


def _render_tools(calls: list[ToolCall]) -> list[str]:
    if not calls:
        return []
    lines = ["### Tools Called", ""]
    for call in calls:
        lines.extend(_render_tool_call(call))
    return lines


def _render_thinking(thinking: str | None) -> list[str]:
    if not thinking:
        return []
    return ["<details>", "<summary>Reasoning</summary>", "", thinking, "", "</details>", ""]


def _render_files(title: str, files: list[str]) -> list[str]:
    if not files:
        return []
    return [f"### {title}", "", *(f"- `{f}`" for f in files), ""]


def _render_turn(turn: NormalizedTurn, number: int) -> list[str]:
    label = "User" if turn.role == "user" else "Assistant"
    lines = [f"## Turn {number} ({label})", ""]
    if turn.content:
        lines.extend([turn.content, ""])
    lines.extend(_render_tools(turn.tool_calls))
    lines.extend(_render_thinking(turn.thinking))
    lines.extend(_render_files("Files Read", turn.files_read))
    lines.extend(_render_files("Files Modified", turn.files_modified))
    lines.extend(["---", ""])
    return lines


def render_markdown(session: NormalizedSession) -> str:
    """Render *session* as a Markdown document.

    Empty turns are skipped and the remaining ones numbered from 1.
    """
    name = session.provider_display_name
    lines = [
        f"# {name} Session",
        "",
        f"**Provider:** {name}",
        f"**Session ID:** {session.session_id}",
        "",
        "---",
        "",
    ]
    for number, turn in enumerate(session.non_empty_turns(), 1):
        lines.extend(_render_turn(turn, number))
    return "\n".join(lines)
