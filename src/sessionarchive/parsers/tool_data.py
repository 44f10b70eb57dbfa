"""Recover tool input/output from Copilot's ``toolSpecificData`` payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class ToolData:
    input: str | None = None
    output: str | None = None


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _nested(data: dict[str, Any], outer: str, inner: str) -> str | None:
    value = data.get(outer)
    return _text(value.get(inner)) if isinstance(value, dict) else None


def _terminal(data: dict[str, Any]) -> ToolData:
    return ToolData(
        input=_nested(data, "commandLine", "original"),
        output=_nested(data, "terminalCommandOutput", "text"),
    )


def _input(data: dict[str, Any]) -> ToolData:
    return ToolData(output=_text(data.get("rawInput")))


def _subagent(data: dict[str, Any]) -> ToolData:
    return ToolData(output=_text(data.get("prompt")))


_EXTRACTORS: dict[str, Callable[[dict[str, Any]], ToolData]] = {
    "terminal": _terminal,
    "input": _input,
    "subagent": _subagent,
}


def extract_tool_data(data: Any) -> ToolData | None:
    """Return the input/output carried by *data*, or ``None`` for unknown shapes."""
    if not isinstance(data, dict) or not isinstance(data.get("kind"), str):
        return None
    extractor = _EXTRACTORS.get(data["kind"])
    return extractor(data) if extractor is not None else None
