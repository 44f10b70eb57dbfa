"""Normalized conversation model shared by every transcript parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, Union

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ToolCall:
    """A single tool invocation recorded inside an assistant turn.

    ``input`` and ``output`` are ``None`` when the transcript carries no
    value, which the renderer treats differently from an empty string.
    """

    name: str
    input: str | None = None
    output: str | None = None


@dataclass
class NormalizedTurn:
    """One role-tagged exchange, independent of the source format."""

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    thinking: str | None = None
    files_read: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.content
            or self.tool_calls
            or self.thinking
            or self.files_read
            or self.files_modified
        )


@dataclass
class NormalizedSession:
    """A parsed conversation session."""

    provider_key: str
    provider_display_name: str
    session_id: str
    turns: list[NormalizedTurn] = field(default_factory=list)

    def non_empty_turns(self) -> list[NormalizedTurn]:
        return [t for t in self.turns if not t.is_empty]


@dataclass(frozen=True)
class Parsed:
    """The transcript was understood (it may still have zero turns)."""

    session: NormalizedSession


@dataclass(frozen=True)
class Unrecognized:
    """The transcript does not match the parser's format."""

    reason: str


ParseResult = Union[Parsed, Unrecognized]


class SessionParser(Protocol):
    """Turns raw transcript text into a :class:`ParseResult`.

    Implementations must be pure: no I/O and no state kept between calls.
    """

    provider_key: str

    def parse(self, content: str, session_id: str) -> ParseResult: ...
