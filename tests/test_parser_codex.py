"""Tests for the Codex rollout parser."""

import json

from sessionarchive.parsers.codex import CodexParser, extract_user_request
from sessionarchive.session import Parsed, Unrecognized

SESSION_META = {"type": "session_meta", "payload": {"id": "s-1", "cwd": "/workspace"}}
TASK_STARTED = {"type": "event_msg", "payload": {"type": "task_started"}}
TASK_COMPLETE = {"type": "event_msg", "payload": {"type": "task_complete"}}
EXEC_HEADER = "Chunk ID: abc\nWall time: 0.1 seconds\nProcess exited with code 0\nOutput:\n"


def jsonl(*events) -> str:
    return "\n".join(json.dumps(e) for e in events)


def user_message(message: str) -> dict:
    return {"type": "event_msg", "payload": {"type": "user_message", "message": message}}


def assistant_message(text: str) -> dict:
    return {
        "type": "response_item",
        "payload": {
            "type": "message",
            "role": "assistant",
            "content": [{"type": "output_text", "text": text}],
        },
    }


def reasoning(text: str) -> dict:
    return {
        "type": "response_item",
        "payload": {"type": "reasoning", "summary": [{"type": "summary_text", "text": text}]},
    }


def function_call(name: str, args: dict, call_id: str) -> dict:
    return {
        "type": "response_item",
        "payload": {
            "type": "function_call",
            "name": name,
            "arguments": json.dumps(args),
            "call_id": call_id,
        },
    }


def call_output(call_id: str, output: str, kind: str = "function_call_output") -> dict:
    return {"type": "response_item", "payload": {"type": kind, "call_id": call_id, "output": output}}


def parse(*events):
    result = CodexParser().parse(jsonl(*events), "s-1")
    assert isinstance(result, Parsed)
    return result.session


def assistant_turn(session):
    return next(t for t in session.turns if t.role == "assistant")


def test_unrecognized_without_session_meta():
    assert isinstance(CodexParser().parse("", "s"), Unrecognized)
    result = CodexParser().parse(jsonl(user_message("hi")), "s")
    assert isinstance(result, Unrecognized)


def test_session_header_fields():
    session = parse(SESSION_META, TASK_STARTED, user_message("hello"), TASK_COMPLETE)
    assert session.provider_key == "codex"
    assert session.provider_display_name == "OpenAI Codex"
    assert session.session_id == "s-1"
    assert [t.content for t in session.turns] == ["hello"]


def test_strips_ide_context_preamble():
    message = "# Context from my IDE setup:\n\n## Active file: foo.ts\n\n## My request for Codex:\nRefactor this"
    assert extract_user_request(message) == "Refactor this"
    session = parse(SESSION_META, user_message(message), TASK_COMPLETE)
    assert session.turns[0].content == "Refactor this"


def test_multiple_assistant_messages_are_joined():
    session = parse(
        SESSION_META,
        user_message("hi"),
        assistant_message("Part one."),
        assistant_message("Part two."),
        TASK_COMPLETE,
    )
    assert assistant_turn(session).content == "Part one.\n\nPart two."


def test_reasoning_from_both_sources_without_repeats():
    session = parse(
        SESSION_META,
        user_message("hi"),
        {"type": "event_msg", "payload": {"type": "agent_reasoning", "text": "Planning"}},
        reasoning("Planning"),
        reasoning("Checking tests"),
        assistant_message("Done."),
        TASK_COMPLETE,
    )
    assert assistant_turn(session).thinking == "Planning\n\nChecking tests"


def test_exec_command_input_and_output():
    session = parse(
        SESSION_META,
        user_message("status"),
        function_call("exec_command", {"cmd": "git status", "workdir": "/workspace"}, "c1"),
        call_output("c1", EXEC_HEADER + "On branch main"),
        assistant_message("Done."),
        TASK_COMPLETE,
    )
    [call] = assistant_turn(session).tool_calls
    assert call.name == "exec_command"
    assert call.input == "git status"
    assert call.output == "On branch main"


def test_command_list_is_joined():
    session = parse(
        SESSION_META,
        user_message("run"),
        function_call("shell", {"command": ["bash", "-lc", "ls"]}, "c1"),
        TASK_COMPLETE,
    )
    assert assistant_turn(session).tool_calls[0].input == "bash -lc ls"


def test_outputs_correlate_by_call_id():
    session = parse(
        SESSION_META,
        user_message("check"),
        function_call("exec_command", {"cmd": "cmd-A"}, "id-A"),
        function_call("exec_command", {"cmd": "cmd-B"}, "id-B"),
        call_output("id-B", EXEC_HEADER + "output-B"),
        call_output("id-A", EXEC_HEADER + "output-A"),
        TASK_COMPLETE,
    )
    outputs = {c.input: c.output for c in assistant_turn(session).tool_calls}
    assert outputs == {"cmd-A": "output-A", "cmd-B": "output-B"}


def test_apply_patch_records_modified_files():
    patch = "*** Begin Patch\n*** Update File: src/foo.ts\n@@\n-old\n+new"
    patch_output = json.dumps(
        {
            "output": "Success. Updated the following files:\nM src/a.ts\nA src/b.ts\nD src/c.ts\n",
            "metadata": {"exit_code": 0},
        }
    )
    session = parse(
        SESSION_META,
        user_message("fix"),
        {
            "type": "response_item",
            "payload": {"type": "custom_tool_call", "name": "apply_patch", "input": patch, "call_id": "p1"},
        },
        call_output("p1", patch_output, kind="custom_tool_call_output"),
        assistant_message("Fixed."),
        TASK_COMPLETE,
    )
    turn = assistant_turn(session)
    assert turn.tool_calls[0].input == patch
    assert turn.tool_calls[0].output.startswith("Success.")
    assert turn.files_modified == ["src/a.ts", "src/b.ts", "src/c.ts"]


def test_developer_and_user_role_items_are_ignored():
    session = parse(
        SESSION_META,
        {
            "type": "response_item",
            "payload": {
                "type": "message",
                "role": "developer",
                "content": [{"type": "input_text", "text": "system context"}],
            },
        },
        user_message("actual request"),
        assistant_message("Response."),
        TASK_COMPLETE,
    )
    assert [(t.role, t.content) for t in session.turns] == [
        ("user", "actual request"),
        ("assistant", "Response."),
    ]


def test_skips_malformed_lines_and_flushes_at_eof():
    content = "\n".join(
        [
            json.dumps(SESSION_META),
            "not json",
            json.dumps(user_message("hello")),
            json.dumps(assistant_message("Hi.")),
        ]
    )
    result = CodexParser().parse(content, "s-1")
    assert isinstance(result, Parsed)
    assert [t.content for t in result.session.turns] == ["hello", "Hi."]


def test_metadata_only_session_has_no_turns():
    assert parse(SESSION_META, TASK_STARTED, TASK_COMPLETE).turns == []


def test_malformed_payload_type_is_skipped():
    session = parse(
        SESSION_META,
        user_message("hello"),
        {"type": "response_item", "payload": {"type": ["oops"]}},
        {"type": "response_item", "payload": {"type": {"a": 1}}},
        assistant_message("Hi."),
        TASK_COMPLETE,
    )
    assert [t.content for t in session.turns] == ["hello", "Hi."]


def test_late_patch_output_attaches_to_owning_turn():
    patch_output = json.dumps({"output": "Success. Updated the following files:\nM src/a.ts\n"})
    session = parse(
        SESSION_META,
        user_message("fix"),
        {
            "type": "response_item",
            "payload": {"type": "custom_tool_call", "name": "apply_patch", "input": "patch", "call_id": "p1"},
        },
        TASK_COMPLETE,
        call_output("p1", patch_output, kind="custom_tool_call_output"),
    )
    assert [t.role for t in session.turns] == ["user", "assistant"]
    turn = session.turns[1]
    assert turn.tool_calls[0].output.startswith("Success.")
    assert turn.files_modified == ["src/a.ts"]
