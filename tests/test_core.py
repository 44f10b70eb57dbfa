"""Tests for the ArchiveService orchestrator."""

import asyncio
import json
import logging
import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sessionarchive.config import ArchiveConfig
from sessionarchive.core import ArchiveService, log_cycle_failure
from sessionarchive.fs import LocalFileSystem
from sessionarchive.providers import SessionFile
from sessionarchive.session import Unrecognized

ARCHIVE = "docs/archive/agent-sessions"
CONFIG = ArchiveConfig(interval_minutes=60)
CREATED = datetime(2025, 3, 4, 5, 6, tzinfo=timezone.utc).timestamp()

CLAUDE_TRANSCRIPT = "\n".join(
    json.dumps(e)
    for e in [
        {"type": "user", "message": {"role": "user", "content": "Hello"}},
        {"type": "assistant", "message": {"role": "assistant", "content": [{"type": "text", "text": "Hi!"}]}},
    ]
)


class FakeProvider:
    def __init__(self, key="claude-code", sessions=None, error=None, display_name=None):
        self.key = key
        self.display_name = display_name or key
        self.sessions = sessions or []
        self.error = error
        self.calls = 0

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.sessions)


class FlakyFileSystem(LocalFileSystem):
    """Fails the first *failures* writes or copies."""

    def __init__(self, failures: int = 1) -> None:
        self.failures = failures

    def _maybe_fail(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise PermissionError("disk says no")

    def write_text(self, path: Path, text: str) -> None:
        self._maybe_fail()
        super().write_text(path, text)

    def copy(self, src: Path, dest: Path) -> None:
        self._maybe_fail()
        super().copy(src, dest)


class ExplodingParser:
    provider_key = "claude-code"

    def parse(self, content, session_id):
        raise RuntimeError("boom")


class RejectingParser:
    provider_key = "claude-code"

    def parse(self, content, session_id):
        return Unrecognized("not mine")


def session_file(
    path: Path,
    *,
    key="claude-code",
    archive_name="claude-code-abc",
    mtime=1.0,
    ctime=CREATED,
    extension=".jsonl",
) -> SessionFile:
    return SessionFile(
        path=path,
        provider_key=key,
        archive_name=archive_name,
        display_name=f"{key} {path.name}",
        mtime=mtime,
        ctime=ctime,
        extension=extension,
        session_id="abc",
    )


@pytest.fixture
def transcript(tmp_path: Path) -> Path:
    p = tmp_path / "sessions" / "abc.jsonl"
    p.parent.mkdir()
    p.write_text(CLAUDE_TRANSCRIPT)
    return p


@pytest.fixture
def project(tmp_path: Path) -> Path:
    p = tmp_path / "project"
    p.mkdir()
    return p


def archive_files(project: Path) -> list[str]:
    archive = project / ARCHIVE
    return sorted(p.name for p in archive.iterdir()) if archive.exists() else []


@pytest.mark.asyncio
async def test_start_archives_as_markdown(project: Path, transcript: Path):
    service = ArchiveService(project, [FakeProvider(sessions=[session_file(transcript)])])
    await service.start(CONFIG)
    try:
        assert service.is_running
        assert service.current_config == CONFIG
        assert archive_files(project) == ["202503040506-claude-code-abc.md"]
        md = (project / ARCHIVE / "202503040506-claude-code-abc.md").read_text()
        assert md.startswith("# Claude Code Session")
        assert "**Session ID:** abc" in md
        assert "## Turn 2 (Assistant)" in md
    finally:
        service.stop()
    assert not service.is_running


@pytest.mark.asyncio
async def test_unchanged_sessions_are_skipped(project: Path, transcript: Path):
    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider])
    assert await service.run_once(CONFIG) == 1
    assert await service.run_once(CONFIG) == 0


@pytest.mark.asyncio
async def test_changed_session_replaces_previous_file(project: Path, transcript: Path):
    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider])
    await service.run_once(CONFIG)

    later = datetime(2025, 3, 5, tzinfo=timezone.utc).timestamp()
    provider.sessions = [session_file(transcript, mtime=2.0, ctime=later)]
    assert await service.run_once(CONFIG) == 1
    assert archive_files(project) == ["202503050000-claude-code-abc.md"]


@pytest.mark.asyncio
async def test_mtime_is_used_without_creation_time(project: Path, transcript: Path):
    provider = FakeProvider(sessions=[session_file(transcript, mtime=CREATED, ctime=None)])
    await ArchiveService(project, [provider]).run_once(CONFIG)
    assert archive_files(project) == ["202503040506-claude-code-abc.md"]


@pytest.mark.asyncio
@pytest.mark.parametrize("parser", [ExplodingParser(), RejectingParser()])
async def test_parser_failure_falls_back_to_raw_copy(project: Path, transcript: Path, parser):
    service = ArchiveService(
        project,
        [FakeProvider(sessions=[session_file(transcript)])],
        parsers={"claude-code": parser},
    )
    assert await service.run_once(CONFIG) == 1
    [name] = archive_files(project)
    assert name == "202503040506-claude-code-abc.jsonl"
    assert (project / ARCHIVE / name).read_text() == CLAUDE_TRANSCRIPT


@pytest.mark.asyncio
async def test_providers_without_parser_are_copied(project: Path, tmp_path: Path):
    history = tmp_path / ".aider.input.history"
    history.write_bytes(b"\x00\x01raw")
    provider = FakeProvider(
        key="aider",
        sessions=[session_file(history, key="aider", archive_name="aider-input-history", extension=".txt")],
    )
    await ArchiveService(project, [provider]).run_once(CONFIG)
    assert (project / ARCHIVE / "202503040506-aider-input-history.txt").read_bytes() == b"\x00\x01raw"


@pytest.mark.asyncio
async def test_sessions_before_cutoff_are_skipped(project: Path, transcript: Path):
    old = datetime(2024, 12, 31, 23, 59, tzinfo=timezone.utc).timestamp()
    new = datetime(2025, 1, 1, tzinfo=timezone.utc).timestamp()
    provider = FakeProvider(
        sessions=[
            session_file(transcript, archive_name="claude-code-old", ctime=old),
            session_file(transcript, archive_name="claude-code-new", ctime=new),
        ]
    )
    config = ArchiveConfig(interval_minutes=60, ignore_sessions_before="20250101")
    assert await ArchiveService(project, [provider]).run_once(config) == 1
    assert archive_files(project) == ["202501010000-claude-code-new.md"]


@pytest.mark.asyncio
async def test_failing_provider_does_not_stop_the_cycle(project: Path, transcript: Path, caplog):
    broken = FakeProvider(key="cline", error=RuntimeError("unreadable"), display_name="Cline")
    good = FakeProvider(sessions=[session_file(transcript)])
    with caplog.at_level(logging.ERROR, logger="sessionarchive.core"):
        assert await ArchiveService(project, [broken, good]).run_once(CONFIG) == 1
    assert "Error finding sessions for Cline" in caplog.text


@pytest.mark.asyncio
async def test_write_failure_is_retried_next_cycle(project: Path, transcript: Path, caplog):
    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider], fs=FlakyFileSystem(failures=1))
    with caplog.at_level(logging.ERROR, logger="sessionarchive.core"):
        assert await service.run_once(CONFIG) == 0
    assert "Failed to archive claude-code abc.jsonl" in caplog.text
    assert await service.run_once(CONFIG) == 1
    assert archive_files(project) == ["202503040506-claude-code-abc.md"]


@pytest.mark.asyncio
async def test_dedup_keeps_latest_and_hydrates(project: Path, transcript: Path, caplog):
    archive = project / ARCHIVE
    archive.mkdir(parents=True)
    (archive / "202501010000-claude-code-abc.md").write_text("old")
    (archive / "202503040506-claude-code-abc.md").write_text("newer")
    (archive / "202502020000-codex-x.md").write_text("single")
    (archive / "README.md").write_text("keep me")
    (archive / "202501010000-folder.d").mkdir()

    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider])
    with caplog.at_level(logging.INFO, logger="sessionarchive.core"):
        assert await service.run_once(CONFIG) == 1
    assert "Removed duplicate archive: 202501010000-claude-code-abc.md" in caplog.text
    assert archive_files(project) == [
        "202501010000-folder.d",
        "202502020000-codex-x.md",
        "202503040506-claude-code-abc.md",
        "README.md",
    ]
    # The hydrated entry has no mtime, so the session was rewritten in place.
    assert (archive / "202503040506-claude-code-abc.md").read_text().startswith("# Claude Code Session")


@pytest.mark.asyncio
async def test_dedup_runs_once_per_start(project: Path):
    archive = project / ARCHIVE
    service = ArchiveService(project, [])
    await service.start(CONFIG)
    try:
        archive.mkdir(parents=True)
        (archive / "202501010000-x.md").write_text("a")
        (archive / "202502010000-x.md").write_text("b")
        await service.run_archive_cycle()
        assert len(archive_files(project)) == 2
        await service.start(CONFIG)
        assert archive_files(project) == ["202502010000-x.md"]
    finally:
        service.stop()


@pytest.mark.asyncio
async def test_cycle_is_noop_when_not_running(project: Path, transcript: Path):
    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider])
    assert await service.run_archive_cycle() == 0
    await service.start(ArchiveConfig(enabled=False))
    assert not service.is_running
    assert service.current_config == ArchiveConfig(enabled=False)
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_overlapping_cycle_is_skipped(project: Path, caplog):
    entered = threading.Event()
    release = threading.Event()

    class SlowProvider(FakeProvider):
        def find_sessions(self, project_root):
            entered.set()
            release.wait(5)
            return []

    service = ArchiveService(project, [SlowProvider()])
    first = asyncio.create_task(service.run_once(CONFIG))
    await asyncio.to_thread(entered.wait, 5)
    with caplog.at_level(logging.DEBUG, logger="sessionarchive.core"):
        assert await service.run_archive_cycle() == 0
    release.set()
    assert await first == 0
    assert "already in progress" in caplog.text


@pytest.mark.asyncio
async def test_timer_repeats_until_stopped(project: Path):
    provider = FakeProvider()
    service = ArchiveService(project, [provider])
    await service.start(ArchiveConfig(interval_minutes=0.0005))
    await asyncio.sleep(0.3)
    service.stop()
    await asyncio.sleep(0.1)
    calls = provider.calls
    assert calls >= 2
    await asyncio.sleep(0.2)
    assert provider.calls == calls


@pytest.mark.asyncio
async def test_stop_is_idempotent(project: Path, caplog):
    service = ArchiveService(project, [])
    with caplog.at_level(logging.INFO, logger="sessionarchive.core"):
        service.stop()
        await service.start(CONFIG)
        service.stop()
        service.close()
    assert caplog.text.count("Session archiving stopped") == 1


@pytest.mark.asyncio
async def test_reconfigure_moves_archive(project: Path, transcript: Path, caplog):
    provider = FakeProvider(sessions=[session_file(transcript)])
    service = ArchiveService(project, [provider])
    await service.reconfigure(None, CONFIG)
    old_dir = project / ARCHIVE
    (old_dir / "notes.txt").write_text("user file")

    new_config = ArchiveConfig(archive_path="history/sessions", interval_minutes=60)
    with caplog.at_level(logging.INFO, logger="sessionarchive.core"):
        await service.reconfigure(CONFIG, new_config)
    try:
        assert not old_dir.exists()
        new_dir = project / "history" / "sessions"
        assert sorted(p.name for p in new_dir.iterdir()) == [
            "202503040506-claude-code-abc.md",
            "notes.txt",
        ]
        assert "Moved archive from" in caplog.text
        assert service.current_config == new_config
    finally:
        service.stop()


@pytest.mark.asyncio
async def test_reconfigure_with_missing_old_directory(project: Path, caplog):
    service = ArchiveService(project, [])
    old = ArchiveConfig(archive_path="nowhere", interval_minutes=60)
    with caplog.at_level(logging.DEBUG, logger="sessionarchive.core"):
        await service.reconfigure(old, CONFIG)
    try:
        assert "Old archive directory not found" in caplog.text
        assert service.is_running
    finally:
        service.stop()


@pytest.mark.asyncio
async def test_reconfigure_disable_and_initial_disabled(project: Path):
    service = ArchiveService(project, [])
    disabled = ArchiveConfig(enabled=False)
    await service.reconfigure(None, disabled)
    assert service.current_config is None

    await service.reconfigure(None, CONFIG)
    assert service.is_running
    await service.reconfigure(CONFIG, disabled)
    assert not service.is_running
    assert service.current_config == disabled


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "old_path,new_path",
    [("docs/archive", "docs/archive/sessions"), ("docs/archive/sessions", "docs/archive")],
)
async def test_reconfigure_between_nested_paths_keeps_files(
    project: Path, transcript: Path, old_path, new_path
):
    old = ArchiveConfig(archive_path=old_path, interval_minutes=60)
    new = ArchiveConfig(archive_path=new_path, interval_minutes=60)
    service = ArchiveService(project, [FakeProvider(sessions=[session_file(transcript)])])
    await service.reconfigure(None, old)
    (project / old_path / "notes.txt").write_text("user file")

    await service.reconfigure(old, new)
    try:
        new_dir = project / new_path
        files = sorted(p.name for p in new_dir.iterdir() if p.is_file())
        assert files == ["202503040506-claude-code-abc.md", "notes.txt"]
        old_dir = project / old_path
        if old_dir.exists():
            assert not any(p.is_file() for p in old_dir.iterdir())
    finally:
        service.stop()


class ExplodingFileSystem(LocalFileSystem):
    """Raises a non-OSError on every mkdir after the first."""

    def __init__(self) -> None:
        self.mkdirs = 0

    def mkdir(self, path: Path) -> None:
        self.mkdirs += 1
        if self.mkdirs > 1:
            raise RuntimeError("unexpected failure")
        super().mkdir(path)


class ChangingProvider(FakeProvider):
    def __init__(self, transcript: Path) -> None:
        super().__init__()
        self.transcript = transcript

    def find_sessions(self, project_root: str) -> list[SessionFile]:
        self.calls += 1
        return [session_file(self.transcript, mtime=float(self.calls))]


@pytest.mark.asyncio
async def test_timer_survives_and_logs_unexpected_errors(project: Path, transcript: Path, caplog):
    provider = ChangingProvider(transcript)
    service = ArchiveService(project, [provider], fs=ExplodingFileSystem())
    with caplog.at_level(logging.ERROR, logger="sessionarchive.core"):
        await service.start(ArchiveConfig(interval_minutes=0.0005))
        await asyncio.sleep(0.3)
        service.stop()
    assert provider.calls >= 3
    assert "Archive cycle failed" in caplog.text
    assert "unexpected failure" in caplog.text


def test_log_cycle_failure_reports_exception(caplog):
    failed: Future = Future()
    failed.set_exception(RuntimeError("boom"))
    done: Future = Future()
    done.set_result(3)
    cancelled: Future = Future()
    cancelled.cancel()
    with caplog.at_level(logging.ERROR, logger="sessionarchive.core"):
        for future in (done, cancelled, failed):
            log_cycle_failure(future)
    assert caplog.text.count("Archive cycle failed") == 1
    assert "RuntimeError: boom" in caplog.text
