"""ArchiveService: the main orchestrator class."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .config import ArchiveConfig
from .fs import FileSystem, LocalFileSystem
from .markdown import render_markdown
from .naming import archive_file_name, parse_archive_file_name
from .parsers import PARSERS
from .providers import SessionFile, SessionProvider
from .session import SessionParser, Unrecognized

logger = logging.getLogger(__name__)


def log_cycle_failure(future: Future[int] | asyncio.Future[int]) -> None:
    """Done-callback that logs the exception of a background archive cycle."""
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Archive cycle failed", exc_info=exc)


@dataclass
class ArchivedEntry:
    """What the service last wrote for one archive name.

    ``mtime`` is ``None`` for entries recovered from file names at start-up,
    so the next cycle rewrites them once.
    """

    archive_file_name: str
    mtime: float | None = None


class ArchiveService:
    """Periodically copy agent sessions of one project into its archive.

    Parameters
    ----------
    project_root:
        Project whose sessions are archived; the archive path is relative
        to it.
    providers:
        Session providers to query, in order.
    fs:
        Filesystem used for every archive read and write.
    parsers:
        Parser per provider key; defaults to the built-in registry.
    """

    def __init__(
        self,
        project_root: str | Path,
        providers: Sequence[SessionProvider],
        *,
        fs: FileSystem | None = None,
        parsers: Mapping[str, SessionParser] | None = None,
    ) -> None:
        self._project_root = Path(project_root)
        self._providers = list(providers)
        self._fs: FileSystem = fs or LocalFileSystem()
        self._parsers = dict(PARSERS if parsers is None else parsers)
        self._config: ArchiveConfig | None = None
        self._running = False
        self._needs_dedup = False
        self._in_flight = False
        self._timer: asyncio.Task[None] | None = None
        self._archived: dict[str, ArchivedEntry] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def current_config(self) -> ArchiveConfig | None:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def archive_dir(self) -> Path | None:
        if self._config is None:
            return None
        return self._project_root / self._config.archive_path

    async def start(self, config: ArchiveConfig) -> None:
        """Run one cycle now, then one every ``config.interval_minutes``.

        Any previous schedule is stopped first, and the next cycle removes
        duplicate archive files again.
        """
        self.stop()
        self._config = config
        if not config.enabled:
            logger.debug("Archiving disabled, not starting")
            return
        self._running = True
        self._needs_dedup = True
        logger.info("Session archiving started (interval: %sm)", config.interval_minutes)
        await self.run_archive_cycle()
        if self._running and self._timer is None:
            self._timer = asyncio.create_task(self._tick(config.interval_minutes * 60))

    async def run_once(self, config: ArchiveConfig) -> int:
        """Run a single cycle, including duplicate cleanup, without scheduling more."""
        self.stop()
        self._config = config
        self._running = True
        self._needs_dedup = True
        try:
            return await self.run_archive_cycle()
        finally:
            self._running = False

    async def _tick(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            # A cycle in flight is allowed to finish when stop() cancels us.
            cycle = asyncio.ensure_future(self.run_archive_cycle())
            cycle.add_done_callback(log_cycle_failure)
            try:
                await asyncio.shield(cycle)
            except Exception:
                # Already logged by log_cycle_failure; keep the schedule.
                continue

    def stop(self) -> None:
        """Cancel the schedule.  Safe to call repeatedly."""
        stopped = self._running or self._timer is not None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._running = False
        if stopped:
            logger.info("Session archiving stopped")

    async def reconfigure(self, old: ArchiveConfig | None, new: ArchiveConfig) -> None:
        """Apply a configuration change, moving the archive if its path changed."""
        if old is None:
            if new.enabled:
                await self.start(new)
            return
        if not new.enabled:
            self.stop()
            self._config = new
            return
        if old.archive_path != new.archive_path:
            self._move_archive(old.archive_path, new.archive_path)
        await self.start(new)

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> ArchiveService:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Archive cycle
    # ------------------------------------------------------------------

    async def discover(self, provider: SessionProvider) -> list[SessionFile] | None:
        """Sessions *provider* finds for this project, or ``None`` if it failed."""
        try:
            return await asyncio.to_thread(provider.find_sessions, str(self._project_root))
        except Exception:
            logger.exception("Error finding sessions for %s", provider.display_name)
            return None

    async def run_archive_cycle(self) -> int:
        """Archive every new or changed session.  Returns the number written."""
        if not self._running or self._config is None:
            return 0
        if self._in_flight:
            logger.debug("Archive cycle already in progress, skipping")
            return 0
        self._in_flight = True
        try:
            return await self._run_cycle(self._config)
        finally:
            self._in_flight = False

    async def _run_cycle(self, config: ArchiveConfig) -> int:
        archive_dir = self._project_root / config.archive_path
        if self._needs_dedup:
            self._needs_dedup = False
            self._deduplicate(archive_dir)

        cutoff = config.cutoff
        written = 0
        for provider in self._providers:
            sessions = await self.discover(provider)
            for session in sessions or []:
                if self._archive_session(session, archive_dir, cutoff):
                    written += 1
        if written:
            logger.info("Archived %d session(s) to %s", written, archive_dir)
        return written

    def _archive_session(
        self, session: SessionFile, archive_dir: Path, cutoff: float | None
    ) -> bool:
        created = session.ctime if session.ctime is not None else session.mtime
        if cutoff is not None and created < cutoff:
            logger.debug("Skipping %s: created before cutoff", session.display_name)
            return False
        entry = self._archived.get(session.archive_name)
        if entry is not None and entry.mtime == session.mtime:
            return False

        try:
            self._ensure_dir(archive_dir)
            markdown = self._convert(session, self._fs.read_bytes(session.path))
            extension = ".md" if markdown is not None else session.extension
            file_name = archive_file_name(created, session.archive_name, extension)
            if entry is not None and entry.archive_file_name != file_name:
                self._delete(archive_dir / entry.archive_file_name)
            dest = archive_dir / file_name
            if markdown is not None:
                self._fs.write_text(dest, markdown)
            else:
                self._fs.copy(session.path, dest)
        except OSError as exc:
            logger.error("Failed to archive %s: %s", session.display_name, exc)
            return False

        self._archived[session.archive_name] = ArchivedEntry(file_name, session.mtime)
        logger.debug("Archived %s -> %s", session.display_name, file_name)
        return True

    def _convert(self, session: SessionFile, raw: bytes) -> str | None:
        """Markdown for *session*, or ``None`` when it should be copied as is."""
        parser = self._parsers.get(session.provider_key)
        if parser is None:
            return None
        content = raw.decode("utf-8", errors="replace")
        try:
            result = parser.parse(content, session.session_id or session.archive_name)
        except Exception:
            logger.warning(
                "Parser %s failed on %s, copying raw file",
                session.provider_key,
                session.display_name,
                exc_info=True,
            )
            return None
        if isinstance(result, Unrecognized):
            logger.debug("%s not recognized (%s), copying raw file", session.display_name, result.reason)
            return None
        return render_markdown(result.session)

    def _deduplicate(self, archive_dir: Path) -> None:
        """Keep the newest file per archive name and remember it."""
        try:
            entries = self._fs.list_dir(archive_dir)
        except OSError:
            logger.debug("Archive directory %s not found, nothing to deduplicate", archive_dir)
            return

        latest: dict[str, str] = {}
        stale: list[str] = []
        for path in sorted(entries, key=lambda p: p.name):
            parsed = parse_archive_file_name(path.name)
            if parsed is None or not self._fs.is_file(path):
                continue
            previous = latest.get(parsed.archive_name)
            if previous is not None:
                stale.append(previous)
            latest[parsed.archive_name] = path.name

        for name in stale:
            try:
                self._delete(archive_dir / name)
            except OSError as exc:
                logger.error("Could not remove duplicate archive %s: %s", name, exc)
                continue
            logger.info("Removed duplicate archive: %s", name)

        for archive_name, file_name in latest.items():
            known = self._archived.get(archive_name)
            if known is None or known.archive_file_name != file_name:
                self._archived[archive_name] = ArchivedEntry(file_name)

    def _move_archive(self, old_path: str, new_path: str) -> None:
        """Move archive files from *old_path* to *new_path*.

        When the new directory lies inside the old one, only the moved files
        are removed so the new directory survives.
        """
        old_dir = self._project_root / old_path
        new_dir = self._project_root / new_path
        if old_dir.resolve() == new_dir.resolve():
            return
        nested = old_dir.resolve() in new_dir.resolve().parents
        try:
            entries = self._fs.list_dir(old_dir)
        except OSError:
            logger.debug("Old archive directory not found: %s", old_dir)
            return
        try:
            self._ensure_dir(new_dir)
            moved = []
            for entry in entries:
                if self._fs.is_file(entry):
                    self._fs.copy(entry, new_dir / entry.name)
                    moved.append(entry)
            if nested:
                for entry in moved:
                    self._delete(entry)
            else:
                self._fs.delete_tree(old_dir)
        except OSError as exc:
            logger.error("Failed to move archive from %s to %s: %s", old_path, new_path, exc)
            return
        logger.info("Moved archive from %s to %s", old_path, new_path)

    def _ensure_dir(self, path: Path) -> None:
        try:
            self._fs.mkdir(path)
        except FileExistsError:
            logger.debug("Directory %s already exists", path)

    def _delete(self, path: Path) -> None:
        try:
            self._fs.delete(path)
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", path)
