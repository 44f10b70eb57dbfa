"""Session watcher: trigger a re-scan when providers' files change, using watchdog."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .providers import SessionProvider, WatchableProvider, WatchPattern

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 10.0


class _SessionFileHandler(PatternMatchingEventHandler):
    """Forward create/modify/move events for one watch pattern."""

    def __init__(self, pattern: WatchPattern, callback: Callable[[], None]) -> None:
        super().__init__(
            patterns=[pattern.glob.rsplit("/", 1)[-1]],
            ignore_directories=True,
        )
        self._callback = callback

    def on_created(self, event: FileSystemEvent) -> None:
        logger.debug("Session file created: %s", event.src_path)
        self._callback()

    def on_modified(self, event: FileSystemEvent) -> None:
        logger.debug("Session file modified: %s", event.src_path)
        self._callback()

    def on_moved(self, event: FileSystemEvent) -> None:
        logger.debug("Session file moved: %s -> %s", event.src_path, event.dest_path)
        self._callback()


class SessionFileWatcher:
    """Watch provider storage and call *on_changed* once per burst of writes.

    Parameters
    ----------
    providers:
        Providers to watch; only those exposing ``get_watch_patterns`` are
        watched.
    on_changed:
        Called from a timer thread after *debounce_seconds* without further
        events.
    debounce_seconds:
        Quiet period that must elapse before *on_changed* fires.
    observer_factory:
        Builds the watchdog observer; defaults to the platform observer.
    """

    def __init__(
        self,
        providers: list[SessionProvider],
        on_changed: Callable[[], None],
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._providers = providers
        self._on_changed = on_changed
        self._debounce_seconds = debounce_seconds
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def watch_patterns(self, project_root: str) -> list[WatchPattern]:
        patterns: list[WatchPattern] = []
        for provider in self._providers:
            if isinstance(provider, WatchableProvider):
                patterns.extend(provider.get_watch_patterns(project_root))
        return patterns

    def start(self, project_root: str) -> None:
        """Start watching in a background thread, replacing any previous run."""
        self.stop()
        observer = self._observer_factory()
        for pattern in self.watch_patterns(project_root):
            base = Path(pattern.base_dir)
            if not base.is_dir():
                logger.debug("Not watching missing directory %s", base)
                continue
            handler = _SessionFileHandler(pattern, self.notify)
            observer.schedule(handler, str(base), recursive="/" in pattern.glob)
            logger.info("Watching %s (%s)", base, pattern.glob)
        observer.start()
        self._observer = observer

    def notify(self) -> None:
        """Restart the debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._on_changed()

    def stop(self) -> None:
        """Stop watching and drop any pending notification."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def __enter__(self) -> SessionFileWatcher:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
