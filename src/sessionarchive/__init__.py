"""sessionarchive: archive AI coding-assistant sessions as Markdown."""

from .config import ArchiveConfig, ConfigError, load_config, save_config
from .core import ArchiveService
from .markdown import render_markdown
from .parsers import get_parser
from .providers import SessionFile, SessionProvider, WatchPattern, default_providers
from .session import NormalizedSession, NormalizedTurn, Parsed, ToolCall, Unrecognized
from .watcher import SessionFileWatcher

__all__ = [
    "ArchiveConfig",
    "ArchiveService",
    "ConfigError",
    "NormalizedSession",
    "NormalizedTurn",
    "Parsed",
    "SessionFile",
    "SessionFileWatcher",
    "SessionProvider",
    "ToolCall",
    "Unrecognized",
    "WatchPattern",
    "default_providers",
    "get_parser",
    "load_config",
    "render_markdown",
    "save_config",
]
