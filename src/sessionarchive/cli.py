"""CLI interface for sessionarchive."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from .config import ConfigError, config_path, load_config, save_config


def _run(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _load(project: str, config_file: str | None):
    path = Path(config_file) if config_file else config_path(project)
    try:
        return path, load_config(path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


config_option = click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Config file (default: PROJECT/.sessionarchive.json).",
)


@click.group()
@click.version_option(package_name="sessionarchive")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """sessionarchive: archive AI coding-assistant sessions as Markdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@config_option
def archive(project: str, config_file: str | None) -> None:
    """Archive new or changed sessions of PROJECT once."""
    from .core import ArchiveService
    from .providers import default_providers

    _, config = _load(project, config_file)
    if not config.enabled:
        click.echo("Archiving is disabled in the config; run `sessionarchive toggle` to enable.", err=True)
        return

    service = ArchiveService(Path(project).resolve(), default_providers())
    n = _run(service.run_once(config))
    click.echo(f"Archived {n} session(s).")


@cli.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@config_option
@click.option("--debounce", default=10.0, show_default=True, help="Seconds of quiet before a re-scan.")
def watch(project: str, config_file: str | None, debounce: float) -> None:
    """Archive PROJECT periodically and whenever session files change."""
    from .core import ArchiveService, log_cycle_failure
    from .providers import default_providers
    from .watcher import SessionFileWatcher

    _, config = _load(project, config_file)
    if not config.enabled:
        raise click.ClickException("Archiving is disabled in the config.")

    root = Path(project).resolve()
    providers = default_providers()

    async def serve() -> None:
        loop = asyncio.get_running_loop()
        service = ArchiveService(root, providers)

        def on_changed() -> None:
            future = asyncio.run_coroutine_threadsafe(service.run_archive_cycle(), loop)
            future.add_done_callback(log_cycle_failure)

        with SessionFileWatcher(providers, on_changed, debounce_seconds=debounce) as watcher:
            watcher.start(str(root))
            await service.start(config)
            try:
                await asyncio.Event().wait()
            finally:
                service.close()

    click.echo(f"Watching sessions for {project}... (Ctrl+C to stop)")
    try:
        _run(serve())
    except KeyboardInterrupt:
        click.echo("\nStopping watcher.")


@cli.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
def sessions(project: str) -> None:
    """List the sessions each provider finds for PROJECT."""
    from .providers import default_providers

    root = str(Path(project).resolve())
    total = 0
    for provider in default_providers():
        found = provider.find_sessions(root)
        if not found:
            continue
        click.echo(f"{provider.display_name} ({len(found)}):")
        for session in found:
            click.echo(f"  {session.archive_name}  {session.path}")
        total += len(found)
    if not total:
        click.echo("No sessions found.")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--provider", "-p", required=True, help="Provider key, e.g. claude-code.")
@click.option("--session-id", default=None, help="Session id for the header (default: file stem).")
def convert(file: str, provider: str, session_id: str | None) -> None:
    """Print FILE converted to Markdown."""
    from .markdown import render_markdown
    from .parsers import PARSERS, get_parser
    from .session import Unrecognized

    parser = get_parser(provider)
    if parser is None:
        raise click.BadParameter(
            f"unknown provider {provider!r} (choose from {', '.join(sorted(PARSERS))})",
            param_hint="--provider",
        )
    path = Path(file)
    result = parser.parse(path.read_text(encoding="utf-8", errors="replace"), session_id or path.stem)
    if isinstance(result, Unrecognized):
        raise click.ClickException(f"Not a {provider} transcript: {result.reason}")
    click.echo(render_markdown(result.session))


@cli.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@config_option
def toggle(project: str, config_file: str | None) -> None:
    """Enable or disable archiving for PROJECT."""
    path, config = _load(project, config_file)
    config = config.with_enabled(not config.enabled)
    save_config(path, config)
    click.echo(f"Session archiving {'enabled' if config.enabled else 'disabled'}.")
