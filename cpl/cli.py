"""
Command-line interface for claude-patterns.

This module provides the `cpl` entry point: session discovery and analysis,
catalog management, and syncing the catalog into CLAUDE.md files.
"""

import asyncio
from fnmatch import fnmatch
import json
from pathlib import Path
import sys
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cpl import __version__
from cpl.analyzer.pattern_extractor import SessionAnalysisResult, SessionAnalyzer
from cpl.analyzer.session_parser import (
    decode_project_path,
    filter_sessions_by_date,
    get_session_info,
    get_session_path,
    list_sessions,
)
from cpl.catalog.search import SearchOptions, search_patterns
from cpl.catalog.store import CatalogStore
from cpl.catalog.validator import load_pattern_inputs, to_pattern_input
from cpl.config import Settings, get_settings, save_settings
from cpl.hooks.installer import install_hook, is_hook_installed, uninstall_hook
from cpl.hooks.queue import AnalysisQueueStore
from cpl.llm.client import create_completion_client
from cpl.models import PATTERN_TYPES, Pattern, PatternCatalog, PatternInput, SessionInfo
from cpl.sync.merger import sync_patterns
from cpl.utils.errors import (
    AmbiguousIdentifierError,
    AmbiguousSessionError,
    CplException,
    PatternValidationError,
)
from cpl.utils.logging import get_logger, setup_logging

# Initialize Typer app and Rich console
app = typer.Typer(
    name="cpl",
    help="Extract reusable patterns from Claude Code sessions and sync them into CLAUDE.md",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)

hook_app = typer.Typer(help="Claude Code SessionEnd hook integration")
app.add_typer(hook_app, name="hook")

PROJECT_DOCUMENT_NAME = "CLAUDE.md"
PROJECT_DETAIL_PATH = Path(".claude") / "patterns.md"


def get_store() -> CatalogStore:
    return CatalogStore(get_settings().catalog_path)


def _report_error(error: CplException) -> None:
    console.print(f"[red]Error:[/red] {escape(error.message)}")

    if isinstance(error, AmbiguousIdentifierError):
        console.print("Matching patterns:")
        for match in error.matches:
            console.print(f"  {match.short_id}...  {escape(match.name)}")
    elif isinstance(error, PatternValidationError):
        for field_error in error.errors:
            console.print(f"  {field_error.field}: {escape(field_error.message)}")
    elif isinstance(error, AmbiguousSessionError):
        console.print("Matching sessions:")
        for session_id in error.session_ids:
            console.print(f"  {session_id}")


def _run(coro) -> None:
    """Run a command coroutine; cpl errors exit with status 1."""
    try:
        asyncio.run(coro)
    except CplException as e:
        _report_error(e)
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _print_pattern_inputs(patterns: List[PatternInput]) -> None:
    for pattern in patterns:
        console.print(f"  • [cyan]{escape(pattern.name)}[/cyan] [dim]({pattern.type})[/dim]")
        console.print(f"    {escape(pattern.context)}")


# =============================================================================
# Setup
# =============================================================================


@app.command()
def init():
    """Create ~/.claude-patterns with a default config and an empty catalog."""

    async def _init():
        settings = get_settings()
        settings.patterns_dir.mkdir(parents=True, exist_ok=True)

        if settings.config_path.exists():
            console.print(f"Config already exists: {settings.config_path}")
        else:
            save_settings(settings)
            console.print(f"[green]✓[/green] Created {settings.config_path}")

        if settings.catalog_path.exists():
            console.print(f"Catalog already exists: {settings.catalog_path}")
        else:
            await CatalogStore(settings.catalog_path).save(PatternCatalog())
            console.print(f"[green]✓[/green] Created {settings.catalog_path}")

    _run(_init())


# =============================================================================
# Sessions
# =============================================================================


async def _find_sessions(session_id: Optional[str],
                         project: Optional[str],
                         since: Optional[str]) -> List[SessionInfo]:
    if session_id and project:
        return [get_session_info(get_session_path(session_id, project))]

    sessions = await list_sessions(project)

    if session_id:
        exact = [s for s in sessions if s.id == session_id]
        if exact:
            return exact[:1]
        prefixed = [s for s in sessions if s.id.startswith(session_id)]
        if len(prefixed) > 1:
            raise AmbiguousSessionError(session_id, [s.id for s in prefixed])
        return prefixed

    if since:
        sessions = filter_sessions_by_date(sessions, since)

    excluded = get_settings().analysis.exclude_patterns
    if excluded:
        sessions = [
            s for s in sessions
            if not any(fnmatch(decode_project_path(s.project), pattern) for pattern in excluded)
        ]

    return sessions


@app.command()
def sessions(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project path"),
    since: Optional[str] = typer.Option(None, "--since", help="Only sessions since YYYY-MM-DD"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum sessions to show"),
):
    """List Claude Code sessions, newest first."""

    async def _sessions():
        found = await _find_sessions(None, project, since)
        if not found:
            console.print("No sessions found")
            return

        table = Table(title=f"Sessions ({len(found)} found)")
        table.add_column("ID", style="cyan")
        table.add_column("Project")
        table.add_column("Modified", style="dim")

        for session in found[:limit]:
            table.add_row(session.id, decode_project_path(session.project), session.timestamp or "")

        console.print(table)

    _run(_sessions())


@app.command()
def analyze(
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session ID to analyze"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project path"),
    since: Optional[str] = typer.Option(None, "--since", help="Only sessions since YYYY-MM-DD"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show patterns without saving"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Save without confirmation"),
    from_queue: bool = typer.Option(False, "--queue", help="Analyze sessions queued by the SessionEnd hook"),
):
    """
    Extract patterns from sessions and add them to the catalog.

    With analysis.auto_analyze set and no session filter given, queued
    sessions are analyzed when the queue is not empty.
    """

    async def _analyze():
        settings = get_settings()
        queue_store = AnalysisQueueStore(settings.queue_path)

        use_queue = from_queue
        if not use_queue and settings.analysis.auto_analyze and not (session or project or since):
            use_queue = bool(await queue_store.list())

        if use_queue:
            targets = await _queued_sessions(queue_store)
        else:
            targets = await _find_sessions(session, project, since)
        if not targets:
            console.print("No sessions found")
            return

        store = CatalogStore(settings.catalog_path)
        analyzer = SessionAnalyzer(store, create_completion_client(settings.llm))
        save_now = yes and not dry_run

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task(f"Analyzing {len(targets)} session(s)...", total=None)

                results = await analyzer.analyze_sessions(
                    targets,
                    dry_run=not save_now,
                    min_entries=settings.analysis.min_session_length,
                )
        except CplException:
            raise
        except Exception as e:
            console.print(f"[red]Analysis failed:[/red] {escape(str(e))}")
            raise typer.Exit(1)

        extracted = _show_analysis(results)
        if dry_run:
            return

        if not save_now and extracted:
            if not typer.confirm(f"Save {extracted} pattern(s) to the catalog?"):
                console.print("Nothing saved")
                return

            for result in results:
                for pattern in result.patterns:
                    await store.create(pattern, source_session=result.session.id)
            console.print(f"[green]✓[/green] Saved {extracted} pattern(s)")

        if use_queue:
            await queue_store.remove(result.session.id for result in results)

        if extracted:
            await _auto_sync(settings, store)

    _run(_analyze())


async def _queued_sessions(queue_store: AnalysisQueueStore) -> List[SessionInfo]:
    """Queued sessions whose transcript exists; vanished ones leave the queue."""
    sessions: List[SessionInfo] = []
    missing: List[str] = []

    for item in await queue_store.list():
        if item.transcript_path and Path(item.transcript_path).is_file():
            path = Path(item.transcript_path)
        else:
            path = get_session_path(item.session_id, item.project)

        if path.is_file():
            sessions.append(get_session_info(path))
        else:
            missing.append(item.session_id)

    if missing:
        await queue_store.remove(missing)
        console.print(f"[yellow]Dropped {len(missing)} queued session(s) without a transcript[/yellow]")

    return sessions


def _project_sync_paths(project_dir: Path) -> Dict[str, Any]:
    return dict(
        document_path=project_dir / PROJECT_DOCUMENT_NAME,
        detail_path=project_dir / PROJECT_DETAIL_PATH,
        reference_path=PROJECT_DETAIL_PATH.as_posix(),
    )


async def _auto_sync(settings: Settings, store: CatalogStore) -> None:
    """Sync the catalog into every sync.target_projects entry when auto_sync is on."""
    if not settings.sync.auto_sync:
        return

    if not settings.sync.target_projects:
        console.print("[yellow]sync.auto_sync is set but sync.target_projects is empty[/yellow]")
        return

    for target in settings.sync.target_projects:
        project_dir = Path(target).expanduser().resolve()
        try:
            result = await sync_patterns(store, **_project_sync_paths(project_dir))
        except CplException as e:
            console.print(f"[yellow]Auto-sync skipped {project_dir}:[/yellow] {escape(e.message)}")
            continue

        state = "updated" if result.changed else "up to date"
        console.print(f"[green]✓[/green] Auto-synced {len(result.patterns)} pattern(s) to {project_dir} ({state})")


def _show_analysis(results: List[SessionAnalysisResult]) -> int:
    total = 0
    for result in results:
        if result.skipped:
            console.print(f"[dim]{result.session.id}: skipped ({result.skipped_reason})[/dim]")
            continue

        console.print(f"\n[bold]{result.session.id}[/bold]: {len(result.patterns)} pattern(s)")
        _print_pattern_inputs(result.patterns)
        total += len(result.patterns)

        if result.saved:
            console.print(f"  [green]✓[/green] Saved {len(result.saved)}")

    return total


# =============================================================================
# Catalog
# =============================================================================


def _prompt_pattern_data() -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": typer.prompt("Name"),
        "type": typer.prompt(f"Type ({'/'.join(PATTERN_TYPES)})", default="solution"),
        "context": typer.prompt("Context"),
        "problem": typer.prompt("Problem", default="", show_default=False),
        "solution": typer.prompt("Solution"),
        "example": typer.prompt("Example", default="", show_default=False),
        "tags": typer.prompt("Tags (comma separated)", default="", show_default=False),
    }

    tags = [t.strip() for t in data.pop("tags").split(",") if t.strip()]
    if tags:
        data["tags"] = tags
    return {k: v for k, v in data.items() if v != ""}


async def _add_patterns(file: Optional[Path]) -> None:
    store = get_store()

    if file is None:
        inputs = [to_pattern_input(_prompt_pattern_data())]
    else:
        try:
            inputs = load_pattern_inputs(file.read_text(encoding="utf-8"))
        except (yaml.YAMLError, ValueError) as e:
            console.print(f"[red]Error:[/red] Invalid YAML in {file}: {escape(str(e))}")
            raise typer.Exit(1)

    if not inputs:
        console.print("No patterns found in input")
        return

    for pattern_input in inputs:
        pattern = await store.create(pattern_input)
        console.print(f"[green]✓[/green] Added {escape(pattern.name)} ({pattern.short_id})")


@app.command()
def add(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="YAML file with patterns"),
):
    """Add patterns from a YAML file, or interactively."""
    _run(_add_patterns(file))


@app.command()
def create():
    """Create a pattern interactively."""
    _run(_add_patterns(None))


@app.command("list")
def list_patterns(
    pattern_type: Optional[str] = typer.Option(None, "--type", "-t", help="Filter by type"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Keyword search"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Require tag (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List catalog patterns."""

    async def _list():
        patterns = await get_store().list()
        patterns = search_patterns(
            patterns,
            SearchOptions(type=pattern_type, keyword=search, tags=tags or []),
        )

        if as_json:
            typer.echo(json.dumps([p.to_record() for p in patterns], indent=2, ensure_ascii=False))
            return

        if not patterns:
            console.print("No patterns found")
            return

        table = Table(title=f"Patterns ({len(patterns)})")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Type", style="dim")
        table.add_column("Tags")

        for pattern in patterns:
            table.add_row(
                pattern.short_id,
                escape(pattern.name),
                pattern.type,
                escape(", ".join(pattern.tags or [])),
            )

        console.print(table)

    _run(_list())


async def _resolve_or_exit(store: CatalogStore, identifier: str, name_only: bool) -> Pattern:
    if name_only:
        pattern = await store.resolve_by_name_only(identifier)
    else:
        pattern = await store.resolve(identifier)

    if pattern is None:
        console.print(f"[red]Error:[/red] Pattern '{escape(identifier)}' not found")
        raise typer.Exit(1)
    return pattern


@app.command()
def show(
    identifier: str = typer.Argument(..., help="Pattern id, id prefix or name"),
    name_only: bool = typer.Option(False, "--name", help="Match by name only"),
):
    """Show a pattern as YAML."""

    async def _show():
        pattern = await _resolve_or_exit(get_store(), identifier, name_only)
        typer.echo(yaml.safe_dump(pattern.to_record(), sort_keys=False, allow_unicode=True).rstrip())

    _run(_show())


@app.command()
def remove(
    identifier: str = typer.Argument(..., help="Pattern id, id prefix or name"),
    name_only: bool = typer.Option(False, "--name", help="Match by name only"),
):
    """Remove a pattern from the catalog."""

    async def _remove():
        store = get_store()
        if name_only:
            removed = await store.remove_by_name_only(identifier)
        else:
            removed = await store.remove(identifier)

        if not removed:
            console.print(f"[red]Error:[/red] Pattern '{escape(identifier)}' not found")
            raise typer.Exit(1)

        console.print(f"[green]✓[/green] Removed {escape(identifier)}")

    _run(_remove())


# =============================================================================
# Sync
# =============================================================================


@app.command()
def sync(
    identifiers: Optional[List[str]] = typer.Argument(None, help="Patterns to sync (default: all)"),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Project directory"),
    global_: bool = typer.Option(False, "--global", help="Sync to ~/.claude/CLAUDE.md"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without writing"),
    force: bool = typer.Option(False, "--force", help="Write without confirmation"),
    inline: bool = typer.Option(False, "--inline", help="Inline patterns instead of a reference"),
):
    """Sync catalog patterns into CLAUDE.md."""

    async def _sync():
        if global_ and project:
            console.print("[red]Error:[/red] Use either --project or --global")
            raise typer.Exit(1)

        settings = get_settings()
        store = CatalogStore(settings.catalog_path)

        if not await store.list():
            console.print("[yellow]Catalog is empty, nothing to sync[/yellow]")
            return

        if global_:
            options = dict(
                document_path=Path.home() / ".claude" / PROJECT_DOCUMENT_NAME,
                detail_path=settings.global_detail_path,
                reference_path=str(settings.global_detail_path),
            )
        else:
            options = _project_sync_paths((project or Path.cwd()).resolve())

        document_path = options["document_path"]
        options.update(identifiers=identifiers or [], inline=inline)

        preview = await sync_patterns(store, dry_run=True, **options)
        if dry_run:
            console.print(f"[bold]{len(preview.patterns)} pattern(s)[/bold] → {document_path}")
            if preview.markers_missing:
                console.print("[yellow]No patterns section markers; a real sync would append one[/yellow]")
            elif preview.changed:
                console.print("Document would change:")
                typer.echo(preview.new_document)
            else:
                console.print("Document unchanged")
            return

        if preview.markers_missing and not force:
            if not typer.confirm(f"{document_path} has no patterns section. Append one?"):
                console.print("Nothing written")
                return

        result = await sync_patterns(store, dry_run=False, **options)
        if result.detail_path:
            console.print(f"[green]✓[/green] Wrote {len(result.patterns)} pattern(s) to {result.detail_path}")
        if result.changed:
            console.print(f"[green]✓[/green] Updated {document_path}")
        else:
            console.print(f"{document_path} already up to date")

    _run(_sync())


# =============================================================================
# Hooks
# =============================================================================


def _read_hook_payload() -> Dict[str, Any]:
    """The JSON object Claude Code pipes to hook commands, or {} when absent."""
    if sys.stdin is None or sys.stdin.isatty():
        return {}

    raw = sys.stdin.read()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Ignoring hook input that is not JSON")
        return {}
    return payload if isinstance(payload, dict) else {}


@hook_app.command("session-end")
def hook_session_end(
    session_id: Optional[str] = typer.Option(None, "--session-id", envvar="CLAUDE_SESSION_ID", help="Session ID"),
    project: Optional[str] = typer.Option(None, "--project", envvar="CLAUDE_PROJECT_PATH", help="Project path"),
):
    """Queue the finished session for analysis (run by Claude Code)."""

    async def _hook():
        payload = _read_hook_payload()
        target_id = session_id or payload.get("session_id")
        if not target_id:
            logger.debug("SessionEnd hook ran without a session id")
            return

        store = AnalysisQueueStore(get_settings().queue_path)
        await store.add(
            target_id,
            project or payload.get("cwd") or "",
            transcript_path=payload.get("transcript_path"),
        )

    _run(_hook())


@hook_app.command("install")
def hook_install():
    """Register the SessionEnd hook in ~/.claude/settings.json."""

    async def _install():
        if await install_hook():
            console.print("[green]✓[/green] SessionEnd hook installed")
        else:
            console.print("SessionEnd hook already installed")

    _run(_install())


@hook_app.command("uninstall")
def hook_uninstall():
    """Remove the SessionEnd hook from ~/.claude/settings.json."""

    async def _uninstall():
        if await uninstall_hook():
            console.print("[green]✓[/green] SessionEnd hook removed")
        else:
            console.print("SessionEnd hook not installed")

    _run(_uninstall())


@hook_app.command("status")
def hook_status():
    """Show whether the hook is installed and how many sessions are queued."""

    async def _status():
        installed = await is_hook_installed()
        queued = await AnalysisQueueStore(get_settings().queue_path).list()

        console.print(f"SessionEnd hook: {'installed' if installed else 'not installed'}")
        console.print(f"Queued sessions: {len(queued)}")

    _run(_status())


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """claude-patterns - reusable patterns from Claude Code sessions."""
    # Setup logging
    log_level = "DEBUG" if debug else None
    setup_logging(log_level=log_level)


@app.command()
def version():
    """Show the installed version."""
    console.print(f"cpl {__version__}")


if __name__ == "__main__":
    app()
