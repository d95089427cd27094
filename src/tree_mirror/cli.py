"""
Tree Mirror CLI - Command Line Interface.

Commands:
    sync    Bring the mirror up to date with the source log
    recent  List the newest mirrored members
    status  Show cursor and relations of the mirror
    config  Manage configuration
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import SecretStr, ValidationError
from rich.console import Console

from tree_mirror import __version__
from tree_mirror.config import Settings, load_settings
from tree_mirror.connectors.http_store import create_http_store
from tree_mirror.core.engine import SyncEngine, SyncStats
from tree_mirror.core.reader import MirrorReader, RecentMember
from tree_mirror.errors import MirrorError
from tree_mirror.utils.display import (
    print_error,
    print_info,
    print_members,
    print_status,
    print_success,
    print_summary,
    print_warning,
)
from tree_mirror.utils.logger import setup_from_config


app = typer.Typer(
    name="tree-mirror",
    help="Keep an index mirror of a paginated, append-only resource log.",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]tree-mirror[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Tree Mirror - index mirror of a paginated resource log."""
    pass


# Options shared by every command that talks to the store
SourceOption = typer.Option(None, "--source", "-s", help="Source log prefix (overrides config).")
MirrorOption = typer.Option(None, "--mirror", "-m", help="Mirror prefix (overrides config).")
ConfigOption = typer.Option(None, "--config", "-c", help="Path to config file.", exists=True)
TokenOption = typer.Option(
    None,
    "--api-token",
    envvar="TREE_MIRROR_API_TOKEN",
    help="Bearer token for the resource server.",
)


# =============================================================================
# SYNC Command
# =============================================================================
@app.command()
def sync(
    source: Optional[str] = SourceOption,
    mirror: Optional[str] = MirrorOption,
    config_file: Optional[Path] = ConfigOption,
    api_token: Optional[str] = TokenOption,
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        min=0,
        help="Seconds between page fetches.",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        min=1,
        help="Pages mirrored concurrently.",
    ),
    every: Optional[float] = typer.Option(
        None,
        "--every",
        min=0,
        help="Repeat the sync every N seconds.",
    ),
    cycles: Optional[int] = typer.Option(
        None,
        "--cycles",
        min=1,
        help="Stop after this many cycles (with --every).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output.",
    ),
) -> None:
    """
    Bring the mirror up to date with the source log.

    Example:
        tree-mirror sync --source https://example.org/log/ --mirror https://example.org/synced/
    """
    settings = _load(
        config_file,
        source_prefix=source,
        mirror_prefix=mirror,
        api_token=api_token,
        poll_interval=poll_interval,
        max_concurrency=concurrency,
    )
    setup_from_config(settings.logging, quiet=quiet)

    incomplete = 0

    def report(stats: SyncStats) -> None:
        nonlocal incomplete
        if not stats.complete:
            incomplete += 1
        if not quiet:
            console.print()
            print_summary({
                "mode": stats.mode,
                "duration": stats.duration_seconds,
                "pages_discovered": stats.pages_discovered,
                "pages_mirrored": stats.pages_mirrored,
                "pages_failed": stats.pages_failed,
                "members_mirrored": stats.members_mirrored,
                "members_per_second": stats.members_per_second,
                "relations_added": stats.relations_added,
                "cursor": stats.cursor,
                "cursor_committed": stats.cursor_committed,
            })
        if stats.errors:
            print_warning(f"{len(stats.errors)} problem(s) during the cycle:")
            for err in stats.errors[:10]:
                print_error(f"  • {err}")
            if len(stats.errors) > 10:
                print_info(f"  ... and {len(stats.errors) - 10} more")

    try:
        asyncio.run(_run_sync(settings, report, every, cycles))
    except MirrorError as e:
        print_error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        print_info("Stopped.")

    if incomplete:
        print_warning("The mirror is not complete yet; the next sync continues from here.")
        raise typer.Exit(1)
    if not quiet:
        print_success("Mirror is up to date.")


async def _run_sync(
    settings: Settings,
    report: Any,
    every: float | None,
    cycles: int | None,
) -> None:
    async with create_http_store(settings) as store:
        engine = SyncEngine(settings, store)
        if every is None:
            report(await engine.synchronize())
        else:
            await engine.run_forever(every, cycles=cycles, on_cycle=report)


# =============================================================================
# RECENT Command
# =============================================================================
@app.command()
def recent(
    amount: int = typer.Option(10, "--amount", "-n", min=1, help="Number of members."),
    start: int = typer.Option(0, "--start", min=0, help="Skip the N newest members."),
    source: Optional[str] = SourceOption,
    mirror: Optional[str] = MirrorOption,
    config_file: Optional[Path] = ConfigOption,
    api_token: Optional[str] = TokenOption,
) -> None:
    """List the newest members of the mirror."""
    settings = _load(
        config_file, source_prefix=source, mirror_prefix=mirror, api_token=api_token
    )
    setup_from_config(settings.logging, quiet=True)

    async def run() -> list[RecentMember]:
        async with create_http_store(settings) as store:
            return await MirrorReader(settings, store).recent_members(amount, start)

    try:
        members = asyncio.run(run())
    except MirrorError as e:
        print_error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1)

    if not members:
        print_info("The mirror has no members yet.")
        return
    print_members(members)


# =============================================================================
# STATUS Command
# =============================================================================
@app.command()
def status(
    source: Optional[str] = SourceOption,
    mirror: Optional[str] = MirrorOption,
    config_file: Optional[Path] = ConfigOption,
    api_token: Optional[str] = TokenOption,
) -> None:
    """Show cursor and relations of the mirror."""
    settings = _load(
        config_file, source_prefix=source, mirror_prefix=mirror, api_token=api_token
    )
    setup_from_config(settings.logging, quiet=True)

    async def run() -> dict[str, Any]:
        async with create_http_store(settings) as store:
            return await MirrorReader(settings, store).status()

    try:
        summary = asyncio.run(run())
    except MirrorError as e:
        print_error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1)

    print_status(summary)


# =============================================================================
# CONFIG Command
# =============================================================================
@app.command()
def config(
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration.",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Write a config file with the current settings.",
    ),
    output: Path = typer.Option(
        Path("tree-mirror.toml"),
        "--output",
        "-o",
        help="Output path for config file.",
    ),
) -> None:
    """Manage configuration."""
    if init:
        Settings().to_file(output)
        print_success(f"Generated config file: {output}")
        return

    if show:
        from rich.table import Table

        settings = Settings()
        table = Table(title="Current Configuration", border_style="cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        table.add_row("Source Prefix", settings.source_prefix or "[dim]not set[/dim]")
        table.add_row("Mirror Prefix", settings.mirror_prefix or "[dim]not set[/dim]")
        table.add_row("Root Name", settings.root_name)
        table.add_row("API Token", "set" if settings.api_token.get_secret_value() else "[dim]not set[/dim]")
        table.add_row("Poll Interval", f"{settings.sync.poll_interval}s")
        table.add_row("Concurrency", str(settings.sync.max_concurrency))

        console.print(table)
        return

    console.print("Use --show to view config or --init to create config file.")


# =============================================================================
# Helper Functions
# =============================================================================
def _load(config_file: Path | None = None, **overrides: Any) -> Settings:
    """Build settings and exit on unusable values or locations."""
    try:
        settings = _build_settings(config_file, **overrides)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            print_error(f"{field}: {err['msg']}")
        raise typer.Exit(1)
    errors = settings.validate_locations()
    if errors:
        for err in errors:
            print_error(err)
        print_info("Use --help for configuration options.")
        raise typer.Exit(1)
    return settings


def _build_settings(
    config_file: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Build settings from config file and overrides."""
    if config_file:
        settings = load_settings(config_file)
    else:
        settings = Settings()

    # Apply CLI overrides
    if overrides.get("source_prefix"):
        settings.source_prefix = overrides["source_prefix"]
    if overrides.get("mirror_prefix"):
        settings.mirror_prefix = overrides["mirror_prefix"]
    if overrides.get("api_token"):
        settings.api_token = SecretStr(overrides["api_token"])
    if overrides.get("poll_interval") is not None:
        settings.sync.poll_interval = overrides["poll_interval"]
    if overrides.get("max_concurrency") is not None:
        settings.sync.max_concurrency = overrides["max_concurrency"]

    return settings


if __name__ == "__main__":
    app()
