"""Command line interface for Fixture Mirror."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConfigManager
from .mirror import MirrorError, RepositoryRegistry, SyncOrchestrator
from .reports.xunit_parser import ReportParseError, XUnitParser


console = Console()


def parse_repository_key(key: str) -> Tuple[str, str, str]:
    """Split a `provider/owner/name` key, rejecting malformed ones."""
    parts = key.split("/")
    if len(parts) != 3 or not all(parts):
        raise click.BadParameter(
            f"expected PROVIDER/OWNER/NAME, got '{key}'", param_hint="REPOSITORY"
        )
    return parts[0], parts[1], parts[2]


def build_orchestrator(ctx: click.Context) -> SyncOrchestrator:
    config = ctx.obj["config_manager"].get_config()
    registry = RepositoryRegistry.from_file(config.resolved_registry_path)
    return SyncOrchestrator.from_config(config, registry=registry)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.json (default: $FIXTURE_MIRROR_CONFIG or ~/.fixture-mirror/config.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__, prog_name="fixture-mirror")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """Fixture Mirror - local mirrors of remote test fixtures."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_manager"] = ConfigManager(config_path)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


@cli.command()
@click.argument("repository")
@click.pass_context
def refresh(ctx: click.Context, repository: str):
    """Synchronize REPOSITORY (provider/owner/name) and rebuild its snapshot."""
    provider, owner, name = parse_repository_key(repository)
    try:
        orchestrator = build_orchestrator(ctx)
        with console.status(f"Refreshing {repository}..."):
            result = asyncio.run(orchestrator.refresh_key(provider, owner, name))
    except (MirrorError, ValueError) as e:
        console.print(f"❌ Refresh failed: {e}", style="red")
        sys.exit(1)

    console.print(
        f"✅ Refreshed {result.descriptor.key} in {result.duration_ms}ms", style="green"
    )


@cli.command()
@click.argument("repository")
@click.pass_context
def tests(ctx: click.Context, repository: str):
    """Print the fixture snapshot of REPOSITORY (provider/owner/name)."""
    provider, owner, name = parse_repository_key(repository)

    async def _read() -> bytes:
        orchestrator = build_orchestrator(ctx)
        stream = await orchestrator.read_snapshot(orchestrator.lookup(provider, owner, name))
        return b"".join([chunk async for chunk in stream])

    try:
        payload = asyncio.run(_read())
    except (MirrorError, ValueError) as e:
        console.print(f"❌ {e}", style="red")
        sys.exit(1)

    click.echo(json.dumps(json.loads(payload.decode("utf-8")), indent=2))


@cli.command("list")
@click.pass_context
def list_repositories(ctx: click.Context):
    """List tracked repositories."""
    try:
        config = ctx.obj["config_manager"].get_config()
        registry = RepositoryRegistry.from_file(config.resolved_registry_path)
    except ValueError as e:
        console.print(f"❌ {e}", style="red")
        sys.exit(1)

    descriptors = registry.list_repositories()
    if not descriptors:
        console.print("No tracked repositories", style="yellow")
        return

    table = Table(title="Tracked repositories")
    table.add_column("Repository", style="cyan")
    table.add_column("Reference")
    table.add_column("Fixture folder")
    for descriptor in descriptors:
        table.add_row(
            descriptor.key,
            descriptor.reference_override or config.default_reference,
            descriptor.fixture_folder or config.default_fixture_folder,
        )
    console.print(table)


@cli.command("parse-report")
@click.argument(
    "report", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def parse_report(report: Path):
    """Parse an xUnit/JUnit XML REPORT and print it as JSON."""
    try:
        suite = XUnitParser().parse(report)
    except ReportParseError as e:
        console.print(f"❌ {e}", style="red")
        sys.exit(1)

    click.echo(json.dumps(suite.to_dict() if suite else None, indent=2))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
