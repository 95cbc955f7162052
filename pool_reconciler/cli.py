"""Main CLI entry point for pool reconciliation."""

import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from pool_reconciler.exceptions import ReconcilerError
from pool_reconciler.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="pool-reconciler",
    help="Reconcile declared compute pools against DigitalOcean droplets",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


@app.command()
def version() -> None:
    """Show version information."""
    from pool_reconciler import __version__

    typer.echo(f"pool-reconciler version {__version__}")


@app.command()
def show(
    snapshot_path: Path = typer.Argument(..., help="Path to the cluster snapshot YAML"),
) -> None:
    """Show the pools declared in a cluster snapshot."""
    snapshot = _load_snapshot(snapshot_path)

    table = Table(title=f"Cluster {snapshot.name}")
    table.add_column("Pool", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Kind")
    table.add_column("Size")
    table.add_column("Image")
    table.add_column("Count", justify="right", style="green")

    for pool in snapshot.pools:
        table.add_row(
            pool.name, pool.role.value, pool.kind, pool.size, pool.image, str(pool.max_count)
        )

    console.print(table)
    config = snapshot.provider_config
    console.print(f"\n[bold]Location:[/bold] {config.location or 'unset'}")
    console.print(f"[bold]API endpoint:[/bold] {config.kubernetes_api.endpoint or 'none'}")
    overlay = "enabled" if config.components.vpn else "disabled"
    console.print(f"[bold]Overlay network:[/bold] {overlay}")


@app.command()
def plan(
    snapshot_path: Path = typer.Argument(..., help="Path to the cluster snapshot YAML"),
    settings_path: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML"),
    token: str | None = typer.Option(None, "--token", help="DigitalOcean API token"),
) -> None:
    """Compare every pool's observed state with its configured state."""
    from pool_reconciler.compare import is_equal
    from pool_reconciler.driver import build_reconciler

    snapshot = _load_snapshot(snapshot_path)
    try:
        kwargs = _reconciler_kwargs(settings_path, token)

        table = Table(title="Reconciliation plan")
        table.add_column("Pool", style="cyan")
        table.add_column("Observed")
        table.add_column("Desired")
        table.add_column("Action", style="yellow")

        for pool in snapshot.pools:
            reconciler = build_reconciler(pool, **kwargs)
            _, actual = reconciler.observe(snapshot)
            _, expected = reconciler.plan(snapshot)
            action = "none" if is_equal(actual, expected) else f"create {expected.count}"
            table.add_row(
                pool.name,
                f"{actual.size or '-'} / {actual.image or '-'}",
                f"{expected.size} / {expected.image} x{expected.count}",
                action,
            )

        console.print(table)
    except ReconcilerError as e:
        _fail(e)


@app.command()
def apply(
    snapshot_path: Path = typer.Argument(..., help="Path to the cluster snapshot YAML"),
    settings_path: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML"),
    token: str | None = typer.Option(None, "--token", help="DigitalOcean API token"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Give up waiting for the master after this many seconds"
    ),
) -> None:
    """Converge every pool and save the resulting snapshot."""
    from pool_reconciler.driver import reconcile_cluster

    snapshot = _load_snapshot(snapshot_path)
    deadline = time.monotonic() + timeout if timeout else None
    try:
        kwargs = _reconciler_kwargs(settings_path, token)
        new_snapshot, outcomes = reconcile_cluster(snapshot, deadline=deadline, **kwargs)
    except ReconcilerError as e:
        _fail(e)

    new_snapshot.save(snapshot_path)
    for outcome in outcomes:
        if outcome.changed:
            console.print(
                f"[green]✓[/green] {outcome.pool}: created {outcome.result.count} droplets"
            )
        else:
            console.print(f"[dim]-[/dim] {outcome.pool}: up to date")
    endpoint = new_snapshot.provider_config.kubernetes_api.endpoint
    if endpoint:
        console.print(f"\n[bold]API endpoint:[/bold] {endpoint}")


@app.command()
def delete(
    snapshot_path: Path = typer.Argument(..., help="Path to the cluster snapshot YAML"),
    settings_path: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML"),
    token: str | None = typer.Option(None, "--token", help="DigitalOcean API token"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Delete every droplet of every pool and save the resulting snapshot."""
    from pool_reconciler.driver import teardown_cluster

    snapshot = _load_snapshot(snapshot_path)
    if not yes:
        typer.confirm(f"Delete all droplets of cluster '{snapshot.name}'?", abort=True)

    try:
        kwargs = _reconciler_kwargs(settings_path, token)
        new_snapshot, deleted = teardown_cluster(snapshot, **kwargs)
    except ReconcilerError as e:
        _fail(e)

    new_snapshot.save(snapshot_path)
    for resource in deleted:
        console.print(f"[green]✓[/green] {resource.name}: deleted")


def _load_snapshot(path: Path):
    from pydantic import ValidationError

    from pool_reconciler.models.cluster import ClusterSnapshot

    if not path.exists():
        console.print(f"[red]Error:[/red] Snapshot file not found: {path}")
        raise typer.Exit(code=1)
    try:
        return ClusterSnapshot.load(path)
    except ValidationError as e:
        console.print("[red]Validation Error:[/red]")
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"])
            console.print(f"  - {field}: {error['msg']}")
        raise typer.Exit(code=1)
    except ReconcilerError as e:
        _fail(e)


def _reconciler_kwargs(settings_path: Path | None, token: str | None) -> dict:
    from pool_reconciler.bootstrap import BootstrapRenderer
    from pool_reconciler.config import ReconcilerSettings, get_api_token
    from pool_reconciler.provider import DigitalOceanProvider
    from pool_reconciler.remote import ParamikoTransport

    settings = ReconcilerSettings.load(settings_path)
    provider = DigitalOceanProvider.from_token(get_api_token(token))
    return {
        "provider": provider,
        "settings": settings,
        "renderer": BootstrapRenderer(settings.bootstrap_dir),
        "transport": ParamikoTransport(),
    }


def _fail(error: ReconcilerError) -> None:
    logger.error(f"{type(error).__name__}: {error.message}")
    console.print(f"[red]Error:[/red] {error.message}")
    if error.details:
        console.print(f"\n{error.details}")
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
