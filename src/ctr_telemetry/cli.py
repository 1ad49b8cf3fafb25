"""CLI for the container telemetry collector.

Provides a rich command-line interface using Typer for:
- Running collection cycles
- Validating configuration and filters
- Showing runtime and host information
"""

from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ctr_telemetry.checks.container import create_container_check
from ctr_telemetry.core.config import load_config
from ctr_telemetry.core.errors import CollectionError, FilterConfigError, RuntimeUnavailableError
from ctr_telemetry.core.schemas import (
    ContainerGroup,
    ContainerHealth,
    TelemetryConfig,
    collect_system_info,
)
from ctr_telemetry.monitoring.filters import ContainerFilter
from ctr_telemetry.monitoring.runtime import DockerRuntimeAdapter, connect_to_docker
from ctr_telemetry.results.storage import GroupStorage
from ctr_telemetry.utils.logging import setup_logging

app = typer.Typer(
    name="ctr-telemetry",
    help="Container telemetry collector",
    add_completion=False,
)

console = Console()


def _load(config: Path | None) -> TelemetryConfig:
    if config is None:
        return TelemetryConfig()
    try:
        return load_config(config)
    except Exception as e:
        console.print(f"[bold red]Error loading config: {e}[/]")
        raise typer.Exit(1) from e


@app.command()
def collect(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to collector configuration file (YAML/JSON)"
    ),
    cycles: int = typer.Option(2, "--cycles", "-n", min=2, help="Number of collection cycles"),
    interval: float | None = typer.Option(
        None, "--interval", "-i", help="Seconds between cycles (overrides config)"
    ),
    output_dir: Path | None = typer.Option(
        None, "--output", "-o", help="Append emitted groups as JSON lines to this directory"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Run collection cycles and show the containers of each emitted group.

    The first cycle only records a baseline, so at least two are needed.
    """
    cfg = _load(config)
    setup_logging(
        level=log_level or cfg.log_level,
        log_file=log_file,
        json_format=json_logs,
        rich_console=not json_logs,
    )
    delay = interval if interval is not None else cfg.check_interval_seconds

    try:
        check = create_container_check(cfg)
    except (FilterConfigError, RuntimeUnavailableError) as e:
        console.print(f"[bold red]{e}[/]")
        raise typer.Exit(1) from e

    storage = GroupStorage(output_dir) if output_dir is not None else None

    for cycle in range(cycles):
        if cycle > 0:
            time.sleep(delay)
        try:
            groups = check.run(group_id=cycle)
        except CollectionError as e:
            console.print(f"[bold yellow]Cycle {cycle} failed: {e}[/]")
            continue

        if not groups:
            console.print(f"[dim]Cycle {cycle}: baseline recorded[/]")
            continue
        _show_groups(groups)
        if storage is not None:
            storage.save(groups)

    if storage is not None:
        console.print(f"[bold green]Groups written to {storage.path}[/]")


@app.command()
def check_config(
    config: Path = typer.Option(..., "--config", "-c", help="Path to configuration file"),
) -> None:
    """Validate a configuration file and its filter expressions."""
    cfg = _load(config)
    try:
        container_filter = ContainerFilter.from_lists(cfg.whitelist, cfg.blacklist)
    except FilterConfigError as e:
        console.print(f"[bold red]Invalid filter: {e}[/]")
        raise typer.Exit(1) from e

    table = Table(title="Collector Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Hostname", cfg.hostname)
    table.add_row("Cache TTL", f"{cfg.cache_duration_seconds}s")
    table.add_row("Network", "enabled" if cfg.collect_network else "disabled")
    table.add_row("Filtering", "enabled" if container_filter.enabled else "disabled")
    table.add_row("Whitelist", ", ".join(cfg.whitelist) or "-")
    table.add_row("Blacklist", ", ".join(cfg.blacklist) or "-")
    table.add_row("Max per group", str(cfg.max_per_group))
    table.add_row("Proc root", str(cfg.host_proc))
    table.add_row("Cgroup root", str(cfg.cgroup_root))

    console.print(table)
    console.print("[bold green]Configuration is valid![/]")


@app.command()
def info(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to configuration file"),
) -> None:
    """Show Docker host and system information."""
    cfg = _load(config)
    system = collect_system_info(cfg.hostname)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Hostname", system.hostname)
    table.add_row("OS", f"{system.os} {system.kernel}")
    table.add_row("CPUs", str(system.cpu_count))
    table.add_row("Memory", f"{system.total_memory_bytes / (1024**3):.1f} GB")

    try:
        adapter = DockerRuntimeAdapter(connect_to_docker(cfg.docker_socket_path))
        table.add_row("Docker host", adapter.hostname())
    except RuntimeUnavailableError as e:
        table.add_row("Docker host", f"[red]{e}[/]")

    console.print(table)


def _show_groups(groups: list[ContainerGroup]) -> None:
    """Display one table per emitted group."""
    for group in groups:
        table = Table(
            title=f"{group.host_name} - group {group.group_index + 1}/{group.group_size}"
        )
        table.add_column("Name", style="cyan")
        table.add_column("Image", style="white")
        table.add_column("State", style="green")
        table.add_column("CPU %", justify="right")
        table.add_column("RSS MB", justify="right")
        table.add_column("Read B/s", justify="right")
        table.add_column("Write B/s", justify="right")
        table.add_column("Net In B/s", justify="right")
        table.add_column("Net Out B/s", justify="right")

        for c in group.containers:
            table.add_row(
                c.name,
                c.image,
                c.state.value if c.health is ContainerHealth.UNKNOWN else f"{c.state.value} ({c.health.value})",
                f"{c.total_pct:.1f}",
                f"{c.mem_rss / (1024 * 1024):.1f}",
                f"{c.rbps:,.0f}",
                f"{c.wbps:,.0f}",
                f"{c.net_rcvd_bps:,.0f}",
                f"{c.net_sent_bps:,.0f}",
            )
        console.print(table)


if __name__ == "__main__":
    app()
