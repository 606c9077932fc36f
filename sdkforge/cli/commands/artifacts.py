"""``sdkforge artifacts``: show the artifact set and its cache status."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sdkforge.cli.commands.generate import LOCK_HELP, resolve_config
from sdkforge.core.cache_validator import is_checksum_valid
from sdkforge.core.catalog import build_artifact_set
from sdkforge.errors import GeneratorError
from sdkforge.models.artifacts import ArtifactDescriptor

console = Console()


def cache_status(artifact: ArtifactDescriptor, verify: bool) -> str:
    if not artifact.local_path.exists():
        return "[yellow]missing[/yellow]"
    if not verify:
        return "[cyan]present[/cyan]"
    if is_checksum_valid(artifact):
        return "[green]valid[/green]"
    return "[red]checksum mismatch[/red]"


def artifacts_cmd(
    target_cpu: str = typer.Option(None, "--target-cpu", help="Target CPU (arm64, x86_64)."),
    host_cpu: str = typer.Option(None, "--host-cpu", help="Host CPU (arm64, x86_64)."),
    linux_distribution: str = typer.Option("ubuntu", "--linux-distribution"),
    linux_version: str = typer.Option("22.04", "--linux-version"),
    swift_version: str = typer.Option("5.9.2", "--swift-version"),
    lld_version: str = typer.Option("17.0.5", "--lld-version"),
    with_docker: bool = typer.Option(False, "--with-docker/--no-docker"),
    source_root: Path = typer.Option(Path("."), "--source-root"),
    lock: Path = typer.Option(None, "--lock", help=LOCK_HELP),
    verify: bool = typer.Option(
        True,
        "--verify/--no-verify",
        help="Hash cached files instead of only checking that they exist.",
    ),
) -> None:
    """List the artifacts a run needs and whether the cache already holds them."""
    try:
        config = resolve_config(
            source_root=source_root,
            target_cpu=target_cpu,
            host_cpu=host_cpu,
            linux_distribution=linux_distribution,
            linux_version=linux_version,
            swift_version=swift_version,
            lld_version=lld_version,
            with_docker=with_docker,
            from_scratch=False,
            verbose=False,
            lock=lock,
        )
        artifacts = build_artifact_set(config)
    except GeneratorError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    table = Table(title=f"Artifacts for {config.versions.artifact_id}")
    table.add_column("Artifact", style="cyan", no_wrap=True)
    table.add_column("Role")
    table.add_column("Cache", justify="center")
    table.add_column("SHA-256", style="dim")

    for artifact in artifacts.all_items:
        table.add_row(
            artifact.identifier,
            artifact.role.value,
            cache_status(artifact, verify),
            (artifact.sha256 or "")[:16],
        )

    console.print(table)
    console.print(f"[dim]Cache: {escape(str(config.paths.artifacts_cache_path))}[/dim]")
