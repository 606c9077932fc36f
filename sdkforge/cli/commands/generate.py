"""``sdkforge generate``: build a Swift SDK bundle.

Resolves the run configuration from the options, runs every pipeline stage,
and prints the commands that install and use the generated bundle.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from sdkforge.config import GeneratorSettings
from sdkforge.core.orchestrator import SdkGenerator
from sdkforge.errors import ConfigurationError, GeneratorError
from sdkforge.models.config import (
    CPU,
    DistributionName,
    GeneratorConfig,
    LinuxDistribution,
    Triple,
    VersionsConfiguration,
)

console = Console()

LOCK_HELP = (
    "Artifact lock file. Defaults to <source-root>/sdkforge.lock.json. JSON with "
    "\"artifacts\" keyed by role (host_toolchain, target_toolchain, linker) and "
    "\"packages\" keyed by Ubuntu package name, each entry holding \"sha256\" and "
    "\"url\". See sdkforge.lock.example.json."
)


def configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def resolve_config(
    *,
    source_root: Path,
    target_cpu: str | None,
    host_cpu: str | None,
    linux_distribution: str,
    linux_version: str,
    swift_version: str,
    lld_version: str,
    with_docker: bool,
    from_scratch: bool,
    verbose: bool,
    lock: Path | None,
) -> GeneratorConfig:
    """Turn raw option values into the frozen run configuration.

    Raises ``ConfigurationError`` for unknown CPUs or distributions.
    """
    try:
        distribution_name = DistributionName(linux_distribution.lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported Linux distribution {linux_distribution!r}",
            context={"supported": ", ".join(d.value for d in DistributionName)},
        ) from None

    host = CPU.parse(host_cpu) if host_cpu else CPU.host()
    target = CPU.parse(target_cpu) if target_cpu else host
    versions = VersionsConfiguration(
        swift_version=swift_version,
        lld_version=lld_version,
        linux_distribution=LinuxDistribution(name=distribution_name, version=linux_version),
        target_triple=Triple(cpu=target),
        host_triple=Triple(cpu=host),
    )
    return GeneratorConfig.build(
        source_root,
        versions,
        use_container=with_docker,
        from_scratch=from_scratch,
        verbose=verbose,
        artifact_lock_path=lock,
    )


def generate_cmd(
    target_cpu: str = typer.Option(
        None,
        "--target-cpu",
        help="CPU architecture of the target triple (arm64, x86_64). Defaults to the host CPU.",
    ),
    host_cpu: str = typer.Option(
        None,
        "--host-cpu",
        help="CPU architecture of the host toolchain. Defaults to this machine.",
    ),
    linux_distribution: str = typer.Option(
        "ubuntu",
        "--linux-distribution",
        help="Target distribution: ubuntu, or rhel (container mode only).",
    ),
    linux_version: str = typer.Option(
        "22.04",
        "--linux-version",
        help="Distribution release (20.04, 22.04, ubi9).",
    ),
    swift_version: str = typer.Option("5.9.2", "--swift-version", help="Swift release."),
    lld_version: str = typer.Option("17.0.5", "--lld-version", help="LLVM release for ld.lld."),
    with_docker: bool = typer.Option(
        False,
        "--with-docker/--no-docker",
        help="Copy the target sysroot out of the official Swift container image.",
    ),
    from_scratch: bool = typer.Option(
        False,
        "--from-scratch",
        help="Remove previously assembled directories before assembling.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    source_root: Path = typer.Option(
        Path("."),
        "--source-root",
        help="Directory holding the artifact cache and the generated bundles.",
    ),
    lock: Path = typer.Option(
        None,
        "--lock",
        help=LOCK_HELP,
    ),
) -> None:
    """Generate a Swift SDK bundle for cross-compiling to Linux."""
    settings = GeneratorSettings()
    configure_logging(settings.log_level, verbose)

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
            from_scratch=from_scratch,
            verbose=verbose,
            lock=lock,
        )
        report = SdkGenerator(config, settings=settings).generate_bundle()
    except GeneratorError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    console.print()
    console.print(
        Panel(
            "\n".join([
                "[bold green]Swift SDK bundle generated![/bold green]",
                "",
                f"[bold]Artifact ID:[/bold]  {report.artifact_id}",
                f"[bold]Bundle:[/bold]       {report.bundle_path}",
                f"[bold]Downloaded:[/bold]   {len(report.downloaded)} artifact(s)",
                f"[bold]Cache hit:[/bold]    {'yes' if report.cache_valid else 'no'}",
            ]),
            title="[bold]sdkforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()
    console.print(report.install_instructions, markup=False, highlight=False, soft_wrap=True)
