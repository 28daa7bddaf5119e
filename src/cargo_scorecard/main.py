import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .cargo_tree import list_cargo_dependencies, load_dependency_file
from .cli_config import (
    OUTPUT_FORMATS,
    ScorecardConfig,
    create_sample_config,
    get_config,
    load_config,
)
from .dependency import DependencyRef
from .enrichment import DependencyEnricher, EnrichmentReport
from .error_handling import (
    ClientConstructionError,
    ListerError,
    get_error_handler,
    setup_error_handling,
)
from .registry_clients import RepositoryResolver, SecurityScorer, build_http_client
from .reporting import ScorecardReporter, render_json, render_markdown
from .structured_logging import configure_logging

__version__ = "0.1.0"

console = Console()
err_console = Console(stderr=True)


async def collect_dependencies(
    config: ScorecardConfig,
    manifest_path: Optional[str],
    input_path: Optional[str],
) -> List[DependencyRef]:
    """Read the dependency list from a file or from ``cargo tree``."""
    if input_path:
        return load_dependency_file(input_path)
    return await list_cargo_dependencies(
        manifest_path=manifest_path,
        cargo_command=config.lister.cargo_command,
        timeout_seconds=config.lister.timeout_seconds,
    )


async def enrich_dependencies(
    config: ScorecardConfig, dependencies: List[DependencyRef]
) -> EnrichmentReport:
    """Enrich dependencies using one shared HTTP client."""
    client = build_http_client(config.network)
    async with client:
        enricher = DependencyEnricher(
            RepositoryResolver(client, config.network.registry_url),
            SecurityScorer(client, config.network.scorecard_url),
        )
        return await enricher.run(dependencies)


def write_output(text: str, output_file: Optional[str]) -> None:
    if output_file:
        Path(output_file).write_text(text, encoding="utf-8")
        err_console.print(f"✅ Results saved to {output_file}", style="green")
    else:
        click.echo(text, nl=not text.endswith("\n"))


def print_error_summary() -> None:
    """Print per-category error counts collected during the run."""
    stats = get_error_handler().get_error_stats()
    if not stats:
        return
    counts = ", ".join(f"{key.lower()}={count}" for key, count in sorted(stats.items()))
    err_console.print(f"Errors by category: {counts}", style="dim")


async def async_scan(
    config: ScorecardConfig,
    manifest_path: Optional[str],
    input_path: Optional[str],
    output_format: str,
    output_file: Optional[str],
    verbose: bool,
    quiet: bool,
) -> Optional[EnrichmentReport]:
    """List, enrich and render. Returns None when there was nothing to do."""
    source = input_path or manifest_path or "Cargo.toml"

    if not quiet:
        err_console.print("📦 Listing dependencies...", style="blue")
    dependencies = await collect_dependencies(config, manifest_path, input_path)

    if not dependencies:
        if not quiet:
            err_console.print("ℹ️  No dependencies found.", style="yellow")
        return None

    if not quiet:
        err_console.print(f"Found {len(dependencies)} dependencies", style="blue")
        err_console.print("🔍 Fetching repository URLs and security scores...", style="blue")

    report = await enrich_dependencies(config, dependencies)

    if output_format == "json":
        write_output(render_json(report), output_file)
    elif output_format == "markdown":
        write_output(render_markdown(report.results), output_file)
    else:
        ScorecardReporter(console).print_report(report, source, verbose=verbose)

    if verbose:
        print_error_summary()

    return report


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 cargo-scorecard: OpenSSF Scorecard results for your Rust dependencies

    Lists every crate in the dependency tree, looks up its source repository
    on crates.io and fetches the repository's Security Scorecard score.
    """
    if version:
        console.print(f"cargo-scorecard version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.option(
    "--manifest-path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to Cargo.toml (defaults to the current project)",
)
@click.option(
    "--input",
    "-i",
    "input_path",
    type=click.Path(allow_dash=True),
    help="Read 'name version' lines from a file (or - for stdin) instead of running cargo",
)
@click.option(
    "--output-format",
    "-f",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    help="Output format (default from config or console)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False),
    help="Save results to file (markdown or JSON format only)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress output")
@click.option("--verbose", "-v", is_flag=True, help="Show lookup errors and info logs")
def scan(
    manifest_path: Optional[str],
    input_path: Optional[str],
    output_format: Optional[str],
    output_file: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Score every dependency of a cargo project.

    Examples:

      cargo-scorecard scan

      cargo-scorecard scan --manifest-path path/to/Cargo.toml -f markdown

      cargo tree --prefix none | cargo-scorecard scan --input - -f json
    """
    config = load_config()

    final_format = (output_format or config.output.output_format).lower()
    final_quiet = quiet or config.output.quiet
    final_verbose = verbose or config.output.verbose

    if output_file and final_format == "console":
        raise click.UsageError("Output file can only be used with markdown or JSON format")

    log_level = "INFO" if final_verbose else config.logging.log_level
    configure_logging(log_level, config.logging.enable_json)
    setup_error_handling(getattr(logging, log_level.upper(), logging.WARNING))

    if not final_quiet and final_format == "console":
        console.print(
            Panel(
                f"🔍 [bold blue]cargo-scorecard[/bold blue] v{__version__}",
                border_style="blue",
            )
        )

    try:
        asyncio.run(
            async_scan(
                config,
                manifest_path,
                input_path,
                final_format,
                output_file,
                final_verbose,
                final_quiet,
            )
        )
    except KeyboardInterrupt:
        err_console.print("\n⚠️  Scan interrupted by user", style="yellow")
        sys.exit(130)
    except (ListerError, ClientConstructionError, OSError) as e:
        err_console.print(f"❌ Error: {escape(str(e))}", style="red")
        sys.exit(1)


@cli.group()
def config():
    """Manage cargo-scorecard configuration."""


@config.command("init")
@click.option(
    "--path",
    default=".cargo-scorecard.json",
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Where to write the config file",
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Write a sample configuration file."""
    config_path = Path(path)
    if config_path.exists() and not force:
        raise click.ClickException(
            f"{config_path} already exists (use --force to overwrite)"
        )
    config_path.write_text(create_sample_config() + "\n", encoding="utf-8")
    console.print(f"✅ Configuration written to {config_path}", style="green")


@config.command("show")
def config_show():
    """Show the effective configuration."""
    console.print_json(data=get_config().to_dict())


if __name__ == "__main__":
    cli()
