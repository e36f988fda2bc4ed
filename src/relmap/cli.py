"""CLI interface for relmap.

Typer-based command-line interface with Rich output formatting.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from relmap import __version__
from relmap.config import CONFIG_FILE, RelmapConfig, default_config, load_config, save_config
from relmap.exceptions import RelmapError
from relmap.inputs import load_mapping_input, save_result
from relmap.pipeline import RelevanceMapper
from relmap.registry import default_registry
from relmap.types import DEFAULT_DOMAINS, RelevanceMappingResult

__all__ = ["app"]

app = typer.Typer(
    name="relmap",
    help="Hybrid relevance mapping — decide which source files matter for which requirements.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_path: Path | None) -> RelmapConfig:
    """Explicit path, else ./relmap.toml if present, else defaults."""
    if config_path is not None:
        return load_config(config_path)
    if Path(CONFIG_FILE).exists():
        return load_config(Path(CONFIG_FILE))
    return default_config()


def _ordered_domains(domains: list[str]) -> list[str]:
    """Standard domains first, in their usual order, then any others as given."""
    known = [d for d in DEFAULT_DOMAINS if d in domains]
    return known + [d for d in domains if d not in DEFAULT_DOMAINS]


def _print_result(result: RelevanceMappingResult) -> None:
    for domain in _ordered_domains(list(result.domains)):
        files = result.domains[domain]
        table = Table(title=domain.replace("_", " ").title(), title_justify="left")
        table.add_column("Path")
        table.add_column("Embedding", justify="right")
        table.add_column("Tier")
        table.add_column("Hybrid", justify="right", style="bold")
        for f in files:
            table.add_row(
                f.path,
                f"{f.embedding_score:.3f}",
                f.llm_assessment.value,
                f"{f.hybrid_score:.3f}",
            )
        if not files:
            console.print(f"[dim]{domain}: no relevant files[/dim]")
        else:
            console.print(table)

    meta = result.metadata
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("metric", style="dim")
    summary.add_column("value", style="bold")
    summary.add_row("Candidates (phase 1)", str(meta.phase1_total_candidates))
    summary.add_row("Assessed (phase 2)", str(meta.phase2_assessed_files))
    summary.add_row("Included", str(meta.final_included_files))
    summary.add_row(
        "Assessment", f"{meta.assessment_source.value} ({meta.assessment_attempts} attempts)"
    )
    summary.add_row("Time", f"{meta.processing_time_ms} ms")
    console.print(summary)

    if result.degraded:
        console.print(
            "[yellow]Classifier unavailable; tiers were derived from embedding scores.[/yellow]"
        )


@app.command()
def version() -> None:
    """Show relmap version."""
    console.print(f"relmap {__version__}")


@app.command(name="init-config")
def init_config(
    path: Annotated[
        Path,
        typer.Argument(help="Where to write the config file"),
    ] = Path(CONFIG_FILE),
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file"),
    ] = False,
) -> None:
    """Write a config file with all default values."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists.[/yellow] Use [bold]--force[/bold] to overwrite.")
        raise typer.Exit(code=1)

    try:
        save_config(default_config(), path)
    except RelmapError as e:
        console.print(f"[red]Failed to write config:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Wrote default config[/green] to {path}")


@app.command()
def providers(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help=f"Config file (default: ./{CONFIG_FILE} if present)"),
    ] = None,
) -> None:
    """List registered providers; the configured one is marked with *."""
    try:
        config = _load_config(config_path)
    except RelmapError as e:
        console.print(f"[red]Failed to read config:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Providers", title_justify="left")
    table.add_column("Category")
    table.add_column("Available")
    for category, names in default_registry.providers().items():
        selected = getattr(config, category).provider
        table.add_row(category, ", ".join(f"{n}*" if n == selected else n for n in names))
    console.print(table)


@app.command(name="map")
def map_cmd(
    input_path: Annotated[
        Path,
        typer.Argument(
            help="JSON bundle with filteredFilesMap, filesContentSummary, normalizedRequirements"
        ),
    ],
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help=f"Config file (default: ./{CONFIG_FILE} if present)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the result as JSON"),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", help="Minimum hybrid score to include a file"),
    ] = None,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", help="Maximum candidates per domain"),
    ] = None,
    templates: Annotated[
        Path | None,
        typer.Option("--templates", help="Directory with prompt template overrides"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Map files to requirement domains and print the ranked result."""
    _setup_logging(verbose)

    try:
        config = _load_config(config_path)

        bundle = load_mapping_input(input_path)
        options = config.mapping.with_overrides(**bundle.options).with_overrides(
            hybrid_score_threshold=threshold,
            embedding_top_k=top_k,
        )
        mapper = RelevanceMapper.from_config(config, templates_dir=templates)
        result = mapper.execute(
            bundle.files_map, bundle.summaries, bundle.requirements, options=options
        )
        if output is not None:
            save_result(result, output)
    except RelmapError as e:
        console.print(f"[red]Relevance mapping failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    _print_result(result)
    if output is not None:
        console.print(f"\n[green]Wrote result[/green] to {output}")
