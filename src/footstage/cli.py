"""Command-line interface for the footstage staging pipeline."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

if TYPE_CHECKING:
    from footstage.config.settings import PipelineConfig

app = typer.Typer(
    name="footstage",
    help="Stage international football CSV data into a referential store.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


def _load_config(config: Path) -> "PipelineConfig":
    """Load config and set up logging, exiting with code 1 on bad config."""
    from footstage.config.loader import load_config
    from footstage.utils.logging import configure_logging

    try:
        pipeline_config = load_config(config)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=pipeline_config.logging.level,
        json_output=pipeline_config.logging.json_output,
    )
    return pipeline_config


@app.command()
def load(
    config: ConfigOption,
    relation: Annotated[
        str | None,
        typer.Option(
            "--relation",
            "-r",
            help="Load a single relation (results, goalscorers, shootouts, former_names).",
        ),
    ] = None,
    save: Annotated[
        Path | None,
        typer.Option("--save", "-s", help="Write a snapshot after loading."),
    ] = None,
) -> None:
    """Load CSV sources into the configured store."""
    from footstage.errors import FootstageError
    from footstage.etl.pipeline import StagingPipeline
    from footstage.reporting import ConsoleReporter
    from footstage.schemas.relations import get_relation

    pipeline_config = _load_config(config)
    reporter = ConsoleReporter(console)

    console.print(f"[blue]Staging data for project {pipeline_config.project}[/blue]")
    console.print(f"[dim]Sources: {pipeline_config.sources.root}[/dim]")
    console.print(f"[dim]Store: {pipeline_config.store.path or 'in-memory'}[/dim]")

    try:
        with pipeline_config.open_store() as store:
            pipeline = StagingPipeline(store)
            if relation is not None:
                definition = get_relation(relation)
                pipeline.stage(definition.relation, pipeline_config.sources.resolve(relation))
            else:
                pipeline.load_directory(pipeline_config)

            console.print()
            reporter.print_load_reports(list(pipeline.reports.values()))
            console.print()
            reporter.print_snapshot(pipeline.snapshot())

            target = save or pipeline_config.snapshot.path
            if target is not None:
                portable = True if pipeline_config.snapshot.portable else None
                path, fmt = pipeline.save(target, portable=portable)
                console.print(f"\n[green]Saved {fmt.value} snapshot to: {path}[/green]")
    except KeyError as e:
        console.print(f"[red]Error: {e.args[0]}[/red]")
        raise typer.Exit(code=1) from e
    except FootstageError as e:
        console.print(f"[red]Staging failed: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def export(
    config: ConfigOption,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Snapshot output path."),
    ] = None,
    portable: Annotated[
        bool,
        typer.Option("--portable", help="Write the portable JSON form."),
    ] = False,
) -> None:
    """Save the configured durable store to a snapshot file."""
    from footstage.errors import FootstageError
    from footstage.store.persistence import save_store

    pipeline_config = _load_config(config)
    target = output or pipeline_config.snapshot.path
    if target is None:
        console.print("[red]Error: no --output given and no snapshot.path configured[/red]")
        raise typer.Exit(code=1)
    if not pipeline_config.store.is_durable:
        console.print(
            "[red]Error: the configured store is in-memory; "
            "use 'footstage load --save' instead[/red]"
        )
        raise typer.Exit(code=1)

    try:
        with pipeline_config.open_store() as store:
            path, fmt = save_store(
                store, target, portable=portable or pipeline_config.snapshot.portable or None
            )
    except FootstageError as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Saved {fmt.value} snapshot to: {path}[/green]")


@app.command()
def restore(
    config: ConfigOption,
    source: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Snapshot to restore (portable JSON or SQLite file).",
            exists=True,
            dir_okay=False,
        ),
    ],
) -> None:
    """Restore a snapshot into the configured store."""
    from footstage.errors import FootstageError
    from footstage.etl.pipeline import StagingPipeline
    from footstage.reporting import ConsoleReporter

    pipeline_config = _load_config(config)
    reporter = ConsoleReporter(console)

    try:
        with pipeline_config.open_store() as store:
            pipeline = StagingPipeline(store)
            report = pipeline.load(source)
            reporter.print_restore_report(report)
            console.print()
            reporter.print_snapshot(pipeline.snapshot())
    except FootstageError as e:
        console.print(f"[red]Restore failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if report.n_rejected:
        console.print(f"[yellow]⚠ {report.n_rejected} rows referenced missing results[/yellow]")


@app.command()
def counts(config: ConfigOption) -> None:
    """Show per-relation row counts of the configured store."""
    from footstage.etl.pipeline import StoreSnapshot
    from footstage.reporting import ConsoleReporter

    pipeline_config = _load_config(config)
    with pipeline_config.open_store() as store:
        ConsoleReporter(console).print_snapshot(StoreSnapshot.of(store))


@app.command()
def clear(
    config: ConfigOption,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Delete all rows from the configured store."""
    pipeline_config = _load_config(config)
    if not yes:
        typer.confirm(f"Clear all rows in {pipeline_config.store.path or 'memory'}?", abort=True)

    with pipeline_config.open_store() as store:
        deleted = store.clear_all()

    total = sum(deleted.values())
    console.print(f"[green]Deleted {total} rows[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from footstage import __version__

    console.print(f"footstage version {__version__}")


if __name__ == "__main__":
    app()
