"""Command-line interface for typeweaver code generation."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from typeweaver.generator.config import GeneratorConfig
from typeweaver.generator.engine import Engine, statistics
from typeweaver.generator.log import setup_logging
from typeweaver.generator.types import GeneratorError, load_model

if TYPE_CHECKING:
    from typeweaver.generator.engine import ModelStatistics
    from typeweaver.generator.types import Model


def _read_model(input_file: str) -> Model:
    try:
        with open(input_file, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read model {input_file}: {e}") from e
    try:
        return load_model(data)
    except GeneratorError as e:
        raise click.ClickException(str(e)) from e


@click.group()
def cli() -> None:
    """Typeweaver C++ header and schema generator."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input model file (JSON)")
@click.option("--output", "-o", "output_dir", default=None, help="Output directory")
@click.option("--config", "config_file", default=None, help="Generator config file (JSON)")
@click.option("--no-cpp", is_flag=True, default=False, help="Skip C++ headers")
@click.option("--no-schema", is_flag=True, default=False, help="Skip schema text files")
@click.option("--no-descriptor", is_flag=True, default=False, help="Skip the binary descriptor")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
def gen(
    input_file: str,
    output_dir: str | None,
    config_file: str | None,
    no_cpp: bool,
    no_schema: bool,
    no_descriptor: bool,
    log_level: str | None,
) -> None:
    """Generate C++ headers, schema files and a descriptor from a model."""
    setup_logging(log_level)

    try:
        config = GeneratorConfig.load(config_file) if config_file else GeneratorConfig()
    except GeneratorError as e:
        raise click.ClickException(str(e)) from e

    if output_dir is not None:
        config.output_dir = output_dir
    config.generate_cpp = config.generate_cpp and not no_cpp
    config.generate_schema = config.generate_schema and not no_schema
    config.generate_descriptor = config.generate_descriptor and not no_descriptor

    model = _read_model(input_file)
    result = Engine(config).generate(model)

    console = Console()
    for rendered in result.files:
        if rendered.path in result.unwritten:
            continue
        console.print(f"[green]wrote[/green] {config.output_dir}/{rendered.path}")
    outcome = result.outcome
    if outcome is not None and outcome.path is not None:
        console.print(f"[green]descriptor[/green] {outcome.path} ({outcome.channel})")
    elif outcome is not None:
        console.print("[red]descriptor could not be written, base64 text follows[/red]")
        print(outcome.text, end="")
    for warning in result.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(warning)}")

    if not result.files and result.descriptor is None:
        print("Nothing generated")
        sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input model file (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display model statistics."""
    model = _read_model(input_file)
    stats = statistics(model)

    if output_json:
        _output_json(stats)
    else:
        _output_plain(stats)


def _output_json(stats: ModelStatistics) -> None:
    """Output model statistics as JSON."""
    data: dict = {"model": stats.name, "primitives": stats.primitives, "scopes": {}}

    for name, scope in stats.scopes.items():
        data["scopes"][name] = {
            "structs": scope.structs,
            "enums": scope.enums,
            "arrays": scope.arrays,
            "aliases": scope.aliases,
            "fields": scope.fields,
            "enumerators": scope.enumerators,
        }

    data["total"] = stats.total.entities
    print(json.dumps(data, indent=2))


def _output_plain(stats: ModelStatistics) -> None:
    """Output model statistics using rich text formatting."""
    console = Console()

    console.print(f"[bold cyan]Model {stats.name}[/bold cyan]")
    console.print(f"Primitives: {stats.primitives}")
    console.print()

    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Scope", style="white")
    table.add_column("Structs", style="yellow", justify="right")
    table.add_column("Enums", style="yellow", justify="right")
    table.add_column("Arrays", style="yellow", justify="right")
    table.add_column("Aliases", style="yellow", justify="right")
    table.add_column("Fields", style="dim", justify="right")

    for name, scope in stats.scopes.items():
        table.add_row(
            name,
            str(scope.structs),
            str(scope.enums),
            str(scope.arrays),
            str(scope.aliases),
            str(scope.fields),
        )

    total = stats.total
    table.add_row(
        "[bold]total[/bold]",
        str(total.structs),
        str(total.enums),
        str(total.arrays),
        str(total.aliases),
        str(total.fields),
    )
    console.print(table)
    if not stats.scopes:
        console.print("[dim]No entities[/dim]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
