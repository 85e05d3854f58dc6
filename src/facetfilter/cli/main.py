#!/usr/bin/env python3
"""
facetfilter CLI Main Application

Typer-based command-line interface that loads an item file, applies filter
parameters and prints the current page with rich formatting.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from facetfilter.accessor import MappingAccessor
from facetfilter.cli import __version__
from facetfilter.codec import URLCodec, from_query_string, to_query_string
from facetfilter.core.config import ConfigManager, EngineConfig
from facetfilter.core.exceptions import ConfigurationError
from facetfilter.engine import FacetEngine

console = Console()

app = typer.Typer(
    name="facetfilter",
    help="Faceted filtering, search and sorting over item collections",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        force=True,
    )


def version_callback(value: bool):
    """Show version information."""
    if value:
        console.print(f"[bold cyan]facetfilter[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information and exit"
    ),
):
    """
    facetfilter - combine category filters, ranges, search and sort

    [bold]Quick Start:[/bold]

    • Filter a file: [cyan]facetfilter query items.json --filter category:tech[/cyan]
    • Replay a link: [cyan]facetfilter query items.json --params "category=tech&sort=price,desc"[/cyan]
    • Canonicalize a link: [cyan]facetfilter normalize "page=1&category=food,tech"[/cyan]
    """
    pass


def load_items(path: Path) -> List[Dict[str, Any]]:
    """
    Read a JSON or YAML item file.

    Accepts a list of records with an ``id`` field, or a mapping of id to
    record.

    Raises:
        ValueError: If the file does not hold items
    """
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in ('.yaml', '.yml'):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if isinstance(data, dict):
        return [{**record, 'id': item_id} for item_id, record in data.items()]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ValueError("Item file must contain a list of objects or a mapping of id to object")
    return data


def load_config(config_file: Optional[str]) -> EngineConfig:
    try:
        return ConfigManager(config_file).load_config()
    except ConfigurationError as e:
        console.print(f"[red]{e.get_user_message()}[/red]")
        raise typer.Exit(2)


def parse_range_option(value: str):
    """Split ``key=lo,hi`` into its parts."""
    key, sep, bounds = value.partition('=')
    lo, comma, hi = bounds.partition(',')
    if not sep or not comma or not key:
        raise typer.BadParameter(f"Range must look like key=min,max, got {value!r}")
    return key.strip(), lo.strip(), hi.strip()


def render_page(engine: FacetEngine, columns: List[str], accessor: MappingAccessor) -> Table:
    info = engine.paginator.page_info()
    table = Table(title=f"Page {info['current_page']} of {info['total_pages']}")
    table.add_column("id", style="cyan")
    for column in columns:
        table.add_column(column)

    for item_id in engine.page_ids:
        row = [str(item_id)]
        for column in columns:
            value = accessor.get_attribute(item_id, column)
            row.append("" if value is None else value)
        table.add_row(*row)
    return table


@app.command("query")
def query(
    items: Annotated[Path, typer.Argument(help="JSON or YAML file of items", exists=True, dir_okay=False)],
    params: Annotated[Optional[str], typer.Option("--params", "-p", help="Query string to start from")] = None,
    filters: Annotated[Optional[List[str]], typer.Option("--filter", "-f", help="Filter token type:value (repeatable)")] = None,
    mode: Annotated[Optional[str], typer.Option("--mode", "-m", help="Filter mode: and/or")] = None,
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Search text")] = None,
    sort: Annotated[Optional[str], typer.Option("--sort", help="Sort as key,direction")] = None,
    ranges: Annotated[Optional[List[str]], typer.Option("--range", "-r", help="Range as key=min,max (repeatable)")] = None,
    page: Annotated[Optional[int], typer.Option("--page", help="Page number")] = None,
    per_page: Annotated[Optional[int], typer.Option("--per-page", help="Items per page")] = None,
    columns: Annotated[Optional[List[str]], typer.Option("--column", help="Attribute to display (repeatable)")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a table")] = False,
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """
    Filter, search, sort and page an item file.

    [bold cyan]Examples:[/bold cyan]

    • [green]facetfilter query items.json -f category:tech -f category:food --mode or[/green]
    • [green]facetfilter query items.yaml --range price=10,50 --sort price,desc[/green]
    """
    engine_config = load_config(config)
    setup_logging(verbose or engine_config.debug)

    try:
        records = load_items(items)
        accessor = MappingAccessor.from_records(records, categories_field=engine_config.filters.categories_field)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Could not load items from {items}: {e}[/red]")
        raise typer.Exit(1)

    engine = FacetEngine(accessor, accessor.ids, engine_config)

    if params:
        engine.load_query_string(params)
    if mode:
        engine.set_filter_mode(mode)
    for token in filters or []:
        engine.add_filter(token)
    for value in ranges or []:
        key, lo, hi = parse_range_option(value)
        if engine.ranges.get_range(key) is None:
            engine.add_range(key)
        engine.set_range(key, lo, hi)
    if search is not None:
        engine.search(search)
    if sort:
        key, _, direction = sort.partition(',')
        engine.sort(key.strip(), direction.strip() or "asc")
    if per_page is not None:
        engine.set_items_per_page(per_page)
    if page is not None:
        engine.go_to_page(page)

    counts = engine.counts()
    if as_json:
        console.print_json(json.dumps({
            "page_ids": [str(i) for i in engine.page_ids],
            "ordered_ids": [str(i) for i in engine.ordered_ids],
            "counts": counts,
            "pagination": engine.paginator.page_info(),
            "params": engine.serialize(),
        }))
        return

    shown = columns or list(dict.fromkeys(
        engine_config.search.keys + [c.key for c in engine.state.sort]
    ))
    console.print(render_page(engine, shown, accessor))
    console.print(f"Showing [bold]{counts['visible']}[/bold] of [bold]{counts['total']}[/bold] items")
    query_string = engine.query_string()
    console.print(f"Query: [green]{query_string or '(default)'}[/green]")


@app.command("normalize")
def normalize(
    query_string: Annotated[str, typer.Argument(help="Query string to canonicalize")],
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """Print the canonical form of a query string (decode then encode)."""
    engine_config = load_config(config)
    setup_logging(verbose or engine_config.debug)

    codec = URLCodec(engine_config)
    canonical = to_query_string(codec.serialize(codec.deserialize(from_query_string(query_string))))
    typer.echo(canonical)


@app.command("schema")
def schema():
    """Print the JSON schema of the configuration file."""
    console.print_json(json.dumps(ConfigManager().generate_schema()))


@app.command("init-config")
def init_config(
    output: Annotated[Path, typer.Argument(help="Where to write the YAML configuration")] = Path("facetfilter.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
):
    """Write a configuration file holding the defaults."""
    if output.exists() and not force:
        console.print(f"[yellow]{output} already exists, use --force to overwrite[/yellow]")
        raise typer.Exit(1)
    ConfigManager().save_config(output, EngineConfig())
    console.print(f"[green]Wrote default configuration to {output}[/green]")


def main():
    """Entry point for the facetfilter console script."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
