"""
queryartifacts CLI - Oracle SQL index analysis.

Usage:
    queryartifacts analyze query.sql --indexes indexes.yaml
    queryartifacts analyze --sql "SELECT * FROM orders WHERE status = 'OPEN'"
    queryartifacts check query.sql
    queryartifacts schema
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from queryartifacts import __version__
from queryartifacts.analyzer.models import Priority
from queryartifacts.config import get_config
from queryartifacts.engine import QueryArtifactService
from queryartifacts.exceptions import ConfigurationError, MetadataError
from queryartifacts.metadata.oracle import OracleIndexMetadataProvider
from queryartifacts.metadata.provider import IndexMetadataProvider, load_metadata_file
from queryartifacts.output.renderers import OutputFormat, render
from queryartifacts.parser.sql_parser import StructuralSQLParser, unsupported_message
from queryartifacts.schema import AnalyzeQueryOptions, AnalyzeQueryRequest, AnalyzeQueryResponse, get_json_schema

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="queryartifacts",
    help="Index recommendations for Oracle SQL statements",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

_PRIORITY_STYLES = {
    Priority.CRITICAL: "red bold",
    Priority.HIGH: "yellow bold",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"queryartifacts version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log analysis steps to stderr."),
    ] = False,
) -> None:
    """queryartifacts - Oracle SQL index analysis."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _read_sql(sql_file: Path | None, sql: str | None) -> str:
    if sql is not None and sql_file is not None:
        error_console.print("[red]Error:[/red] Pass either a SQL file or --sql, not both")
        raise typer.Exit(code=2)
    if sql is not None:
        return sql
    if sql_file is None:
        error_console.print("[red]Error:[/red] A SQL file or --sql is required")
        raise typer.Exit(code=2)
    return sql_file.read_text()


def _build_provider(indexes: Path | None, connection: str) -> IndexMetadataProvider | None:
    if indexes is not None:
        return load_metadata_file(indexes)
    config = get_config()
    try:
        config.get_connection(connection)
    except ConfigurationError as e:
        logger.debug("No metadata provider: %s", e.to_dict())
        return None
    return OracleIndexMetadataProvider(
        resolver=config.get_connection,
        call_timeout_seconds=config.metadata_timeout_seconds,
    )


def _print_rich(response: AnalyzeQueryResponse) -> None:
    if not response.success or response.data is None:
        error = response.error
        error_console.print(Panel(
            escape(error.message) if error else "Analysis failed",
            title=f"[red]{error.code.value if error else 'ERROR'}[/red]",
            border_style="red",
        ))
        return

    data = response.data
    summary = data.summary
    if summary.overall_health_score >= 75:
        border = "green"
    elif summary.overall_health_score >= 40:
        border = "yellow"
    else:
        border = "red"

    path = " -> ".join(
        step.alias if step.alias == step.table_name else f"{step.table_name} {step.alias}"
        for step in data.diagram.recommended_access_path
    )
    console.print(Panel(
        f"Health [bold]{summary.overall_health_score}/100[/bold] "
        f"({summary.health_grade} {summary.health_label})\n"
        f"Tables {summary.table_count}, joins {summary.join_count}, "
        f"{summary.existing_index_count} indexed, {summary.missing_index_count} missing\n"
        f"Access path: [cyan]{path}[/cyan]",
        title="queryartifacts",
        border_style=border,
    ))

    if data.analysis.degraded:
        for reason in data.analysis.degraded_reasons:
            console.print(f"[yellow]⚠ Degraded:[/yellow] {escape(reason)}")
        console.print()

    if data.analysis.index_points:
        table = Table()
        table.add_column("#", justify="right")
        table.add_column("Column", style="cyan")
        table.add_column("Point")
        table.add_column("Priority")
        table.add_column("Existing index")
        for point in data.analysis.index_points:
            style = _PRIORITY_STYLES[point.priority]
            if point.existing_index is not None:
                existing = f"[green]{point.existing_index.index_name}[/green]"
            elif point.coverage.value == "UNKNOWN":
                existing = "[dim]unknown[/dim]"
            else:
                existing = "[red]none[/red]"
            table.add_row(
                str(point.point_number),
                f"{point.table_alias}.{point.column_name}",
                point.point_type.value,
                f"[{style}]{point.priority.value}[/{style}]",
                existing,
            )
        console.print(table)
        console.print()

    for rec in data.recommendations:
        style = _PRIORITY_STYLES[rec.priority]
        console.print(f"[{style}]{escape(f'[{rec.priority.value}]')}[/{style}] {rec.title}")
        console.print(f"   [dim]{rec.description}[/dim]")
        console.print(f"   [green]{rec.ddl}[/green]  [dim]({rec.expected_improvement})[/dim]")
        console.print()

    if data.hints:
        console.print(f"[bold]Hints:[/bold] {data.hints}")


@app.command()
def analyze(
    sql_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path to a file holding one SQL statement",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    sql: Annotated[
        Optional[str],
        typer.Option("--sql", "-s", help="SQL text to analyze instead of a file"),
    ] = None,
    indexes: Annotated[
        Optional[Path],
        typer.Option(
            "--indexes",
            "-i",
            help="YAML or JSON file with existing indexes and column statistics",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    connection: Annotated[
        str,
        typer.Option("--connection", "-c", help="Configured connection id for live metadata"),
    ] = "default",
    owner: Annotated[
        Optional[str],
        typer.Option("--owner", "-o", help="Schema owning the referenced tables"),
    ] = None,
    hints: Annotated[
        bool,
        typer.Option("--hints", help="Emit LEADING / join-method optimizer hints"),
    ] = False,
    recommendations: Annotated[
        bool,
        typer.Option(
            "--recommendations/--no-recommendations",
            help="Emit CREATE INDEX recommendations",
        ),
    ] = True,
    statistics: Annotated[
        bool,
        typer.Option(
            "--statistics/--no-statistics",
            help="Use column statistics to estimate selectivity",
        ),
    ] = True,
    output_format: Annotated[
        Optional[OutputFormat],
        typer.Option(
            "--format",
            "-f",
            help="Output format (rich terminal output when omitted)",
        ),
    ] = None,
) -> None:
    """
    Analyze a SQL statement and recommend indexes.

    Existing indexes come from --indexes, or from the Oracle data
    dictionary when --connection names a configured connection.
    Without either, coverage is reported as unknown.

    Examples:

        $ queryartifacts analyze query.sql --indexes indexes.yaml

        $ queryartifacts analyze --sql "SELECT * FROM emp WHERE deptno = 10" --hints
    """
    text = _read_sql(sql_file, sql)
    try:
        provider = _build_provider(indexes, connection)
    except MetadataError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)

    request = AnalyzeQueryRequest(
        sql=text,
        connection_id=connection,
        owner=owner,
        options=AnalyzeQueryOptions(
            include_statistics=statistics,
            include_recommendations=recommendations,
            include_hints=hints,
        ),
    )
    response = QueryArtifactService(provider=provider).analyze(request)

    if output_format == OutputFormat.JSON:
        console.print_json(render(response, OutputFormat.JSON))
    elif output_format is not None:
        console.print(render(response, output_format), markup=False, highlight=False)
    else:
        _print_rich(response)

    if not response.success:
        raise typer.Exit(code=1)


@app.command()
def check(
    sql_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path to a file holding one SQL statement",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    sql: Annotated[
        Optional[str],
        typer.Option("--sql", "-s", help="SQL text to check instead of a file"),
    ] = None,
) -> None:
    """
    Report whether a statement can be analyzed.

    Exits with code 1 for PL/SQL blocks, INSERT ... VALUES, MERGE and
    other unsupported statements.
    """
    statement_type = StructuralSQLParser().classify(_read_sql(sql_file, sql))
    if statement_type.is_supported:
        console.print(f"[green]✓ Supported[/green] ({statement_type.value})")
        return
    error_console.print(f"[red]✗ Unsupported[/red] ({statement_type.value})")
    error_console.print(unsupported_message(statement_type), markup=False)
    raise typer.Exit(code=1)


@app.command()
def schema() -> None:
    """Print the JSON Schema of the analysis response."""
    console.print_json(json.dumps(get_json_schema()))


if __name__ == "__main__":
    app()
