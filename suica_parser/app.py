#!/usr/bin/env python3
"""
CLI interface for the Suica statement parser.
"""
import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.errors import StatementParserError
from .core.export import rows_to_csv, select_rows
from .core.runner import StatementParser
from .models.schema import PdfExtractionResult, PdfFeature

app = typer.Typer(help="Suica statement PDF parser")
console = Console()


def _print_rows(result: PdfExtractionResult):
    table = Table(title=f"{result.file_name} ({result.pdf_type.value})")
    for column in ("Row", "Year-Month", "Day", "Type (In)", "Station (In)",
                   "Type (Out)", "Station (Out)", "Balance", "Amount"):
        table.add_column(column)
    for row in result.rows:
        table.add_row(
            str(row.row_number), row.year_month, row.day, row.type_in, row.station_in,
            row.type_out, row.station_out, row.balance or "", row.amount
        )
    console.print(table)


@app.command()
def parse(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file path"),
    features: Optional[List[str]] = typer.Option(None, "--feature", "-f", help="Feature to extract (repeatable)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Layout template YAML"),
    show_table: bool = typer.Option(False, "--table", help="Print the rows as a table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Parse a Suica statement PDF into structured JSON."""

    if not pdf_path.exists():
        console.print(f"[red]Error: PDF file not found: {pdf_path}[/red]")
        raise typer.Exit(1)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        ) as progress:
            task = progress.add_task("Parsing PDF...", total=None)
            parser = StatementParser(config_path=config, verbose=verbose)
            result = parser.parse(pdf_path, PdfFeature.from_strings(features))

            if output:
                progress.update(task, description="Writing output...")
                output.write_text(result.model_dump_json(indent=2), encoding="utf-8")

        if output:
            console.print(f"[green]✓ Parsed {len(result.rows)} rows! Output written to: {output}[/green]")
        elif show_table:
            _print_rows(result)
        else:
            console.print_json(result.model_dump_json())

    except (StatementParserError, ValueError) as e:
        console.print(f"[red]Error parsing PDF: {e}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(1)


@app.command()
def detect(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Layout template YAML")
):
    """Detect whether a statement is a full history or a partial selection."""
    try:
        parser = StatementParser(config_path=config)
        result = parser.parse(pdf_path, [PdfFeature.TABLE_ROWS])
        console.print(f"[green]Detected statement type: {result.pdf_type.value}[/green]")
    except (StatementParserError, ValueError) as e:
        console.print(f"[red]Error detecting statement type: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def export(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    rows: List[int] = typer.Option(..., "--row", "-r", help="Row number to export (repeatable)"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output CSV file path"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Layout template YAML")
):
    """Export selected rows of a statement as CSV."""
    try:
        parser = StatementParser(config_path=config)
        result = parser.parse(pdf_path, [PdfFeature.STATEMENT_METADATA, PdfFeature.TABLE_ROWS])
        selected = select_rows(result, rows)
        csv_text = rows_to_csv(selected)
    except (StatementParserError, ValueError) as e:
        console.print(f"[red]Error exporting rows: {e}[/red]")
        raise typer.Exit(1)

    if output:
        output.write_text(csv_text, encoding="utf-8")
        console.print(f"[green]✓ Exported {len(selected)} rows to: {output}[/green]")
    else:
        typer.echo(csv_text, nl=False)


if __name__ == "__main__":
    app()
