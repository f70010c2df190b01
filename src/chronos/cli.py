"""CLI entry point for chronos."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table as RichTable

from chronos import MAX_BATCH_FILES, SAMPLE_ROWS, __version__
from chronos.converter import ConversionJob, default_output_path
from chronos.detect import detect_decimal_columns
from chronos.io import read_table, write_json
from chronos.models import ConversionResult, Table

app = typer.Typer(
    name="chronos",
    help="chronos — Convert decimal-hour columns in CSV/XLSX files to HH:MM.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {escape(msg)}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"chronos v{__version__}")
        raise typer.Exit()


def _first_sample(table: Table, index: int) -> str:
    for row in table.rows[:SAMPLE_ROWS]:
        if index < len(row) and row[index].strip():
            return row[index].strip()
    return ""


def _column_labels(table: Table, indices: list[int]) -> str:
    return ", ".join(f"{idx}:{table.headers[idx]}" for idx in indices)


def _run_job(job: ConversionJob, *, quiet: bool) -> ConversionResult:
    job.start()
    if quiet:
        return job.result()
    with Progress(
        TextColumn("  {task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(escape(job.input_path.name), total=1.0)
        for fraction in job.ticks():
            bar.update(task, completed=fraction)
    return job.result()


def _convert_one(
    input_file: Path,
    output_file: Path,
    columns: list[int] | None,
    keep_original: bool,
    *,
    quiet: bool,
) -> tuple[int, ConversionResult | None]:
    """Convert one file; return ``(exit_code, result)``."""
    echo = _printer(quiet)
    echo(f"[blue]>[/blue] {escape(str(input_file))}")

    indices = list(columns) if columns else None
    if indices is None:
        try:
            table = read_table(input_file)
        except (FileNotFoundError, ValueError, OSError) as exc:
            _err(str(exc))
            return 2, None
        indices = detect_decimal_columns(table)
        if not indices:
            _err(f"No decimal-hour columns detected in {input_file.name}; pass --column")
            return 2, None
        echo(f"  Auto-detected: {escape(_column_labels(table, indices))}")

    job = ConversionJob(input_file, output_file, indices, keep_original)
    try:
        result = _run_job(job, quiet=quiet)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        return 2, None
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        return 1, None

    if not result.columns_converted:
        console.print(
            f"  [yellow]![/yellow] No valid column index for {escape(input_file.name)}; "
            "output is an unchanged copy"
        )
    echo(
        f"  {result.rows_processed} processed in "
        f"{escape(', '.join(result.columns_converted) or '-')} -> {escape(result.output_path)}"
    )
    return 0, result


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """chronos CLI."""


# ── detect command ───────────────────────────────────────────────


@app.command()
def detect(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True,
    ),
) -> None:
    """Show the columns of a file and which ones look like decimal hours."""
    try:
        table = read_table(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    detected = detect_decimal_columns(table)
    console.print(Panel(
        f"[bold]chronos[/bold] v{__version__}  [dim]detect mode[/dim]\n"
        f"Input: {escape(str(input_file))}\n"
        f"Header row: {table.header_row_index}  "
        f"({len(table.rows)} rows x {len(table.headers)} columns)",
        title="Detect", border_style="cyan",
    ))

    tbl = RichTable(title="Columns", show_lines=False)
    tbl.add_column("#", justify="right")
    tbl.add_column("Header", style="bold")
    tbl.add_column("Sample")
    tbl.add_column("Decimal hours")
    for idx, label in enumerate(table.headers):
        mark = "[green]yes[/green]" if idx in detected else "[dim]no[/dim]"
        tbl.add_row(str(idx), escape(label), escape(_first_sample(table, idx)), mark)
    console.print(tbl)

    if detected:
        flags = " ".join(f"--column {idx}" for idx in detected)
        console.print(f"  Suggested: {flags}")
    else:
        console.print("[yellow]![/yellow] No decimal-hour columns detected")


# ── convert command ──────────────────────────────────────────────


@app.command("convert")
def convert_command(
    input_files: list[Path] = typer.Option(
        ..., "--input", "-i",
        help=f"CSV or XLSX file to convert (repeat for up to {MAX_BATCH_FILES} files).",
        exists=True, readable=True, dir_okay=False,
    ),
    columns: list[int] | None = typer.Option(
        None, "--column", "-c",
        help=(
            "Zero-based column index to convert (repeatable). Applies to every "
            "--input; convert files separately to pick different columns. "
            "Default: auto-detect per file."
        ),
    ),
    keep_original: bool = typer.Option(
        False,
        "--keep-original/--replace",
        help="Add '<column> (HH:MM)' columns beside the originals instead of overwriting.",
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o",
        help="Output path (single input only). Default: <name>_converted.<ext>.",
    ),
    report: Path | None = typer.Option(
        None, "--report",
        help="Write a JSON summary of the converted files to this path.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output.",
    ),
) -> None:
    """Convert decimal-hour columns to HH:MM and write a converted copy.

    --column and --keep-original apply to every file in the batch.
    """
    if len(input_files) > MAX_BATCH_FILES:
        _err(f"Too many input files: {len(input_files)} (max {MAX_BATCH_FILES})")
        raise typer.Exit(code=2)
    if output is not None and len(input_files) > 1:
        _err("--output can only be used with a single --input")
        raise typer.Exit(code=2)

    if not quiet:
        console.print(Panel(
            f"[bold]chronos[/bold] v{__version__}\n"
            f"Files: {len(input_files)}\n"
            f"Mode:  {'keep original columns' if keep_original else 'replace in place'}",
            title="Conversion Start", border_style="blue",
        ))

    exit_code = 0
    results: list[ConversionResult] = []
    for input_file in input_files:
        output_file = output if output is not None else default_output_path(input_file)
        code, result = _convert_one(
            input_file, output_file, columns, keep_original, quiet=quiet
        )
        exit_code = max(exit_code, code)
        if result is not None:
            results.append(result)

    if report is not None:
        report_path = write_json(report, [r.to_dict() for r in results])
        _printer(quiet)(f"  Report -> {escape(str(report_path))}")

    if exit_code:
        raise typer.Exit(code=exit_code)

    if not quiet:
        console.print(Panel(
            f"[green]Done[/green] — {len(results)} file(s) converted",
            title="Conversion Complete", border_style="green",
        ))
