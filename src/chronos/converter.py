"""Conversion engine — rewrite decimal-hour columns as HH:MM and save a copy."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path

from openpyxl.worksheet.worksheet import Worksheet

from chronos import CLOCK_HEADER_SUFFIX, OUTPUT_SUFFIX, PROGRESS_CAPACITY
from chronos.hours import decimal_hours_to_clock, parse_decimal_hour
from chronos.io import (
    load_csv_records,
    load_first_sheet,
    save_workbook,
    table_from_sheet_rows,
    table_kind,
    write_csv,
)
from chronos.models import ConversionResult, Table

ProgressSink = Callable[[float], None]

# ── Helpers ──────────────────────────────────────────────────────


def default_output_path(input_path: Path) -> Path:
    """Return ``<stem>_converted<suffix>`` next to *input_path*."""
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}{OUTPUT_SUFFIX}{input_path.suffix}")


def _clock_for(text: str) -> str | None:
    value = parse_decimal_hour(text)
    if value is None:
        return None
    return decimal_hours_to_clock(value)


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def _emit(progress: ProgressSink | None, done: int, total: int) -> None:
    if progress is None or total <= 0:
        return
    progress(done / total)


def clock_header(label: str) -> str:
    return f"{label}{CLOCK_HEADER_SUFFIX}"


# ── CSV strategies ───────────────────────────────────────────────


def _replace_rows(
    rows: list[list[str]], columns: Sequence[int], progress: ProgressSink | None
) -> int:
    converted = 0
    total = len(rows)
    for done, row in enumerate(rows, 1):
        for idx in columns:
            if idx >= len(row):
                continue
            clock = _clock_for(row[idx])
            if clock is not None:
                row[idx] = clock
                converted += 1
        _emit(progress, done, total)
    return converted


def _widen_rows(
    table: Table, columns: Sequence[int], progress: ProgressSink | None
) -> list[list[str]]:
    """Build a new record list with a clock column after each selected column."""
    selected = set(columns)
    headers: list[str] = []
    for idx, label in enumerate(table.headers):
        headers.append(label)
        if idx in selected:
            headers.append(clock_header(label))

    records = [headers]
    total = len(table.rows)
    for done, row in enumerate(table.rows, 1):
        widened: list[str] = []
        for idx, value in enumerate(row):
            widened.append(value)
            if idx in selected:
                widened.append(_clock_for(value) or "")
        records.append(widened)
        _emit(progress, done, total)
    return records


def convert_csv(
    input_path: Path,
    output_path: Path,
    column_indices: Iterable[int],
    keep_original: bool = False,
    progress: ProgressSink | None = None,
) -> ConversionResult:
    records, encoding = load_csv_records(input_path)
    table = Table(headers=records[0], rows=records[1:])
    columns = table.valid_columns(list(column_indices))

    if keep_original:
        out_records = _widen_rows(table, columns, progress)
        rows_processed = len(table.rows)
    else:
        rows_processed = _replace_rows(table.rows, columns, progress)
        out_records = [table.headers, *table.rows]

    write_csv(output_path, out_records, encoding=encoding)
    return ConversionResult(
        input_path=str(input_path),
        output_path=str(output_path),
        columns_converted=[table.headers[idx] for idx in columns],
        rows_processed=rows_processed,
    )


# ── XLSX strategies ──────────────────────────────────────────────


def _replace_sheet_cells(
    ws: Worksheet, table: Table, columns: Sequence[int], progress: ProgressSink | None
) -> int:
    first_data_row = table.header_row_index + 2
    total = len(columns) * len(table.rows)
    done = 0
    converted = 0
    for offset, row in enumerate(table.rows):
        for idx in columns:
            clock = _clock_for(_cell(row, idx))
            if clock is not None:
                ws.cell(row=first_data_row + offset, column=idx + 1, value=clock)
                converted += 1
            done += 1
            _emit(progress, done, total)
    return converted


def _insert_sheet_columns(
    ws: Worksheet, table: Table, columns: Sequence[int], progress: ProgressSink | None
) -> int:
    """Insert a clock column after each selected column, rightmost first."""
    header_row = table.header_row_index + 1
    total = len(columns) * len(table.rows)
    done = 0
    converted = 0
    for idx in sorted(columns, reverse=True):
        new_col = idx + 2
        ws.insert_cols(new_col)
        ws.cell(row=header_row, column=new_col, value=clock_header(table.headers[idx]))
        for offset, row in enumerate(table.rows, 1):
            clock = _clock_for(_cell(row, idx))
            if clock is not None:
                ws.cell(row=header_row + offset, column=new_col, value=clock)
                converted += 1
            done += 1
            _emit(progress, done, total)
    return converted


def convert_xlsx(
    input_path: Path,
    output_path: Path,
    column_indices: Iterable[int],
    keep_original: bool = False,
    progress: ProgressSink | None = None,
) -> ConversionResult:
    wb, ws, rows = load_first_sheet(input_path)
    try:
        table = table_from_sheet_rows(rows, input_path)
        columns = table.valid_columns(list(column_indices))
        if keep_original:
            rows_processed = _insert_sheet_columns(ws, table, columns, progress)
        else:
            rows_processed = _replace_sheet_cells(ws, table, columns, progress)
        save_workbook(output_path, wb)
    finally:
        wb.close()

    return ConversionResult(
        input_path=str(input_path),
        output_path=str(output_path),
        columns_converted=[table.headers[idx] for idx in columns],
        rows_processed=rows_processed,
    )


# ── Public API ───────────────────────────────────────────────────


def convert(
    input_path: Path,
    output_path: Path,
    column_indices: Iterable[int],
    keep_original: bool = False,
    progress: ProgressSink | None = None,
) -> ConversionResult:
    """Convert the selected columns of *input_path* and write *output_path*.

    With ``keep_original`` the converted values go into new ``<label> (HH:MM)``
    columns beside the originals; otherwise the original cells are overwritten.
    Cells that are blank or not a plain decimal number are left alone. The
    input file is never modified and nothing is written unless the whole
    conversion succeeds.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    kind = table_kind(input_path)
    if output_path.resolve() == input_path.resolve():
        raise ValueError(f"Output path must differ from input path: {output_path}")

    if kind == "csv":
        return convert_csv(input_path, output_path, column_indices, keep_original, progress)
    return convert_xlsx(input_path, output_path, column_indices, keep_original, progress)


# ── Background jobs ──────────────────────────────────────────────


class ProgressChannel:
    """Bounded queue of progress fractions; ticks that don't fit are dropped."""

    def __init__(self, capacity: int = PROGRESS_CAPACITY) -> None:
        self._queue: queue.Queue[float] = queue.Queue(maxsize=capacity)
        self.dropped = 0

    def __call__(self, fraction: float) -> None:
        fraction = min(max(float(fraction), 0.0), 1.0)
        try:
            self._queue.put_nowait(fraction)
        except queue.Full:
            self.dropped += 1

    def get(self, timeout: float = 0.05) -> float | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def empty(self) -> bool:
        return self._queue.empty()


class ConversionJob:
    """Run one :func:`convert` call on a worker thread.

    Progress arrives through :attr:`progress`; the outcome through
    :meth:`result`. There is no cancellation: a caller that loses interest
    simply stops reading.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        column_indices: Iterable[int],
        keep_original: bool = False,
        *,
        capacity: int = PROGRESS_CAPACITY,
    ) -> None:
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.column_indices = list(column_indices)
        self.keep_original = keep_original
        self.progress = ProgressChannel(capacity)
        self._outcome: queue.Queue[tuple[ConversionResult | None, BaseException | None]] = (
            queue.Queue(maxsize=1)
        )
        self._settled: tuple[ConversionResult | None, BaseException | None] | None = None
        self._thread = threading.Thread(
            target=self._run, name=f"chronos-convert-{self.input_path.name}"
        )

    def _run(self) -> None:
        try:
            result = convert(
                self.input_path,
                self.output_path,
                self.column_indices,
                self.keep_original,
                self.progress,
            )
        except BaseException as exc:
            # Published for result() even when it is not an Exception.
            self._outcome.put((None, exc))
            return
        self._outcome.put((result, None))

    def start(self) -> ConversionJob:
        self._thread.start()
        return self

    @property
    def started(self) -> bool:
        return self._thread.ident is not None

    @property
    def done(self) -> bool:
        return self.started and not self._thread.is_alive()

    def ticks(self, poll_interval: float = 0.05) -> Iterator[float]:
        """Yield progress fractions until the worker has finished and the channel is drained."""
        if not self.started:
            raise RuntimeError("ConversionJob.ticks() called before start()")
        while True:
            finished = self.done
            fraction = self.progress.get(timeout=poll_interval)
            if fraction is not None:
                yield fraction
            elif finished:
                return

    def result(self, timeout: float | None = None) -> ConversionResult:
        """Return the conversion result, re-raising the worker's error if it failed."""
        if self._settled is None:
            if not self.started:
                raise RuntimeError("ConversionJob.result() called before start()")
            try:
                self._settled = self._outcome.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(f"Conversion of {self.input_path} still running") from None
        result, error = self._settled
        if error is not None:
            raise error
        if result is None:
            raise RuntimeError(f"Conversion of {self.input_path} produced no result")
        return result
