"""I/O helpers — read tables, write converted outputs and JSON reports atomically."""

from __future__ import annotations

import codecs
import csv
import io
import json
import os
import tempfile
from collections.abc import Sequence
from datetime import date, datetime, time
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from chronos.detect import locate_header_row
from chronos.errors import (
    EmptyTableError,
    HeaderNotFoundError,
    TableFormatError,
    UnsupportedFormatError,
)
from chronos.models import Table

CSV_SUFFIXES = (".csv",)
XLSX_SUFFIXES = (".xlsx",)

_CSV_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1")

# ── Loading ──────────────────────────────────────────────────────


def table_kind(path: Path) -> str:
    """Return ``"csv"`` or ``"xlsx"`` for *path*, or raise UnsupportedFormatError."""
    suffix = Path(path).suffix.lower()
    if suffix in CSV_SUFFIXES:
        return "csv"
    if suffix in XLSX_SUFFIXES:
        return "xlsx"
    raise UnsupportedFormatError(f"Unsupported file type: {suffix!r}. Use .csv or .xlsx")


def _check_input(path: Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Input path is a directory, not a file: {path}")
    return path


def load_csv_records(path: Path) -> tuple[list[list[str]], str]:
    """Parse a CSV file into records and return ``(records, encoding)``.

    Blank lines are skipped. Raises EmptyTableError when no record remains.
    """
    path = _check_input(path)
    raw = path.read_bytes()
    # utf-8-sig only when a BOM is present, so it is written back only then.
    candidates = _CSV_ENCODINGS if raw.startswith(codecs.BOM_UTF8) else _CSV_ENCODINGS[1:]
    text = ""
    encoding = _CSV_ENCODINGS[-1]
    for candidate in candidates:
        try:
            text = raw.decode(candidate)
        except UnicodeDecodeError:
            continue
        encoding = candidate
        break

    try:
        reader = csv.reader(io.StringIO(text, newline=""), strict=True)
        records = [record for record in reader if record]
    except csv.Error as exc:
        raise TableFormatError(f"Could not read CSV {path} (parse failed: {exc})") from exc

    if not records:
        raise EmptyTableError(f"Empty CSV file: {path}")
    return records, encoding


def cell_text(value: Any) -> str:
    """Render a workbook cell value the way it reads in a sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def sheet_rows(ws: Worksheet) -> list[list[str]]:
    """Return every physical row of *ws* as text, starting at row 1.

    Trailing blank cells of each row and trailing blank rows are dropped.
    """
    rows: list[list[str]] = []
    for values in ws.iter_rows(
        min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column, values_only=True
    ):
        cells = [cell_text(v) for v in values]
        while cells and not cells[-1]:
            cells.pop()
        rows.append(cells)
    while rows and not rows[-1]:
        rows.pop()
    return rows


def load_first_sheet(path: Path) -> tuple[Workbook, Worksheet, list[list[str]]]:
    """Open the workbook at *path* and return it with its first sheet and rows."""
    path = _check_input(path)
    try:
        wb = load_workbook(path)
    except (BadZipFile, InvalidFileException) as exc:
        raise TableFormatError(f"Could not read XLSX {path} ({exc})") from exc
    if not wb.worksheets:
        raise EmptyTableError(f"Workbook has no sheets: {path}")
    ws = wb.worksheets[0]
    rows = sheet_rows(ws)
    if not rows:
        raise EmptyTableError(f"Empty XLSX file: {path}")
    return wb, ws, rows


def table_from_sheet_rows(rows: list[list[str]], path: Path) -> Table:
    header_idx = locate_header_row(rows)
    if header_idx is None:
        raise HeaderNotFoundError(f"Could not find header row in {path}")
    return Table(
        headers=rows[header_idx],
        rows=rows[header_idx + 1:],
        header_row_index=header_idx,
    )


def read_table(path: Path) -> Table:
    """Load a CSV or XLSX file into a :class:`Table`.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    UnsupportedFormatError
        If the extension is not ``.csv`` or ``.xlsx``.
    EmptyTableError
        If the file holds no records.
    HeaderNotFoundError
        If no header row can be located in a spreadsheet.
    """
    path = Path(path)
    kind = table_kind(path)
    if kind == "csv":
        records, _encoding = load_csv_records(path)
        return Table(headers=records[0], rows=records[1:])

    wb, _ws, rows = load_first_sheet(path)
    wb.close()
    return table_from_sheet_rows(rows, path)


# ── Writing ──────────────────────────────────────────────────────


def _tmp_sibling(path: Path) -> Path:
    """Create a uniquely named empty file next to *path* and return it."""
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=path.suffix)
    os.close(fd)
    return Path(name)


def write_csv(path: Path, records: Sequence[Sequence[str]], encoding: str = "utf-8") -> Path:
    """Serialize *records* and write them to *path* (atomic)."""
    path = Path(path)
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(records)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_sibling(path)
    try:
        with open(tmp_path, "w", encoding=encoding, newline="") as fh:
            fh.write(buffer.getvalue())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path


def save_workbook(path: Path, wb: Workbook) -> Path:
    """Save *wb* to *path* (atomic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_sibling(path)
    try:
        wb.save(tmp_path)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = _tmp_sibling(path)
    try:
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path
