from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook

from chronos.errors import (
    EmptyTableError,
    HeaderNotFoundError,
    TableFormatError,
    UnsupportedFormatError,
)
from chronos.io import cell_text, load_csv_records, read_table, write_csv, write_json


def _write_xlsx(path: Path, rows: list[list[object]]) -> Path:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    for r_idx, values in enumerate(rows, 1):
        for c_idx, value in enumerate(values, 1):
            if value is not None:
                ws.cell(row=r_idx, column=c_idx, value=value)
    wb.save(path)
    return path


def test_read_table_csv_splits_headers_and_rows(tmp_path: Path) -> None:
    csv_path = tmp_path / "hours.csv"
    csv_path.write_text('Name,Hours\n"Smith, J",1.5\nBob,2.0\n', encoding="utf-8")

    table = read_table(csv_path)

    assert table.headers == ["Name", "Hours"]
    assert table.rows == [["Smith, J", "1.5"], ["Bob", "2.0"]]
    assert table.header_row_index == 0


def test_read_table_csv_keeps_ragged_rows(tmp_path: Path) -> None:
    csv_path = tmp_path / "ragged.csv"
    csv_path.write_text("Name,Hours,Note\nAlice\nBob,2,late,extra\n", encoding="utf-8")

    table = read_table(csv_path)

    assert table.rows == [["Alice"], ["Bob", "2", "late", "extra"]]


def test_read_table_csv_handles_quoted_newlines_and_bom(tmp_path: Path) -> None:
    csv_path = tmp_path / "bom.csv"
    csv_path.write_text('Name,Hours\n"Line one\nline two",3\n', encoding="utf-8-sig")

    table = read_table(csv_path)

    assert table.headers == ["Name", "Hours"]
    assert table.rows == [["Line one\nline two", "3"]]


def test_load_csv_records_reports_encoding_and_falls_back_to_latin1(tmp_path: Path) -> None:
    csv_path = tmp_path / "latin1.csv"
    csv_path.write_bytes("Name,Hours\nAndré,1.5\n".encode("latin-1"))

    records, encoding = load_csv_records(csv_path)

    assert encoding == "latin-1"
    assert records[1] == ["André", "1.5"]


def test_load_csv_records_reports_utf8_sig_only_when_bom_present(tmp_path: Path) -> None:
    plain = tmp_path / "plain.csv"
    plain.write_bytes("Name,Hours\nZoë,1.5\n".encode("utf-8"))
    bom = tmp_path / "bom.csv"
    bom.write_bytes("Name,Hours\nZoë,1.5\n".encode("utf-8-sig"))

    plain_records, plain_encoding = load_csv_records(plain)
    bom_records, bom_encoding = load_csv_records(bom)

    assert plain_encoding == "utf-8"
    assert bom_encoding == "utf-8-sig"
    assert plain_records == bom_records == [["Name", "Hours"], ["Zoë", "1.5"]]


@pytest.mark.parametrize("content", ["", "\n\n"])
def test_read_table_empty_csv_raises(tmp_path: Path, content: str) -> None:
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text(content, encoding="utf-8")

    with pytest.raises(EmptyTableError, match="Empty CSV"):
        read_table(csv_path)


def test_read_table_malformed_csv_raises_format_error(tmp_path: Path) -> None:
    csv_path = tmp_path / "broken.csv"
    csv_path.write_text('Name,Hours\n"Alice"x,1.5\n', encoding="utf-8")

    with pytest.raises(TableFormatError, match="parse failed"):
        read_table(csv_path)


def test_read_table_rejects_unsupported_extension(tmp_path: Path) -> None:
    path = tmp_path / "hours.txt"
    path.write_text("Name,Hours\n", encoding="utf-8")

    with pytest.raises(UnsupportedFormatError, match="Unsupported file type"):
        read_table(path)


def test_read_table_missing_file_raises_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "missing.csv")


def test_read_table_rejects_directory_path(tmp_path: Path) -> None:
    input_dir = tmp_path / "fake.csv"
    input_dir.mkdir()

    with pytest.raises(ValueError, match="not a file"):
        read_table(input_dir)


def test_read_table_xlsx_locates_header_below_banner(tmp_path: Path) -> None:
    xlsx_path = _write_xlsx(
        tmp_path / "sheet.xlsx",
        [
            ["Weekly Timesheet"],
            [],
            ["Name", "Hours", "Approved"],
            ["Alice", 1.5, True],
            ["Bob", 2.0, None],
        ],
    )

    table = read_table(xlsx_path)

    assert table.header_row_index == 2
    assert table.headers == ["Name", "Hours", "Approved"]
    assert table.rows == [["Alice", "1.5", "TRUE"], ["Bob", "2"]]


def test_read_table_xlsx_without_header_raises(tmp_path: Path) -> None:
    xlsx_path = _write_xlsx(tmp_path / "numbers.xlsx", [[1, 2], [3, 4]])

    with pytest.raises(HeaderNotFoundError):
        read_table(xlsx_path)


def test_read_table_empty_xlsx_raises(tmp_path: Path) -> None:
    xlsx_path = _write_xlsx(tmp_path / "blank.xlsx", [])

    with pytest.raises(EmptyTableError):
        read_table(xlsx_path)


def test_cell_text_renders_sheet_values() -> None:
    assert cell_text(None) == ""
    assert cell_text(False) == "FALSE"
    assert cell_text(8.0) == "8"
    assert cell_text(7.25) == "7.25"
    assert cell_text(3) == "3"
    assert cell_text(datetime(2024, 1, 2, 8, 30)) == "2024-01-02T08:30:00"
    assert cell_text("text") == "text"


def test_write_csv_quotes_minimally_and_leaves_no_tmp(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "out.csv"

    out = write_csv(path, [["Name", "Hours"], ["Smith, J", "01:30"], ["Bob"]])

    assert out == path
    assert path.read_text(encoding="utf-8") == 'Name,Hours\n"Smith, J",01:30\nBob\n'
    assert list(path.parent.iterdir()) == [path]


def test_write_csv_failure_removes_tmp_and_writes_nothing(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    path = tmp_path / "out.csv"

    def _fail_replace(self: Path, target: Path) -> Path:
        raise PermissionError("read-only target")

    monkeypatch.setattr(Path, "replace", _fail_replace)

    with pytest.raises(PermissionError):
        write_csv(path, [["Name"], ["Alice"]])

    assert list(tmp_path.iterdir()) == []


def test_write_csv_leaves_neighbouring_files_alone(tmp_path: Path) -> None:
    path = tmp_path / "out.csv"
    neighbour = tmp_path / "out.tmp.csv"
    neighbour.write_text("keep me\n", encoding="utf-8")

    write_csv(path, [["Name"], ["Alice"]])

    assert neighbour.read_text(encoding="utf-8") == "keep me\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.csv", "out.tmp.csv"]


def test_write_json_is_atomic_and_deterministic(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "report.json"
    payload = {"b": 1, "a": datetime(2024, 1, 2, 3, 4, 5), "path": Path("foo/bar")}

    out = write_json(path, payload)

    assert out == path
    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert '"a": "2024-01-02T03:04:05"' in text
    assert '"path": "foo/bar"' in text
    assert text.index('"a"') < text.index('"b"') < text.index('"path"')
    assert not path.with_suffix(path.suffix + ".tmp").exists()


def test_write_json_raises_on_unknown_type(tmp_path: Path) -> None:
    class Unknown:
        pass

    with pytest.raises(TypeError, match="not JSON serializable"):
        write_json(tmp_path / "report.json", {"x": Unknown()})


def test_read_table_corrupt_xlsx_raises_format_error(tmp_path: Path) -> None:
    xlsx_path = tmp_path / "corrupt.xlsx"
    xlsx_path.write_bytes(b"not a zip archive")

    with pytest.raises(TableFormatError, match="Could not read XLSX"):
        read_table(xlsx_path)
