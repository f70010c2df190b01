"""Data models used across the package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from numbers import Integral
from typing import Any


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


@dataclass
class Table:
    """Headers plus data rows, all cells as text.

    Rows may be shorter or longer than ``headers``. ``header_row_index`` is the
    physical row the headers came from (always 0 for CSV input).
    """

    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    header_row_index: int = 0

    def __post_init__(self) -> None:
        self.headers = _to_string_list(self.headers, "headers")
        if self.rows is None or isinstance(self.rows, str):
            raise TypeError("rows must be a sequence of string sequences")
        self.rows = [_to_string_list(row, "rows") for row in self.rows]
        self.header_row_index = _to_non_negative_int(self.header_row_index, "header_row_index")

    def valid_columns(self, column_indices: Sequence[int]) -> list[int]:
        """Return the in-range, de-duplicated *column_indices* in ascending order."""
        width = len(self.headers)
        return sorted({int(idx) for idx in column_indices if 0 <= int(idx) < width})


@dataclass(frozen=True)
class ConversionResult:
    """Summary of one finished conversion.

    ``rows_processed`` counts converted cells, except for CSV insert-alongside
    runs where it counts data rows.
    """

    input_path: str = ""
    output_path: str = ""
    columns_converted: tuple[str, ...] = ()
    rows_processed: int = 0

    def __post_init__(self) -> None:
        columns = tuple(_to_string_list(self.columns_converted, "columns_converted"))
        object.__setattr__(self, "columns_converted", columns)
        object.__setattr__(
            self, "rows_processed", _to_non_negative_int(self.rows_processed, "rows_processed")
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_path": self.input_path,
            "output_path": self.output_path,
            "columns_converted": list(self.columns_converted),
            "rows_processed": self.rows_processed,
        }
