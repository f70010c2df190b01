"""Heuristics: which columns hold decimal hours, which row holds the header."""

from __future__ import annotations

from collections.abc import Sequence

from chronos import HEADER_SEARCH_LIMIT, SAMPLE_ROWS
from chronos.hours import looks_like_decimal_hour
from chronos.models import Table


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def detect_decimal_columns(table: Table, sample_rows: int = SAMPLE_ROWS) -> list[int]:
    """Return indices of columns whose sampled values all look like decimal hours.

    Only the first *sample_rows* data rows are inspected. Blank cells are
    skipped; a column with no non-blank sampled cell is never suggested.
    """
    sample = table.rows[:sample_rows]
    detected: list[int] = []
    for idx in range(len(table.headers)):
        checked = 0
        qualifies = True
        for row in sample:
            value = _cell(row, idx).strip()
            if not value:
                continue
            if not looks_like_decimal_hour(value):
                qualifies = False
                break
            checked += 1
        if qualifies and checked > 0:
            detected.append(idx)
    return detected


def _has_letters(text: str) -> bool:
    return any(("a" <= ch <= "z") or ("A" <= ch <= "Z") for ch in text)


def locate_header_row(
    rows: Sequence[Sequence[str]], search_limit: int = HEADER_SEARCH_LIMIT
) -> int | None:
    """Return the index of the most header-like row, or ``None``.

    A candidate has at least two non-empty cells and at least one cell with a
    letter in it. The candidate with the most non-empty cells wins; on a tie
    the earlier row is kept.
    """
    best_idx: int | None = None
    best_count = 0
    for idx, row in enumerate(rows[:search_limit]):
        non_empty = 0
        has_text = False
        for cell in row:
            trimmed = str(cell).strip()
            if not trimmed:
                continue
            non_empty += 1
            if _has_letters(trimmed):
                has_text = True
        if non_empty >= 2 and has_text and non_empty > best_count:
            best_count = non_empty
            best_idx = idx
    return best_idx
