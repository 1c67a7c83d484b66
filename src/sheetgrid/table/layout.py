from __future__ import annotations

import logging
from typing import Final

from pydantic import BaseModel, Field

from sheetgrid.errors import InvalidRowError
from sheetgrid.grid import CellValue, GridClient
from sheetgrid.shared.a1 import escape_sheet_name, parse_range_start

from .headers import (
    build_headers,
    column_letter_headers,
    infer_has_header,
    is_non_empty_cell,
)

logger = logging.getLogger(__name__)

SCAN_WINDOWS: Final[tuple[int, ...]] = (20, 50, 100, 200)
HEADER_SAMPLE_ROWS: Final[int] = 4


class TableLayout(BaseModel):
    """Inferred table shape inside a sheet."""

    has_header: bool = False
    header_row: int = Field(default=0, ge=0, description="0 when no header.")
    data_start_row: int = Field(default=1, ge=1)
    start_col: int = Field(default=1, ge=1)
    width: int = Field(default=0, ge=0)
    headers: list[str] = Field(default_factory=list)
    raw_headers: list[str] = Field(default_factory=list)

    @property
    def end_col(self) -> int:
        """Last 1-based column covered by the table (start_col - 1 if empty)."""
        return self.start_col + self.width - 1

    @property
    def is_empty(self) -> bool:
        """Return True when the layout has no usable columns."""
        return self.width == 0


def validate_row_number(row: object, *, label: str = "Row index") -> int:
    """Validate a 1-based row number.

    Args:
        row: Candidate row number.
        label: Noun used in the error message.

    Returns:
        The row number as int.

    Raises:
        InvalidRowError: If the value is not a positive integer.
    """
    if isinstance(row, bool) or not isinstance(row, int) or row < 1:
        raise InvalidRowError(f"{label} must be a positive integer, got {row!r}.")
    return row


async def resolve_layout(
    grid: GridClient, sheet_name: str, header_row: int | None = None
) -> TableLayout:
    """Resolve the table layout of a sheet.

    Args:
        grid: Remote grid client.
        sheet_name: Sheet tab name.
        header_row: Explicit 1-based header row. When omitted, the header is
            auto-detected from the first non-empty row.

    Returns:
        Resolved table layout. An empty sheet yields a layout with width 0.

    Raises:
        InvalidRowError: If header_row is given but not a positive integer.
    """
    if header_row is not None:
        row_number = validate_row_number(header_row, label="Header row")
        layout = await _layout_from_header_row(grid, sheet_name, row_number)
    else:
        layout = await _detect_layout(grid, sheet_name)
    logger.debug(
        "Resolved layout for %s: header_row=%s data_start_row=%s start_col=%s width=%s",
        sheet_name,
        layout.header_row,
        layout.data_start_row,
        layout.start_col,
        layout.width,
    )
    return layout


async def _layout_from_header_row(
    grid: GridClient, sheet_name: str, header_row: int
) -> TableLayout:
    """Build a layout treating the given row as the header unconditionally."""
    quoted = escape_sheet_name(sheet_name)
    result = await grid.get_values(f"{quoted}!{header_row}:{header_row}")
    start_col, _ = parse_range_start(result.range)
    start = start_col or 1
    row_values: list[CellValue] = result.values[0] if result.values else []
    width = len(row_values)
    headers, raw_headers = build_headers(row_values, start, width)
    return TableLayout(
        has_header=True,
        header_row=header_row,
        data_start_row=header_row + 1,
        start_col=start,
        width=width,
        headers=headers,
        raw_headers=raw_headers,
    )


async def _detect_layout(grid: GridClient, sheet_name: str) -> TableLayout:
    """Scan growing windows from row 1 until a non-empty row is found."""
    quoted = escape_sheet_name(sheet_name)
    for window in SCAN_WINDOWS:
        result = await grid.get_values(f"{quoted}!1:{window}")
        rows = result.values
        if not rows:
            continue
        candidate_idx = _first_non_empty_index(rows)
        if candidate_idx is None:
            continue
        start_col, start_row = parse_range_start(result.range)
        return _layout_from_sample(
            rows,
            candidate_idx,
            base_row=start_row or 1,
            start_col=start_col or 1,
        )
    logger.debug(
        "No non-empty row in the first %s rows of %s.", SCAN_WINDOWS[-1], sheet_name
    )
    return TableLayout()


def _first_non_empty_index(rows: list[list[CellValue]]) -> int | None:
    """Return the index of the first row with a non-empty cell."""
    for index, row in enumerate(rows):
        if any(is_non_empty_cell(cell) for cell in row):
            return index
    return None


def _layout_from_sample(
    rows: list[list[CellValue]],
    candidate_idx: int,
    *,
    base_row: int,
    start_col: int,
) -> TableLayout:
    """Classify the candidate row and size the table from the sample."""
    sample = rows[candidate_idx : candidate_idx + HEADER_SAMPLE_ROWS]
    width = max(len(row) for row in sample)
    candidate_row = base_row + candidate_idx
    if infer_has_header(sample):
        headers, raw_headers = build_headers(rows[candidate_idx], start_col, width)
        return TableLayout(
            has_header=True,
            header_row=candidate_row,
            data_start_row=candidate_row + 1,
            start_col=start_col,
            width=width,
            headers=headers,
            raw_headers=raw_headers,
        )
    return TableLayout(
        has_header=False,
        header_row=0,
        data_start_row=candidate_row,
        start_col=start_col,
        width=width,
        headers=column_letter_headers(start_col, width),
        raw_headers=[],
    )
