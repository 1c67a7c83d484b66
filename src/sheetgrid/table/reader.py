from __future__ import annotations

import logging
from typing import TypeAlias

from pydantic import BaseModel, Field

from sheetgrid.errors import SheetNotFoundError, SheetsOpError
from sheetgrid.grid import CellValue, GridClient, SheetTab
from sheetgrid.shared.a1 import column_index_to_label, escape_sheet_name, qualify_range

from .layout import TableLayout, resolve_layout

logger = logging.getLogger(__name__)

ROW_FIELD = "_row"

RowRecord: TypeAlias = dict[str, CellValue]


class HeaderInfo(BaseModel):
    """Resolved header facts for a sheet."""

    headers: list[str] = Field(default_factory=list)
    header_row: int = 0


class TableData(BaseModel):
    """Row-major table read result."""

    headers: list[str] = Field(default_factory=list)
    rows: list[RowRecord] = Field(default_factory=list)
    header_row: int = 0


async def get_header_row(
    grid: GridClient, sheet_name: str, header_row: int | None = None
) -> HeaderInfo:
    """Return resolved headers and the header row number for a sheet."""
    layout = await resolve_layout(grid, sheet_name, header_row)
    return HeaderInfo(headers=layout.headers, header_row=layout.header_row)


async def read_table(
    grid: GridClient,
    sheet_name: str,
    *,
    limit: int | None = None,
    range_ref: str | None = None,
    header_row: int | None = None,
    raw: bool = False,
) -> TableData:
    """Read a sheet as a table of records keyed by resolved header.

    Args:
        grid: Remote grid client.
        sheet_name: Sheet tab name.
        limit: Maximum number of rows to return.
        range_ref: Optional A1 data range overriding the layout-derived range.
            Unqualified ranges are prefixed with the sheet name. ``_row`` is
            still counted from the layout's first data row, so it only names
            real grid rows when the range starts at that row.
        header_row: Explicit header row; auto-detected when omitted.
        raw: Fetch unformatted typed values instead of display strings.

    Returns:
        Table data with a synthetic ``_row`` field per record.

    Raises:
        SheetsOpError: If limit is not positive.
    """
    if limit is not None and (isinstance(limit, bool) or limit < 1):
        raise SheetsOpError(f"limit must be a positive integer, got {limit!r}.")
    layout = await resolve_layout(grid, sheet_name, header_row)
    if layout.is_empty:
        return TableData(headers=[], rows=[], header_row=layout.header_row)

    data_range = (
        qualify_range(sheet_name, range_ref)
        if range_ref
        else _default_data_range(sheet_name, layout)
    )
    result = await grid.get_values(
        data_range, render="unformatted" if raw else "formatted"
    )
    raw_rows = result.values if limit is None else result.values[:limit]
    rows = [
        _to_record(row, layout, layout.data_start_row + offset)
        for offset, row in enumerate(raw_rows)
    ]
    logger.debug("Read %s rows from %s (%s).", len(rows), sheet_name, data_range)
    return TableData(
        headers=[ROW_FIELD, *layout.headers],
        rows=rows,
        header_row=layout.header_row,
    )


async def read_range(
    grid: GridClient, range_ref: str, *, raw: bool = False
) -> list[list[CellValue]]:
    """Read a literal A1 range without any header resolution."""
    result = await grid.get_values(
        range_ref, render="unformatted" if raw else "formatted"
    )
    return result.values


async def list_sheets(grid: GridClient) -> list[SheetTab]:
    """List the sheet tabs of the spreadsheet."""
    return await grid.list_sheet_tabs()


async def find_sheet(
    grid: GridClient, *, name: str | None = None, sheet_id: int | None = None
) -> SheetTab:
    """Find one sheet tab by name or numeric id (gid).

    Raises:
        SheetsOpError: If neither or both selectors are given.
        SheetNotFoundError: If no tab matches.
    """
    if (name is None) == (sheet_id is None):
        raise SheetsOpError("Exactly one of name or sheet_id is required.")
    tabs = await grid.list_sheet_tabs()
    for tab in tabs:
        if name is not None and tab.name == name:
            return tab
        if sheet_id is not None and tab.sheet_id == sheet_id:
            return tab
    if name is not None:
        raise SheetNotFoundError(f'Sheet "{name}" not found.', sheet=name)
    raise SheetNotFoundError(f"Sheet with gid {sheet_id} not found.")


def _default_data_range(sheet_name: str, layout: TableLayout) -> str:
    """Build the open-ended data range covering the table width."""
    start = column_index_to_label(layout.start_col)
    end = column_index_to_label(layout.end_col)
    return f"{escape_sheet_name(sheet_name)}!{start}{layout.data_start_row}:{end}"


def _to_record(row: list[CellValue], layout: TableLayout, row_number: int) -> RowRecord:
    """Map a fetched row onto resolved headers; short rows yield None."""
    record: RowRecord = {ROW_FIELD: row_number}
    for offset, header in enumerate(layout.headers):
        record[header] = row[offset] if offset < len(row) else None
    # a header literally named "_row" must not shadow the row identity
    record[ROW_FIELD] = row_number
    return record
