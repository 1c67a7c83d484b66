from __future__ import annotations

from collections.abc import Mapping
import logging

from pydantic import BaseModel, Field

from sheetgrid.errors import (
    KeyColumnNotFoundError,
    MultipleMatchError,
    SheetsOpError,
)
from sheetgrid.grid import CellValue, GridClient, RangeValues, ValueInputOption
from sheetgrid.shared.a1 import (
    column_index_to_label,
    column_label_to_index,
    escape_sheet_name,
    format_cell,
    is_column_label,
    parse_range_geometry,
    parse_range_start,
)

from .headers import build_headers, normalize_header, stringify_cell
from .layout import TableLayout, resolve_layout, validate_row_number

logger = logging.getLogger(__name__)


class AppendResult(BaseModel):
    """Result of appending one row (or bootstrapping a table).

    On a dry-run ``updated_range`` is the append anchor (the table's first
    data cell, or ``A1`` for a bootstrap), not the row the service would
    write to. A real append reports the range the service wrote.
    """

    updated_range: str
    updated_rows: int
    values: list[list[CellValue]] = Field(default_factory=list)
    header_row: int = 0
    headers: list[str] = Field(default_factory=list)
    dry_run: bool = False


class UpdateRowResult(BaseModel):
    """Result of updating cells in one row by index."""

    row: int
    updated_cells: int
    updated_ranges: list[str] = Field(default_factory=list)
    header_row: int = 0
    headers: list[str] = Field(default_factory=list)
    dry_run: bool = False


class UpdateKeyResult(BaseModel):
    """Result of updating the rows whose key column matches a value."""

    matched_rows: int
    updated_cells: int
    updated_ranges: list[str] = Field(default_factory=list)
    header_row: int = 0
    headers: list[str] = Field(default_factory=list)
    dry_run: bool = False


class SetRangeResult(BaseModel):
    """Result of writing a literal block to a range."""

    updated_range: str
    updated_cells: int
    dry_run: bool = False


def resolve_column(layout: TableLayout, key: str) -> int | None:
    """Resolve a column reference to a 1-based column number.

    Matches, in order: a raw header label, a resolved header (both compared
    after normalization), then a bare column letter.

    Args:
        layout: Resolved table layout.
        key: Header name or column letter.

    Returns:
        Column number, or None when nothing matches.
    """
    normalized = normalize_header(key)
    if layout.has_header:
        for offset, raw in enumerate(layout.raw_headers):
            if raw and normalize_header(raw) == normalized:
                return layout.start_col + offset
    for offset, header in enumerate(layout.headers):
        if normalize_header(header) == normalized:
            return layout.start_col + offset
    if is_column_label(key):
        return column_label_to_index(key)
    return None


async def append_row(
    grid: GridClient,
    sheet_name: str,
    values: Mapping[str, CellValue],
    *,
    value_input_option: ValueInputOption = "USER_ENTERED",
    dry_run: bool = False,
    header_row: int | None = None,
) -> AppendResult:
    """Append one row addressed by header names or column letters.

    On an empty sheet the keys become the header row and the values the
    first data row. Otherwise every table column is filled from the first
    matching key; unmatched columns are written as empty strings.

    Args:
        grid: Remote grid client.
        sheet_name: Sheet tab name.
        values: Mapping of column reference to value.
        value_input_option: How the service interprets written values.
        dry_run: Compute the row without writing.
        header_row: Explicit header row; auto-detected when omitted.

    Returns:
        Append result with the written (or previewed) rows.

    Raises:
        SheetsOpError: If values is empty.
    """
    if not values:
        raise SheetsOpError("append requires at least one value.", sheet=sheet_name)
    layout = await resolve_layout(grid, sheet_name, header_row)
    quoted = escape_sheet_name(sheet_name)

    if layout.is_empty:
        return await _bootstrap_table(
            grid,
            sheet_name,
            values,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )

    row = _build_append_row(layout, values)
    start_label = column_index_to_label(layout.start_col)
    if dry_run:
        return AppendResult(
            updated_range=f"{quoted}!{start_label}{layout.data_start_row}",
            updated_rows=1,
            values=[row],
            header_row=layout.header_row,
            headers=layout.headers,
            dry_run=True,
        )

    anchor_row = layout.header_row if layout.has_header else layout.data_start_row
    response = await grid.append_values(
        f"{quoted}!{start_label}{anchor_row}",
        [row],
        value_input_option=value_input_option,
    )
    logger.info("Appended %s row(s) to %s.", response.updated_rows, sheet_name)
    return AppendResult(
        updated_range=response.updated_range,
        updated_rows=response.updated_rows,
        values=[row],
        header_row=layout.header_row,
        headers=layout.headers,
        dry_run=False,
    )


async def _bootstrap_table(
    grid: GridClient,
    sheet_name: str,
    values: Mapping[str, CellValue],
    *,
    value_input_option: ValueInputOption,
    dry_run: bool,
) -> AppendResult:
    """Write a header row from the input keys followed by one data row."""
    keys = list(values)
    headers, _ = build_headers(keys, 1, len(keys))
    rows: list[list[CellValue]] = [list(headers), [values[key] for key in keys]]
    target = f"{escape_sheet_name(sheet_name)}!A1"
    if dry_run:
        return AppendResult(
            updated_range=target,
            updated_rows=len(rows),
            values=rows,
            header_row=1,
            headers=headers,
            dry_run=True,
        )
    response = await grid.append_values(
        target, rows, value_input_option=value_input_option
    )
    logger.info("Bootstrapped table on empty sheet %s.", sheet_name)
    return AppendResult(
        updated_range=response.updated_range,
        updated_rows=response.updated_rows,
        values=rows,
        header_row=1,
        headers=headers,
        dry_run=False,
    )


def _build_append_row(
    layout: TableLayout, values: Mapping[str, CellValue]
) -> list[CellValue]:
    """Build a full-width row for an append.

    Per column: a letter key that does not collide with a raw header wins,
    then a raw header match, then a resolved header match, then ''.
    """
    raw_norms = {normalize_header(raw) for raw in layout.raw_headers if raw}
    by_name: dict[str, CellValue] = {}
    by_column: dict[int, CellValue] = {}
    for key, value in values.items():
        by_name[normalize_header(key)] = value
        if is_column_label(key) and normalize_header(key) not in raw_norms:
            by_column[column_label_to_index(key)] = value

    target_width = layout.width
    if by_column:
        target_width = max(target_width, max(by_column) - layout.start_col + 1)

    row: list[CellValue] = []
    for offset in range(target_width):
        col = layout.start_col + offset
        if col in by_column:
            row.append(by_column[col])
            continue
        raw = layout.raw_headers[offset] if offset < len(layout.raw_headers) else ""
        if raw and normalize_header(raw) in by_name:
            row.append(by_name[normalize_header(raw)])
            continue
        display = layout.headers[offset] if offset < len(layout.headers) else ""
        if display and normalize_header(display) in by_name:
            row.append(by_name[normalize_header(display)])
            continue
        row.append("")
    return row


def _cell_updates(
    layout: TableLayout,
    quoted_sheet: str,
    row_number: int,
    set_values: Mapping[str, CellValue],
) -> list[RangeValues]:
    """Build single-cell writes for one row; unresolved keys are skipped."""
    updates: list[RangeValues] = []
    for key, value in set_values.items():
        col = resolve_column(layout, key)
        if col is None:
            logger.debug("Skipping unresolved column %r.", key)
            continue
        updates.append(
            RangeValues(
                range=f"{quoted_sheet}!{format_cell(col, row_number)}",
                values=[[value]],
            )
        )
    return updates


async def update_by_row_index(
    grid: GridClient,
    sheet_name: str,
    row: int,
    set_values: Mapping[str, CellValue],
    *,
    value_input_option: ValueInputOption = "USER_ENTERED",
    dry_run: bool = False,
    header_row: int | None = None,
) -> UpdateRowResult:
    """Update cells of one row addressed by absolute row number.

    Keys that resolve to no column are skipped silently and simply reduce
    ``updated_cells``; preview with dry_run to catch typos.

    Args:
        grid: Remote grid client.
        sheet_name: Sheet tab name.
        row: Absolute 1-based row number.
        set_values: Mapping of column reference to new value.
        value_input_option: How the service interprets written values.
        dry_run: Compute target ranges without writing.
        header_row: Explicit header row; auto-detected when omitted.

    Returns:
        Update result.

    Raises:
        InvalidRowError: If row is not a positive integer.
    """
    row_number = validate_row_number(row)
    layout = await resolve_layout(grid, sheet_name, header_row)
    updates = _cell_updates(
        layout, escape_sheet_name(sheet_name), row_number, set_values
    )
    ranges = [update.range for update in updates]
    if not dry_run and updates:
        await grid.batch_update_values(updates, value_input_option=value_input_option)
        logger.info(
            "Updated %s cell(s) in row %s of %s.", len(updates), row_number, sheet_name
        )
    return UpdateRowResult(
        row=row_number,
        updated_cells=len(updates),
        updated_ranges=ranges,
        header_row=layout.header_row,
        headers=layout.headers,
        dry_run=dry_run,
    )


async def update_by_key(
    grid: GridClient,
    sheet_name: str,
    key_col: str,
    key_value: str,
    set_values: Mapping[str, CellValue],
    *,
    allow_multi: bool = False,
    value_input_option: ValueInputOption = "USER_ENTERED",
    dry_run: bool = False,
    header_row: int | None = None,
) -> UpdateKeyResult:
    """Update the rows whose key column equals a value.

    The key column is scanned once from the first data row. Cells match when
    their trimmed string form equals the trimmed key (case-sensitive). No
    match is not an error. Several matches require ``allow_multi``.

    Args:
        grid: Remote grid client.
        sheet_name: Sheet tab name.
        key_col: Key column reference (header name or letter).
        key_value: Value to match.
        set_values: Mapping of column reference to new value.
        allow_multi: Permit updating more than one matching row.
        value_input_option: How the service interprets written values.
        dry_run: Compute target ranges without writing.
        header_row: Explicit header row; auto-detected when omitted.

    Returns:
        Update result.

    Raises:
        KeyColumnNotFoundError: If key_col does not resolve to a column.
        MultipleMatchError: If several rows match and allow_multi is False.
    """
    layout = await resolve_layout(grid, sheet_name, header_row)
    key_col_number = resolve_column(layout, key_col)
    if key_col_number is None:
        raise KeyColumnNotFoundError(
            f'Key column "{key_col}" not found.', sheet=sheet_name
        )

    quoted = escape_sheet_name(sheet_name)
    matching_rows = await _find_matching_rows(
        grid, quoted, layout, key_col_number, key_value
    )
    if not matching_rows:
        return UpdateKeyResult(
            matched_rows=0,
            updated_cells=0,
            header_row=layout.header_row,
            headers=layout.headers,
            dry_run=dry_run,
        )
    if len(matching_rows) > 1 and not allow_multi:
        raise MultipleMatchError(
            f'Multiple rows ({len(matching_rows)}) match key "{key_value}". '
            "Retry with allow_multi to update all of them.",
            sheet=sheet_name,
            match_count=len(matching_rows),
        )

    updates: list[RangeValues] = []
    for row_number in matching_rows:
        updates.extend(_cell_updates(layout, quoted, row_number, set_values))
    if not dry_run and updates:
        await grid.batch_update_values(updates, value_input_option=value_input_option)
        logger.info(
            "Updated %s cell(s) across %s row(s) of %s.",
            len(updates),
            len(matching_rows),
            sheet_name,
        )
    return UpdateKeyResult(
        matched_rows=len(matching_rows),
        updated_cells=len(updates),
        updated_ranges=[update.range for update in updates],
        header_row=layout.header_row,
        headers=layout.headers,
        dry_run=dry_run,
    )


async def _find_matching_rows(
    grid: GridClient,
    quoted_sheet: str,
    layout: TableLayout,
    key_col: int,
    key_value: str,
) -> list[int]:
    """Return absolute row numbers whose key cell matches, ascending."""
    label = column_index_to_label(key_col)
    result = await grid.get_values(
        f"{quoted_sheet}!{label}{layout.data_start_row}:{label}"
    )
    _, echoed_row = parse_range_start(result.range)
    first_row = echoed_row or layout.data_start_row
    target = key_value.strip()
    return [
        first_row + offset
        for offset, row in enumerate(result.values)
        if stringify_cell(row[0] if row else None).strip() == target
    ]


async def set_range(
    grid: GridClient,
    range_ref: str,
    values: list[list[CellValue]],
    *,
    value_input_option: ValueInputOption = "USER_ENTERED",
    dry_run: bool = False,
) -> SetRangeResult:
    """Write a literal 2-D block to a range without header resolution.

    Args:
        grid: Remote grid client.
        range_ref: Sheet-qualified A1 range.
        values: Row-major block of values.
        value_input_option: How the service interprets written values.
        dry_run: Report the cell count without writing.

    Returns:
        Set-range result.

    Raises:
        SheetsOpError: If the block does not fit a closed range.
    """
    _ensure_block_fits(range_ref, values)
    if dry_run:
        return SetRangeResult(
            updated_range=range_ref,
            updated_cells=sum(len(row) for row in values),
            dry_run=True,
        )
    response = await grid.set_values(
        range_ref, values, value_input_option=value_input_option
    )
    logger.info("Set %s cell(s) in %s.", response.updated_cells, range_ref)
    return SetRangeResult(
        updated_range=response.updated_range or range_ref,
        updated_cells=response.updated_cells,
        dry_run=False,
    )


def _ensure_block_fits(range_ref: str, values: list[list[CellValue]]) -> None:
    """Reject blocks larger than a closed target range.

    Open-ended ranges (``A:C``, ``A1:C``) cannot be checked and are accepted.
    """
    try:
        _, rows, cols = parse_range_geometry(range_ref)
    except ValueError:
        return
    widest = max((len(row) for row in values), default=0)
    if len(values) > rows or widest > cols:
        raise SheetsOpError(
            f"Values block ({len(values)}x{widest}) does not fit range "
            f"{range_ref} ({rows}x{cols})."
        )
