from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sheetgrid.grid import CellValue, GridClient, SheetTab, ValueInputOption
from sheetgrid.table import (
    AppendResult,
    BatchOp,
    BatchResult,
    HeaderInfo,
    SetRangeResult,
    TableData,
    UpdateKeyResult,
    UpdateRowResult,
    append_row,
    find_sheet,
    get_header_row,
    list_sheets,
    read_range,
    read_table,
    run_batch,
    set_range,
    update_by_key,
    update_by_row_index,
)


class ListSheetsToolInput(BaseModel):
    """MCP tool input for listing sheet tabs."""

    spreadsheet: str | None = None


class ListSheetsToolOutput(BaseModel):
    """MCP tool output for listing sheet tabs."""

    sheets: list[SheetTab] = Field(default_factory=list)


class SheetInfoToolInput(BaseModel):
    """MCP tool input for looking up one sheet tab by name or gid."""

    spreadsheet: str | None = None
    sheet: str | None = None
    gid: int | None = None


class HeaderToolInput(BaseModel):
    """MCP tool input for header lookup."""

    sheet: str
    spreadsheet: str | None = None
    header_row: int | None = None


class ReadTableToolInput(BaseModel):
    """MCP tool input for table reads."""

    sheet: str
    spreadsheet: str | None = None
    limit: int | None = Field(default=None, ge=1)
    range: str | None = None  # noqa: A003
    header_row: int | None = None
    raw: bool = False


class ReadRangeToolInput(BaseModel):
    """MCP tool input for literal range reads."""

    range: str  # noqa: A003
    spreadsheet: str | None = None
    raw: bool = False


class ReadRangeToolOutput(BaseModel):
    """MCP tool output for literal range reads."""

    range: str  # noqa: A003
    values: list[list[CellValue]] = Field(default_factory=list)


class _WriteToolInput(BaseModel):
    spreadsheet: str | None = None
    value_input_option: ValueInputOption | None = None
    dry_run: bool = False


class AppendToolInput(_WriteToolInput):
    """MCP tool input for appending a row."""

    sheet: str
    values: dict[str, CellValue]
    header_row: int | None = None


class UpdateRowToolInput(_WriteToolInput):
    """MCP tool input for updating a row by index."""

    sheet: str
    row: int
    set_values: dict[str, CellValue]
    header_row: int | None = None


class UpdateKeyToolInput(_WriteToolInput):
    """MCP tool input for updating rows by key."""

    sheet: str
    key_col: str
    key: str
    set_values: dict[str, CellValue]
    allow_multi: bool = False
    header_row: int | None = None


class SetRangeToolInput(_WriteToolInput):
    """MCP tool input for writing a literal block."""

    range: str  # noqa: A003
    values: list[list[CellValue]]


class BatchToolInput(_WriteToolInput):
    """MCP tool input for batch writes."""

    ops: list[BatchOp]


async def run_list_sheets_tool(
    payload: ListSheetsToolInput, *, grid: GridClient
) -> ListSheetsToolOutput:
    """Run the sheet listing tool handler."""
    return ListSheetsToolOutput(sheets=await list_sheets(grid))


async def run_sheet_info_tool(
    payload: SheetInfoToolInput, *, grid: GridClient
) -> SheetTab:
    """Run the single-tab lookup tool handler.

    Args:
        payload: Tool input payload naming either ``sheet`` or ``gid``.
        grid: Grid client bound to the target spreadsheet.

    Returns:
        Matching sheet tab.
    """
    return await find_sheet(grid, name=payload.sheet, sheet_id=payload.gid)


async def run_header_tool(payload: HeaderToolInput, *, grid: GridClient) -> HeaderInfo:
    """Run the header lookup tool handler."""
    return await get_header_row(grid, payload.sheet, payload.header_row)


async def run_read_table_tool(
    payload: ReadTableToolInput, *, grid: GridClient
) -> TableData:
    """Run the table read tool handler.

    Args:
        payload: Tool input payload.
        grid: Grid client bound to the target spreadsheet.

    Returns:
        Table data.
    """
    return await read_table(
        grid,
        payload.sheet,
        limit=payload.limit,
        range_ref=payload.range,
        header_row=payload.header_row,
        raw=payload.raw,
    )


async def run_read_range_tool(
    payload: ReadRangeToolInput, *, grid: GridClient
) -> ReadRangeToolOutput:
    """Run the literal range read tool handler."""
    values = await read_range(grid, payload.range, raw=payload.raw)
    return ReadRangeToolOutput(range=payload.range, values=values)


async def run_append_tool(
    payload: AppendToolInput,
    *,
    grid: GridClient,
    value_input_option: ValueInputOption = "USER_ENTERED",
) -> AppendResult:
    """Run the append tool handler.

    Args:
        payload: Tool input payload.
        grid: Grid client bound to the target spreadsheet.
        value_input_option: Server default used when the payload sets none.

    Returns:
        Append result.
    """
    return await append_row(
        grid,
        payload.sheet,
        payload.values,
        **_write_options(payload, value_input_option),
        header_row=payload.header_row,
    )


async def run_update_row_tool(
    payload: UpdateRowToolInput,
    *,
    grid: GridClient,
    value_input_option: ValueInputOption = "USER_ENTERED",
) -> UpdateRowResult:
    """Run the update-by-row tool handler."""
    return await update_by_row_index(
        grid,
        payload.sheet,
        payload.row,
        payload.set_values,
        **_write_options(payload, value_input_option),
        header_row=payload.header_row,
    )


async def run_update_key_tool(
    payload: UpdateKeyToolInput,
    *,
    grid: GridClient,
    value_input_option: ValueInputOption = "USER_ENTERED",
) -> UpdateKeyResult:
    """Run the update-by-key tool handler."""
    return await update_by_key(
        grid,
        payload.sheet,
        payload.key_col,
        payload.key,
        payload.set_values,
        allow_multi=payload.allow_multi,
        **_write_options(payload, value_input_option),
        header_row=payload.header_row,
    )


async def run_set_range_tool(
    payload: SetRangeToolInput,
    *,
    grid: GridClient,
    value_input_option: ValueInputOption = "USER_ENTERED",
) -> SetRangeResult:
    """Run the set-range tool handler."""
    return await set_range(
        grid,
        payload.range,
        payload.values,
        **_write_options(payload, value_input_option),
    )


async def run_batch_tool(
    payload: BatchToolInput,
    *,
    grid: GridClient,
    value_input_option: ValueInputOption = "USER_ENTERED",
) -> BatchResult:
    """Run the batch tool handler.

    Args:
        payload: Tool input payload.
        grid: Grid client bound to the target spreadsheet.
        value_input_option: Server default used when the payload sets none.

    Returns:
        Batch result in operation order.
    """
    return await run_batch(
        grid, payload.ops, **_write_options(payload, value_input_option)
    )


def _write_options(
    payload: _WriteToolInput, default_value_input: ValueInputOption
) -> dict[str, Any]:
    """Resolve shared write options from a payload and the server default."""
    return {
        "value_input_option": payload.value_input_option or default_value_input,
        "dry_run": payload.dry_run,
    }
