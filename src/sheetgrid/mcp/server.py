from __future__ import annotations

import argparse
from collections.abc import Callable
import functools
import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any, cast

import anyio
from pydantic import BaseModel, Field

from sheetgrid.config import SheetsConfig, load_config, resolve_spreadsheet_id
from sheetgrid.grid import CellValue, GridClient, SheetTab, ValueInputOption
from sheetgrid.table import (
    AppendResult,
    BatchResult,
    HeaderInfo,
    SetRangeResult,
    TableData,
    UpdateKeyResult,
    UpdateRowResult,
    coerce_batch_ops,
)

from .tools import (
    AppendToolInput,
    BatchToolInput,
    HeaderToolInput,
    ListSheetsToolInput,
    ListSheetsToolOutput,
    ReadRangeToolInput,
    ReadRangeToolOutput,
    ReadTableToolInput,
    SetRangeToolInput,
    SheetInfoToolInput,
    UpdateKeyToolInput,
    UpdateRowToolInput,
    run_append_tool,
    run_batch_tool,
    run_header_tool,
    run_list_sheets_tool,
    run_read_range_tool,
    run_read_table_tool,
    run_set_range_tool,
    run_sheet_info_tool,
    run_update_key_tool,
    run_update_row_tool,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from mcp.server.fastmcp import FastMCP

logger = logging.getLogger(__name__)

GridFactory = Callable[[str | None], GridClient]


class ServerConfig(BaseModel):
    """Configuration for the MCP server process."""

    sheets: SheetsConfig = Field(default_factory=SheetsConfig)
    log_level: str = Field(default="INFO", description="Logging level.")
    log_file: Path | None = Field(default=None, description="Optional log file path.")


def main(argv: list[str] | None = None) -> int:
    """Run the MCP server entrypoint.

    Args:
        argv: Optional CLI arguments for testing.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    config = _parse_args(argv)
    _configure_logging(config)
    try:
        run_server(config)
    except Exception as exc:  # pragma: no cover - surface runtime errors
        logger.error("MCP server failed: %s", exc)
        return 1
    return 0


def run_server(config: ServerConfig) -> None:
    """Start the MCP server.

    Args:
        config: Server configuration.
    """
    _import_mcp()
    if config.sheets.default_spreadsheet_id:
        logger.info("Default spreadsheet: %s", config.sheets.default_spreadsheet_id)
    app = _create_app(config.sheets, grid_factory=_google_grid_factory(config.sheets))
    app.run()


def _parse_args(
    argv: list[str] | None, *, environ: dict[str, str] | None = None
) -> ServerConfig:
    """Parse CLI arguments into server config.

    Environment variables supply defaults; explicit arguments win.

    Args:
        argv: Optional CLI argument list.
        environ: Optional environment mapping for testing.

    Returns:
        Parsed server configuration.
    """
    env_config = load_config(environ)
    parser = argparse.ArgumentParser(description="sheetgrid MCP server (stdio).")
    parser.add_argument(
        "--spreadsheet",
        default=env_config.default_spreadsheet_id,
        help="Default spreadsheet id or URL.",
    )
    parser.add_argument(
        "--credentials",
        type=Path,
        default=env_config.credentials_path,
        help="Service account or authorized user JSON file.",
    )
    parser.add_argument(
        "--value-input",
        choices=["USER_ENTERED", "RAW"],
        default=env_config.value_input_option,
        help="Default value input option for writes.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument("--log-file", type=Path, help="Optional log file path.")
    args = parser.parse_args(argv)
    return ServerConfig(
        sheets=SheetsConfig(
            default_spreadsheet_id=args.spreadsheet,
            credentials_path=args.credentials,
            value_input_option=args.value_input,
        ),
        log_level=args.log_level,
        log_file=args.log_file,
    )


def _configure_logging(config: ServerConfig) -> None:
    """Configure logging for the server process.

    Args:
        config: Server configuration.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=config.log_level.upper(),
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _import_mcp() -> ModuleType:
    """Import the MCP SDK module or raise a helpful error.

    Returns:
        Imported MCP module.
    """
    try:
        return importlib.import_module("mcp")
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "MCP SDK is not installed. Install with `pip install sheetgrid[mcp]`."
        ) from exc


def _google_grid_factory(config: SheetsConfig) -> GridFactory:
    """Return a factory building Google-backed grids per spreadsheet."""
    from sheetgrid.google_grid import build_google_grid

    def factory(spreadsheet: str | None) -> GridClient:
        return build_google_grid(config, resolve_spreadsheet_id(spreadsheet, config))

    return factory


def _create_app(config: SheetsConfig, *, grid_factory: GridFactory) -> FastMCP:
    """Create the MCP FastMCP application.

    Args:
        config: Sheets configuration.
        grid_factory: Builds a grid client for a spreadsheet id/URL.

    Returns:
        FastMCP application instance.
    """
    from mcp.server.fastmcp import FastMCP

    app = FastMCP("sheetgrid MCP", json_response=True)
    _register_tools(app, config, grid_factory=grid_factory)
    return app


def _register_tools(  # noqa: C901
    app: FastMCP, config: SheetsConfig, *, grid_factory: GridFactory
) -> None:
    """Register MCP tools for the server.

    Args:
        app: FastMCP application instance.
        config: Sheets configuration.
        grid_factory: Builds a grid client for a spreadsheet id/URL.
    """
    default_value_input = config.value_input_option

    async def _grid(spreadsheet: str | None) -> GridClient:
        work = functools.partial(grid_factory, spreadsheet)
        return cast(GridClient, await anyio.to_thread.run_sync(work))

    async def _list_tool(spreadsheet: str | None = None) -> ListSheetsToolOutput:
        """List the sheet tabs of a spreadsheet.

        Args:
            spreadsheet: Spreadsheet id or URL. Defaults to the server setting.

        Returns:
            Sheet tabs with name, sheet_id (gid) and index.
        """
        payload = ListSheetsToolInput(spreadsheet=spreadsheet)
        grid = await _grid(payload.spreadsheet)
        return await run_list_sheets_tool(payload, grid=grid)

    app.tool(name="sheets_list")(_list_tool)

    async def _info_tool(
        sheet: str | None = None,
        gid: int | None = None,
        spreadsheet: str | None = None,
    ) -> SheetTab:
        """Look up one sheet tab by name or by numeric gid.

        Pass exactly one of sheet or gid. Use gid to turn the `#gid=` part of
        a spreadsheet URL into a tab name.

        Args:
            sheet: Sheet tab name.
            gid: Numeric sheet id.
            spreadsheet: Spreadsheet id or URL.

        Returns:
            Sheet tab with name, sheet_id (gid) and index.
        """
        payload = SheetInfoToolInput(sheet=sheet, gid=gid, spreadsheet=spreadsheet)
        grid = await _grid(payload.spreadsheet)
        return await run_sheet_info_tool(payload, grid=grid)

    app.tool(name="sheets_info")(_info_tool)

    async def _header_tool(
        sheet: str,
        spreadsheet: str | None = None,
        header_row: int | None = None,
    ) -> HeaderInfo:
        """Return the resolved column names of a sheet's table.

        Args:
            sheet: Sheet tab name.
            spreadsheet: Spreadsheet id or URL.
            header_row: Header row number; auto-detected when omitted.

        Returns:
            Resolved headers and the header row (0 when no header was found,
            in which case headers are column letters).
        """
        payload = HeaderToolInput(
            sheet=sheet, spreadsheet=spreadsheet, header_row=header_row
        )
        grid = await _grid(payload.spreadsheet)
        return await run_header_tool(payload, grid=grid)

    app.tool(name="sheets_header")(_header_tool)

    async def _read_table_tool(  # pylint: disable=redefined-builtin
        sheet: str,
        spreadsheet: str | None = None,
        limit: int | None = None,
        range: str | None = None,  # noqa: A002
        header_row: int | None = None,
        raw: bool = False,
    ) -> TableData:
        """Read a sheet as a table of records.

        Each record maps resolved header names to cell values and carries a
        `_row` field with its absolute row number, usable with
        sheets_update_row.

        Args:
            sheet: Sheet tab name.
            spreadsheet: Spreadsheet id or URL.
            limit: Maximum number of rows.
            range: Optional A1 data range (excluding the header).
            header_row: Header row number; auto-detected when omitted.
            raw: Return unformatted values.

        Returns:
            Headers, rows and header row.
        """
        payload = ReadTableToolInput(
            sheet=sheet,
            spreadsheet=spreadsheet,
            limit=limit,
            range=range,
            header_row=header_row,
            raw=raw,
        )
        grid = await _grid(payload.spreadsheet)
        return await run_read_table_tool(payload, grid=grid)

    app.tool(name="sheets_read_table")(_read_table_tool)

    async def _read_range_tool(  # pylint: disable=redefined-builtin
        range: str,  # noqa: A002
        spreadsheet: str | None = None,
        raw: bool = False,
    ) -> ReadRangeToolOutput:
        """Read a literal A1 range such as 'Sheet1'!A1:C10.

        Args:
            range: Sheet-qualified A1 range.
            spreadsheet: Spreadsheet id or URL.
            raw: Return unformatted values.

        Returns:
            Range values as rows.
        """
        payload = ReadRangeToolInput(range=range, spreadsheet=spreadsheet, raw=raw)
        grid = await _grid(payload.spreadsheet)
        return await run_read_range_tool(payload, grid=grid)

    app.tool(name="sheets_read_range")(_read_range_tool)

    async def _append_tool(
        sheet: str,
        values: dict[str, CellValue],
        spreadsheet: str | None = None,
        header_row: int | None = None,
        value_input_option: ValueInputOption | None = None,
        dry_run: bool = False,
    ) -> AppendResult:
        """Append one row keyed by header names or column letters.

        On an empty sheet the keys become the header row.

        Args:
            sheet: Sheet tab name.
            values: Column reference to value mapping.
            spreadsheet: Spreadsheet id or URL.
            header_row: Header row number; auto-detected when omitted.
            value_input_option: USER_ENTERED or RAW.
            dry_run: Preview without writing.

        Returns:
            Append result.
        """
        payload = AppendToolInput(
            sheet=sheet,
            values=values,
            spreadsheet=spreadsheet,
            header_row=header_row,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        grid = await _grid(payload.spreadsheet)
        return await run_append_tool(
            payload, grid=grid, value_input_option=default_value_input
        )

    app.tool(name="sheets_append")(_append_tool)

    async def _update_row_tool(
        sheet: str,
        row: int,
        set_values: dict[str, CellValue],
        spreadsheet: str | None = None,
        header_row: int | None = None,
        value_input_option: ValueInputOption | None = None,
        dry_run: bool = False,
    ) -> UpdateRowResult:
        """Update cells of one row by absolute row number.

        Column names that match nothing are skipped without error; check
        updated_cells (or use dry_run) to catch typos.

        Args:
            sheet: Sheet tab name.
            row: Absolute 1-based row number (the `_row` of a read record).
            set_values: Column reference to new value mapping.
            spreadsheet: Spreadsheet id or URL.
            header_row: Header row number; auto-detected when omitted.
            value_input_option: USER_ENTERED or RAW.
            dry_run: Preview without writing.

        Returns:
            Update result.
        """
        payload = UpdateRowToolInput(
            sheet=sheet,
            row=row,
            set_values=set_values,
            spreadsheet=spreadsheet,
            header_row=header_row,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        grid = await _grid(payload.spreadsheet)
        return await run_update_row_tool(
            payload, grid=grid, value_input_option=default_value_input
        )

    app.tool(name="sheets_update_row")(_update_row_tool)

    async def _update_key_tool(
        sheet: str,
        key_col: str,
        key: str,
        set_values: dict[str, CellValue],
        spreadsheet: str | None = None,
        allow_multi: bool = False,
        header_row: int | None = None,
        value_input_option: ValueInputOption | None = None,
        dry_run: bool = False,
    ) -> UpdateKeyResult:
        """Update the rows whose key column equals a value.

        Fails when more than one row matches unless allow_multi is true.

        Args:
            sheet: Sheet tab name.
            key_col: Key column name or letter.
            key: Key value (trimmed, case-sensitive match).
            set_values: Column reference to new value mapping.
            spreadsheet: Spreadsheet id or URL.
            allow_multi: Update every matching row.
            header_row: Header row number; auto-detected when omitted.
            value_input_option: USER_ENTERED or RAW.
            dry_run: Preview without writing.

        Returns:
            Update result with matched_rows.
        """
        payload = UpdateKeyToolInput(
            sheet=sheet,
            key_col=key_col,
            key=key,
            set_values=set_values,
            spreadsheet=spreadsheet,
            allow_multi=allow_multi,
            header_row=header_row,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        grid = await _grid(payload.spreadsheet)
        return await run_update_key_tool(
            payload, grid=grid, value_input_option=default_value_input
        )

    app.tool(name="sheets_update_key")(_update_key_tool)

    async def _set_range_tool(  # pylint: disable=redefined-builtin
        range: str,  # noqa: A002
        values: list[list[CellValue]],
        spreadsheet: str | None = None,
        value_input_option: ValueInputOption | None = None,
        dry_run: bool = False,
    ) -> SetRangeResult:
        """Write a literal 2-D block to a range.

        Args:
            range: Sheet-qualified A1 range.
            values: Row-major values.
            spreadsheet: Spreadsheet id or URL.
            value_input_option: USER_ENTERED or RAW.
            dry_run: Preview without writing.

        Returns:
            Set-range result.
        """
        payload = SetRangeToolInput(
            range=range,
            values=values,
            spreadsheet=spreadsheet,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        grid = await _grid(payload.spreadsheet)
        return await run_set_range_tool(
            payload, grid=grid, value_input_option=default_value_input
        )

    app.tool(name="sheets_set_range")(_set_range_tool)

    async def _batch_tool(
        ops: list[dict[str, Any] | str],
        spreadsheet: str | None = None,
        value_input_option: ValueInputOption | None = None,
        dry_run: bool = False,
    ) -> BatchResult:
        """Run append/updateRow/updateKey/setRange operations in order.

        Operations are not transactional: a failure stops the batch and
        earlier writes stay applied.

        Args:
            ops: Operations as objects or JSON strings, e.g.
                {"op":"updateKey","sheet":"Tasks","keyCol":"ID","key":"T-1",
                "set":{"Status":"Done"}}.
            spreadsheet: Spreadsheet id or URL.
            value_input_option: USER_ENTERED or RAW.
            dry_run: Preview every operation without writing.

        Returns:
            One result per operation.
        """
        payload = BatchToolInput.model_validate(
            {
                "ops": _coerce_batch_ops(ops),
                "spreadsheet": spreadsheet,
                "value_input_option": value_input_option,
                "dry_run": dry_run,
            }
        )
        grid = await _grid(payload.spreadsheet)
        return await run_batch_tool(
            payload, grid=grid, value_input_option=default_value_input
        )

    app.tool(name="sheets_batch")(_batch_tool)


def _coerce_batch_ops(ops_data: list[dict[str, Any] | str]) -> list[dict[str, Any]]:
    """Normalize batch operations payload for MCP clients.

    Args:
        ops_data: Raw operations from MCP tool call.

    Returns:
        Operations in object form.
    """
    return coerce_batch_ops(ops_data)
