"""Table-aware reads and addressed writes for Google Sheets."""

from __future__ import annotations

from .config import SheetsConfig, load_config, parse_spreadsheet_id
from .errors import (
    BatchOpError,
    InvalidRowError,
    KeyColumnNotFoundError,
    MultipleMatchError,
    SheetNotFoundError,
    SheetsErrorDetail,
    SheetsOpError,
)
from .grid import CellValue, GridClient, ValueInputOption
from .table import (
    BatchOp,
    TableLayout,
    append_row,
    get_header_row,
    read_table,
    resolve_layout,
    run_batch,
    set_range,
    update_by_key,
    update_by_row_index,
)

__version__ = "0.1.0"

__all__ = [
    "BatchOp",
    "BatchOpError",
    "CellValue",
    "GridClient",
    "InvalidRowError",
    "KeyColumnNotFoundError",
    "MultipleMatchError",
    "SheetNotFoundError",
    "SheetsConfig",
    "SheetsErrorDetail",
    "SheetsOpError",
    "TableLayout",
    "ValueInputOption",
    "append_row",
    "get_header_row",
    "load_config",
    "parse_spreadsheet_id",
    "read_table",
    "resolve_layout",
    "run_batch",
    "set_range",
    "update_by_key",
    "update_by_row_index",
]
