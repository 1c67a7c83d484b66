"""Table layout inference and addressed reads/writes over a remote grid."""

from __future__ import annotations

from .batch import (
    AppendOp,
    BatchOp,
    BatchRequest,
    BatchResult,
    SetRangeOp,
    UpdateKeyOp,
    UpdateRowOp,
    coerce_batch_ops,
    run_batch,
)
from .headers import build_headers, infer_has_header, normalize_header
from .layout import TableLayout, resolve_layout
from .reader import (
    HeaderInfo,
    TableData,
    find_sheet,
    get_header_row,
    list_sheets,
    read_range,
    read_table,
)
from .writer import (
    AppendResult,
    SetRangeResult,
    UpdateKeyResult,
    UpdateRowResult,
    append_row,
    resolve_column,
    set_range,
    update_by_key,
    update_by_row_index,
)

__all__ = [
    "AppendOp",
    "AppendResult",
    "BatchOp",
    "BatchRequest",
    "BatchResult",
    "HeaderInfo",
    "SetRangeOp",
    "SetRangeResult",
    "TableData",
    "TableLayout",
    "UpdateKeyOp",
    "UpdateKeyResult",
    "UpdateRowOp",
    "UpdateRowResult",
    "append_row",
    "build_headers",
    "coerce_batch_ops",
    "find_sheet",
    "get_header_row",
    "infer_has_header",
    "list_sheets",
    "normalize_header",
    "read_range",
    "read_table",
    "resolve_column",
    "resolve_layout",
    "run_batch",
    "set_range",
    "update_by_key",
    "update_by_row_index",
]
