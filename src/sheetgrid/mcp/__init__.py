"""MCP server integration for sheetgrid."""

from __future__ import annotations

from .tools import (
    AppendToolInput,
    BatchToolInput,
    ReadTableToolInput,
    UpdateKeyToolInput,
    UpdateRowToolInput,
    run_append_tool,
    run_batch_tool,
    run_read_table_tool,
    run_update_key_tool,
    run_update_row_tool,
)

__all__ = [
    "AppendToolInput",
    "BatchToolInput",
    "ReadTableToolInput",
    "UpdateKeyToolInput",
    "UpdateRowToolInput",
    "run_append_tool",
    "run_batch_tool",
    "run_read_table_tool",
    "run_update_key_tool",
    "run_update_row_tool",
]
