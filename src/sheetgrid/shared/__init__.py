from __future__ import annotations

from .a1 import (
    column_index_to_label,
    column_label_to_index,
    escape_sheet_name,
    format_cell,
    is_column_label,
    parse_range_geometry,
    parse_range_start,
    qualify_range,
    split_a1,
)

__all__ = [
    "column_index_to_label",
    "column_label_to_index",
    "escape_sheet_name",
    "format_cell",
    "is_column_label",
    "parse_range_geometry",
    "parse_range_start",
    "qualify_range",
    "split_a1",
]
