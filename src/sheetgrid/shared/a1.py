from __future__ import annotations

import re

_A1_PATTERN = re.compile(r"^[A-Za-z]{1,3}[1-9][0-9]*$")
_A1_START_PATTERN = re.compile(r"^([A-Za-z]+)?([0-9]+)?$")
_COLUMN_LABEL_PATTERN = re.compile(r"^[A-Za-z]{1,3}$")


def split_a1(value: str) -> tuple[str, int]:
    """Split A1 notation into normalized (column_label, row_index)."""
    if not _A1_PATTERN.match(value):
        raise ValueError(f"Invalid cell reference: {value}")
    idx = 0
    for index, char in enumerate(value):
        if char.isdigit():
            idx = index
            break
    column = value[:idx].upper()
    row = int(value[idx:])
    return column, row


def is_column_label(value: str) -> bool:
    """Return True when the value is a bare 1-3 letter column label."""
    return bool(_COLUMN_LABEL_PATTERN.match(value.strip()))


def column_label_to_index(label: str) -> int:
    """Convert a column label (A/AA) to a 1-based index."""
    normalized = label.strip().upper()
    if not _COLUMN_LABEL_PATTERN.match(normalized):
        raise ValueError(f"Invalid column label: {label}")
    index = 0
    for char in normalized:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def column_index_to_label(index: int) -> str:
    """Convert a 1-based column index to a column label."""
    if index < 1:
        raise ValueError("Column index must be positive.")
    chunks: list[str] = []
    current = index
    while current > 0:
        current -= 1
        chunks.append(chr(ord("A") + (current % 26)))
        current //= 26
    return "".join(reversed(chunks))


def format_cell(col: int, row: int) -> str:
    """Format a 1-based column/row pair as an A1 cell address."""
    return f"{column_index_to_label(col)}{row}"


def escape_sheet_name(sheet_name: str) -> str:
    """Quote a sheet name for use in a range, doubling embedded quotes."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'"


def qualify_range(sheet_name: str, range_ref: str) -> str:
    """Prefix a range with its sheet unless it is already sheet-qualified."""
    if "!" in range_ref:
        return range_ref
    return f"{escape_sheet_name(sheet_name)}!{range_ref}"


def parse_range_start(range_ref: str | None) -> tuple[int | None, int | None]:
    """Return (column, row) of the top-left corner of a range descriptor.

    Accepts the forms the values API echoes back, including sheet-qualified
    and open-ended ranges such as ``'My Sheet'!B3:D`` or ``Sheet1!5:5``.
    Parts that are absent or unparseable are returned as None.

    Args:
        range_ref: Range descriptor, possibly None.

    Returns:
        Tuple of 1-based column index and row number.
    """
    if not range_ref:
        return None, None
    a1 = range_ref.rsplit("!", maxsplit=1)[-1]
    start = a1.split(":", maxsplit=1)[0].strip()
    match = _A1_START_PATTERN.match(start)
    if match is None:
        return None, None
    col_text, row_text = match.groups()
    col: int | None = None
    if col_text is not None:
        try:
            col = column_label_to_index(col_text)
        except ValueError:
            col = None
    row = int(row_text) if row_text is not None and int(row_text) > 0 else None
    return col, row


def parse_range_geometry(range_ref: str) -> tuple[str, int, int]:
    """Parse a closed A1 range and return top-left cell + (rows, cols).

    The sheet prefix, if any, is ignored. A single cell counts as a 1x1 range.
    """
    a1 = range_ref.rsplit("!", maxsplit=1)[-1].strip()
    start, _, end = a1.partition(":")
    start_col, start_row = split_a1(start)
    end_col, end_row = split_a1(end or start)
    min_col = min(column_label_to_index(start_col), column_label_to_index(end_col))
    max_col = max(column_label_to_index(start_col), column_label_to_index(end_col))
    min_row = min(start_row, end_row)
    max_row = max(start_row, end_row)
    return (
        format_cell(min_col, min_row),
        max_row - min_row + 1,
        max_col - min_col + 1,
    )
