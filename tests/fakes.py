from __future__ import annotations

import copy
import re

from sheetgrid.grid import (
    AppendResponse,
    BatchUpdateResponse,
    CellValue,
    RangeValues,
    SetValuesResponse,
    SheetTab,
    ValueInputOption,
    ValueRange,
    ValueRender,
)
from sheetgrid.shared.a1 import (
    column_label_to_index,
    escape_sheet_name,
    format_cell,
)

_PART_PATTERN = re.compile(r"^([A-Za-z]*)([0-9]*)$")


class FakeRemoteError(RuntimeError):
    """Stand-in for a service failure raised by the remote grid."""


class FakeGrid:
    """In-memory grid that answers like the Sheets values API.

    Reads echo the requested top-left corner, trim trailing blank cells and
    rows, and render values as strings unless unformatted values are asked
    for. Appends land after the last non-empty row at or below the anchor.
    """

    def __init__(
        self,
        sheets: dict[str, list[list[CellValue]]] | None = None,
        *,
        sheet_ids: dict[str, int] | None = None,
    ) -> None:
        self.sheets: dict[str, list[list[CellValue]]] = copy.deepcopy(sheets or {})
        self.sheet_ids = dict(sheet_ids or {})
        self.calls: list[tuple[str, str]] = []
        self.value_inputs: list[ValueInputOption] = []
        self.fail_on: set[str] = set()

    @property
    def write_calls(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("append", "batch", "set")]

    def snapshot(self) -> dict[str, list[list[CellValue]]]:
        return copy.deepcopy(self.sheets)

    async def get_values(
        self, range_ref: str, *, render: ValueRender = "formatted"
    ) -> ValueRange:
        self._record("get", range_ref)
        sheet, grid = self._sheet(range_ref)
        start_col, start_row, end_col, end_row = _parse_bounds(range_ref)
        last_row = len(grid) if end_row is None else min(end_row, len(grid))
        rows: list[list[CellValue]] = []
        for row_number in range(start_row, last_row + 1):
            source = grid[row_number - 1]
            last_col = len(source) if end_col is None else min(end_col, len(source))
            cells = [
                _render(source[col - 1], render)
                for col in range(start_col, last_col + 1)
            ]
            while cells and _is_blank(cells[-1]):
                cells.pop()
            rows.append(cells)
        while rows and not rows[-1]:
            rows.pop()
        widest = max((len(row) for row in rows), default=0)
        echo_end_col = end_col if end_col is not None else start_col + max(widest, 1) - 1
        echo_end_row = end_row if end_row is not None else max(last_row, start_row)
        echoed = (
            f"{escape_sheet_name(sheet)}!{format_cell(start_col, start_row)}:"
            f"{format_cell(echo_end_col, echo_end_row)}"
        )
        return ValueRange(range=echoed, values=rows)

    async def append_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> AppendResponse:
        self._record("append", range_ref, value_input_option)
        sheet, grid = self._sheet(range_ref)
        start_col, start_row, _, _ = _parse_bounds(range_ref)
        target_row = start_row
        for row_number in range(len(grid), start_row - 1, -1):
            if any(not _is_blank(cell) for cell in grid[row_number - 1]):
                target_row = row_number + 1
                break
        self._write_block(grid, start_col, target_row, rows)
        width = max((len(row) for row in rows), default=1)
        updated = (
            f"{escape_sheet_name(sheet)}!{format_cell(start_col, target_row)}:"
            f"{format_cell(start_col + width - 1, target_row + len(rows) - 1)}"
        )
        return AppendResponse(updated_range=updated, updated_rows=len(rows))

    async def batch_update_values(
        self,
        data: list[RangeValues],
        *,
        value_input_option: ValueInputOption,
    ) -> BatchUpdateResponse:
        self._record("batch", ",".join(item.range for item in data), value_input_option)
        cells = 0
        for item in data:
            _, grid = self._sheet(item.range)
            start_col, start_row, _, _ = _parse_bounds(item.range)
            self._write_block(grid, start_col, start_row, item.values)
            cells += sum(len(row) for row in item.values)
        return BatchUpdateResponse(
            updated_cells=cells, updated_ranges=[item.range for item in data]
        )

    async def set_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> SetValuesResponse:
        self._record("set", range_ref, value_input_option)
        _, grid = self._sheet(range_ref)
        start_col, start_row, _, _ = _parse_bounds(range_ref)
        self._write_block(grid, start_col, start_row, rows)
        return SetValuesResponse(
            updated_range=range_ref, updated_cells=sum(len(row) for row in rows)
        )

    async def list_sheet_tabs(self) -> list[SheetTab]:
        self._record("tabs", "")
        return [
            SheetTab(name=name, sheet_id=self.sheet_ids.get(name, index), index=index)
            for index, name in enumerate(self.sheets)
        ]

    def _record(
        self, method: str, target: str, value_input: ValueInputOption | None = None
    ) -> None:
        self.calls.append((method, target))
        if value_input is not None:
            self.value_inputs.append(value_input)
        if method in self.fail_on:
            raise FakeRemoteError(f"{method} failed for {target}")

    def _sheet(self, range_ref: str) -> tuple[str, list[list[CellValue]]]:
        name = _sheet_name(range_ref)
        if name not in self.sheets:
            raise FakeRemoteError(f"Unable to parse range: {range_ref}")
        return name, self.sheets[name]

    @staticmethod
    def _write_block(
        grid: list[list[CellValue]],
        start_col: int,
        start_row: int,
        rows: list[list[CellValue]],
    ) -> None:
        for row_offset, values in enumerate(rows):
            row_number = start_row + row_offset
            while len(grid) < row_number:
                grid.append([])
            target = grid[row_number - 1]
            for col_offset, value in enumerate(values):
                col = start_col + col_offset
                while len(target) < col:
                    target.append("")
                target[col - 1] = value


def _sheet_name(range_ref: str) -> str:
    if "!" not in range_ref:
        raise FakeRemoteError(f"Range is not sheet-qualified: {range_ref}")
    name = range_ref.rsplit("!", maxsplit=1)[0]
    if len(name) >= 2 and name.startswith("'") and name.endswith("'"):
        return name[1:-1].replace("''", "'")
    return name


def _parse_bounds(range_ref: str) -> tuple[int, int, int | None, int | None]:
    """Return (start_col, start_row, end_col, end_row); None means unbounded."""
    a1 = range_ref.rsplit("!", maxsplit=1)[-1]
    start, sep, end = a1.partition(":")
    start_col_text, start_row_text = _split_part(start)
    start_col = column_label_to_index(start_col_text) if start_col_text else 1
    start_row = int(start_row_text) if start_row_text else 1
    if not sep:
        return start_col, start_row, start_col, start_row
    end_col_text, end_row_text = _split_part(end)
    end_col = column_label_to_index(end_col_text) if end_col_text else None
    end_row = int(end_row_text) if end_row_text else None
    return start_col, start_row, end_col, end_row


def _split_part(part: str) -> tuple[str, str]:
    match = _PART_PATTERN.match(part.strip())
    if match is None:
        raise FakeRemoteError(f"Unable to parse range part: {part}")
    return match.group(1), match.group(2)


def _is_blank(value: CellValue) -> bool:
    return value is None or value == ""


def _render(value: CellValue, render: ValueRender) -> CellValue:
    if value is None:
        return ""
    if render == "unformatted":
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)
