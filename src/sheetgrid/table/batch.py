from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Literal, TypeAlias, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sheetgrid.errors import BatchOpError, SheetsOpError
from sheetgrid.grid import CellValue, GridClient, ValueInputOption

from .writer import (
    AppendResult,
    SetRangeResult,
    UpdateKeyResult,
    UpdateRowResult,
    append_row,
    set_range,
    update_by_key,
    update_by_row_index,
)

logger = logging.getLogger(__name__)


class _BatchOpBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class _SheetOpBase(_BatchOpBase):
    sheet: str

    @field_validator("sheet")
    @classmethod
    def _validate_sheet(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sheet must not be empty.")
        return value


class AppendOp(_SheetOpBase):
    """Append one row."""

    op: Literal["append"] = "append"
    values: dict[str, CellValue]


class UpdateRowOp(_SheetOpBase):
    """Update cells in one row by index."""

    op: Literal["updateRow"] = "updateRow"
    row: int
    set_values: dict[str, CellValue] = Field(alias="set")


class UpdateKeyOp(_SheetOpBase):
    """Update rows matched by key column value."""

    op: Literal["updateKey"] = "updateKey"
    key_col: str = Field(alias="keyCol")
    key: str
    set_values: dict[str, CellValue] = Field(alias="set")
    allow_multi: bool = Field(default=False, alias="allowMulti")


class SetRangeOp(_BatchOpBase):
    """Write a literal block to a range."""

    op: Literal["setRange"] = "setRange"
    range: str  # noqa: A003
    values: list[list[CellValue]]


BatchOp: TypeAlias = Annotated[
    AppendOp | UpdateRowOp | UpdateKeyOp | SetRangeOp, Field(discriminator="op")
]


class AppendOpResult(AppendResult):
    """Append result tagged with its operation."""

    op: Literal["append"] = "append"
    sheet: str


class UpdateRowOpResult(UpdateRowResult):
    """Row update result tagged with its operation."""

    op: Literal["updateRow"] = "updateRow"
    sheet: str


class UpdateKeyOpResult(UpdateKeyResult):
    """Key update result tagged with its operation."""

    op: Literal["updateKey"] = "updateKey"
    sheet: str
    key_col: str
    key: str


class SetRangeOpResult(SetRangeResult):
    """Set-range result tagged with its operation."""

    op: Literal["setRange"] = "setRange"
    range: str  # noqa: A003


BatchOpResult: TypeAlias = Annotated[
    AppendOpResult | UpdateRowOpResult | UpdateKeyOpResult | SetRangeOpResult,
    Field(discriminator="op"),
]


class BatchRequest(BaseModel):
    """Ordered operations sharing one write configuration."""

    ops: list[BatchOp]
    value_input_option: ValueInputOption = "USER_ENTERED"
    dry_run: bool = False


class BatchResult(BaseModel):
    """Per-operation results in input order."""

    results: list[BatchOpResult] = Field(default_factory=list)
    dry_run: bool = False


async def run_batch(
    grid: GridClient,
    ops: list[BatchOp],
    *,
    value_input_option: ValueInputOption = "USER_ENTERED",
    dry_run: bool = False,
) -> BatchResult:
    """Run operations strictly in order under one shared configuration.

    There is no rollback: when an operation fails, earlier writes stay
    applied and the remaining operations are not run.

    Args:
        grid: Remote grid client.
        ops: Operations to run.
        value_input_option: How the service interprets written values.
        dry_run: Preview every operation without writing.

    Returns:
        Batch result with one entry per operation.

    Raises:
        BatchOpError: If an operation fails with a table error. Remote errors
            propagate unchanged.
    """
    results: list[BatchOpResult] = []
    for index, op in enumerate(ops):
        try:
            results.append(
                await _run_op(
                    grid, op, value_input_option=value_input_option, dry_run=dry_run
                )
            )
        except SheetsOpError as exc:
            logger.warning("Batch aborted at ops[%s] (%s): %s", index, op.op, exc)
            raise BatchOpError(exc, op_index=index, completed=results) from exc
    return BatchResult(results=results, dry_run=dry_run)


async def _run_op(
    grid: GridClient,
    op: BatchOp,
    *,
    value_input_option: ValueInputOption,
    dry_run: bool,
) -> BatchOpResult:
    """Dispatch one operation to its writer entry point."""
    if isinstance(op, AppendOp):
        appended = await append_row(
            grid,
            op.sheet,
            op.values,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        return AppendOpResult(sheet=op.sheet, **appended.model_dump())
    if isinstance(op, UpdateRowOp):
        updated_row = await update_by_row_index(
            grid,
            op.sheet,
            op.row,
            op.set_values,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        return UpdateRowOpResult(sheet=op.sheet, **updated_row.model_dump())
    if isinstance(op, UpdateKeyOp):
        updated_key = await update_by_key(
            grid,
            op.sheet,
            op.key_col,
            op.key,
            op.set_values,
            allow_multi=op.allow_multi,
            value_input_option=value_input_option,
            dry_run=dry_run,
        )
        return UpdateKeyOpResult(
            sheet=op.sheet, key_col=op.key_col, key=op.key, **updated_key.model_dump()
        )
    written = await set_range(
        grid,
        op.range,
        op.values,
        value_input_option=value_input_option,
        dry_run=dry_run,
    )
    return SetRangeOpResult(**written.model_dump(), range=op.range)


def coerce_batch_ops(ops_data: list[dict[str, Any] | str]) -> list[dict[str, Any]]:
    """Normalize a batch payload whose elements are objects or JSON strings."""
    return [
        dict(raw_op) if isinstance(raw_op, dict) else _parse_op_json(raw_op, index)
        for index, raw_op in enumerate(ops_data)
    ]


def _parse_op_json(raw_op: str, index: int) -> dict[str, Any]:
    """Parse a JSON string operation into object form."""
    text = raw_op.strip()
    if not text:
        raise ValueError(_build_op_error_message(index, "empty string"))
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(_build_op_error_message(index, "invalid JSON")) from exc
    if not isinstance(parsed, dict):
        raise ValueError(_build_op_error_message(index, "JSON value must be an object"))
    return cast(dict[str, Any], parsed)


def _build_op_error_message(index: int, reason: str) -> str:
    """Build a consistent validation message for invalid batch ops."""
    example = '{"op":"updateKey","sheet":"Tasks","keyCol":"ID","key":"T-1","set":{"Status":"Done"}}'
    return (
        f"Invalid batch operation at ops[{index}]: {reason}. "
        f"Use object form like {example}."
    )
