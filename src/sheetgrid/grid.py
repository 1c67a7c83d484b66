from __future__ import annotations

from typing import Literal, Protocol, TypeAlias, runtime_checkable

from pydantic import BaseModel, Field

CellValue: TypeAlias = str | int | float | bool | None
ValueInputOption = Literal["USER_ENTERED", "RAW"]
ValueRender = Literal["formatted", "unformatted"]


class ValueRange(BaseModel):
    """Values returned for a range read.

    ``range`` is the range as echoed by the service, which may differ from
    the requested one (it is clipped to the sheet's used area).
    """

    range: str = ""  # noqa: A003
    values: list[list[CellValue]] = Field(default_factory=list)


class RangeValues(BaseModel):
    """One range + block pair inside a multi-range write."""

    range: str  # noqa: A003
    values: list[list[CellValue]]


class AppendResponse(BaseModel):
    """Service acknowledgement for an append."""

    updated_range: str = ""
    updated_rows: int = 0


class SetValuesResponse(BaseModel):
    """Service acknowledgement for a single-range write."""

    updated_range: str = ""
    updated_cells: int = 0


class BatchUpdateResponse(BaseModel):
    """Service acknowledgement for a multi-range write."""

    updated_cells: int = 0
    updated_ranges: list[str] = Field(default_factory=list)


class SheetTab(BaseModel):
    """Sheet tab metadata."""

    name: str
    sheet_id: int
    index: int


@runtime_checkable
class GridClient(Protocol):
    """Remote grid capability set used by the table engine.

    One client is bound to one spreadsheet. Every method is a suspend point;
    the engine never issues two calls concurrently.
    """

    async def get_values(
        self, range_ref: str, *, render: ValueRender = "formatted"
    ) -> ValueRange: ...

    async def append_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> AppendResponse: ...

    async def batch_update_values(
        self,
        data: list[RangeValues],
        *,
        value_input_option: ValueInputOption,
    ) -> BatchUpdateResponse: ...

    async def set_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> SetValuesResponse: ...

    async def list_sheet_tabs(self) -> list[SheetTab]: ...
