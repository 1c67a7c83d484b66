from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import BaseModel

ErrorKind = Literal["validation", "not_found", "multiplicity"]


class SheetsErrorDetail(BaseModel):
    """Structured error details for table operation failures."""

    kind: ErrorKind
    message: str
    sheet: str | None = None
    match_count: int | None = None
    op_index: int | None = None


class SheetsOpError(ValueError):
    """Table operation error with a machine-readable kind.

    Remote service failures are never wrapped in this type; they propagate
    as raised by the grid client.
    """

    kind: ClassVar[ErrorKind] = "validation"

    def __init__(
        self,
        message: str,
        *,
        sheet: str | None = None,
        match_count: int | None = None,
        op_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.detail = SheetsErrorDetail(
            kind=self.kind,
            message=message,
            sheet=sheet,
            match_count=match_count,
            op_index=op_index,
        )

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return self.detail.message


class InvalidRowError(SheetsOpError):
    """Row number is not a positive integer."""

    kind: ClassVar[ErrorKind] = "validation"


class KeyColumnNotFoundError(SheetsOpError):
    """Key column for a key-based update is absent from the layout."""

    kind: ClassVar[ErrorKind] = "not_found"


class SheetNotFoundError(SheetsOpError):
    """Sheet tab lookup found nothing."""

    kind: ClassVar[ErrorKind] = "not_found"


class MultipleMatchError(SheetsOpError):
    """Key matched more than one row and multi-row updates were not allowed."""

    kind: ClassVar[ErrorKind] = "multiplicity"


class BatchOpError(SheetsOpError):
    """Batch element failure carrying the failing index and prior results."""

    def __init__(
        self,
        cause: SheetsOpError,
        *,
        op_index: int,
        completed: list[object] | None = None,
    ) -> None:
        self.kind = cause.kind  # type: ignore[misc]
        super().__init__(
            f"ops[{op_index}] failed: {cause.message}",
            sheet=cause.detail.sheet,
            match_count=cause.detail.match_count,
            op_index=op_index,
        )
        self.cause = cause
        self.completed = list(completed or [])
