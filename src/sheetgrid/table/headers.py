from __future__ import annotations

from collections.abc import Sequence
import re
from typing import Final

from sheetgrid.grid import CellValue
from sheetgrid.shared.a1 import column_index_to_label

# Header detection is a heuristic, not a guarantee. The thresholds are
# empirical and pinned by tests; adjust them together with those tests.
HEADER_MIN_UNIQUE_RATIO: Final[float] = 0.8
HEADER_MIN_ALPHA_RATIO: Final[float] = 0.5
HEADER_MAX_NUMERIC_RATIO: Final[float] = 0.5

_WHITESPACE_RE = re.compile(r"\s+")
_NUMBERISH_RE = re.compile(r"^-?\d+(\.\d+)?$")
_DATE_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DATE_SLASH_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}")
_HAS_ALPHA_RE = re.compile(r"[A-Za-z]")


def normalize_header(header: str) -> str:
    """Canonicalize a label for case/whitespace-insensitive matching."""
    return _WHITESPACE_RE.sub(" ", header.strip()).casefold()


def stringify_cell(value: CellValue) -> str:
    """Return the string form of a cell, with empty cells as ''."""
    if value is None:
        return ""
    return str(value)


def is_non_empty_cell(value: CellValue) -> bool:
    """Return True when the cell holds anything besides whitespace."""
    return stringify_cell(value).strip() != ""


def _looks_numeric(text: str) -> bool:
    return bool(_NUMBERISH_RE.match(text))


def _looks_date(text: str) -> bool:
    return bool(_DATE_ISO_RE.match(text) or _DATE_SLASH_RE.match(text))


def _has_alpha(text: str) -> bool:
    return bool(_HAS_ALPHA_RE.search(text))


def infer_has_header(sample_rows: Sequence[Sequence[CellValue]]) -> bool:
    """Guess whether the first sample row is a header row.

    A single non-empty cell is a header only when it is alphabetic and
    neither number-like nor date-like. With several cells the row must be
    mostly unique, mostly alphabetic and not mostly numeric/date values.

    Args:
        sample_rows: Rows starting at the candidate row. Only the first row is
            classified; the rest are accepted for call-site symmetry with the
            width computation.

    Returns:
        True if the first row looks like a header.
    """
    first = sample_rows[0] if sample_rows else []
    values = [stringify_cell(cell).strip() for cell in first if is_non_empty_cell(cell)]
    count = len(values)
    if count == 0:
        return False
    if count == 1:
        value = values[0]
        return _has_alpha(value) and not _looks_numeric(value) and not _looks_date(value)

    unique_ratio = len({normalize_header(value) for value in values}) / count
    alpha = sum(1 for value in values if _has_alpha(value))
    numeric_like = sum(1 for value in values if _looks_numeric(value))
    date_like = sum(1 for value in values if _looks_date(value))
    alpha_ratio = alpha / count
    numberish_ratio = (numeric_like + date_like) / count
    return (
        unique_ratio >= HEADER_MIN_UNIQUE_RATIO
        and alpha_ratio >= HEADER_MIN_ALPHA_RATIO
        and numberish_ratio <= HEADER_MAX_NUMERIC_RATIO
    )


def build_headers(
    raw_row: Sequence[CellValue], start_col: int, width: int
) -> tuple[list[str], list[str]]:
    """Build unique display headers for a header row.

    Blank labels fall back to the column letter. Repeated labels (compared
    after normalization) get ``_2``, ``_3``... suffixes; the first occurrence
    keeps the bare name.

    Args:
        raw_row: Header row cells (may be shorter than width).
        start_col: 1-based column of the first cell.
        width: Number of columns in the table.

    Returns:
        Tuple of (resolved headers, trimmed raw headers), both of length width.
    """
    raw_headers = [
        stringify_cell(raw_row[i] if i < len(raw_row) else None).strip()
        for i in range(width)
    ]
    seen_counts: dict[str, int] = {}
    used: set[str] = set()
    headers: list[str] = []
    for offset, raw in enumerate(raw_headers):
        base = raw or column_index_to_label(start_col + offset)
        base_norm = normalize_header(base)
        count = seen_counts.get(base_norm, 0) + 1
        candidate = base if count == 1 else f"{base}_{count}"
        while normalize_header(candidate) in used:
            count += 1
            candidate = f"{base}_{count}"
        seen_counts[base_norm] = count
        used.add(normalize_header(candidate))
        headers.append(candidate)
    return headers, raw_headers


def column_letter_headers(start_col: int, width: int) -> list[str]:
    """Return column letters used as headers for header-less tables."""
    return [column_index_to_label(start_col + offset) for offset in range(width)]
