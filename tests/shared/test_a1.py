from __future__ import annotations

import pytest

from sheetgrid.shared.a1 import (
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


def test_column_roundtrip() -> None:
    assert column_label_to_index("A") == 1
    assert column_label_to_index("AA") == 27
    assert column_label_to_index("zz") == 702
    assert column_index_to_label(1) == "A"
    assert column_index_to_label(27) == "AA"
    assert column_index_to_label(702) == "ZZ"


def test_column_mapping_is_bijective() -> None:
    labels = [column_index_to_label(index) for index in range(1, 2000)]
    assert len(set(labels)) == len(labels)
    for index, label in enumerate(labels, start=1):
        assert column_label_to_index(label) == index


def test_column_label_rejects_invalid() -> None:
    with pytest.raises(ValueError, match="Invalid column label"):
        column_label_to_index("A1")
    with pytest.raises(ValueError, match="Invalid column label"):
        column_label_to_index("ABCD")
    with pytest.raises(ValueError, match="must be positive"):
        column_index_to_label(0)


def test_is_column_label() -> None:
    assert is_column_label("c")
    assert is_column_label(" AB ")
    assert not is_column_label("Name")
    assert not is_column_label("A1")
    assert not is_column_label("")


def test_split_a1() -> None:
    assert split_a1("b12") == ("B", 12)


def test_split_a1_rejects_invalid() -> None:
    with pytest.raises(ValueError, match="Invalid cell reference"):
        split_a1("1A")


def test_format_cell() -> None:
    assert format_cell(3, 7) == "C7"


def test_escape_sheet_name_doubles_quotes() -> None:
    assert escape_sheet_name("Tasks") == "'Tasks'"
    assert escape_sheet_name("Bob's List") == "'Bob''s List'"


def test_qualify_range() -> None:
    assert qualify_range("My Sheet", "A2:C") == "'My Sheet'!A2:C"
    assert qualify_range("My Sheet", "Other!A1") == "Other!A1"


@pytest.mark.parametrize(
    ("range_ref", "expected"),
    [
        ("'My Sheet'!B3:D", (2, 3)),
        ("Sheet1!5:5", (None, 5)),
        ("Sheet1!C:C", (3, None)),
        ("A1", (1, 1)),
        ("'It''s'!AA10:AB20", (27, 10)),
        ("", (None, None)),
        (None, (None, None)),
        ("Sheet1!$%", (None, None)),
    ],
)
def test_parse_range_start(
    range_ref: str | None, expected: tuple[int | None, int | None]
) -> None:
    assert parse_range_start(range_ref) == expected


def test_parse_range_geometry() -> None:
    base, rows, cols = parse_range_geometry("D6:B4")
    assert base == "B4"
    assert rows == 3
    assert cols == 3


def test_parse_range_geometry_ignores_sheet_and_accepts_single_cell() -> None:
    assert parse_range_geometry("'Tasks'!C2") == ("C2", 1, 1)


def test_parse_range_geometry_rejects_open_range() -> None:
    with pytest.raises(ValueError):
        parse_range_geometry("Sheet1!A2:C")
