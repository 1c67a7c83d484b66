from __future__ import annotations

from fakes import FakeGrid
import pytest

from sheetgrid.grid import CellValue

TASKS: list[list[CellValue]] = [
    ["ID", "Name", "Status"],
    ["T-1", "Write docs", "Open"],
    ["T-2", "Fix bug", "Open"],
    ["T-3", "Review", "Closed"],
]


@pytest.fixture
def tasks_grid() -> FakeGrid:
    """Grid with a headed three-column task table on ``Tasks`` and an empty tab."""
    return FakeGrid({"Tasks": TASKS, "Empty": []})
