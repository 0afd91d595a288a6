"""Dataclasses representing a loaded attendance workbook.

Sheets are sparse: only non-empty cells are stored, keyed by zero-based
(row, column) coordinates, alongside the sheet's used range.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class CellKind(str, Enum):
    """Literal value type held by a cell."""

    TEXT = "text"
    NUMBER = "number"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    """A single grid position holding a literal value."""

    kind: CellKind
    value: str | float | None = None

    @classmethod
    def text_cell(cls, value: str) -> Cell:
        return cls(CellKind.TEXT, value)

    @classmethod
    def number_cell(cls, value: float) -> Cell:
        return cls(CellKind.NUMBER, float(value))

    @property
    def text(self) -> str:
        """Untrimmed string view of the value ("" for empty cells)."""
        if self.kind is CellKind.EMPTY or self.value is None:
            return ""
        if self.kind is CellKind.NUMBER:
            return format_number(float(self.value))
        return str(self.value)

    @property
    def number(self) -> float | None:
        """Numeric value for NUMBER cells, else None."""
        if self.kind is CellKind.NUMBER and self.value is not None:
            return float(self.value)
        return None


EMPTY_CELL = Cell(CellKind.EMPTY)


def format_number(value: float) -> str:
    """Render a number the way a spreadsheet shows it: 7.0 -> "7", 2.5 -> "2.5"."""
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass
class Sheet:
    """A named worksheet with a sparse cell mapping and used-range bounds."""

    name: str
    cells: dict[tuple[int, int], Cell] = field(default_factory=dict)
    min_row: int = 0
    max_row: int = 0
    min_col: int = 0
    max_col: int = 0

    def cell(self, row: int, col: int) -> Cell:
        return self.cells.get((row, col), EMPTY_CELL)

    def text(self, row: int, col: int) -> str:
        """Trimmed string view of the cell at (row, col)."""
        return self.cell(row, col).text.strip()

    def rows(self) -> Iterator[int]:
        """Row indexes of the used range, top to bottom."""
        return iter(range(self.min_row, self.max_row + 1))

    @property
    def is_empty(self) -> bool:
        return not self.cells


@dataclass
class Workbook:
    """A parsed workbook; sheets keep their stored order."""

    sheets: list[Sheet]

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def get(self, name: str) -> Sheet | None:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None
