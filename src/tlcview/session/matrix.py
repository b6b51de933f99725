"""Windowed view of the DAQ matrix.

Only the cells that intersect the viewport are ever produced. Their positions
come from integer arithmetic on the scroll offsets and their values from
direct offsets into the flat buffer, so the work per repaint depends on the
viewport size, never on the size of the matrix.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import numpy as np

from tlcview.util import CELL_HEIGHT, CELL_WIDTH, DAQ_DECIMALS, GRID_HEIGHT, GRID_WIDTH


class CellStyle(Enum):
    DEFAULT = "default"
    CROSSHAIR = "crosshair"
    SELECTED = "selected"


@dataclass(frozen=True, eq=False)
class DaqMatrix:
    """Read-only DAQ data: `dim` is (rows, cols), `data` the flat row-major buffer."""

    dim: tuple[int, int]
    data: np.ndarray

    def __post_init__(self):
        rows, cols = self.dim
        if rows < 0 or cols < 0:
            raise ValueError(f"Invalid DAQ dimensions {self.dim}")
        if self.data.ndim != 1 or self.data.size != rows * cols:
            raise ValueError(
                f"DAQ buffer holds {self.data.size} values, expected {rows} x {cols}"
            )

    @classmethod
    def from_buffer(cls, dim, data) -> DaqMatrix:
        rows, cols = (int(d) for d in dim)
        flat = np.array(data, dtype=np.float32).ravel()
        flat.setflags(write=False)
        return cls((rows, cols), flat)

    @property
    def rows(self) -> int:
        return self.dim[0]

    @property
    def cols(self) -> int:
        return self.dim[1]

    def value(self, row: int, column: int) -> float:
        return float(self.data[row * self.dim[1] + column])


@dataclass
class Selection:
    """The selected cell. -1 means no row / column is selected."""

    row: int = -1
    column: int = -1

    def select(self, row: int, column: int) -> None:
        self.row = row
        self.column = column

    def clear(self) -> None:
        self.row = -1
        self.column = -1


def cell_style(
    row: int, column: int, scroll_to_row: int, scroll_to_column: int
) -> CellStyle:
    row_hit = row == scroll_to_row
    column_hit = column == scroll_to_column
    if row_hit and column_hit:
        return CellStyle.SELECTED
    if row_hit or column_hit:
        return CellStyle.CROSSHAIR
    return CellStyle.DEFAULT


def format_value(value: float, decimals: int = DAQ_DECIMALS) -> str:
    return f"{value:.{decimals}f}"


@dataclass(frozen=True)
class Cell:
    """One visible cell, positioned in viewport coordinates."""

    row: int
    column: int
    left: int
    top: int
    width: int
    height: int
    text: str
    style: CellStyle


class MatrixWindow:
    """Fixed-size cells seen through a fixed-size viewport."""

    def __init__(
        self,
        cell_width: int = CELL_WIDTH,
        cell_height: int = CELL_HEIGHT,
        viewport_width: int = GRID_WIDTH,
        viewport_height: int = GRID_HEIGHT,
    ):
        if cell_width <= 0 or cell_height <= 0:
            raise ValueError("Cell size must be positive")
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height

    def content_size(self, dim: tuple[int, int]) -> tuple[int, int]:
        """(width, height) of the whole grid in pixels."""
        return dim[1] * self.cell_width, dim[0] * self.cell_height

    def max_scroll(self, dim: tuple[int, int]) -> tuple[int, int]:
        width, height = self.content_size(dim)
        return (
            max(0, width - self.viewport_width),
            max(0, height - self.viewport_height),
        )

    def clamp_scroll(
        self, dim: tuple[int, int], scroll_left: int, scroll_top: int
    ) -> tuple[int, int]:
        max_left, max_top = self.max_scroll(dim)
        return max(0, min(scroll_left, max_left)), max(0, min(scroll_top, max_top))

    def visible_range(
        self, dim: tuple[int, int], scroll_left: int, scroll_top: int
    ) -> tuple[range, range]:
        """Half-open (rows, columns) ranges of the cells intersecting the viewport."""
        rows, cols = dim
        scroll_left, scroll_top = self.clamp_scroll(dim, scroll_left, scroll_top)
        first_row = min(rows, scroll_top // self.cell_height)
        stop_row = min(
            rows, -(-(scroll_top + self.viewport_height) // self.cell_height)
        )
        first_col = min(cols, scroll_left // self.cell_width)
        stop_col = min(cols, -(-(scroll_left + self.viewport_width) // self.cell_width))
        return range(first_row, stop_row), range(first_col, stop_col)

    def visible_cells(
        self,
        matrix: DaqMatrix,
        selection: Selection,
        scroll_left: int,
        scroll_top: int,
    ) -> Iterator[Cell]:
        scroll_left, scroll_top = self.clamp_scroll(matrix.dim, scroll_left, scroll_top)
        row_range, col_range = self.visible_range(matrix.dim, scroll_left, scroll_top)
        cols = matrix.cols
        for row in row_range:
            top = row * self.cell_height - scroll_top
            base = row * cols
            for column in col_range:
                yield Cell(
                    row=row,
                    column=column,
                    left=column * self.cell_width - scroll_left,
                    top=top,
                    width=self.cell_width,
                    height=self.cell_height,
                    text=format_value(float(matrix.data[base + column])),
                    style=cell_style(row, column, selection.row, selection.column),
                )

    def cell_at(
        self, dim: tuple[int, int], x: int, y: int, scroll_left: int, scroll_top: int
    ) -> Optional[tuple[int, int]]:
        """(row, column) under viewport point (x, y), or None outside the grid."""
        if not (0 <= x < self.viewport_width and 0 <= y < self.viewport_height):
            return None
        scroll_left, scroll_top = self.clamp_scroll(dim, scroll_left, scroll_top)
        row = (y + scroll_top) // self.cell_height
        column = (x + scroll_left) // self.cell_width
        if row >= dim[0] or column >= dim[1]:
            return None
        return row, column

    def scroll_offsets_for(
        self,
        dim: tuple[int, int],
        row: int,
        column: int,
        scroll_left: int,
        scroll_top: int,
    ) -> tuple[int, int]:
        """Smallest scroll change that brings cell (row, column) fully into view.

        A negative row or column leaves that axis where it is.
        """
        if row >= 0:
            scroll_top = _scroll_into_view(
                row * self.cell_height, self.cell_height, scroll_top, self.viewport_height
            )
        if column >= 0:
            scroll_left = _scroll_into_view(
                column * self.cell_width, self.cell_width, scroll_left, self.viewport_width
            )
        return self.clamp_scroll(dim, scroll_left, scroll_top)


def _scroll_into_view(start: int, size: int, offset: int, viewport: int) -> int:
    if start < offset:
        return start
    if start + size > offset + viewport:
        return start + size - viewport
    return offset
