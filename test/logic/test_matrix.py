"""Tests for the windowed DAQ grid."""

import itertools

import numpy as np
import pytest

from tlcview.session import (
    CellStyle,
    DaqMatrix,
    MatrixWindow,
    Selection,
    cell_style,
    format_value,
)


def make_matrix(rows: int, cols: int) -> DaqMatrix:
    return DaqMatrix.from_buffer((rows, cols), np.arange(rows * cols, dtype=np.float32))


@pytest.fixture
def window() -> MatrixWindow:
    return MatrixWindow(cell_width=100, cell_height=30, viewport_width=900, viewport_height=300)


class TestDaqMatrix:
    def test_buffer_is_read_only(self):
        matrix = make_matrix(3, 4)
        assert not matrix.data.flags.writeable
        with pytest.raises(ValueError):
            matrix.data[0] = 1.0

    def test_value_is_row_major(self):
        matrix = make_matrix(3, 4)
        assert matrix.rows == 3
        assert matrix.cols == 4
        assert matrix.value(2, 1) == 9.0

    def test_size_must_match_dim(self):
        with pytest.raises(ValueError, match="expected 2 x 3"):
            DaqMatrix.from_buffer((2, 3), np.zeros(5))

    def test_negative_dim(self):
        with pytest.raises(ValueError, match="Invalid DAQ dimensions"):
            DaqMatrix((-1, 3), np.zeros(0, dtype=np.float32))


class TestHighlight:
    def test_highlight_rule(self):
        indices = [-1, 0, 1, 2]
        for row, column, sel_row, sel_column in itertools.product(indices, repeat=4):
            style = cell_style(row, column, sel_row, sel_column)
            if row == sel_row and column == sel_column:
                assert style == CellStyle.SELECTED
            elif row == sel_row or column == sel_column:
                assert style == CellStyle.CROSSHAIR
            else:
                assert style == CellStyle.DEFAULT

    def test_selected_row_only(self):
        assert cell_style(3, 0, 3, -1) == CellStyle.CROSSHAIR
        assert cell_style(2, 0, 3, -1) == CellStyle.DEFAULT

    def test_visible_cells_follow_selection(self, window: MatrixWindow):
        matrix = make_matrix(5, 5)
        selection = Selection()
        selection.select(1, 2)
        styles = {
            (c.row, c.column): c.style
            for c in window.visible_cells(matrix, selection, 0, 0)
        }
        assert styles[(1, 2)] == CellStyle.SELECTED
        assert styles[(1, 0)] == CellStyle.CROSSHAIR
        assert styles[(4, 2)] == CellStyle.CROSSHAIR
        assert styles[(0, 0)] == CellStyle.DEFAULT

        selection.clear()
        assert all(
            c.style == CellStyle.DEFAULT
            for c in window.visible_cells(matrix, selection, 0, 0)
        )


class TestWindow:
    def test_visible_count_is_bounded_by_viewport(self, window: MatrixWindow):
        matrix = make_matrix(100_000, 64)
        limit = (300 // 30 + 1) * (900 // 100 + 1)
        for left, top in [(0, 0), (50, 15), (1234, 987654), (10**9, 10**9)]:
            cells = list(window.visible_cells(matrix, Selection(), left, top))
            assert 0 < len(cells) <= limit

    def test_visible_range_at_origin(self, window: MatrixWindow):
        rows, cols = window.visible_range((100, 100), 0, 0)
        assert rows == range(0, 10)
        assert cols == range(0, 9)

    def test_partial_cells_are_visible(self, window: MatrixWindow):
        rows, cols = window.visible_range((100, 100), 50, 15)
        assert rows == range(0, 11)
        assert cols == range(0, 10)

    def test_small_matrix(self, window: MatrixWindow):
        rows, cols = window.visible_range((2, 3), 0, 0)
        assert rows == range(0, 2)
        assert cols == range(0, 3)
        assert window.max_scroll((2, 3)) == (0, 0)

    def test_empty_matrix(self, window: MatrixWindow):
        matrix = DaqMatrix.from_buffer((0, 0), [])
        assert list(window.visible_cells(matrix, Selection(), 0, 0)) == []

    def test_cell_geometry_and_text(self, window: MatrixWindow):
        matrix = make_matrix(100, 100)
        cells = list(window.visible_cells(matrix, Selection(), 150, 45))
        first = cells[0]
        assert (first.row, first.column) == (1, 1)
        assert (first.left, first.top) == (-50, -15)
        assert first.text == format_value(matrix.value(1, 1))

    def test_scroll_is_clamped(self, window: MatrixWindow):
        assert window.clamp_scroll((20, 20), -5, 10**6) == (0, 300)
        assert window.clamp_scroll((20, 20), 10**6, -5) == (1100, 0)

    def test_cell_at(self, window: MatrixWindow):
        dim = (100, 100)
        assert window.cell_at(dim, 0, 0, 0, 0) == (0, 0)
        assert window.cell_at(dim, 250, 61, 0, 0) == (2, 2)
        assert window.cell_at(dim, 10, 10, 100, 30) == (1, 1)
        assert window.cell_at(dim, 900, 10, 0, 0) is None
        assert window.cell_at(dim, -1, 10, 0, 0) is None
        assert window.cell_at((2, 2), 250, 10, 0, 0) is None

    def test_scroll_offsets_for(self, window: MatrixWindow):
        dim = (1000, 100)
        # already visible
        assert window.scroll_offsets_for(dim, 3, 2, 0, 0) == (0, 0)
        # below the viewport: bottom edge aligned
        assert window.scroll_offsets_for(dim, 20, 0, 0, 0) == (0, 21 * 30 - 300)
        # above the viewport: top edge aligned
        assert window.scroll_offsets_for(dim, 5, 0, 0, 600) == (0, 150)
        # right of the viewport
        assert window.scroll_offsets_for(dim, 0, 12, 0, 0) == (13 * 100 - 900, 0)
        # nothing selected on an axis leaves it alone
        assert window.scroll_offsets_for(dim, -1, -1, 200, 90) == (200, 90)

    def test_format_value(self):
        assert format_value(1.0) == "1.00"
        assert format_value(2.345, decimals=1) == "2.3"
