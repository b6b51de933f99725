from typing import Optional

from PyQt6 import QtCore
from PyQt6.QtCore import QRect, Qt
from PyQt6.QtGui import QColor, QPainter, QPen
from PyQt6.QtWidgets import QAbstractScrollArea

from tlcview.session import CellStyle, DaqMatrix, MatrixWindow, Selection

TEXT = QColor("#fbf1c7")
TEXT_HIGHLIGHTED = QColor("#282828")
BACKGROUND = QColor("#282828")
BORDER = QColor("#98971a")
CELL_BACKGROUND = {
    CellStyle.DEFAULT: None,
    CellStyle.CROSSHAIR: QColor("#d79921"),
    CellStyle.SELECTED: QColor("#cc241d"),
}


class MatrixWidget(QAbstractScrollArea):
    """DAQ grid that paints only the cells inside the viewport.

    Clicking a cell emits `cell_clicked(row, column)`; the widget does not
    change its own selection, it waits for `set_selection`.
    """

    cell_clicked = QtCore.pyqtSignal(int, int, name="cell_clicked")

    def __init__(self, grid: Optional[MatrixWindow] = None, parent=None):
        super().__init__(parent)
        self.grid = grid if grid is not None else MatrixWindow()
        self.matrix: Optional[DaqMatrix] = None
        self.selection = Selection()
        self.viewport().setFixedSize(
            self.grid.viewport_width, self.grid.viewport_height
        )
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.horizontalScrollBar().setSingleStep(self.grid.cell_width)
        self.verticalScrollBar().setSingleStep(self.grid.cell_height)

    def set_matrix(self, matrix: DaqMatrix):
        self.matrix = matrix
        max_left, max_top = self.grid.max_scroll(matrix.dim)
        self.horizontalScrollBar().setRange(0, max_left)
        self.verticalScrollBar().setRange(0, max_top)
        self.horizontalScrollBar().setPageStep(self.grid.viewport_width)
        self.verticalScrollBar().setPageStep(self.grid.viewport_height)
        self.viewport().update()

    def set_selection(self, row: int, column: int):
        self.selection.select(row, column)
        if self.matrix is not None:
            left, top = self.grid.scroll_offsets_for(
                self.matrix.dim, row, column, *self._scroll()
            )
            self.horizontalScrollBar().setValue(left)
            self.verticalScrollBar().setValue(top)
        self.viewport().update()

    def _scroll(self) -> tuple[int, int]:
        return self.horizontalScrollBar().value(), self.verticalScrollBar().value()

    def scrollContentsBy(self, dx, dy):
        self.viewport().update()

    def paintEvent(self, event):
        painter = QPainter(self.viewport())
        painter.fillRect(self.viewport().rect(), BACKGROUND)
        if self.matrix is None:
            painter.end()
            return
        border = QPen(BORDER)
        for cell in self.grid.visible_cells(
            self.matrix, self.selection, *self._scroll()
        ):
            rect = QRect(cell.left, cell.top, cell.width, cell.height)
            background = CELL_BACKGROUND[cell.style]
            if background is not None:
                painter.fillRect(rect, background)
                painter.setPen(TEXT_HIGHLIGHTED)
            else:
                painter.setPen(TEXT)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, cell.text)
            painter.setPen(border)
            painter.drawRect(rect.adjusted(0, 0, -1, -1))
        painter.end()

    def mousePressEvent(self, event):
        if self.matrix is None:
            return
        pos = event.position()
        hit = self.grid.cell_at(
            self.matrix.dim, int(pos.x()), int(pos.y()), *self._scroll()
        )
        if hit is not None:
            self.cell_clicked.emit(*hit)
