from typing import Optional

from PyQt6.QtCore import QSize, Qt
from PyQt6.QtGui import QColor, QImage, QPainter
from PyQt6.QtWidgets import QSizePolicy, QWidget

from tlcview.session import Frame

BACKGROUND = QColor("#282828")


class VideoWidget(QWidget):
    """Paints the current frame at the size the engine sent it."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._image: Optional[QImage] = None
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.setFixedSize(320, 240)

    def set_frame(self, frame: Frame):
        # QImage does not own the buffer: copy so the array can go away
        rgba = frame.rgba
        self._image = QImage(
            rgba.tobytes(),
            frame.width,
            frame.height,
            4 * frame.width,
            QImage.Format.Format_RGBA8888,
        ).copy()
        if self.size() != QSize(frame.width, frame.height):
            self.setFixedSize(frame.width, frame.height)
        self.update()

    def clear(self):
        self._image = None
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), BACKGROUND)
        if self._image is not None:
            painter.drawImage(0, 0, self._image)
        else:
            painter.setPen(QColor("#fbf1c7"))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No video")
        painter.end()
