from typing import Optional

from PyQt6.QtWidgets import QHBoxLayout, QLabel, QLineEdit, QToolButton, QWidget


def add_row_to_layout(layout, *widgets: QWidget | tuple[QWidget, int]):
    """Helper method to add a row of widgets to a layout."""
    row = QHBoxLayout()
    for widget in widgets:
        if isinstance(widget, tuple):
            widget, stretch = widget
            row.addWidget(widget, stretch)
        else:
            row.addWidget(widget)
    layout.addLayout(row)


def get_path_row(label: str, tooltip: Optional[str] = None):
    """Label, read-only path box and a browse button."""
    label_widget = QLabel(label)
    path_box = QLineEdit()
    path_box.setReadOnly(True)
    browse_button = QToolButton()
    browse_button.setText("...")
    if tooltip:
        label_widget.setToolTip(tooltip)
    return label_widget, path_box, browse_button


def get_index_row(label: str):
    """Label, editable 1-based index box and the range label next to it."""
    label_widget = QLabel(label)
    index_box = QLineEdit()
    index_box.setFixedWidth(80)
    range_label = QLabel("")
    return label_widget, index_box, range_label
