# Modal boxes for problems outside the session, e.g. a client/engine version
# mismatch. Session errors go to the window's error banner.

from PyQt6.QtWidgets import QMessageBox


def show_warning(error_message: str):
    """Show a modal warning box with the given message"""
    error_box = QMessageBox()
    error_box.setIcon(QMessageBox.Icon.Warning)
    error_box.setText("Warning")
    error_box.setInformativeText(error_message)
    error_box.setWindowTitle("Warning")
    error_box.exec()
