import sys

from PyQt6.QtWidgets import QApplication

from tlcview.gui.main_window import MainWindow
from tlcview.util import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    shutdown_client_log,
    start_client_log,
)


def main_gui(
    host=DEFAULT_HOST_ADDR,
    msg_port=DEFAULT_PORT,
    start_engine=False,
    log_to_file=True,
    log_to_stdout=True,
    log_path=None,
    clear_prev_log=True,
    log_level=DEFAULT_LOGLEVEL,
):
    start_client_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        clear_prev=clear_prev_log,
        log_level=log_level,
    )
    app = QApplication(sys.argv)
    app.setStyle("Fusion")

    window = MainWindow(
        host=host,
        msg_port=msg_port,
        start_engine=start_engine,
        stop_engine_on_close=start_engine,
        engine_log_level=log_level,
    )
    window.show()

    return_code = app.exec()
    shutdown_client_log()

    if __name__ != "__main__":  # Don't exit if being imported (e.g. during testing)
        return return_code
    sys.exit(return_code)


if __name__ == "__main__":
    main_gui()
