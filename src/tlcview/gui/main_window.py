# Main window of the tlcview GUI

import os
from typing import Optional

from loguru import logger
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QFileDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QSlider,
    QSpinBox,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

import tlcview
from tlcview.gui.matrix_widget import MatrixWidget
from tlcview.gui.util import (
    add_row_to_layout,
    get_index_row,
    get_path_row,
    show_warning,
)
from tlcview.gui.video_widget import VideoWidget
from tlcview.gui.worker import SessionWorker
from tlcview.session import (
    DaqMatrix,
    Frame,
    Page,
    frame_range_label,
    frame_rate_text,
    parse_display_index,
    row_range_label,
    selection_text,
    start_frame_text,
    start_row_text,
)
from tlcview.types import TLCConfig
from tlcview.util import DEFAULT_HOST_ADDR, DEFAULT_LOGLEVEL, DEFAULT_PORT

ERROR_STYLE = "background-color: #cc241d; color: #fbf1c7; padding: 6px;"
# regulator sliders run over [0.5, 1.5] in steps of 0.01
REGULATOR_MIN = 50
REGULATOR_MAX = 150


def _picked(path: str) -> Optional[str]:
    """Qt dialogs return "" when cancelled; cancelling means no change."""
    return path if path else None


def _parent_dir(path: str) -> str:
    return os.path.dirname(path) if path else ""


class MainWindow(QMainWindow):
    def __init__(
        self,
        host: str = DEFAULT_HOST_ADDR,
        msg_port: int = DEFAULT_PORT,
        start_engine: bool = False,
        stop_engine_on_close: bool = False,
        engine_log_level: str = DEFAULT_LOGLEVEL,
    ):
        super().__init__()
        self.setWindowTitle(f"tlcview {tlcview.__version__}")
        self.setGeometry(0, 0, 1400, 800)

        self.config: Optional[TLCConfig] = None
        self.stop_engine_on_close = stop_engine_on_close

        self.worker = SessionWorker(self)
        self.worker.config_signal.connect(self.handle_new_config)
        self.worker.error_signal.connect(self.handle_error)
        self.worker.frame_signal.connect(self.handle_new_frame)
        self.worker.daq_signal.connect(self.handle_new_daq)
        self.worker.page_signal.connect(self.handle_page)
        self.worker.connected_signal.connect(self.handle_connected)

        central = QWidget(self)
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self._create_error_banner(layout)
        self._create_page_buttons(layout)

        self.case_label = QLabel("")
        self.case_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.case_label.setStyleSheet("font-weight: bold; font-size: 16pt;")
        layout.addWidget(self.case_label)

        self.pages = QStackedWidget(self)
        self.basic_page = QWidget(self.pages)
        self.solve_page = QWidget(self.pages)
        self.pages.addWidget(self.basic_page)
        self.pages.addWidget(self.solve_page)
        layout.addWidget(self.pages)
        self._init_basic_page(self.basic_page)
        self._init_solve_page(self.solve_page)

        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        self.addAction(quit_action)

        self.worker.start(host, msg_port, start_engine, engine_log_level)

    # ========================================================================
    # Layout
    # ========================================================================

    def _create_error_banner(self, layout):
        self.error_banner = QFrame(self)
        self.error_banner.setStyleSheet(ERROR_STYLE)
        banner_layout = QHBoxLayout(self.error_banner)
        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        dismiss_button = QPushButton("Dismiss")
        dismiss_button.clicked.connect(self.worker.dismiss_error)
        banner_layout.addWidget(self.error_label, 1)
        banner_layout.addWidget(dismiss_button)
        self.error_banner.hide()
        layout.addWidget(self.error_banner)

    def _create_page_buttons(self, layout):
        self.page_buttons = QWidget(self)
        row = QHBoxLayout(self.page_buttons)
        row.setContentsMargins(0, 0, 0, 0)
        basic_button = QPushButton("Basic settings")
        basic_button.setStyleSheet("background-color: #98971a; color: #32302f;")
        basic_button.clicked.connect(lambda: self.worker.enter_page(Page.BASIC))
        solve_button = QPushButton("Solve settings")
        solve_button.setStyleSheet("background-color: #458588; color: #32302f;")
        solve_button.clicked.connect(lambda: self.worker.enter_page(Page.SOLVE))
        row.addWidget(basic_button)
        row.addWidget(solve_button)
        layout.addWidget(self.page_buttons)

    def _init_basic_page(self, page):
        layout = QGridLayout(page)

        # config buttons
        buttons = QVBoxLayout()
        reset_button = QPushButton("Reset config")
        reset_button.setToolTip("Reset to the configuration you saved last")
        reset_button.clicked.connect(self.worker.load_default_config)
        load_button = QPushButton("Load config")
        load_button.clicked.connect(self.pick_config)
        save_button = QPushButton("Save config")
        save_button.clicked.connect(self.worker.save_config)
        for button in (reset_button, load_button, save_button):
            buttons.addWidget(button)
        buttons.addStretch()
        layout.addLayout(buttons, 0, 0)

        # paths
        paths = QVBoxLayout()
        save_label, self.save_dir_box, save_browse = get_path_row(
            "Save directory",
            "Root directory of all results. config, data and plots "
            + "subdirectories are created under it.",
        )
        save_browse.clicked.connect(self.pick_save_dir)
        video_label, self.video_path_box, video_browse = get_path_row("Video file")
        video_browse.clicked.connect(self.pick_video)
        daq_label, self.daq_path_box, daq_browse = get_path_row("DAQ file")
        daq_browse.clicked.connect(self.pick_daq)
        add_row_to_layout(paths, (save_label, 1), (self.save_dir_box, 6), save_browse)
        add_row_to_layout(paths, (video_label, 1), (self.video_path_box, 6), video_browse)
        add_row_to_layout(paths, (daq_label, 1), (self.daq_path_box, 6), daq_browse)
        layout.addLayout(paths, 0, 1)

        # offsets
        offsets = QVBoxLayout()
        frame_label, self.start_frame_box, self.frame_range_label = get_index_row(
            "Start frame"
        )
        self.start_frame_box.editingFinished.connect(self._start_frame_edited)
        row_label, self.start_row_box, self.row_range_label = get_index_row("Start row")
        self.start_row_box.editingFinished.connect(self._start_row_edited)
        rate_label = QLabel("Frame rate")
        self.frame_rate_label = QLabel("")
        add_row_to_layout(
            offsets, frame_label, self.start_frame_box, self.frame_range_label
        )
        add_row_to_layout(offsets, row_label, self.start_row_box, self.row_range_label)
        add_row_to_layout(offsets, rate_label, self.frame_rate_label, QLabel("Hz"))
        layout.addLayout(offsets, 0, 2)

        # video
        video = QVBoxLayout()
        self.video_widget = VideoWidget(page)
        self.frame_slider = QSlider(Qt.Orientation.Horizontal)
        self.frame_slider.setRange(0, 0)
        self.frame_slider.valueChanged.connect(self.worker.request_frame)
        self.frame_index_label = QLabel("Frame: 0")
        video.addWidget(self.video_widget)
        video.addWidget(self.frame_slider)
        video.addWidget(self.frame_index_label)
        video.addStretch()
        layout.addLayout(video, 1, 0, 1, 1)

        # daq
        daq = QVBoxLayout()
        self.selected_row_label = QLabel("Row: 0")
        self.selected_column_label = QLabel("Column: 0")
        sync_button = QPushButton("Synchronize")
        sync_button.setToolTip(
            "Confirm that the current video frame and the selected row are "
            + "the same instant"
        )
        sync_button.clicked.connect(self.worker.synchronize)
        add_row_to_layout(
            daq, self.selected_row_label, self.selected_column_label, sync_button
        )
        self.matrix_widget = MatrixWidget(parent=page)
        self.matrix_widget.cell_clicked.connect(self.handle_cell_clicked)
        daq.addWidget(self.matrix_widget)
        layout.addLayout(daq, 1, 1, 1, 2)

    def _init_solve_page(self, page):
        layout = QVBoxLayout(page)
        self.thermocouple_label = QLabel("")
        self.thermocouple_label.setAlignment(Qt.AlignmentFlag.AlignTop)
        layout.addWidget(self.thermocouple_label)

        # region, in full-size video pixels
        self.region_boxes = []
        region_widgets = [QLabel("Region (y, x, height, width)")]
        for _ in range(4):
            box = QSpinBox()
            box.setRange(0, 100_000)
            self.region_boxes.append(box)
            region_widgets.append(box)
        region_button = QPushButton("Set region")
        region_button.clicked.connect(self._region_submitted)
        add_row_to_layout(layout, *region_widgets, region_button)

        # regulator, one slider per thermocouple
        regulator_row = QHBoxLayout()
        self.regulator_sliders_layout = QHBoxLayout()
        self.regulator_sliders: list[QSlider] = []
        regulator_buttons = QVBoxLayout()
        reset_button = QPushButton("Reset")
        reset_button.clicked.connect(self.worker.reset_regulator)
        submit_button = QPushButton("Submit")
        submit_button.clicked.connect(self._regulator_submitted)
        regulator_buttons.addWidget(reset_button)
        regulator_buttons.addWidget(submit_button)
        regulator_row.addWidget(QLabel("Regulator"))
        regulator_row.addLayout(self.regulator_sliders_layout)
        regulator_row.addLayout(regulator_buttons)
        regulator_row.addStretch()
        layout.addLayout(regulator_row)
        layout.addStretch()

    def _update_regulator_sliders(self, regulator: list[float]):
        if len(regulator) != len(self.regulator_sliders):
            for slider in self.regulator_sliders:
                self.regulator_sliders_layout.removeWidget(slider)
                slider.deleteLater()
            self.regulator_sliders = []
            for _ in regulator:
                slider = QSlider(Qt.Orientation.Vertical)
                slider.setRange(REGULATOR_MIN, REGULATOR_MAX)
                slider.setFixedHeight(80)
                slider.valueChanged.connect(
                    lambda v, s=slider: s.setToolTip(f"{v / 100:.2f}")
                )
                self.regulator_sliders_layout.addWidget(slider)
                self.regulator_sliders.append(slider)
        for slider, value in zip(self.regulator_sliders, regulator):
            slider.setValue(round(value * 100))

    # ========================================================================
    # Pickers
    # ========================================================================

    def pick_config(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Load config", "", "Config (*.json)"
        )
        self.worker.load_config(_picked(path))

    def pick_save_dir(self):
        path = QFileDialog.getExistingDirectory(self, "Save directory")
        self.worker.set_save_dir(_picked(path))

    def pick_video(self):
        start = _parent_dir(self.config.video_path) if self.config else ""
        path, _ = QFileDialog.getOpenFileName(
            self, "Video file", start, "Video (*.avi *.mp4 *.mkv)"
        )
        self.worker.set_video_path(_picked(path))

    def pick_daq(self):
        start = _parent_dir(self.config.daq_path) if self.config else ""
        path, _ = QFileDialog.getOpenFileName(
            self, "DAQ file", start, "DAQ (*.lvm *.csv)"
        )
        self.worker.set_daq_path(_picked(path))

    def _start_frame_edited(self):
        self.worker.set_start_frame(parse_display_index(self.start_frame_box.text()))

    def _start_row_edited(self):
        self.worker.set_start_row(parse_display_index(self.start_row_box.text()))

    def _region_submitted(self):
        y, x, height, width = (box.value() for box in self.region_boxes)
        self.worker.set_region((y, x), (height, width))

    def _regulator_submitted(self):
        self.worker.set_regulator([s.value() / 100 for s in self.regulator_sliders])

    # ========================================================================
    # Signal handlers
    # ========================================================================

    def handle_connected(self, version: str):
        if version != tlcview.__version__:
            show_warning(
                "Engine and client versions are different: "
                + f"{version} vs {tlcview.__version__}"
            )

    def handle_new_config(self, config: TLCConfig):
        self.config = config
        self.case_label.setText(f"Current case: {config.case_name}")
        self.save_dir_box.setText(config.save_dir)
        self.video_path_box.setText(config.video_path)
        self.daq_path_box.setText(config.daq_path)
        self.start_frame_box.setText(start_frame_text(config))
        self.start_row_box.setText(start_row_text(config))
        self.frame_range_label.setText(frame_range_label(config))
        self.row_range_label.setText(row_range_label(config))
        self.frame_rate_label.setText(frame_rate_text(config))
        self.frame_slider.blockSignals(True)
        self.frame_slider.setRange(0, max(0, config.total_frames - 1))
        self.frame_slider.blockSignals(False)
        if not config.video_path:
            self.video_widget.clear()
        self.thermocouple_label.setText(
            "\n".join(
                f"Thermocouple {i + 1}: column {tc.column_num + 1}, position {tc.pos}"
                for i, tc in enumerate(config.thermocouples)
            )
        )
        self._update_regulator_sliders(config.regulator)
        if config.top_left_pos is not None and config.region_shape is not None:
            values = (*config.top_left_pos, *config.region_shape)
            for box, value in zip(self.region_boxes, values):
                box.setValue(value)

    def handle_error(self, message: str):
        self.error_label.setText(message)
        self.error_banner.setVisible(message != "")
        self.page_buttons.setVisible(message == "")

    def handle_new_frame(self, frame: Frame):
        self.video_widget.set_frame(frame)
        self.frame_index_label.setText(f"Frame: {frame.index + 1}")
        if self.frame_slider.value() != frame.index:
            self.frame_slider.blockSignals(True)
            self.frame_slider.setValue(frame.index)
            self.frame_slider.blockSignals(False)

    def handle_new_daq(self, daq: DaqMatrix):
        self.matrix_widget.set_matrix(daq)

    def handle_cell_clicked(self, row: int, column: int):
        self.worker.select_cell(row, column)
        self.matrix_widget.set_selection(row, column)
        self.selected_row_label.setText(f"Row: {selection_text(row)}")
        self.selected_column_label.setText(f"Column: {selection_text(column)}")

    def handle_page(self, page: Page):
        self.pages.setCurrentIndex(0 if page == Page.BASIC else 1)

    def closeEvent(self, event):
        """Handle the window close event to clean up resources."""
        logger.info("Closing main window.")
        self.worker.stop(stop_engine=self.stop_engine_on_close)
        event.accept()
