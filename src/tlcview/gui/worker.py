"""Runs the session on an asyncio loop in a background thread.

Widgets never await anything. They call the `SessionWorker` methods, which
schedule the matching session coroutine on the worker loop and return at once,
so the window stays responsive and several commands can be outstanding. Results
come back through Qt signals, which Qt delivers on the GUI thread.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Optional

from loguru import logger
from PyQt6 import QtCore

from tlcview.server import ConnectionManager
from tlcview.session import DaqMatrix, Frame, Page, Session
from tlcview.types import EngineError, TLCConfig
from tlcview.util import DEFAULT_HOST_ADDR, DEFAULT_LOGLEVEL, DEFAULT_PORT


class SessionWorker(QtCore.QObject):
    config_signal = QtCore.pyqtSignal(object, name="config_signal")
    error_signal = QtCore.pyqtSignal(str, name="error_signal")
    frame_signal = QtCore.pyqtSignal(object, name="frame_signal")
    daq_signal = QtCore.pyqtSignal(object, name="daq_signal")
    connected_signal = QtCore.pyqtSignal(str, name="connected_signal")
    page_signal = QtCore.pyqtSignal(object, name="page_signal")

    def __init__(self, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self.connection_manager = ConnectionManager()
        self.session = Session(self.connection_manager)
        self.session.store.subscribe(self._on_config)
        self.session.errors.subscribe(self.error_signal.emit)
        self.session.frames.subscribe(self._on_frame)
        self.session.subscribe_daq(self._on_daq)

        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="tlcview-session", daemon=True
        )
        self._thread.start()

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()
        self.loop.close()

    # ========================================================================
    # Session -> GUI
    # ========================================================================

    def _on_config(self, config: TLCConfig):
        self.config_signal.emit(config)

    def _on_frame(self, frame: Frame):
        self.frame_signal.emit(frame)

    def _on_daq(self, daq: DaqMatrix):
        self.daq_signal.emit(daq)

    # ========================================================================
    # GUI -> session
    # ========================================================================

    def submit(self, coro) -> Future:
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        fut.add_done_callback(self._log_failure)
        return fut

    @staticmethod
    def _log_failure(fut: Future):
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Session task failed.")

    def start(
        self,
        host: str = DEFAULT_HOST_ADDR,
        msg_port: int = DEFAULT_PORT,
        start_engine: bool = False,
        engine_log_level: str = DEFAULT_LOGLEVEL,
    ) -> Future:
        """Connect to the engine (starting a local one if asked), then load the
        default configuration."""
        return self.submit(self._start(host, msg_port, start_engine, engine_log_level))

    async def _start(self, host, msg_port, start_engine, engine_log_level):
        if start_engine:
            self.connection_manager.start_local_server(
                host=host, msg_port=msg_port, log_level=engine_log_level
            )
        try:
            await self.connection_manager.connect(host, msg_port)
        except EngineError as e:
            self.session.errors.set(f"Cannot connect to engine: {e.message}")
            return
        self.connected_signal.emit(self.connection_manager.engine_version or "")
        await self.session.load_default_config()

    def stop(self, stop_engine: bool = False):
        """Disconnect (and shut down the engine if asked), then stop the loop."""

        async def _stop():
            if stop_engine:
                await self.connection_manager.stop_server()
            else:
                self.connection_manager.disconnect()

        try:
            asyncio.run_coroutine_threadsafe(_stop(), self.loop).result(timeout=10)
        except Exception:
            logger.exception("Error while closing the engine connection.")
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=2)

    def load_default_config(self):
        self.submit(self.session.load_default_config())

    def load_config(self, path: Optional[str]):
        self.submit(self.session.load_config(path))

    def save_config(self):
        self.submit(self.session.save_config())

    def set_save_dir(self, path: Optional[str]):
        self.submit(self.session.set_save_dir(path))

    def set_video_path(self, path: Optional[str]):
        self.submit(self.session.set_video_path(path))

    def set_daq_path(self, path: Optional[str]):
        self.submit(self.session.set_daq_path(path))

    def set_start_frame(self, start_frame: Optional[int]):
        self.submit(self.session.set_start_frame(start_frame))

    def set_start_row(self, start_row: Optional[int]):
        self.submit(self.session.set_start_row(start_row))

    def synchronize(self):
        self.submit(self.session.synchronize())

    def set_regulator(self, regulator: Optional[list[float]]):
        self.submit(self.session.set_regulator(regulator))

    def reset_regulator(self):
        self.submit(self.session.reset_regulator())

    def set_region(self, top_left_pos, region_shape):
        self.submit(self.session.set_region(top_left_pos, region_shape))

    def request_frame(self, frame_index: int):
        self.submit(self.session.request_frame(frame_index))

    def select_cell(self, row: int, column: int):
        self.loop.call_soon_threadsafe(self.session.select_cell, row, column)

    def dismiss_error(self):
        self.loop.call_soon_threadsafe(self.session.dismiss_error)

    def enter_page(self, page: Page):
        async def _enter():
            if await self.session.enter_page(page):
                self.page_signal.emit(page)

        self.submit(_enter())
