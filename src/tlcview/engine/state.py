"""Canonical configuration held by the reference engine, and the rules for changing it.

Setters raise `EngineStateError` for requests the engine refuses. The handlers
in `tlcview.server.server` send `self.config` back after each success.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable, Optional

import numpy as np
from loguru import logger

from tlcview.types import Thermocouple, TLCConfig
from tlcview.util import DEFAULT_CONFIG_PATH, region_error

from .errors import EngineStateError
from .sources import SyntheticVideo, read_daq


class EngineState:
    def __init__(
        self,
        default_config_path: str = DEFAULT_CONFIG_PATH,
        video_factory: Callable[[str], SyntheticVideo] = SyntheticVideo,
    ):
        self.default_config_path = default_config_path
        self.video_factory = video_factory
        self.config = TLCConfig()
        self._video: Optional[SyntheticVideo] = None
        self._daq: Optional[np.ndarray] = None

    # ========================================================================
    # Loading & saving
    # ========================================================================

    def load_default_config(self) -> TLCConfig:
        """Load the last saved configuration, or a blank one on first run."""
        if not os.path.isfile(self.default_config_path):
            logger.info(
                "No default config at {}, starting blank.", self.default_config_path
            )
            self._reset(TLCConfig())
            return self.config
        return self.load_config(self.default_config_path)

    def load_config(self, path: str) -> TLCConfig:
        try:
            with open(path, "r") as f:
                cfg = TLCConfig.from_dict(json.load(f))
        except OSError as e:
            raise EngineStateError(f"Cannot read config file {path}: {e}")
        except (ValueError, TypeError, KeyError) as e:
            raise EngineStateError(f"Invalid config file {path}: {e}")

        self._reset(cfg)
        # a config may point at files that have since moved; load what we can
        for init in (self._init_video_metadata, self._init_daq_metadata, self._init_path):
            try:
                init()
            except EngineStateError as e:
                logger.debug("While loading {}: {}", path, e)
        if self.config.frame_num == 0:
            self._init_frame_num()
        self._init_regulator()
        logger.info("Loaded config {}", path)
        return self.config

    def save_config(self) -> str:
        if self.config.save_dir == "":
            raise EngineStateError("Save directory not set")
        if self.config.config_path == "":
            raise EngineStateError("No case to save: set the video path first")
        for path in (self.config.config_path, self.default_config_path):
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(self.config.to_dict(), f, indent=2)
        logger.info("Saved config to {}", self.config.config_path)
        return f"Config saved to {self.config.config_path}"

    def _reset(self, cfg: TLCConfig) -> None:
        self.config = cfg
        self._video = None
        self._daq = None

    # ========================================================================
    # Setters
    # ========================================================================

    def set_save_dir(self, save_dir: str) -> TLCConfig:
        old = self.config.save_dir
        self.config.save_dir = save_dir
        try:
            self._init_path()
        except EngineStateError:
            self.config.save_dir = old
            raise
        return self.config

    def set_video_path(self, video_path: str) -> TLCConfig:
        video = self.video_factory(video_path)
        self.config.video_path = video_path
        self._video = video
        self._apply_video_metadata(video)
        self._init_frame_num()
        if self.config.save_dir:
            self._init_path()
        return self.config

    def set_daq_path(self, daq_path: str) -> TLCConfig:
        daq = read_daq(daq_path)
        self.config.daq_path = daq_path
        self._daq = daq
        self.config.total_rows = daq.shape[0]
        self._init_frame_num()
        return self.config

    def set_start_frame(self, start_frame: int) -> TLCConfig:
        cfg = self.config
        if start_frame < 0:
            raise EngineStateError("Start frame must be non-negative")
        if start_frame >= cfg.total_frames:
            raise EngineStateError("Start frame exceeds the total number of frames")
        # the rows move with the frames so that a synchronisation is kept
        start_row = cfg.start_row + start_frame - cfg.start_frame
        if start_row < 0:
            raise EngineStateError(
                "Start row implied by the synchronisation would be negative"
            )
        if start_row >= cfg.total_rows:
            raise EngineStateError(
                "Start row implied by the synchronisation exceeds the total number of rows"
            )
        cfg.start_frame = start_frame
        cfg.start_row = start_row
        self._init_frame_num()
        return cfg

    def set_start_row(self, start_row: int) -> TLCConfig:
        cfg = self.config
        if start_row < 0:
            raise EngineStateError("Start row must be non-negative")
        if start_row >= cfg.total_rows:
            raise EngineStateError("Start row exceeds the total number of rows")
        start_frame = cfg.start_frame + start_row - cfg.start_row
        if start_frame < 0:
            raise EngineStateError(
                "Start frame implied by the synchronisation would be negative"
            )
        if start_frame >= cfg.total_frames:
            raise EngineStateError(
                "Start frame implied by the synchronisation exceeds the total number of frames"
            )
        cfg.start_row = start_row
        cfg.start_frame = start_frame
        self._init_frame_num()
        return cfg

    def synchronize(self, frame_index: int, row_index: int) -> TLCConfig:
        """Frame `frame_index` and row `row_index` are the same instant: start both
        streams as early as that allows."""
        if frame_index < 0 or row_index < 0:
            raise EngineStateError("Frame and row indices must be non-negative")
        cfg = self.config
        if frame_index < row_index:
            cfg.start_frame = 0
            cfg.start_row = row_index - frame_index
        else:
            cfg.start_row = 0
            cfg.start_frame = frame_index - row_index
        self._init_frame_num()
        return cfg

    def set_thermocouples(self, thermocouples: list[Thermocouple]) -> TLCConfig:
        self.config.thermocouples = thermocouples
        self._init_regulator()
        return self.config

    def set_regulator(self, regulator: list[float]) -> TLCConfig:
        """One scale factor per thermocouple, applied to its temperature reading."""
        expected = len(self.config.thermocouples)
        if len(regulator) != expected:
            raise EngineStateError(
                f"Expected {expected} regulator values, got {len(regulator)}"
            )
        if any(v <= 0 for v in regulator):
            raise EngineStateError("Regulator values must be positive")
        self.config.regulator = list(regulator)
        return self.config

    def set_region(
        self, top_left_pos: tuple[int, int], region_shape: tuple[int, int]
    ) -> TLCConfig:
        problem = region_error(top_left_pos, region_shape, self.config.video_shape)
        if problem is not None:
            raise EngineStateError(problem)
        self.config.top_left_pos = tuple(top_left_pos)
        self.config.region_shape = tuple(region_shape)
        return self.config

    # ========================================================================
    # Data
    # ========================================================================

    def get_frame(self, frame_index: int) -> np.ndarray:
        if self._video is None:
            if self.config.video_path == "":
                raise EngineStateError("Video path not set")
            self._video = self.video_factory(self.config.video_path)
        return self._video.frame(frame_index)

    def get_daq(self) -> np.ndarray:
        if self._daq is None:
            if self.config.daq_path == "":
                raise EngineStateError("DAQ path not set")
            self._daq = read_daq(self.config.daq_path)
        return self._daq

    def try_drop_video(self) -> None:
        if self._video is not None:
            logger.info("Dropping video {}", self._video.path)
        self._video = None

    # ========================================================================
    # Derived fields
    # ========================================================================

    def _init_video_metadata(self) -> None:
        if self.config.video_path == "":
            raise EngineStateError("Video path not set")
        self._video = self.video_factory(self.config.video_path)
        self._apply_video_metadata(self._video)

    def _apply_video_metadata(self, video: SyntheticVideo) -> None:
        self.config.frame_rate = video.frame_rate
        self.config.total_frames = video.total_frames
        self.config.video_shape = video.shape

    def _init_daq_metadata(self) -> None:
        if self.config.daq_path == "":
            raise EngineStateError("DAQ path not set")
        self._daq = read_daq(self.config.daq_path)
        self.config.total_rows = self._daq.shape[0]

    def _init_frame_num(self) -> None:
        cfg = self.config
        cfg.frame_num = max(
            0, min(cfg.total_frames - cfg.start_frame, cfg.total_rows - cfg.start_row)
        )

    def _init_path(self) -> None:
        cfg = self.config
        if cfg.save_dir == "":
            raise EngineStateError("Save directory not set")
        save_dir = Path(cfg.save_dir)
        config_dir = save_dir / "config"
        data_dir = save_dir / "data"
        plots_dir = save_dir / "plots"
        for d in (config_dir, data_dir, plots_dir):
            try:
                d.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise EngineStateError(f"Cannot create directory {d}: {e}")

        if cfg.video_path == "":
            return
        cfg.case_name = Path(cfg.video_path).stem
        cfg.config_path = str(config_dir / f"{cfg.case_name}.json")
        cfg.data_path = str(data_dir / f"{cfg.case_name}.csv")
        cfg.plots_path = str(plots_dir / f"{cfg.case_name}.png")

    def _init_regulator(self) -> None:
        if len(self.config.thermocouples) != len(self.config.regulator):
            self.config.regulator = [1.0] * len(self.config.thermocouples)
