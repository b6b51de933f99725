"""Data sources of the reference engine.

`SyntheticVideo` stands in for a decoded video file: it checks the file exists,
reports fixed metadata and draws deterministic frames, already decimated the way
the real engine sends them. `read_daq` loads a DAQ recording into a 2D array.
"""

from __future__ import annotations

import os

import numpy as np
from loguru import logger

from tlcview.util import COMPRESSION_RATIO

from .errors import EngineStateError

SYNTHETIC_FRAME_RATE = 25
SYNTHETIC_TOTAL_FRAMES = 1000
SYNTHETIC_SHAPE = (480, 640)  # (height, width)


class SyntheticVideo:
    def __init__(
        self,
        path: str,
        total_frames: int = SYNTHETIC_TOTAL_FRAMES,
        frame_rate: int = SYNTHETIC_FRAME_RATE,
        shape: tuple[int, int] = SYNTHETIC_SHAPE,
    ):
        if not os.path.isfile(path):
            raise EngineStateError(f"Cannot open video file: {path}")
        self.path = path
        self.total_frames = total_frames
        self.frame_rate = frame_rate
        self.shape = shape
        logger.info(
            "Opened video {} ({} frames @ {} Hz, shape {})",
            path,
            total_frames,
            frame_rate,
            shape,
        )

    def frame(self, frame_index: int) -> np.ndarray:
        """Frame `frame_index` as a flat interleaved RGB uint8 buffer, decimated
        by COMPRESSION_RATIO."""
        if not 0 <= frame_index < self.total_frames:
            raise EngineStateError(
                f"Frame {frame_index} out of range [0, {self.total_frames})"
            )
        height = self.shape[0] // COMPRESSION_RATIO
        width = self.shape[1] // COMPRESSION_RATIO
        y, x = np.mgrid[0:height, 0:width]
        rgb = np.empty((height, width, 3), dtype=np.uint8)
        rgb[..., 0] = (x * 255 // max(width - 1, 1)).astype(np.uint8)
        rgb[..., 1] = ((x + y + frame_index) % 256).astype(np.uint8)
        rgb[..., 2] = (y * 255 // max(height - 1, 1)).astype(np.uint8)
        return rgb.ravel()


def read_daq(path: str) -> np.ndarray:
    """Read a DAQ recording, one row per sample, one column per channel.

    Supports tab-delimited LabVIEW `.lvm` files and comma-delimited `.csv` files.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".lvm":
        delimiter = "\t"
    elif ext == ".csv":
        delimiter = ","
    else:
        raise EngineStateError(f"Only .lvm or .csv DAQ files are supported: {path}")
    if not os.path.isfile(path):
        raise EngineStateError(f"Cannot open DAQ file: {path}")

    try:
        daq = np.loadtxt(path, delimiter=delimiter, dtype=np.float32, ndmin=2)
    except ValueError as e:
        raise EngineStateError(f"DAQ file may only contain numbers ({e}): {path}")
    if daq.size == 0:
        raise EngineStateError(f"DAQ file is empty: {path}")
    logger.info("Read DAQ {} with shape {}", path, daq.shape)
    return daq
