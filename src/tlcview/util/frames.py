"""Conversion of engine frame rasters into displayable RGBA images."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .defaults import COMPRESSION_RATIO


def display_shape(video_shape: Optional[tuple[int, int]]) -> tuple[int, int]:
    """(height, width) of the frames the engine sends for a source of `video_shape`.

    The engine decimates every frame by `COMPRESSION_RATIO` in both directions.
    Returns (0, 0) when the source shape is not known yet.
    """
    if not video_shape:
        return 0, 0
    height, width = video_shape
    return height // COMPRESSION_RATIO, width // COMPRESSION_RATIO


def rgb_to_rgba(buffer: np.ndarray | bytes, height: int, width: int) -> np.ndarray:
    """Expand an interleaved RGB buffer into an opaque (height, width, 4) RGBA image.

    Raises
    ------
    ValueError
        If the buffer does not hold exactly height * width RGB pixels.
    """
    rgb = np.frombuffer(buffer, dtype=np.uint8) if isinstance(buffer, bytes) else buffer
    rgb = np.asarray(rgb, dtype=np.uint8).ravel()
    if rgb.size != height * width * 3:
        raise ValueError(
            f"Frame buffer holds {rgb.size} bytes, expected {height * width * 3} "
            f"for a {height}x{width} RGB frame."
        )
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., :3] = rgb.reshape(height, width, 3)
    rgba[..., 3] = 255
    return rgba


def clamp_frame_index(index: int, total_frames: int) -> int:
    """Clamp a slider value into [0, total_frames - 1] (0 if the total is unknown)."""
    if total_frames <= 0:
        return 0
    return max(0, min(index, total_frames - 1))


def region_error(
    top_left_pos: tuple[int, int],
    region_shape: tuple[int, int],
    video_shape: Optional[tuple[int, int]],
) -> Optional[str]:
    """Why a calculation region cannot be used on a video of `video_shape`, or None.

    Positions and shapes are (y, x) and (height, width) in full-size pixels.
    """
    if min(top_left_pos) < 0:
        return "Region position must be non-negative"
    if min(region_shape) <= 0:
        return "Region must be at least one pixel in each direction"
    if not video_shape:
        return "Video path not set"
    (y, x), (height, width) = top_left_pos, region_shape
    if y + height > video_shape[0] or x + width > video_shape[1]:
        return (
            f"Region {height}x{width} at ({y}, {x}) exceeds the "
            f"{video_shape[0]}x{video_shape[1]} video frame"
        )
    return None
