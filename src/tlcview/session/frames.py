"""Frame requests with last-issued-wins semantics.

While the operator scrubs the frame slider many `getFrame` requests can be in
flight at once and their replies may arrive in any order. Each request takes a
new generation number; when it resolves, its raster is only installed if no
later request was issued meanwhile. Anything else is stale and is dropped
without a word.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from loguru import logger

from tlcview.types import EngineError
from tlcview.util import display_shape, rgb_to_rgba

from .store import ConfigStore, ErrorSurface


@dataclass(frozen=True, eq=False)
class Frame:
    index: int
    rgba: np.ndarray  # (height, width, 4) uint8

    @property
    def height(self) -> int:
        return self.rgba.shape[0]

    @property
    def width(self) -> int:
        return self.rgba.shape[1]


class FrameViewer:
    """Requests frames from the engine and holds the one on display.

    Parameters
    ----------
    engine
        Anything with an awaitable `get_frame(frame_index)` returning a flat
        RGB buffer (`ConnectionManager` in the application).
    errors : ErrorSurface
        Where failures of the current request are reported.
    store : ConfigStore
        Source of `video_shape`, needed to size the decimated raster.
    """

    def __init__(self, engine, errors: ErrorSurface, store: ConfigStore):
        self.engine = engine
        self.errors = errors
        self.store = store
        self.desired_index = -1  # -1: nothing requested yet
        self._generation = 0
        self._frame: Optional[Frame] = None
        self._subscribers: list[Callable[[Frame], None]] = []

    @property
    def frame(self) -> Optional[Frame]:
        return self._frame

    def subscribe(self, callback: Callable[[Frame], None]) -> None:
        self._subscribers.append(callback)

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def request_frame(self, frame_index: int) -> bool:
        """Ask for frame `frame_index` and display it if it is still wanted.

        A reply is current only if no request was issued after it, even one
        for the same index.

        Returns True if the frame was installed.
        """
        self._generation += 1
        generation = self._generation
        self.desired_index = frame_index
        try:
            buffer = await self.engine.get_frame(frame_index)
        except EngineError as e:
            if not self.is_current(generation):
                logger.trace("Discarding failed stale frame {}: {}", frame_index, e)
                return False
            logger.error("Frame {} failed: {}", frame_index, e.message)
            self.errors.set(e.message or f"Frame {frame_index} failed")
            return False

        if not self.is_current(generation):
            logger.trace(
                "Discarding stale frame {} (wanted {})", frame_index, self.desired_index
            )
            return False

        config = self.store.config
        height, width = display_shape(config.video_shape if config else None)
        try:
            rgba = rgb_to_rgba(buffer, height, width)
        except ValueError as e:
            logger.error("Frame {} has the wrong size: {}", frame_index, e)
            self.errors.set(str(e))
            return False

        self._frame = Frame(frame_index, rgba)
        for callback in self._subscribers:
            callback(self._frame)
        return True
