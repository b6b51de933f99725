"""Anchoring a video frame to a DAQ row, and the session's state machine."""

from __future__ import annotations

from enum import Enum

from loguru import logger

from tlcview.types import ValidationError

from .frames import FrameViewer
from .matrix import Selection
from .store import ConfigStore

NO_ROW_SELECTED = "No data row selected"


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    CONFIG_LOADED = "config_loaded"
    BASIC_CONFIG = "basic_config"
    BROWSING = "browsing"
    SYNCHRONIZED = "synchronized"


class SyncController:
    """Binds the displayed frame and the selected DAQ row into one timeline.

    The frame index is whatever the frame viewer was last asked for; the row is
    the matrix selection. `synchronize` sends the pair to the engine, which
    folds the implied offset into the configuration. Each call re-anchors from
    scratch; earlier anchors are not remembered.

    The controller also tracks where the session is:

    - `UNINITIALIZED` until the first configuration arrives, and again while a
      reset to the default configuration is pending
    - `CONFIG_LOADED` after a configuration is loaded or reset
    - `BASIC_CONFIG` and `BROWSING` while editing settings and looking around
    - `SYNCHRONIZED` once an anchor was accepted. Later edits and browsing
      keep this state; only a load or reset leaves it.
    """

    def __init__(
        self,
        engine,
        store: ConfigStore,
        frames: FrameViewer,
        selection: Selection,
    ):
        self.engine = engine
        self.store = store
        self.frames = frames
        self.selection = selection
        self.state = SessionState.UNINITIALIZED

    @property
    def frame_index(self) -> int:
        return self.frames.desired_index

    @property
    def can_synchronize(self) -> bool:
        return self.frame_index >= 0 and self.selection.row >= 0

    async def synchronize(self) -> None:
        """Declare the current frame and the selected row the same instant.

        Raises
        ------
        ValidationError
            If no frame is displayed or no row is selected. Nothing is sent.
        EngineError
            If the engine refuses the anchor. The configuration is unchanged.
        """
        if not self.can_synchronize:
            raise ValidationError(NO_ROW_SELECTED)
        frame_index, row_index = self.frame_index, self.selection.row
        logger.info("Synchronizing frame {} with row {}", frame_index, row_index)
        config = await self.engine.synchronize(frame_index, row_index)
        self.store.replace(config)
        self._move_to(SessionState.SYNCHRONIZED)

    # ========================================================================
    # State transitions
    # ========================================================================

    def reset(self) -> None:
        self._move_to(SessionState.UNINITIALIZED)

    def loaded(self) -> None:
        self._move_to(SessionState.CONFIG_LOADED)

    def edited(self) -> None:
        self._move_within(SessionState.BASIC_CONFIG)

    def browsed(self) -> None:
        self._move_within(SessionState.BROWSING)

    def _move_within(self, state: SessionState) -> None:
        if self.state in (SessionState.UNINITIALIZED, SessionState.SYNCHRONIZED):
            return
        self._move_to(state)

    def _move_to(self, state: SessionState) -> None:
        if state != self.state:
            logger.debug("Session state {} -> {}", self.state.name, state.name)
        self.state = state
