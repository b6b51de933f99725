"""One operator session against one engine.

`Session` ties the configuration store, the error surface, the frame viewer,
the DAQ matrix and the synchroniser to a single engine object. Every method
that changes the configuration follows the same path: local guards first
(refusals go to the error surface and nothing is sent), then one command to the
engine, then either the engine's new configuration replaces the old one or the
engine's message goes to the error surface and nothing else changes.
"""

from __future__ import annotations

from enum import Enum
from functools import wraps
from typing import Awaitable, Callable, Optional

from loguru import logger

from tlcview.types import EngineError, Thermocouple, TLCConfig, ValidationError
from tlcview.util import clamp_frame_index, region_error

from .frames import FrameViewer
from .matrix import DaqMatrix, MatrixWindow, Selection
from .store import ConfigStore, ErrorSurface
from .sync import SessionState, SyncController

NOT_LOADED = "Configuration not loaded"
NEGATIVE_FRAME = "Frame number must be non-negative"
NEGATIVE_ROW = "Row number must be non-negative"
NO_SAVE_DIR = "Set the save directory first"
NO_THERMOCOUPLES = "No thermocouples configured"
REGULATOR_LENGTH = "Expected {} regulator values, got {}"
NON_POSITIVE_REGULATOR = "Regulator values must be positive"


class Page(Enum):
    BASIC = "basic"
    SOLVE = "solve"


def surfaced(func: Callable[..., Awaitable[bool]]) -> Callable[..., Awaitable[bool]]:
    """Send local refusals and engine errors of a session command to the error
    surface. The command then returns False."""

    @wraps(func)
    async def wrapper(self: Session, *args, **kwargs) -> bool:
        try:
            return await func(self, *args, **kwargs)
        except ValidationError as e:
            logger.info("Refused {}: {}", func.__name__, e.message)
            self.errors.set(e.message or f"{func.__name__} refused")
        except EngineError as e:
            logger.error("{} failed: {}", func.__name__, e.message)
            self.errors.set(e.message or f"{func.__name__} failed")
        return False

    return wrapper


class Session:
    """Operator session state and commands.

    Commands return True when the engine accepted a change, False when the
    command was skipped as a no-op, refused locally or rejected by the engine.

    Parameters
    ----------
    engine
        Object exposing the client commands as coroutines, e.g. a connected
        `tlcview.server.ConnectionManager`.
    errors : ErrorSurface, optional
        Error slot to report to. A new one is made if not given.
    window : MatrixWindow, optional
        Geometry of the DAQ grid.
    """

    def __init__(
        self,
        engine,
        errors: Optional[ErrorSurface] = None,
        window: Optional[MatrixWindow] = None,
    ):
        self.engine = engine
        self.errors = errors if errors is not None else ErrorSurface()
        self.store = ConfigStore()
        self.frames = FrameViewer(engine, self.errors, self.store)
        self.selection = Selection()
        self.window = window if window is not None else MatrixWindow()
        self.sync = SyncController(engine, self.store, self.frames, self.selection)
        self.page = Page.BASIC
        self._daq: Optional[DaqMatrix] = None
        self._daq_subscribers: list[Callable[[DaqMatrix], None]] = []

    @property
    def config(self) -> Optional[TLCConfig]:
        return self.store.config

    @property
    def state(self) -> SessionState:
        return self.sync.state

    @property
    def daq(self) -> Optional[DaqMatrix]:
        return self._daq

    def subscribe_daq(self, callback: Callable[[DaqMatrix], None]) -> None:
        self._daq_subscribers.append(callback)

    def _require_config(self) -> TLCConfig:
        if not self.store.is_loaded:
            raise ValidationError(NOT_LOADED)
        return self.store.config

    async def _install(self, config: TLCConfig) -> None:
        """Make `config` canonical, then bring the DAQ and the frame up to date."""
        self.store.replace(config)
        await self._refresh_dependents(config)

    async def _refresh_dependents(self, config: TLCConfig) -> None:
        if config.daq_path:
            await self.refresh_daq()
        if config.video_path:
            index = self.frames.desired_index
            if index < 0:
                index = config.start_frame
            await self.frames.request_frame(
                clamp_frame_index(index, config.total_frames)
            )

    # ========================================================================
    # Loading & saving
    # ========================================================================

    @surfaced
    async def load_default_config(self) -> bool:
        """Reset to the last saved configuration."""
        config = await self.engine.load_default_config()
        self.sync.reset()
        self.sync.loaded()
        await self._install(config)
        return True

    @surfaced
    async def load_config(self, path: Optional[str]) -> bool:
        if path is None:
            return False
        config = await self.engine.load_config(path)
        self.sync.loaded()
        await self._install(config)
        return True

    @surfaced
    async def save_config(self) -> bool:
        config = self._require_config()
        if config.save_dir == "":
            raise ValidationError(NO_SAVE_DIR)
        msg = await self.engine.save_config()
        logger.info(msg)
        return True

    # ========================================================================
    # Basic settings
    # ========================================================================

    @surfaced
    async def set_save_dir(self, path: Optional[str]) -> bool:
        self._require_config()
        if path is None:
            return False
        config = await self.engine.set_save_dir(path)
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_video_path(self, path: Optional[str]) -> bool:
        current = self._require_config()
        if path is None or path == current.video_path:
            return False
        config = await self.engine.set_video_path(path)
        self.errors.clear()
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_daq_path(self, path: Optional[str]) -> bool:
        current = self._require_config()
        if path is None or path == current.daq_path:
            return False
        config = await self.engine.set_daq_path(path)
        self.errors.clear()
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_start_frame(self, start_frame: Optional[int]) -> bool:
        if start_frame is None:
            return False
        if start_frame < 0:
            raise ValidationError(NEGATIVE_FRAME)
        if start_frame == self._require_config().start_frame:
            return False
        config = await self.engine.set_start_frame(start_frame)
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_start_row(self, start_row: Optional[int]) -> bool:
        if start_row is None:
            return False
        if start_row < 0:
            raise ValidationError(NEGATIVE_ROW)
        if start_row == self._require_config().start_row:
            return False
        config = await self.engine.set_start_row(start_row)
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_thermocouples(self, thermocouples: list[Thermocouple]) -> bool:
        self._require_config()
        config = await self.engine.set_thermocouples(thermocouples)
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def set_regulator(self, regulator: Optional[list[float]]) -> bool:
        """Scale each thermocouple's readings. `None` (cancelled) changes nothing."""
        if regulator is None:
            return False
        current = self._require_config()
        if len(regulator) != len(current.thermocouples):
            raise ValidationError(
                REGULATOR_LENGTH.format(len(current.thermocouples), len(regulator))
            )
        if any(v <= 0 for v in regulator):
            raise ValidationError(NON_POSITIVE_REGULATOR)
        if list(regulator) == current.regulator:
            return False
        config = await self.engine.set_regulator(list(regulator))
        self.sync.edited()
        await self._install(config)
        return True

    async def reset_regulator(self) -> bool:
        """Put every thermocouple's scale factor back to 1."""
        current = self.config
        count = len(current.thermocouples) if current is not None else 0
        return await self.set_regulator([1.0] * count)

    @surfaced
    async def set_region(
        self,
        top_left_pos: Optional[tuple[int, int]],
        region_shape: Optional[tuple[int, int]],
    ) -> bool:
        """Choose the calculation region, in full-size video pixels."""
        if top_left_pos is None or region_shape is None:
            return False
        current = self._require_config()
        top_left_pos, region_shape = tuple(top_left_pos), tuple(region_shape)
        problem = region_error(top_left_pos, region_shape, current.video_shape)
        if problem is not None:
            raise ValidationError(problem)
        if (top_left_pos, region_shape) == (current.top_left_pos, current.region_shape):
            return False
        config = await self.engine.set_region(top_left_pos, region_shape)
        self.sync.edited()
        await self._install(config)
        return True

    @surfaced
    async def synchronize(self) -> bool:
        self._require_config()
        await self.sync.synchronize()
        await self._refresh_dependents(self.store.config)
        return True

    # ========================================================================
    # Browsing
    # ========================================================================

    @surfaced
    async def request_frame(self, frame_index: int) -> bool:
        """Show frame `frame_index` (clamped into the video) once it arrives."""
        config = self._require_config()
        self.sync.browsed()
        return await self.frames.request_frame(
            clamp_frame_index(frame_index, config.total_frames)
        )

    def select_cell(self, row: int, column: int) -> None:
        """Select a DAQ cell. View state only: nothing is sent to the engine."""
        self.selection.select(row, column)
        if self.store.is_loaded:
            self.sync.browsed()

    @surfaced
    async def refresh_daq(self) -> bool:
        self._require_config()
        dim, data = await self.engine.get_daq()
        try:
            self._daq = DaqMatrix.from_buffer(dim, data)
        except ValueError as e:
            raise EngineError(str(e))
        logger.debug("DAQ matrix {} installed", self._daq.dim)
        for callback in self._daq_subscribers:
            callback(self._daq)
        return True

    # ========================================================================
    # Pages
    # ========================================================================

    @surfaced
    async def enter_page(self, page: Page) -> bool:
        """Switch page. The solve page needs at least one thermocouple.

        Leaving the basic page tells the engine it may drop the decoded video.
        """
        config = self._require_config()
        if page == self.page:
            return False
        if page == Page.SOLVE and not config.thermocouples:
            raise ValidationError(NO_THERMOCOUPLES)
        self.page = page
        if page != Page.BASIC:
            await self.engine.try_drop_video()
        return True

    def dismiss_error(self) -> None:
        self.errors.clear()
