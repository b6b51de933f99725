import asyncio
from copy import deepcopy

import pytest

from tlcview.engine import EngineState, EngineStateError
from tlcview.types import EngineError


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks test as slow running test")


class FakeEngine:
    """In-process stand-in for a connected `ConnectionManager`.

    Runs every command against a real `EngineState` and records it in `calls`.
    `overrides` maps a command name to a scripted reply (or exception). With
    `hold_frames` set, `get_frame` waits until the test calls `release` or
    `fail` for that request, so replies can be delivered out of order. Held
    requests are released oldest first unless `newest` is given.
    """

    def __init__(self, state: EngineState):
        self.state = state
        self.calls: list[tuple] = []
        self.overrides: dict = {}
        self.hold_frames = False
        self.held: list[tuple[int, asyncio.Future]] = []

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def _call(self, name, func, *args):
        self.calls.append((name, *args))
        if name in self.overrides:
            reply = self.overrides[name]
            if isinstance(reply, Exception):
                raise reply
            return deepcopy(reply)
        try:
            return deepcopy(func(*args))
        except EngineStateError as e:
            raise EngineError(str(e))

    async def load_default_config(self):
        return await self._call("load_default_config", self.state.load_default_config)

    async def load_config(self, path):
        return await self._call("load_config", self.state.load_config, path)

    async def save_config(self):
        return await self._call("save_config", self.state.save_config)

    async def set_save_dir(self, path):
        return await self._call("set_save_dir", self.state.set_save_dir, path)

    async def set_video_path(self, path):
        return await self._call("set_video_path", self.state.set_video_path, path)

    async def set_daq_path(self, path):
        return await self._call("set_daq_path", self.state.set_daq_path, path)

    async def set_start_frame(self, start_frame):
        return await self._call(
            "set_start_frame", self.state.set_start_frame, start_frame
        )

    async def set_start_row(self, start_row):
        return await self._call("set_start_row", self.state.set_start_row, start_row)

    async def synchronize(self, frame_index, row_index):
        return await self._call(
            "synchronize", self.state.synchronize, frame_index, row_index
        )

    async def set_thermocouples(self, thermocouples):
        return await self._call(
            "set_thermocouples", self.state.set_thermocouples, thermocouples
        )

    async def set_regulator(self, regulator):
        return await self._call("set_regulator", self.state.set_regulator, regulator)

    async def set_region(self, top_left_pos, region_shape):
        return await self._call(
            "set_region", self.state.set_region, top_left_pos, region_shape
        )

    async def get_frame(self, frame_index):
        if not self.hold_frames:
            return await self._call("get_frame", self.state.get_frame, frame_index)
        self.calls.append(("get_frame", frame_index))
        fut = asyncio.get_running_loop().create_future()
        self.held.append((frame_index, fut))
        return await fut

    async def get_daq(self):
        def _get_daq():
            daq = self.state.get_daq()
            return daq.shape, daq.ravel()

        return await self._call("get_daq", _get_daq)

    async def try_drop_video(self):
        return await self._call("try_drop_video", self.state.try_drop_video)

    # ========================================================================
    # Held frame requests
    # ========================================================================

    def _held(self, frame_index: int, newest: bool = False) -> asyncio.Future:
        order = reversed(range(len(self.held))) if newest else range(len(self.held))
        for i in order:
            index, fut = self.held[i]
            if index == frame_index:
                del self.held[i]
                return fut
        raise LookupError(f"No held request for frame {frame_index}")

    def release(self, frame_index: int, newest: bool = False) -> None:
        self._held(frame_index, newest).set_result(self.state.get_frame(frame_index))

    def fail(self, frame_index: int, message: str) -> None:
        self._held(frame_index).set_exception(EngineError(message))

    async def wait_held(self, count: int) -> None:
        while len(self.held) < count:
            await asyncio.sleep(0)


@pytest.fixture
def video_file(tmp_path):
    """An existing file the synthetic video source accepts."""
    path = tmp_path / "videos" / "case1.avi"
    path.parent.mkdir()
    path.write_bytes(b"")
    return str(path)


@pytest.fixture
def daq_file(tmp_path):
    """A 20 x 3 comma-delimited DAQ recording."""
    path = tmp_path / "daq" / "case1.csv"
    path.parent.mkdir()
    lines = [f"{r}.0,{r * 10}.5,{r * 100}.25" for r in range(20)]
    path.write_text("\n".join(lines) + "\n")
    return str(path)


@pytest.fixture
def engine_state(tmp_path):
    return EngineState(default_config_path=str(tmp_path / "default_config.json"))


@pytest.fixture
def fake_engine(engine_state):
    return FakeEngine(engine_state)
