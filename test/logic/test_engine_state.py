"""Tests for the reference engine's configuration rules."""

import json

import numpy as np
import pytest

from tlcview.engine import EngineState, EngineStateError, SyntheticVideo, read_daq
from tlcview.types import Thermocouple, TLCConfig


@pytest.fixture
def loaded(engine_state: EngineState, video_file, daq_file):
    engine_state.load_default_config()
    engine_state.set_video_path(video_file)
    engine_state.set_daq_path(daq_file)
    return engine_state


class TestLoading:
    def test_blank_default_on_first_run(self, engine_state: EngineState):
        cfg = engine_state.load_default_config()
        assert cfg.to_dict() == TLCConfig().to_dict()

    def test_missing_config_file(self, engine_state: EngineState, tmp_path):
        with pytest.raises(EngineStateError, match="Cannot read config file"):
            engine_state.load_config(str(tmp_path / "nope.json"))

    def test_invalid_config_file(self, engine_state: EngineState, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(EngineStateError, match="Invalid config file"):
            engine_state.load_config(str(path))

    def test_save_needs_save_dir(self, loaded: EngineState):
        with pytest.raises(EngineStateError, match="Save directory not set"):
            loaded.save_config()

    def test_save_needs_case(self, engine_state: EngineState, tmp_path):
        engine_state.load_default_config()
        engine_state.set_save_dir(str(tmp_path / "results"))
        with pytest.raises(EngineStateError, match="No case to save"):
            engine_state.save_config()

    def test_save_then_load(self, loaded: EngineState, tmp_path):
        loaded.set_save_dir(str(tmp_path / "results"))
        loaded.set_start_frame(4)
        msg = loaded.save_config()
        assert loaded.config.config_path in msg

        with open(loaded.default_config_path) as f:
            assert json.load(f)["start_frame"] == 4

        fresh = EngineState(default_config_path=loaded.default_config_path)
        cfg = fresh.load_default_config()
        assert cfg.to_dict() == loaded.config.to_dict()

    def test_load_tolerates_moved_files(self, loaded: EngineState, tmp_path):
        loaded.set_save_dir(str(tmp_path / "results"))
        loaded.save_config()
        path = loaded.config.config_path

        fresh = EngineState(default_config_path=str(tmp_path / "other.json"))
        fresh.video_factory = _missing_video
        cfg = fresh.load_config(path)
        assert cfg.video_path == loaded.config.video_path
        assert cfg.total_rows == 20


def _missing_video(path):
    raise EngineStateError(f"Cannot open video file: {path}")


class TestPaths:
    def test_video_metadata(self, engine_state: EngineState, video_file):
        engine_state.load_default_config()
        cfg = engine_state.set_video_path(video_file)
        assert cfg.video_path == video_file
        assert cfg.total_frames == 1000
        assert cfg.frame_rate == 25
        assert cfg.video_shape == (480, 640)
        assert cfg.frame_num == 0  # no DAQ rows yet

    def test_missing_video_leaves_config(self, engine_state: EngineState, tmp_path):
        engine_state.load_default_config()
        with pytest.raises(EngineStateError, match="Cannot open video file"):
            engine_state.set_video_path(str(tmp_path / "missing.avi"))
        assert engine_state.config.video_path == ""

    def test_daq_metadata(self, loaded: EngineState):
        assert loaded.config.total_rows == 20
        assert loaded.config.frame_num == 20

    def test_unsupported_daq(self, engine_state: EngineState, tmp_path):
        path = tmp_path / "case1.txt"
        path.write_text("1,2\n")
        with pytest.raises(EngineStateError, match="Only .lvm or .csv"):
            engine_state.set_daq_path(str(path))

    def test_save_dir_derives_case_paths(self, loaded: EngineState, tmp_path):
        cfg = loaded.set_save_dir(str(tmp_path / "results"))
        assert cfg.case_name == "case1"
        assert cfg.config_path.endswith("config/case1.json")
        assert cfg.data_path.endswith("data/case1.csv")
        assert cfg.plots_path.endswith("plots/case1.png")
        for sub in ("config", "data", "plots"):
            assert (tmp_path / "results" / sub).is_dir()


class TestOffsets:
    def test_start_frame_moves_rows_with_it(self, loaded: EngineState):
        loaded.synchronize(10, 2)  # start_frame 8, start_row 0
        cfg = loaded.set_start_frame(12)
        assert (cfg.start_frame, cfg.start_row) == (12, 4)
        assert cfg.frame_num == 16

    def test_start_row_moves_frames_with_it(self, loaded: EngineState):
        cfg = loaded.set_start_row(5)
        assert (cfg.start_frame, cfg.start_row) == (5, 5)
        assert cfg.frame_num == 15

    def test_start_frame_refusals(self, loaded: EngineState):
        with pytest.raises(EngineStateError, match="non-negative"):
            loaded.set_start_frame(-1)
        with pytest.raises(EngineStateError, match="exceeds the total number of frames"):
            loaded.set_start_frame(1000)
        with pytest.raises(EngineStateError, match="exceeds the total number of rows"):
            loaded.set_start_frame(20)
        assert (loaded.config.start_frame, loaded.config.start_row) == (0, 0)

    def test_start_row_refusals(self, loaded: EngineState):
        loaded.synchronize(0, 3)  # start_frame 0, start_row 3
        with pytest.raises(EngineStateError, match="would be negative"):
            loaded.set_start_row(2)
        with pytest.raises(EngineStateError, match="exceeds the total number of rows"):
            loaded.set_start_row(20)

    @pytest.mark.parametrize(
        "frame_index, row_index, expected",
        [(10, 4, (6, 0)), (4, 10, (0, 6)), (7, 7, (0, 0))],
    )
    def test_synchronize(self, loaded: EngineState, frame_index, row_index, expected):
        cfg = loaded.synchronize(frame_index, row_index)
        assert (cfg.start_frame, cfg.start_row) == expected
        assert cfg.frame_num == max(
            0, min(cfg.total_frames - cfg.start_frame, cfg.total_rows - cfg.start_row)
        )

    def test_thermocouples_resize_regulator(self, loaded: EngineState):
        tcs = [
            Thermocouple(column_num=1, pos=(10, 20)),
            Thermocouple(column_num=2, pos=(30, 40)),
        ]
        cfg = loaded.set_thermocouples(tcs)
        assert cfg.regulator == [1.0, 1.0]


class TestSolveSettings:
    def test_regulator(self, loaded: EngineState):
        loaded.set_thermocouples(
            [
                Thermocouple(column_num=1, pos=(10, 20)),
                Thermocouple(column_num=2, pos=(30, 40)),
            ]
        )
        cfg = loaded.set_regulator([0.8, 1.25])
        assert cfg.regulator == [0.8, 1.25]

    def test_regulator_refusals(self, loaded: EngineState):
        loaded.set_thermocouples([Thermocouple(column_num=1, pos=(10, 20))])
        with pytest.raises(EngineStateError, match="Expected 1 regulator values, got 2"):
            loaded.set_regulator([1.0, 1.0])
        with pytest.raises(EngineStateError, match="must be positive"):
            loaded.set_regulator([0.0])
        assert loaded.config.regulator == [1.0]

    def test_region(self, loaded: EngineState):
        cfg = loaded.set_region((10, 20), (400, 600))
        assert cfg.top_left_pos == (10, 20)
        assert cfg.region_shape == (400, 600)

        cfg = loaded.set_region((0, 0), (480, 640))
        assert cfg.region_shape == (480, 640)

    @pytest.mark.parametrize(
        "top_left_pos, region_shape, message",
        [
            ((-1, 0), (10, 10), "non-negative"),
            ((0, 0), (0, 10), "at least one pixel"),
            ((100, 0), (400, 10), "exceeds the 480x640 video frame"),
            ((0, 1), (10, 640), "exceeds the 480x640 video frame"),
        ],
    )
    def test_region_refusals(
        self, loaded: EngineState, top_left_pos, region_shape, message
    ):
        with pytest.raises(EngineStateError, match=message):
            loaded.set_region(top_left_pos, region_shape)
        assert loaded.config.top_left_pos is None
        assert loaded.config.region_shape is None

    def test_region_needs_video(self, engine_state: EngineState):
        engine_state.load_default_config()
        with pytest.raises(EngineStateError, match="Video path not set"):
            engine_state.set_region((0, 0), (10, 10))


class TestData:
    def test_no_video(self, engine_state: EngineState):
        engine_state.load_default_config()
        with pytest.raises(EngineStateError, match="Video path not set"):
            engine_state.get_frame(0)

    def test_no_daq(self, engine_state: EngineState):
        engine_state.load_default_config()
        with pytest.raises(EngineStateError, match="DAQ path not set"):
            engine_state.get_daq()

    def test_frame_is_decimated_rgb(self, loaded: EngineState):
        frame = loaded.get_frame(3)
        assert frame.dtype == np.uint8
        assert frame.size == 240 * 320 * 3

    def test_frame_out_of_range(self, loaded: EngineState):
        with pytest.raises(EngineStateError, match="out of range"):
            loaded.get_frame(1000)

    def test_video_reopened_after_drop(self, loaded: EngineState):
        loaded.try_drop_video()
        assert loaded.get_frame(0).size == 240 * 320 * 3

    def test_daq_values(self, loaded: EngineState):
        daq = loaded.get_daq()
        assert daq.shape == (20, 3)
        assert daq[2, 1] == pytest.approx(20.5)


def test_read_lvm(tmp_path):
    path = tmp_path / "run.lvm"
    path.write_text("1\t2\t3\n4\t5\t6\n")
    daq = read_daq(str(path))
    assert daq.shape == (2, 3)
    assert daq.dtype == np.float32


def test_read_daq_rejects_text(tmp_path):
    path = tmp_path / "run.csv"
    path.write_text("time,temp\n1,2\n")
    with pytest.raises(EngineStateError, match="only contain numbers"):
        read_daq(str(path))


def test_synthetic_video_needs_file(tmp_path):
    with pytest.raises(EngineStateError, match="Cannot open video file"):
        SyntheticVideo(str(tmp_path / "missing.avi"))
