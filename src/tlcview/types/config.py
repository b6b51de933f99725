"""Configuration types for an experiment case."""

from dataclasses import dataclass, field
from typing import Optional

from mashumaro import DataClassDictMixin


@dataclass(kw_only=True)
class Thermocouple(DataClassDictMixin):
    """A single thermocouple: the DAQ column it is recorded in and its (y, x)
    position on the video frame."""

    column_num: int
    pos: tuple[int, int]


@dataclass(kw_only=True)
class TLCConfig(DataClassDictMixin):
    """Canonical configuration of one experiment case.

    Owned by the engine. The front end never builds one of these itself, it only
    receives them in `ConfigResponse`s and displays them.

    Empty strings mean "unset" for the path fields, `0` means "unknown" for the
    totals and the frame rate, and `None` means "no region chosen" for
    `top_left_pos` / `region_shape`.
    """

    case_name: str = ""

    save_dir: str = ""
    video_path: str = ""
    daq_path: str = ""
    # derived by the engine from save_dir + case_name
    config_path: str = ""
    data_path: str = ""
    plots_path: str = ""

    start_frame: int = 0
    total_frames: int = 0
    frame_rate: int = 0
    start_row: int = 0
    total_rows: int = 0
    frame_num: int = 0
    video_shape: Optional[tuple[int, int]] = None  # (height, width)

    top_left_pos: Optional[tuple[int, int]] = None  # (y, x)
    region_shape: Optional[tuple[int, int]] = None  # (height, width)

    thermocouples: list[Thermocouple] = field(default_factory=list)
    regulator: list[float] = field(default_factory=list)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(case_name={self.case_name!r}, "
            f"start_frame={self.start_frame}, start_row={self.start_row}, "
            f"frame_num={self.frame_num}, total_frames={self.total_frames}, "
            f"total_rows={self.total_rows})"
        )
