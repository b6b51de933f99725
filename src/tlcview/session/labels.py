"""Display text derived from the configuration.

Indices are 0-based everywhere in the program and 1-based on screen.
"""

from __future__ import annotations

from typing import Optional

from tlcview.types import TLCConfig


def _range_label(start: int, frame_num: int, total: int) -> str:
    if frame_num <= 0:
        return ""
    return f"[{start + 1}, {min(start + frame_num, total)}] / {total}"


def frame_range_label(config: TLCConfig) -> str:
    """Frames in scope as "[first, last] / total", empty while frame_num is 0."""
    return _range_label(config.start_frame, config.frame_num, config.total_frames)


def row_range_label(config: TLCConfig) -> str:
    return _range_label(config.start_row, config.frame_num, config.total_rows)


def start_frame_text(config: TLCConfig) -> str:
    return str(config.start_frame + 1) if config.frame_num > 0 else ""


def start_row_text(config: TLCConfig) -> str:
    return str(config.start_row + 1) if config.frame_num > 0 else ""


def frame_rate_text(config: TLCConfig) -> str:
    return str(config.frame_rate) if config.frame_rate > 0 else ""


def selection_text(index: int) -> str:
    """1-based selected row/column, "0" when nothing is selected."""
    return str(index + 1) if index >= 0 else "0"


def parse_display_index(text: str) -> Optional[int]:
    """1-based text from an input box to a 0-based index. None if not a number."""
    try:
        return int(text.strip()) - 1
    except ValueError:
        return None
