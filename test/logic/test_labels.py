import pytest

from tlcview.session import (
    frame_range_label,
    frame_rate_text,
    parse_display_index,
    row_range_label,
    selection_text,
    start_frame_text,
    start_row_text,
)
from tlcview.types import TLCConfig


def test_range_labels_are_one_based():
    cfg = TLCConfig(
        start_frame=50, frame_num=100, total_frames=500, start_row=3, total_rows=120
    )
    assert frame_range_label(cfg) == "[51, 150] / 500"
    assert row_range_label(cfg) == "[4, 103] / 120"
    assert start_frame_text(cfg) == "51"
    assert start_row_text(cfg) == "4"


def test_range_end_is_capped_at_total():
    cfg = TLCConfig(start_frame=450, frame_num=100, total_frames=500)
    assert frame_range_label(cfg) == "[451, 500] / 500"


def test_nothing_in_scope():
    cfg = TLCConfig(total_frames=500)
    assert frame_range_label(cfg) == ""
    assert row_range_label(cfg) == ""
    assert start_frame_text(cfg) == ""
    assert start_row_text(cfg) == ""


def test_frame_rate_text():
    assert frame_rate_text(TLCConfig(frame_rate=25)) == "25"
    assert frame_rate_text(TLCConfig()) == ""


def test_selection_text():
    assert selection_text(-1) == "0"
    assert selection_text(0) == "1"
    assert selection_text(41) == "42"


@pytest.mark.parametrize(
    "text, expected",
    [("51", 50), (" 1 ", 0), ("0", -1), ("", None), ("abc", None), ("1.5", None)],
)
def test_parse_display_index(text, expected):
    assert parse_display_index(text) == expected
