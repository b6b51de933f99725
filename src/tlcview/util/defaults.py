# -*- coding: utf-8 -*-

import pathlib

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_PORT = 8870
DEFAULT_TIMEOUT = 5  # seconds
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line for err comms

TLCVIEW_DIR = pathlib.Path.home() / ".tlcview"
DEFAULT_CONFIG_PATH = str(TLCVIEW_DIR / "default_config.json")

# engine sends frames at 1/COMPRESSION_RATIO of the source width and height
COMPRESSION_RATIO = 2

# DAQ grid geometry (pixels)
CELL_WIDTH = 100
CELL_HEIGHT = 30
GRID_WIDTH = 900
GRID_HEIGHT = 300
DAQ_DECIMALS = 2
