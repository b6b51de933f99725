# -*- coding: utf-8 -*-
"""
Utility functions and constants for tlcview.

- Logging configuration and management (loguru)
- Default network, timing and display constants
- Frame raster conversion for display

Examples
--------
Starting a client log on stderr:
```python
from tlcview.util import start_client_log
start_client_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")
```

See Also
--------
tlcview.util.logging : Logging configuration
tlcview.util.frames : Frame conversion
"""

from .defaults import (
    CELL_HEIGHT,
    CELL_WIDTH,
    COMPRESSION_RATIO,
    DAQ_DECIMALS,
    DEFAULT_CONFIG_PATH,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    GRID_HEIGHT,
    GRID_WIDTH,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
    TLCVIEW_DIR,
)
from .frames import clamp_frame_index, display_shape, region_error, rgb_to_rgba
from .logging import (
    clear_log,
    format_error_response,
    log_default_path_client,
    log_default_path_server,
    shutdown_client_log,
    start_client_log,
    start_server_log,
)

__all__ = [
    "CELL_HEIGHT",
    "CELL_WIDTH",
    "COMPRESSION_RATIO",
    "DAQ_DECIMALS",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_HOST_ADDR",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    "GRID_HEIGHT",
    "GRID_WIDTH",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "TLCVIEW_DIR",
    "clamp_frame_index",
    "display_shape",
    "region_error",
    "rgb_to_rgba",
    "clear_log",
    "format_error_response",
    "log_default_path_client",
    "log_default_path_server",
    "shutdown_client_log",
    "start_client_log",
    "start_server_log",
]
