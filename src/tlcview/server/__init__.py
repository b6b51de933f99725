# -*- coding: utf-8 -*-
"""
Client-engine communication module for tlcview.

The engine owns the canonical configuration, the video and the DAQ data. The
front end talks to it over a ZeroMQ DEALER/ROUTER pair: every command is one
request and one reply, several requests may be outstanding at once, and each
reply is matched to its request by id. The engine here is a reference engine
with the same command semantics as the real one.

Examples
--------
Starting an engine and connecting:
```python
from tlcview.server import ConnectionManager
manager = ConnectionManager()
manager.start_local_server()
await manager.connect()
```

Sending commands to the engine:
```python
cfg = await manager.load_default_config()
cfg = await manager.set_start_frame(50)
frame = await manager.get_frame(cfg.start_frame)
```

See Also
--------
tlcview.server.client : Client-side communication functions
tlcview.server.server : Engine implementation
tlcview.server.connection_manager : Connection management class
"""

from __future__ import annotations

from .bg_killer import kill_tlcview_servers, list_running_servers
from .client import (
    client_sync,
    close_connection,
    dispatch,
    get_daq,
    get_frame,
    kill_bg_server,
    load_config,
    load_default_config,
    open_connection,
    ping,
    save_config,
    set_daq_path,
    set_save_dir,
    set_start_frame,
    set_start_row,
    set_thermocouples,
    set_video_path,
    shutdown_engine,
    start_bg_server,
    synchronize,
    try_drop_video,
)
from .connection_manager import ConnectionManager
from .server import client_handler, open_server_connection, start_server

__all__ = [
    "ConnectionManager",
    "client_handler",
    "client_sync",
    "close_connection",
    "dispatch",
    "get_daq",
    "get_frame",
    "kill_bg_server",
    "kill_tlcview_servers",
    "list_running_servers",
    "load_config",
    "load_default_config",
    "open_connection",
    "open_server_connection",
    "ping",
    "save_config",
    "set_daq_path",
    "set_save_dir",
    "set_start_frame",
    "set_start_row",
    "set_thermocouples",
    "set_video_path",
    "shutdown_engine",
    "start_bg_server",
    "start_server",
    "synchronize",
    "try_drop_video",
]
