"""
Operator session: the synchronisation core of the front end.

1. Configuration and errors (store.py)
    - `ConfigStore`, holder of the engine's canonical configuration
    - `ErrorSurface`, the session's single error slot
2. Frames (frames.py)
    - `FrameViewer`, last-issued-wins frame requests
3. DAQ matrix (matrix.py)
    - `DaqMatrix`, `MatrixWindow` and the cell highlight rule
4. Synchronisation (sync.py)
    - `SyncController` and `SessionState`
5. `Session` (session.py), tying the above to one engine, and display text
   helpers (labels.py)
"""

from .frames import Frame, FrameViewer
from .labels import (
    frame_range_label,
    frame_rate_text,
    parse_display_index,
    row_range_label,
    selection_text,
    start_frame_text,
    start_row_text,
)
from .matrix import (
    Cell,
    CellStyle,
    DaqMatrix,
    MatrixWindow,
    Selection,
    cell_style,
    format_value,
)
from .session import Page, Session
from .store import ConfigStore, ErrorSurface
from .sync import SessionState, SyncController

__all__ = [
    "Cell",
    "CellStyle",
    "ConfigStore",
    "DaqMatrix",
    "ErrorSurface",
    "Frame",
    "FrameViewer",
    "MatrixWindow",
    "Page",
    "Selection",
    "Session",
    "SessionState",
    "SyncController",
    "cell_style",
    "format_value",
    "frame_range_label",
    "frame_rate_text",
    "parse_display_index",
    "row_range_label",
    "selection_text",
    "start_frame_text",
    "start_row_text",
]
