"""
Reference engine state.

The real computation engine is an external program. This package holds a
stand-in with the same command semantics, so the front end can be run and tested
without it: configuration rules (start offsets, synchronisation, derived paths),
a synthetic video source and a DAQ file reader.
"""

from .errors import EngineStateError
from .sources import SyntheticVideo, read_daq
from .state import EngineState

__all__ = ["EngineState", "EngineStateError", "SyntheticVideo", "read_daq"]
