# -*- coding: utf-8 -*-
"""# tlcview

A front end for aligning thermochromic liquid crystal (TLC) video with DAQ
recordings.

The computation engine owns the experiment configuration, the video and the
data. This package is the client side of it: a command channel to the engine,
an operator session that keeps one canonical configuration, a frame viewer,
a windowed view of the DAQ matrix and the frame/row synchronisation. A
reference engine with the same command semantics is included for running and
testing without the real one.

- `tlcview.server`: client-engine communication, reference engine
- `tlcview.session`: operator session logic
- `tlcview.gui`: PyQt6 front end
- `tlcview.cli`: command line entry points
"""

from ._version import __version__
