"""
PyQt6 front end.

A thin layer over `tlcview.session`: the session runs on an asyncio loop in a
worker thread (`tlcview.gui.worker`) and widgets only display what its signals
carry.
"""
