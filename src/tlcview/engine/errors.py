class EngineStateError(Exception):
    """A command the engine refuses. The message is sent back to the client as-is."""

    pass
