"""
Connection manager for the client-side engine connection.

This class encapsulates all connection handling and engine communication,
providing a clean interface for the rest of the application to use.
"""

from __future__ import annotations

import asyncio
import subprocess
from typing import Any, Optional

from loguru import logger

import tlcview.server.client as client
from tlcview.types import ClientConnection, EngineError
from tlcview.util import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
)


class ConnectionManager:
    """
    Manages the client-side connection to the engine.

    This class handles connection lifecycle and state management, while delegating
    protocol operations to the client module functions. It provides a clean OO
    interface by automatically wrapping client functions as methods.

    All protocol methods are coroutines and must be awaited on the loop the
    connection was opened on.
    """

    def __init__(self):
        self._connection: Optional[ClientConnection] = None
        self._engine_version: Optional[str] = None
        self._server_proc: Optional[subprocess.Popen] = None

    @property
    def connection(self) -> Optional[ClientConnection]:
        """Get the current connection."""
        return self._connection

    @property
    def engine_version(self) -> Optional[str]:
        """Version reported by the engine on connection."""
        return self._engine_version

    def is_connected(self) -> bool:
        """Check if currently connected to the engine."""
        return self._connection is not None

    def start_local_server(
        self,
        host: str = DEFAULT_HOST_ADDR,
        msg_port: int = DEFAULT_PORT,
        log_path: Optional[str] = None,
        clear_prev_log: bool = True,
        log_to_file: bool = True,
        log_to_stdout: bool = False,
        log_level: str = DEFAULT_LOGLEVEL,
    ) -> None:
        """Start a reference engine process on this machine."""
        if self._server_proc:
            logger.warning("Engine already running, killing it first")
            client.kill_bg_server(self._server_proc)
            self._server_proc = None

        self._server_proc = client.start_bg_server(
            host,
            msg_port,
            log_path,
            clear_prev_log,
            log_to_file,
            log_to_stdout,
            log_level,
        )
        logger.info("Engine process started: {}", self._server_proc)

    async def stop_server(self) -> None:
        """Ask the engine to shut down, then drop the connection.

        A local engine process that does not exit in time is killed.
        """
        if self._connection:
            try:
                await client.shutdown_engine(self._connection)
                logger.info("Engine shutdown completed")
            except EngineError as e:
                logger.warning("Error during engine shutdown: {}", e)
        else:
            logger.warning("No connection, can't ask the engine to shut down.")
        self.disconnect()

        if self._server_proc:
            try:
                await asyncio.to_thread(self._server_proc.wait, DEFAULT_TIMEOUT)
            except subprocess.TimeoutExpired:
                client.kill_bg_server(self._server_proc)
            self._server_proc = None

    async def connect(
        self,
        host: str = DEFAULT_HOST_ADDR,
        msg_port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Connect to a running engine."""
        if self._connection:
            logger.warning("Already connected, disconnecting first")
            self.disconnect()

        try:
            self._connection, self._engine_version = await client.open_connection(
                host, msg_port, timeout
            )
        except Exception:
            # ensure these aren't set if connection fails
            self._connection = None
            self._engine_version = None
            raise
        logger.info("Connected to engine version {}", self._engine_version)

    def disconnect(self) -> None:
        """Disconnect from the engine."""
        if self._connection:
            client.close_connection(self._connection)
            self._connection = None
            self._engine_version = None

    # ========================================================================
    # Access client.py functions 'through' the connection manager with an
    # automatic check that the connection is open.
    # ========================================================================

    def __getattr__(self, name: str) -> Any:
        """
        Delegate unknown attributes to client protocol functions.

        Examples:
            manager = ConnectionManager()
            await manager.connect()

            await manager.ping()  # Calls client.ping(connection)
            cfg = await manager.set_start_frame(50)
            frame = await manager.get_frame(cfg.start_frame)

        Raises:
            RuntimeError: If not connected to the engine
            AttributeError: If no matching client function exists
        """
        func = getattr(client, name, None)
        if func is not None and getattr(func, "_is_client_method", False):

            async def wrapper(*args, **kwargs):
                if not self._connection:
                    raise RuntimeError("Not connected to engine")
                return await func(self._connection, *args, **kwargs)

            return wrapper
        raise AttributeError(f"'{self.__class__.__name__}' has no attribute '{name}'")
