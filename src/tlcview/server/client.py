# -*- coding: utf-8 -*-
"""
Client implementation of the client-engine interface.

The client uses a decorator-based framework to maintain correspondence with engine handlers:

1. Each client function is decorated with @command to specify which handler it calls
2. Client functions use `dispatch` to communicate with the engine
3. The protocol registry maintains the mapping between clients and handlers
4. Tests validate that the correspondence is maintained

Every request is a single round trip. Requests are never retried: the caller
decides whether to issue a command again. Several requests may be outstanding on
one connection at a time, and replies may come back in any order; each reply is
matched to its request by `req_id`.

The protocol correspondence can be validated using:
assert_valid_handler_client_correspondence()

See types/messages.py for the protocol definitions and server.py for the engine side.
"""

# ============================================================================

from __future__ import annotations

import asyncio
import os
import subprocess
import sys
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union, cast

import numpy as np
import zmq
import zmq.asyncio
from loguru import logger

import tlcview
import tlcview.util
from tlcview.types import (
    CONSTS,
    PENDING_COMMAND_VALIDATIONS,
    ArrayResponse,
    ClientConnection,
    CommsError,
    ConfigResponse,
    DaqResponse,
    EngineError,
    ErrorResponse,
    MsgResponse,
    Request,
    Response,
    Thermocouple,
    TLCConfig,
    ValueResponse,
)
from tlcview.util import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
)

# ====================================================================================
# ----------------------------------
# Background engine process
# ----------------------------------
# ====================================================================================


def start_bg_server(
    host: str = DEFAULT_HOST_ADDR,
    msg_port: int = DEFAULT_PORT,
    log_path: Optional[str] = None,  # if "" or None defaults to log_default_path_server
    clear_prev_log: bool = True,
    log_to_file: bool = True,
    log_to_stdout: bool = False,
    log_level: str = DEFAULT_LOGLEVEL,
) -> subprocess.Popen:
    """Start the reference engine in a background process.

    Parameters
    ----------
    host : str, optional
        Host address to bind to, by default DEFAULT_HOST_ADDR
    msg_port : int, optional
        Port for the message socket, by default DEFAULT_PORT
    log_path : str | None, optional
        Path to log file (None/empty for default), by default None
    clear_prev_log : bool, optional
        Whether to clear previous log, by default True
    log_to_file : bool, optional
        Whether to log to file, by default True
    log_to_stdout : bool, optional
        Whether to log to stdout, by default False
    log_level : str, optional
        Logging level, by default DEFAULT_LOGLEVEL

    Returns
    -------
    subprocess.Popen
        The engine process handle
    """
    if log_path is None or log_path == "":
        log_path = tlcview.util.log_default_path_server()

    this_dir = os.path.dirname(os.path.realpath(__file__))
    proc = subprocess.Popen(
        [
            sys.executable,
            this_dir + "/server_script.py",
            host,
            str(msg_port),
            log_path,
            str(clear_prev_log),
            str(log_to_file),
            str(log_to_stdout),
            str(log_level),
        ],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return proc


# ============================================================================


def kill_bg_server(proc: subprocess.Popen):
    """Kill a background engine process, logging whatever it printed."""
    logger.info("Killing engine process.")
    pid = proc.pid
    proc.kill()
    outs, errs = proc.communicate()
    outs = outs.decode("utf-8")
    errs = errs.decode("utf-8")
    if outs:
        logger.info("#======= Engine killed, outs: =======#")
        logger.info(outs)
    if errs:
        logger.error("#======= Engine killed, errs: =======#")
        logger.error(errs)
        logger.error("PID = {}", pid)


# ====================================================================================
# ----------------------------------
# Connection
# ----------------------------------
# ====================================================================================


async def _receive_loop(client_connection: ClientConnection) -> None:
    """Resolve pending requests as their replies arrive, in whatever order."""
    while True:
        try:
            frames = await client_connection.msg_socket.recv_multipart()
        except zmq.ZMQError as e:
            logger.warning("Receive loop stopped: {}", e)
            _fail_pending(client_connection, f"Connection lost: {e}")
            return
        try:
            resp = Response.from_msgpack(frames[-1])
        except Exception:
            logger.exception("Response unpacking error:")
            continue
        fut = client_connection.pending.pop(resp.req_id, None)
        if fut is None or fut.done():
            logger.warning(
                "Dropping response to request {} that is no longer awaited.",
                resp.req_id,
            )
            continue
        fut.set_result(resp)


def _fail_pending(client_connection: ClientConnection, reason: str) -> None:
    for fut in client_connection.pending.values():
        if not fut.done():
            fut.set_exception(CommsError(reason))
    client_connection.pending.clear()


# ============================================================================


async def open_connection(
    host: str = DEFAULT_HOST_ADDR,
    msg_port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> tuple[ClientConnection, str]:
    """Connect to an engine, confirm it answers and read its version.

    Must be called from within a running event loop; the connection's receive
    task lives on that loop.

    Parameters
    ----------
    host : str, optional
        The host address to connect to, by default DEFAULT_HOST_ADDR
    msg_port : int, optional
        Port number for the message socket, by default DEFAULT_PORT
    timeout : float, optional
        Seconds to wait for the engine to answer, by default DEFAULT_TIMEOUT

    Returns
    -------
    tuple[ClientConnection, str]
        The connection and the engine's version string

    Raises
    ------
    CommsError
        If the engine does not answer
    """
    logger.info("Attempting connection to engine on {}:{}.", host, msg_port)
    try:
        context = zmq.asyncio.Context()
        msg_socket = context.socket(zmq.DEALER)
        msg_socket.setsockopt(zmq.LINGER, 0)
        msg_socket.connect(f"tcp://{host}:{msg_port}")
    except zmq.ZMQError as e:
        logger.exception("Error during connection.")
        raise CommsError(f"Error during connection: {e}")
    client_connection = ClientConnection(context, msg_socket, host, msg_port)
    client_connection.recv_task = asyncio.create_task(
        _receive_loop(client_connection)
    )

    try:
        await dispatch(client_connection, CONSTS.COMMS.PING, timeout=timeout)
    except CommsError:
        logger.error("Bad connection - no response from engine.")
        close_connection(client_connection)
        raise CommsError("Bad connection - no response from engine.")
    logger.info("Connection confirmed, syncing with engine.")

    version = await client_sync(client_connection)
    if version != tlcview.__version__:
        logger.critical(
            "Client-engine version mismatch: {} vs {}",
            tlcview.__version__,
            version,
        )
    logger.info("Connection established on {}", host)
    return client_connection, version


# ============================================================================


def close_connection(client_connection: ClientConnection):
    """Close the connection, failing any request still waiting for a reply."""
    logger.info("Closing connection.")
    if client_connection.recv_task is not None:
        client_connection.recv_task.cancel()
        client_connection.recv_task = None
    _fail_pending(client_connection, "Connection closed.")
    try:
        client_connection.msg_socket.close(linger=0)
    except zmq.ZMQError as e:
        logger.debug(f"Error closing socket: {e}")
    try:
        client_connection.context.term()
    except zmq.ZMQError as e:
        logger.debug(f"Error terminating ZMQ context: {e}")


# ====================================================================================


T = TypeVar("T", bound=Response)


async def dispatch(
    client_connection: ClientConnection,
    command: str,
    timeout: float = DEFAULT_TIMEOUT,
    **params: Any,
) -> T:
    """Send one command to the engine and wait for its reply.

    Parameters
    ----------
    client_connection : ClientConnection
        The connection object to the engine
    command : str
        Command name, one of `CONSTS`
    timeout : float, optional
        Seconds to wait for the reply, by default DEFAULT_TIMEOUT
    **params
        Command body

    Returns
    -------
    T
        The engine's response

    Raises
    ------
    EngineError
        If the engine rejects the command (message passed through verbatim)
    CommsError
        If no reply arrives in time or the connection is lost
    """
    loop = asyncio.get_running_loop()
    request = Request(command, params, next(client_connection.req_ids))
    fut = loop.create_future()
    client_connection.pending[request.req_id] = fut

    logger.debug("*REQUEST* (client->): {}", request)
    try:
        await client_connection.msg_socket.send_multipart([b"", request.to_msgpack()])
        resp = await asyncio.wait_for(fut, timeout)
    except asyncio.TimeoutError:
        logger.error("No response from engine to {}.", command)
        raise CommsError(f"No response from engine to {command}.")
    except zmq.ZMQError as e:
        logger.error("ZMQ error during {}: {}", command, e)
        raise CommsError(f"Error sending {command}: {e}")
    finally:
        client_connection.pending.pop(request.req_id, None)

    logger.debug("*RESPONSE* (client<-): {}", resp)
    if isinstance(resp, ErrorResponse):
        logger.error("Error during {}: '{}'", command, resp.value)
        raise EngineError(resp.value)
    return cast(T, resp)


# ====================================================================================


def command(
    command_str: str, response_type: Type[T] | type[Union[Any, ...]] = "Response"
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """Decorator that marks a client function and records its handler mapping.

    Args:
        command_str: The command string that identifies this client function
        response_type: The expected response type from the engine or Union of types

    Returns:
        Decorated client function
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        PENDING_COMMAND_VALIDATIONS.append((command_str, func.__name__))

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **kwargs)

        wrapper._command = command_str
        wrapper._response_type = response_type
        wrapper._is_client_method = True
        return wrapper

    return decorator


# ====================================================================================
# -----------------
# INTERFACE FUNCTIONS
# -----------------
# ====================================================================================

# each of these has a corresponding handler in server.py.

# -------------------------------------------------------------------------------------
# General engine comms
# -------------------------------------------------------------------------------------


@command(CONSTS.COMMS.PING, response_type=MsgResponse | ErrorResponse)
async def ping(client_connection: ClientConnection) -> str:
    """Send ping request to the engine. Returns "pong"."""
    calls: tlcview.server.server.handle_ping
    resp = await dispatch(client_connection, CONSTS.COMMS.PING)
    return resp.value


@command(CONSTS.COMMS.CLIENT_SYNC, response_type=ValueResponse | ErrorResponse)
async def client_sync(client_connection: ClientConnection) -> str:
    """Get the engine's version string."""
    calls: tlcview.server.server.handle_client_sync
    resp = await dispatch(client_connection, CONSTS.COMMS.CLIENT_SYNC)
    return resp.value


@command(CONSTS.COMMS.SHUTDOWN, response_type=MsgResponse | ErrorResponse)
async def shutdown_engine(client_connection: ClientConnection) -> None:
    """Ask the engine to shut down."""
    calls: tlcview.server.server.handle_shutdown
    await dispatch(client_connection, CONSTS.COMMS.SHUTDOWN)
    logger.info("Engine shutdown initiated successfully")


# -------------------------------------------------------------------------------------
# Configuration
# -------------------------------------------------------------------------------------


@command(CONSTS.TLC.LOAD_DEFAULT_CONFIG, response_type=ConfigResponse | ErrorResponse)
async def load_default_config(client_connection: ClientConnection) -> TLCConfig:
    """Reset to the engine's default configuration (the last one saved)."""
    calls: tlcview.server.server.handle_load_default_config
    resp = await dispatch(client_connection, CONSTS.TLC.LOAD_DEFAULT_CONFIG)
    return resp.value


@command(CONSTS.TLC.LOAD_CONFIG, response_type=ConfigResponse | ErrorResponse)
async def load_config(client_connection: ClientConnection, path: str) -> TLCConfig:
    """Load a configuration file chosen by the operator."""
    calls: tlcview.server.server.handle_load_config
    resp = await dispatch(client_connection, CONSTS.TLC.LOAD_CONFIG, path=path)
    return resp.value


@command(CONSTS.TLC.SAVE_CONFIG, response_type=MsgResponse | ErrorResponse)
async def save_config(client_connection: ClientConnection) -> str:
    """Save the current configuration under its save directory."""
    calls: tlcview.server.server.handle_save_config
    resp = await dispatch(client_connection, CONSTS.TLC.SAVE_CONFIG)
    return resp.value


@command(CONSTS.TLC.SET_SAVE_DIR, response_type=ConfigResponse | ErrorResponse)
async def set_save_dir(client_connection: ClientConnection, path: str) -> TLCConfig:
    calls: tlcview.server.server.handle_set_save_dir
    resp = await dispatch(client_connection, CONSTS.TLC.SET_SAVE_DIR, path=path)
    return resp.value


@command(CONSTS.TLC.SET_VIDEO_PATH, response_type=ConfigResponse | ErrorResponse)
async def set_video_path(client_connection: ClientConnection, path: str) -> TLCConfig:
    calls: tlcview.server.server.handle_set_video_path
    resp = await dispatch(client_connection, CONSTS.TLC.SET_VIDEO_PATH, path=path)
    return resp.value


@command(CONSTS.TLC.SET_DAQ_PATH, response_type=ConfigResponse | ErrorResponse)
async def set_daq_path(client_connection: ClientConnection, path: str) -> TLCConfig:
    calls: tlcview.server.server.handle_set_daq_path
    resp = await dispatch(client_connection, CONSTS.TLC.SET_DAQ_PATH, path=path)
    return resp.value


@command(CONSTS.TLC.SET_START_FRAME, response_type=ConfigResponse | ErrorResponse)
async def set_start_frame(
    client_connection: ClientConnection, start_frame: int
) -> TLCConfig:
    calls: tlcview.server.server.handle_set_start_frame
    resp = await dispatch(
        client_connection, CONSTS.TLC.SET_START_FRAME, start_frame=start_frame
    )
    return resp.value


@command(CONSTS.TLC.SET_START_ROW, response_type=ConfigResponse | ErrorResponse)
async def set_start_row(client_connection: ClientConnection, start_row: int) -> TLCConfig:
    calls: tlcview.server.server.handle_set_start_row
    resp = await dispatch(
        client_connection, CONSTS.TLC.SET_START_ROW, start_row=start_row
    )
    return resp.value


@command(CONSTS.TLC.SYNCHRONIZE, response_type=ConfigResponse | ErrorResponse)
async def synchronize(
    client_connection: ClientConnection, frame_index: int, row_index: int
) -> TLCConfig:
    """Declare that video frame `frame_index` and DAQ row `row_index` are the same instant."""
    calls: tlcview.server.server.handle_synchronize
    resp = await dispatch(
        client_connection,
        CONSTS.TLC.SYNCHRONIZE,
        frame_index=frame_index,
        row_index=row_index,
    )
    return resp.value


@command(CONSTS.TLC.SET_THERMOCOUPLES, response_type=ConfigResponse | ErrorResponse)
async def set_thermocouples(
    client_connection: ClientConnection, thermocouples: list[Thermocouple]
) -> TLCConfig:
    calls: tlcview.server.server.handle_set_thermocouples
    resp = await dispatch(
        client_connection,
        CONSTS.TLC.SET_THERMOCOUPLES,
        thermocouples=[tc.to_dict() for tc in thermocouples],
    )
    return resp.value


@command(CONSTS.TLC.SET_REGULATOR, response_type=ConfigResponse | ErrorResponse)
async def set_regulator(
    client_connection: ClientConnection, regulator: list[float]
) -> TLCConfig:
    """Set the per-thermocouple temperature scale factors, one per thermocouple."""
    calls: tlcview.server.server.handle_set_regulator
    resp = await dispatch(
        client_connection, CONSTS.TLC.SET_REGULATOR, regulator=list(regulator)
    )
    return resp.value


@command(CONSTS.TLC.SET_REGION, response_type=ConfigResponse | ErrorResponse)
async def set_region(
    client_connection: ClientConnection,
    top_left_pos: tuple[int, int],
    region_shape: tuple[int, int],
) -> TLCConfig:
    """Set the calculation region: (y, x) of its top left corner and its
    (height, width), in pixels of the full-size video."""
    calls: tlcview.server.server.handle_set_region
    resp = await dispatch(
        client_connection,
        CONSTS.TLC.SET_REGION,
        top_left_pos=list(top_left_pos),
        region_shape=list(region_shape),
    )
    return resp.value


# -------------------------------------------------------------------------------------
# Data
# -------------------------------------------------------------------------------------


@command(CONSTS.TLC.GET_FRAME, response_type=ArrayResponse | ErrorResponse)
async def get_frame(client_connection: ClientConnection, frame_index: int) -> np.ndarray:
    """Get frame `frame_index` as a flat, interleaved RGB uint8 buffer.

    The frame is decimated by the engine (see `tlcview.util.display_shape`).
    """
    calls: tlcview.server.server.handle_get_frame
    resp = await dispatch(
        client_connection, CONSTS.TLC.GET_FRAME, frame_index=frame_index
    )
    return resp.value


@command(CONSTS.TLC.GET_DAQ, response_type=DaqResponse | ErrorResponse)
async def get_daq(
    client_connection: ClientConnection,
) -> tuple[tuple[int, int], np.ndarray]:
    """Get the DAQ matrix as ((rows, cols), flat row-major buffer)."""
    calls: tlcview.server.server.handle_get_daq
    resp = await dispatch(client_connection, CONSTS.TLC.GET_DAQ)
    return tuple(resp.dim), resp.value


@command(CONSTS.TLC.TRY_DROP_VIDEO, response_type=MsgResponse | ErrorResponse)
async def try_drop_video(client_connection: ClientConnection) -> None:
    """Tell the engine the decoded video is not needed for now."""
    calls: tlcview.server.server.handle_try_drop_video
    await dispatch(client_connection, CONSTS.TLC.TRY_DROP_VIDEO)
