# -*- coding: utf-8 -*-
"""
Engine implementation of the client-engine interface.

This is the reference engine: it owns the canonical `TLCConfig` (through
`tlcview.engine.EngineState`) and answers each command of `tlcview.server.client`.

The engine uses a decorator-based framework to maintain correspondence with client functions:

1. Each handler is decorated with @handler to specify which client functions it handles
2. The handler decorator adds the mapping to the central protocol registry
3. Handlers receive the server connection, the requester identity, the engine
   state and the client request
4. Handlers use the _send_response helper to reply; the reply carries the
   request's `req_id`
5. The request_router maps incoming requests to the appropriate handler

Commands the engine refuses are answered with an `ErrorResponse` whose value is
the refusal message, unchanged.

The protocol correspondence can be validated using:
assert_valid_handler_client_correspondence()

See types/messages.py for the protocol definitions and client.py for the client side.
"""

# ============================================================================

import asyncio
import os
from datetime import datetime
from functools import wraps
from typing import Awaitable, Callable, Optional

import zmq
import zmq.asyncio
from loguru import logger
from setproctitle import setproctitle

# ============================================================================
import tlcview
import tlcview.util
from tlcview.engine import EngineState, EngineStateError
from tlcview.server.bg_killer import kill_tlcview_servers, register_server
from tlcview.types import (
    CONSTS,
    HANDLER_REGISTRY,
    ArrayResponse,
    ConfigResponse,
    DaqResponse,
    ErrorResponse,
    HandlerInfo,
    MsgResponse,
    Request,
    Response,
    ServerConnection,
    Thermocouple,
    ValueResponse,
)
from tlcview.util import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    format_error_response,
)

Handler = Callable[[ServerConnection, bytes, EngineState, Request], Awaitable[None]]

# ============================================================================


async def _send_response(
    server_connection: ServerConnection,
    req_identity: bytes,
    request: Optional[Request],
    response: Response,
):
    if request is not None:
        response.req_id = request.req_id
    logger.debug("*RESPONSE* (server->): {}", response)
    await server_connection.msg_socket.send_multipart(
        [req_identity, b"", response.to_msgpack()]
    )


# ============================================================================


async def client_handler(server_connection: ServerConnection, state: EngineState):
    """Serve requests one at a time until a shutdown is requested."""
    while not server_connection.shutdown_requested:
        frames = await server_connection.msg_socket.recv_multipart()
        req_identity, req = frames[0], frames[-1]
        try:
            request = Request.from_msgpack(req)
        except Exception:
            logger.exception("Request unpacking error:")
            await _send_response(
                server_connection,
                req_identity,
                None,
                ErrorResponse(value=format_error_response()),
            )
            continue

        try:
            await request_router(server_connection, req_identity, state, request)
        except Exception:
            logger.exception("Uncaught error in request_router.")
            await _send_response(
                server_connection,
                req_identity,
                request,
                ErrorResponse(value=format_error_response()),
            )

    logger.info("Client handler exiting due to shutdown request")


# ============================================================================


def open_server_connection(
    context: zmq.asyncio.Context,
    host: str = DEFAULT_HOST_ADDR,
    msg_port: int = DEFAULT_PORT,
) -> ServerConnection:
    """Bind the engine's ROUTER socket. `msg_port=0` binds to a free port."""
    msg_socket = context.socket(zmq.ROUTER)
    if msg_port == 0:
        msg_port = msg_socket.bind_to_random_port(f"tcp://{host}")
    else:
        msg_socket.bind(f"tcp://{host}:{msg_port}")  # bind on engine side
    return ServerConnection(msg_socket=msg_socket, host=host, msg_port=msg_port)


async def start_server(
    host: str = DEFAULT_HOST_ADDR,
    msg_port: int = DEFAULT_PORT,
    log_to_file: bool = True,
    log_to_stdout: bool = False,
    log_path: str = "",
    clear_prev_log: bool = True,
    log_level: str = DEFAULT_LOGLEVEL,
    default_config_path: str = DEFAULT_CONFIG_PATH,
):
    kill_tlcview_servers()  # only one engine per machine at a time

    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")
    setproctitle(f"tlcview-engine_{timestamp}")

    pid_file = register_server(host, msg_port, os.getpid())

    tlcview.util.start_server_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        clear_prev=clear_prev_log,
        log_level=log_level,
    )

    logger.info("Starting msg server on {}:{}", host, msg_port)
    state = EngineState(default_config_path=default_config_path)

    context = zmq.asyncio.Context()
    try:
        server_connection = open_server_connection(context, host, msg_port)
    except zmq.ZMQError:
        logger.exception("Error opening engine-side connection.")
        context.term()
        pid_file.unlink(missing_ok=True)
        raise
    try:
        await client_handler(server_connection, state)
    finally:
        # linger so the shutdown reply still goes out
        server_connection.msg_socket.close(linger=1000)
        context.term()
        pid_file.unlink(missing_ok=True)
        logger.info("Closing down engine logger.")
        logger.remove()


# ============================================================================


def get_router_map() -> dict[str, Handler]:
    return {
        CONSTS.COMMS.PING: handle_ping,
        CONSTS.COMMS.CLIENT_SYNC: handle_client_sync,
        CONSTS.COMMS.SHUTDOWN: handle_shutdown,
        # CONFIG
        CONSTS.TLC.LOAD_DEFAULT_CONFIG: handle_load_default_config,
        CONSTS.TLC.LOAD_CONFIG: handle_load_config,
        CONSTS.TLC.SAVE_CONFIG: handle_save_config,
        CONSTS.TLC.SET_SAVE_DIR: handle_set_save_dir,
        CONSTS.TLC.SET_VIDEO_PATH: handle_set_video_path,
        CONSTS.TLC.SET_DAQ_PATH: handle_set_daq_path,
        CONSTS.TLC.SET_START_FRAME: handle_set_start_frame,
        CONSTS.TLC.SET_START_ROW: handle_set_start_row,
        CONSTS.TLC.SYNCHRONIZE: handle_synchronize,
        CONSTS.TLC.SET_THERMOCOUPLES: handle_set_thermocouples,
        CONSTS.TLC.SET_REGULATOR: handle_set_regulator,
        CONSTS.TLC.SET_REGION: handle_set_region,
        # DATA
        CONSTS.TLC.GET_FRAME: handle_get_frame,
        CONSTS.TLC.GET_DAQ: handle_get_daq,
        CONSTS.TLC.TRY_DROP_VIDEO: handle_try_drop_video,
    }


# this function is essentially the 'engine'
async def request_router(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    logger.debug("*REQUEST* (server<-): {}", request)
    try:
        handler_func = get_router_map()[request.command]
    except KeyError:
        logger.error("Unknown request: {}", request.command)
        await _send_response(
            server_connection,
            req_identity,
            request,
            ErrorResponse(value=f"Unknown request: {request.command}"),
        )
        return
    await handler_func(server_connection, req_identity, state, request)


# ============================================================================
# ============== Handlers
# ============================================================================


def handler(command: str, *client_methods: str) -> Callable[[Handler], Handler]:
    """Decorator that registers an engine handler and its client functions.

    Refusals (`EngineStateError`) are answered with their message. Missing
    parameters and other failures are answered with the formatted traceback.

    Args:
        command: The command string that identifies this handler
        *client_methods: Names of client functions that use this handler

    Returns:
        Decorated handler function

    Example:
        @handler(CONSTS.TLC.SET_START_FRAME, "set_start_frame")
        async def handle_set_start_frame(...):
            ...
    """

    def decorator(func: Handler) -> Handler:
        HANDLER_REGISTRY[command] = HandlerInfo(
            handler_func=func,
            client_methods=list(client_methods),
            command=command,
        )

        @wraps(func)
        async def wrapper(
            server_connection: ServerConnection,
            req_identity: bytes,
            state: EngineState,
            request: Request,
        ) -> None:
            try:
                await func(server_connection, req_identity, state, request)
            except EngineStateError as e:
                logger.warning("Refused {}: {}", command, e)
                await _send_response(
                    server_connection, req_identity, request, ErrorResponse(value=str(e))
                )
            except KeyError as e:
                logger.error("Missing parameter {} for {}", e, command)
                await _send_response(
                    server_connection,
                    req_identity,
                    request,
                    ErrorResponse(value=f"Missing parameter {e} for {command}"),
                )
            except Exception:
                logger.exception("Error handling {}.", command)
                await _send_response(
                    server_connection,
                    req_identity,
                    request,
                    ErrorResponse(value=format_error_response()),
                )

        return wrapper

    return decorator


async def _send_config(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    await _send_response(
        server_connection, req_identity, request, ConfigResponse(value=state.config)
    )


# ============================================================================


@handler(CONSTS.COMMS.PING, "ping")
async def handle_ping(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    """Handle ping request from client."""
    handles: tlcview.server.client.ping
    await _send_response(
        server_connection, req_identity, request, MsgResponse(value=CONSTS.COMMS.PONG)
    )


@handler(CONSTS.COMMS.CLIENT_SYNC, "client_sync")
async def handle_client_sync(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.client_sync
    await _send_response(
        server_connection,
        req_identity,
        request,
        ValueResponse(value=tlcview.__version__),
    )


@handler(CONSTS.COMMS.SHUTDOWN, "shutdown_engine")
async def handle_shutdown(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.shutdown_engine
    logger.info("Shutting down engine.")
    state.try_drop_video()
    server_connection.shutdown_requested = True
    await _send_response(
        server_connection, req_identity, request, MsgResponse(value="Shutting down")
    )


# ============================================================================


@handler(CONSTS.TLC.LOAD_DEFAULT_CONFIG, "load_default_config")
async def handle_load_default_config(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.load_default_config
    state.load_default_config()
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.LOAD_CONFIG, "load_config")
async def handle_load_config(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.load_config
    state.load_config(request.params["path"])
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SAVE_CONFIG, "save_config")
async def handle_save_config(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.save_config
    msg = state.save_config()
    await _send_response(server_connection, req_identity, request, MsgResponse(value=msg))


@handler(CONSTS.TLC.SET_SAVE_DIR, "set_save_dir")
async def handle_set_save_dir(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_save_dir
    state.set_save_dir(request.params["path"])
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_VIDEO_PATH, "set_video_path")
async def handle_set_video_path(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_video_path
    state.set_video_path(request.params["path"])
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_DAQ_PATH, "set_daq_path")
async def handle_set_daq_path(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_daq_path
    state.set_daq_path(request.params["path"])
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_START_FRAME, "set_start_frame")
async def handle_set_start_frame(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_start_frame
    state.set_start_frame(int(request.params["start_frame"]))
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_START_ROW, "set_start_row")
async def handle_set_start_row(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_start_row
    state.set_start_row(int(request.params["start_row"]))
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SYNCHRONIZE, "synchronize")
async def handle_synchronize(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.synchronize
    state.synchronize(
        int(request.params["frame_index"]), int(request.params["row_index"])
    )
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_THERMOCOUPLES, "set_thermocouples")
async def handle_set_thermocouples(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_thermocouples
    thermocouples = [
        Thermocouple.from_dict(tc) for tc in request.params["thermocouples"]
    ]
    state.set_thermocouples(thermocouples)
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_REGULATOR, "set_regulator")
async def handle_set_regulator(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_regulator
    state.set_regulator([float(v) for v in request.params["regulator"]])
    await _send_config(server_connection, req_identity, state, request)


@handler(CONSTS.TLC.SET_REGION, "set_region")
async def handle_set_region(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.set_region
    y, x = request.params["top_left_pos"]
    height, width = request.params["region_shape"]
    state.set_region((int(y), int(x)), (int(height), int(width)))
    await _send_config(server_connection, req_identity, state, request)


# ============================================================================


@handler(CONSTS.TLC.GET_FRAME, "get_frame")
async def handle_get_frame(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.get_frame
    frame = state.get_frame(int(request.params["frame_index"]))
    await _send_response(
        server_connection, req_identity, request, ArrayResponse(value=frame)
    )


@handler(CONSTS.TLC.GET_DAQ, "get_daq")
async def handle_get_daq(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.get_daq
    daq = state.get_daq()
    await _send_response(
        server_connection,
        req_identity,
        request,
        DaqResponse(dim=(int(daq.shape[0]), int(daq.shape[1])), value=daq.ravel()),
    )


@handler(CONSTS.TLC.TRY_DROP_VIDEO, "try_drop_video")
async def handle_try_drop_video(
    server_connection: ServerConnection,
    req_identity: bytes,
    state: EngineState,
    request: Request,
):
    handles: tlcview.server.client.try_drop_video
    state.try_drop_video()
    await _send_response(
        server_connection, req_identity, request, MsgResponse(value="Video dropped")
    )
