"""
Configuration, message and connection types shared by the front end and the engine.

1. Configuration (config.py)
    - `TLCConfig`, the canonical experiment configuration owned by the engine
    - `Thermocouple` descriptors

2. Client-engine communication (messages.py, commands.py)
    - Request and response message classes
    - Serialization using MessagePack over ZeroMQ
    - Command name constants

3. Validation (validation.py)
    - Registry pairing client functions with engine handlers
    - `ValidationError` for requests refused locally

Examples
--------
Handling responses:
```python
from tlcview.types import ConfigResponse, ErrorResponse
if isinstance(response, ErrorResponse):
    print(f"Error: {response.value}")
elif isinstance(response, ConfigResponse):
    config = response.value
```

See Also
--------
tlcview.server : Client-engine communication module
tlcview.types.messages : Message class definitions
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Optional

import zmq
import zmq.asyncio

from .commands import CONSTS
from .config import Thermocouple, TLCConfig
from .messages import (
    ArrayResponse,
    ConfigResponse,
    DaqResponse,
    ErrorResponse,
    Message,
    MsgResponse,
    Request,
    Response,
    ValueResponse,
)
from .validation import (
    HANDLER_REGISTRY,
    PENDING_COMMAND_VALIDATIONS,
    HandlerInfo,
    ValidationError,
    assert_valid_handler_client_correspondence,
    validate_handler_client_correspondence,
)


@dataclass
class ClientConnection:
    """Client-side connection information.

    The message socket is a DEALER, so any number of requests may be
    outstanding. Replies are matched to their request through `pending`.
    """

    context: zmq.asyncio.Context
    msg_socket: zmq.asyncio.Socket  # DEALER socket
    host: str
    msg_port: int
    pending: dict[int, asyncio.Future] = field(default_factory=dict)
    recv_task: Optional[asyncio.Task] = None
    req_ids: itertools.count = field(default_factory=lambda: itertools.count(1))


@dataclass
class ServerConnection:
    """Engine-side connection information."""

    msg_socket: zmq.asyncio.Socket  # ROUTER socket
    host: str
    msg_port: int
    shutdown_requested: bool = False


# Exceptions
class EngineError(Exception):
    """The engine rejected a command. The message is the engine's, verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CommsError(EngineError):
    """Base exception for communication errors."""

    pass


__all__ = [
    "ClientConnection",
    "ServerConnection",
    "Message",
    "Request",
    "Response",
    "ArrayResponse",
    "ConfigResponse",
    "DaqResponse",
    "ValueResponse",
    "ErrorResponse",
    "MsgResponse",
    "CONSTS",
    "TLCConfig",
    "Thermocouple",
    "ValidationError",
    "validate_handler_client_correspondence",
    "assert_valid_handler_client_correspondence",
    "HandlerInfo",
    "HANDLER_REGISTRY",
    "PENDING_COMMAND_VALIDATIONS",
    "EngineError",
    "CommsError",
]
