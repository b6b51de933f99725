"""Message types for client-engine communication."""

from __future__ import annotations

import pickle
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from mashumaro.mixins.msgpack import DataClassMessagePackMixin
from mashumaro.types import Discriminator

from .config import TLCConfig


@dataclass
class Message(DataClassMessagePackMixin):
    """Base class for all messages."""

    def __repr__(self):
        msg = self.__class__.__name__ + "("
        for i, (field, val) in enumerate(self.__dict__.items()):
            if i not in (0, len(self.__dict__)):
                msg += ", "
            if isinstance(val, np.ndarray):
                msg += f"{field}=<Array>"
            else:
                msg += f"{field}={getattr(self, field)}"
        return msg + ")"


@dataclass(repr=False)
class Request(Message):
    """A request from client to engine.

    `req_id` is echoed back in the matching response so that several requests
    can be in flight on one socket at once.
    """

    command: str
    params: dict[str, Any] = field(default_factory=dict)
    req_id: int = 0


@dataclass(kw_only=True, repr=False)
class Response(Message):
    """A response from engine to a client's request."""

    type: str  # subclass to define
    value: Any  # subclass to define
    req_id: int = 0

    class Config:
        discriminator = Discriminator(field="type", include_subtypes=True)


@dataclass(kw_only=True, repr=False)
class MsgResponse(Response):
    type: str = "msg"
    value: str = ""


@dataclass(kw_only=True, repr=False)
class ValueResponse(Response):
    type: str = "value"
    value: int | float | str | bool = False


@dataclass(kw_only=True, repr=False)
class ConfigResponse(Response):
    """The engine's new canonical configuration."""

    type: str = "config"
    value: TLCConfig = field(default_factory=TLCConfig)


@dataclass(kw_only=True, repr=False)
class ArrayResponse(Response):
    type: str = "array"
    value: np.ndarray = field(
        metadata={"serialize": pickle.dumps, "deserialize": pickle.loads},
        default_factory=lambda: np.array([]),
    )


@dataclass(kw_only=True, repr=False)
class DaqResponse(Response):
    """DAQ matrix as (rows, cols) plus a flat row-major buffer."""

    type: str = "daq"
    dim: tuple[int, int] = (0, 0)
    value: np.ndarray = field(
        metadata={"serialize": pickle.dumps, "deserialize": pickle.loads},
        default_factory=lambda: np.array([], dtype=np.float32),
    )


@dataclass(kw_only=True, repr=False)
class ErrorResponse(Response):
    type: str = "error"
    value: str = ""
