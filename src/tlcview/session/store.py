"""Canonical configuration holder and the session's error slot."""

from __future__ import annotations

from typing import Callable, Optional

from loguru import logger

from tlcview.types import TLCConfig


class ConfigStore:
    """Holds the engine's latest configuration.

    `replace` is the only way in, and it is only ever called with the value of a
    successful command. Nothing edits the held configuration in place.
    """

    def __init__(self):
        self._config: Optional[TLCConfig] = None
        self._subscribers: list[Callable[[TLCConfig], None]] = []

    @property
    def config(self) -> Optional[TLCConfig]:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    def replace(self, config: TLCConfig) -> None:
        if not isinstance(config, TLCConfig):
            raise TypeError(f"Expected TLCConfig, got {type(config).__name__}")
        self._config = config
        logger.debug("Config replaced: {}", config)
        for callback in self._subscribers:
            callback(config)

    def subscribe(self, callback: Callable[[TLCConfig], None]) -> None:
        self._subscribers.append(callback)


class ErrorSurface:
    """Last error of the session, shown until the operator dismisses it.

    While an error is set the primary actions are gated (`is_set`). Setting a
    new message replaces the old one; `clear` removes it and does nothing else.
    """

    def __init__(self):
        self._message = ""
        self._subscribers: list[Callable[[str], None]] = []

    @property
    def message(self) -> str:
        return self._message

    @property
    def is_set(self) -> bool:
        return self._message != ""

    def set(self, message: str) -> None:
        if message == "":
            raise ValueError("Error message must not be empty, use clear()")
        self._message = message
        self._notify()

    def clear(self) -> None:
        if not self.is_set:
            return
        self._message = ""
        self._notify()

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._subscribers.append(callback)

    def _notify(self) -> None:
        for callback in self._subscribers:
            callback(self._message)
