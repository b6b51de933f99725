"""Validation of the client/handler protocol mapping, and the local validation error.

Every client function is decorated with `@command` and every engine handler with
`@handler`. Both record themselves here, so that tests can check that each
command a client can send has exactly one handler on the engine side, and that
every handler names client functions that exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass
class HandlerInfo:
    """Stores the mapping between an engine handler and its client functions.

    Attributes:
        handler_func: The engine handler function
        client_methods: Names of client functions that use this handler
        command: The command string that identifies this handler
    """

    handler_func: Callable
    client_methods: list[str]
    command: str


HANDLER_REGISTRY: dict[str, HandlerInfo] = {}
PENDING_COMMAND_VALIDATIONS: list[tuple[str, str]] = []


class ValidationError(Exception):
    """A request was refused locally, before anything was sent to the engine.

    The message is meant for the operator and is surfaced unchanged.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def validate_handler_client_correspondence() -> list[str]:
    """Validates the bidirectional correspondence between handlers and client functions.

    Checks that:

    1. All client commands (@command decorated) have matching handlers registered
    2. All handlers (@handler decorated) have at least one client function
    3. All declared client functions actually exist in the client module
    4. All client functions are properly decorated with @command
    5. Commands match between handlers and their client functions

    Returns:
        List of validation error messages, empty if all valid
    """
    # handlers register on import
    import tlcview.server.client as client
    import tlcview.server.server  # noqa: F401

    errors = []

    for command, func_name in PENDING_COMMAND_VALIDATIONS:
        if command not in HANDLER_REGISTRY:
            errors.append(
                f"Command {command} used by {func_name} not found in handler registry"
            )

    for command, info in HANDLER_REGISTRY.items():
        if not info.client_methods:
            errors.append(
                f"Handler {info.handler_func.__name__} for command {command}"
                + " has no registered client methods"
            )

    for command, info in HANDLER_REGISTRY.items():
        for client_method in info.client_methods:
            if not hasattr(client, client_method):
                errors.append(
                    f"Client method {client_method} for command {command}"
                    + " not found in client module"
                )
                continue

            func = getattr(client, client_method)
            if not hasattr(func, "_is_client_method"):
                errors.append(
                    f"Client method {client_method} is not decorated with @command"
                )
            elif func._command != command:
                errors.append(
                    f"Client method {client_method} uses command {func._command}"
                    + f" but handler registered it for {command}"
                )

    return errors


def assert_valid_handler_client_correspondence():
    """Validates handler-client correspondence and raises if invalid.

    Raises:
        AssertionError: If any validation errors are found
    """
    errors = validate_handler_client_correspondence()
    if errors:
        raise AssertionError(
            "Handler-client correspondence validation failed:\n"
            + "\n".join(f"- {err}" for err in errors)
        )
