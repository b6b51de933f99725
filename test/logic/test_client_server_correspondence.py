"""Tests for client-server correspondence validation"""

import tlcview.server.client as client
from tlcview.server.server import get_router_map
from tlcview.types import (
    HANDLER_REGISTRY,
    assert_valid_handler_client_correspondence,
)


def test_handler_client_correspondence():
    """Test that all handlers and client methods correspond correctly"""
    assert_valid_handler_client_correspondence()


def test_every_registered_handler_is_routed():
    """Each registered command is reachable through the request router"""
    router = get_router_map()
    assert set(HANDLER_REGISTRY) == set(router)


def test_client_methods_are_marked():
    for info in HANDLER_REGISTRY.values():
        for name in info.client_methods:
            func = getattr(client, name)
            assert func._is_client_method
            assert func._command == info.command
