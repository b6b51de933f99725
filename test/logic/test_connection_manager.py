"""Tests for ConnectionManager class"""

import subprocess
import threading
from unittest.mock import MagicMock, patch

import pytest

from tlcview.server.connection_manager import ConnectionManager


class TestConnectionManager:
    @pytest.fixture
    def manager(self):
        manager = ConnectionManager()
        yield manager
        manager.disconnect()

    def test_initial_state(self, manager: ConnectionManager):
        """Test initial state of ConnectionManager"""
        assert not manager.is_connected()
        assert manager.connection is None
        assert manager.engine_version is None

    @pytest.mark.asyncio
    async def test_commands_need_connection(self, manager: ConnectionManager):
        with pytest.raises(RuntimeError, match="Not connected to engine"):
            await manager.ping()
        with pytest.raises(RuntimeError, match="Not connected to engine"):
            await manager.set_start_frame(50)

    def test_only_client_methods_are_exposed(self, manager: ConnectionManager):
        assert callable(manager.get_frame)
        with pytest.raises(AttributeError):
            manager.dispatch
        with pytest.raises(AttributeError):
            manager.no_such_command

    def test_disconnect_when_not_connected(self, manager: ConnectionManager):
        manager.disconnect()
        assert not manager.is_connected()

    @pytest.mark.asyncio
    async def test_stop_without_connection(self, manager: ConnectionManager):
        await manager.stop_server()
        assert not manager.is_connected()

    @pytest.mark.asyncio
    async def test_stop_waits_for_process_off_the_loop(
        self, manager: ConnectionManager
    ):
        waited_in = []
        proc = MagicMock(spec=subprocess.Popen)
        proc.wait.side_effect = lambda timeout: waited_in.append(
            threading.current_thread()
        )
        manager._server_proc = proc

        await manager.stop_server()
        assert waited_in and waited_in[0] is not threading.main_thread()
        assert manager._server_proc is None

    @pytest.mark.asyncio
    async def test_stop_kills_a_stuck_process(self, manager: ConnectionManager):
        proc = MagicMock(spec=subprocess.Popen)
        proc.wait.side_effect = subprocess.TimeoutExpired("tlcview", 5)
        manager._server_proc = proc

        with patch("tlcview.server.connection_manager.client.kill_bg_server") as kill:
            await manager.stop_server()
        kill.assert_called_once_with(proc)
        assert manager._server_proc is None
