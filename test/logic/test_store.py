import pytest

from tlcview.session import ConfigStore, ErrorSurface
from tlcview.types import TLCConfig


class TestConfigStore:
    def test_starts_empty(self):
        store = ConfigStore()
        assert store.config is None
        assert not store.is_loaded

    def test_replace_notifies(self):
        store = ConfigStore()
        seen = []
        store.subscribe(seen.append)
        cfg = TLCConfig(case_name="case1")
        store.replace(cfg)
        assert store.is_loaded
        assert store.config is cfg
        assert seen == [cfg]

    def test_replace_rejects_other_types(self):
        store = ConfigStore()
        with pytest.raises(TypeError):
            store.replace({"case_name": "case1"})
        assert not store.is_loaded


class TestErrorSurface:
    def test_set_and_clear(self):
        errors = ErrorSurface()
        seen = []
        errors.subscribe(seen.append)
        errors.set("Video path not set")
        assert errors.is_set
        assert errors.message == "Video path not set"
        errors.set("DAQ path not set")
        assert errors.message == "DAQ path not set"
        errors.clear()
        assert not errors.is_set
        assert seen == ["Video path not set", "DAQ path not set", ""]

    def test_clear_when_clear_is_silent(self):
        errors = ErrorSurface()
        seen = []
        errors.subscribe(seen.append)
        errors.clear()
        assert seen == []

    def test_empty_message_rejected(self):
        with pytest.raises(ValueError):
            ErrorSurface().set("")
