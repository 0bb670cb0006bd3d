import logging
from pathlib import Path

from orderflow import config as app_config
from orderflow.config import Settings, configure_logging, get_settings


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("serialize_per_order", "false")
    s = Settings()
    assert s.DATA_DIR == Path(tmp_path)
    assert s.SERIALIZE_PER_ORDER is False
    assert s.ORDERS_FILE == "orders.csv"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_configure_logging_defaults_to_settings_level(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
    monkeypatch.setattr(app_config.settings, "LOG_LEVEL", "warning")

    configure_logging()
    configure_logging("debug")

    assert [c["level"] for c in calls] == ["WARNING", "DEBUG"]
