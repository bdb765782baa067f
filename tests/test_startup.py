from __future__ import annotations

import pytest

import solarcrm.core.startup as startup_module


class _Cfg:
    def __init__(self, required: bool) -> None:
        self.DB_CONNECTIVITY_REQUIRED = required
        self.ENV = "development"

    @property
    def is_production(self) -> bool:
        return False


def test_startup_skips_raise_when_db_optional_and_unreachable(monkeypatch):
    monkeypatch.setattr(startup_module, "get_config", lambda: _Cfg(required=False))
    monkeypatch.setattr(startup_module.db, "verify_database_connection", lambda: False)

    assert startup_module.validate_startup_config() is False


def test_startup_raises_when_db_required_and_unreachable(monkeypatch):
    monkeypatch.setattr(startup_module, "get_config", lambda: _Cfg(required=True))
    monkeypatch.setattr(startup_module.db, "verify_database_connection", lambda: False)

    with pytest.raises(RuntimeError, match="Database connectivity check failed"):
        startup_module.validate_startup_config()


def test_bootstrap_creates_tables_only_when_reachable(monkeypatch):
    calls = []
    monkeypatch.setattr(startup_module, "configure_logging", lambda: calls.append("logging"))
    monkeypatch.setattr(startup_module.db, "init_db", lambda: calls.append("init_db"))

    monkeypatch.setattr(startup_module, "validate_startup_config", lambda: False)
    startup_module.bootstrap()
    assert calls == ["logging"]

    monkeypatch.setattr(startup_module, "validate_startup_config", lambda: True)
    startup_module.bootstrap()
    assert calls == ["logging", "logging", "init_db"]
