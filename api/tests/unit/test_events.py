"""
Tests de validación de configuración al arrancar la aplicación.
"""
from __future__ import annotations

import pytest
from fastapi import FastAPI

from storemap.core import events
from storemap.core.config import Settings, settings
from storemap.shared.exceptions.sync import ConfigurationError


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_sync_api_without_secret_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        events._validate_config(_settings(ENABLE_SYNC_API=True, SYNC_SECRET=""))
    assert exc_info.value.details == {"field": "SYNC_SECRET"}


def test_sync_api_with_secret_or_disabled_is_accepted() -> None:
    events._validate_config(_settings(ENABLE_SYNC_API=True, SYNC_SECRET="s3cret"))
    events._validate_config(_settings(ENABLE_SYNC_API=False, SYNC_SECRET=""))


@pytest.mark.asyncio
async def test_startup_fails_before_touching_database(monkeypatch, tmp_path) -> None:
    init_calls = []

    async def fake_init_db() -> None:
        init_calls.append(True)

    monkeypatch.setattr(settings, "ENABLE_SYNC_API", True)
    monkeypatch.setattr(settings, "SYNC_SECRET", "")
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", False)
    monkeypatch.setattr(settings, "LOG_FILE", str(tmp_path / "app.log"))
    monkeypatch.setattr(events, "init_db", fake_init_db)

    with pytest.raises(ConfigurationError):
        await events.startup_handler(FastAPI())()

    assert init_calls == []
