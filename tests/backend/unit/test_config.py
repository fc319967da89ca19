import pytest

from turnsync.backend.config import load_settings, load_sync_settings
from turnsync.backend.resolver import ResolverOptions


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("TURNSYNC_HOST", "localhost")
    monkeypatch.setenv("TURNSYNC_PORT", "9000")
    monkeypatch.setenv("TURNSYNC_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    monkeypatch.delenv("TURNSYNC_HOST", raising=False)
    monkeypatch.delenv("TURNSYNC_PORT", raising=False)
    monkeypatch.delenv("TURNSYNC_LOG_LEVEL", raising=False)

    settings = load_settings()

    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"


def test_load_sync_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("TURNSYNC_SERVER_URL", "http://table.local:8000/")
    monkeypatch.setenv("TURNSYNC_ENCOUNTER_ID", "enc-1")
    monkeypatch.setenv("TURNSYNC_POLL_INTERVAL", "1.5")
    monkeypatch.setenv("TURNSYNC_TRANSITION_SECONDS", "0.25")
    monkeypatch.setenv("TURNSYNC_FETCH_TIMEOUT", "2")
    monkeypatch.setenv("TURNSYNC_SIDEKICK_REDIRECTION", "off")
    monkeypatch.setenv("TURNSYNC_LAIR_ACTIONS", "Yes")

    settings = load_sync_settings()

    assert settings.server_url == "http://table.local:8000"
    assert settings.encounter_id == "enc-1"
    assert settings.poll_interval == 1.5
    assert settings.transition_seconds == 0.25
    assert settings.fetch_timeout == 2.0
    assert settings.resolver_options == ResolverOptions(sidekick_redirection=False, lair_actions=True)


def test_load_sync_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "TURNSYNC_SERVER_URL",
        "TURNSYNC_ENCOUNTER_ID",
        "TURNSYNC_POLL_INTERVAL",
        "TURNSYNC_TRANSITION_SECONDS",
        "TURNSYNC_FETCH_TIMEOUT",
        "TURNSYNC_SIDEKICK_REDIRECTION",
        "TURNSYNC_LAIR_ACTIONS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_sync_settings()

    assert settings.server_url == "http://127.0.0.1:8000"
    assert settings.encounter_id is None
    assert settings.poll_interval == 3.0
    assert settings.transition_seconds == 0.6
    assert settings.fetch_timeout == 5.0
    assert settings.resolver_options == ResolverOptions()


def test_load_sync_settings_rejects_unknown_boolean(monkeypatch) -> None:
    monkeypatch.setenv("TURNSYNC_LAIR_ACTIONS", "maybe")

    with pytest.raises(ValueError):
        load_sync_settings()
