from pathlib import Path

import pytest

from harmonia import config, logging_utils
from harmonia.config import Settings, get_settings


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("HARMONIA_MODEL", "openai:gpt-4o")
    monkeypatch.setenv("HARMONIA_MAX_TOKENS", "256")
    monkeypatch.setenv("HARMONIA_SCHEMA_PATH", "/tmp/schemas")

    settings = Settings()

    assert settings.model == "openai:gpt-4o"
    assert settings.max_tokens == 256
    assert settings.schema_path == Path("/tmp/schemas")


def test_settings_reject_unknown_log_profile(monkeypatch) -> None:
    monkeypatch.setenv("HARMONIA_LOG_PROFILE", "fancy")

    with pytest.raises(ValueError):
        Settings()


def test_get_settings_configures_logging(monkeypatch) -> None:
    calls: list[tuple[str, str]] = []
    monkeypatch.setattr(config, "configure_logging", lambda *, profile, level: calls.append((profile, level)))

    settings = get_settings(log_profile="cli", log_level="debug")

    assert settings.log_profile == "cli"
    assert calls == [("cli", "debug")]


def test_configure_logging_only_reconfigures_on_change(monkeypatch) -> None:
    removed: list[None] = []
    monkeypatch.setattr(logging_utils, "_CONFIGURED", None)
    monkeypatch.setattr(logging_utils.logger, "remove", lambda *args: removed.append(None))
    monkeypatch.setattr(logging_utils.logger, "add", lambda *args, **kwargs: 1)

    logging_utils.configure_logging(profile="default", level="info")
    logging_utils.configure_logging(profile="default", level="INFO")
    logging_utils.configure_logging(profile="cli", level="INFO")

    assert len(removed) == 2
