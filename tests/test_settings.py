from __future__ import annotations

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from job_console.app.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.poll_interval_s == 2.0
    assert settings.max_transient_errors == 5
    assert settings.poll_timeout_s is None
    assert settings.summary_max_words == 50


def test_environment_overrides_use_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JOB_CONSOLE_BASE_URL", "http://jobs.internal:9000")
    monkeypatch.setenv("JOB_CONSOLE_POLL_INTERVAL_S", "0.25")
    monkeypatch.setenv("JOB_CONSOLE_MAX_TRANSIENT_ERRORS", "3")

    settings = get_settings()

    assert settings.base_url == "http://jobs.internal:9000"
    assert settings.poll_interval_s == 0.25
    assert settings.max_transient_errors == 3
    assert get_settings() is settings


def test_non_positive_interval_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JOB_CONSOLE_POLL_INTERVAL_S", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
