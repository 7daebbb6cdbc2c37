import pytest

from config import DEFAULT_RECURRENCE_HORIZON_WEEKS, load_settings

ENV_VARS = [
    "BOOKING_STORAGE",
    "BOOKING_DATA_FILE",
    "BOOKING_RECURRENCE_HORIZON_WEEKS",
    "BOOKING_DEFAULT_ADMIN_USERNAME",
    "BOOKING_DEFAULT_ADMIN_PASSWORD",
    "BOOKING_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.storage == "json"
    assert settings.recurrence_horizon_weeks == DEFAULT_RECURRENCE_HORIZON_WEEKS
    assert settings.default_admin_username == "admin"
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BOOKING_STORAGE", "Memory")
    monkeypatch.setenv("BOOKING_RECURRENCE_HORIZON_WEEKS", "4")
    monkeypatch.setenv("BOOKING_LOG_LEVEL", "debug")

    settings = load_settings()
    assert settings.storage == "memory"
    assert settings.recurrence_horizon_weeks == 4
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name, value",
    [
        ("BOOKING_STORAGE", "postgres"),
        ("BOOKING_RECURRENCE_HORIZON_WEEKS", "soon"),
        ("BOOKING_RECURRENCE_HORIZON_WEEKS", "0"),
    ],
)
def test_invalid_values_fail_fast(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_settings()
