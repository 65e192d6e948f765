from datetime import datetime

import pytest

from gcal2diary.config import AppConfig, load_config
from gcal2diary.errors import ConfigurationError
from gcal2diary.formatting import DateStyle


def test_defaults_without_file_or_env():
    cfg = load_config(env={})

    assert cfg.date_style == "iso"
    assert cfg.calendar_ids == ["primary"]
    assert cfg.days_back == 31
    assert cfg.days_ahead == 31
    assert cfg.credentials_path == "./credentials.json"
    assert cfg.token_path.endswith("token.json")
    assert cfg.diary_config().date_style is DateStyle.ISO


def test_yaml_file_overrides_defaults(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        """
        date_style: us
        timezone: 'America/Phoenix'
        calendar_ids: work@example.com
        days_back: 7
        days_ahead: 14
        """,
        encoding="utf-8",
    )

    cfg = load_config(str(cfg_path), env={})

    assert cfg.diary_config().date_style is DateStyle.US
    assert cfg.calendar_ids == ["work@example.com"]
    assert cfg.days_back == 7
    assert cfg.days_ahead == 14
    assert str(cfg.tz()) == "America/Phoenix"


def test_env_overrides_file(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("date_style: us\ntoken_path: /from/file.json\n", encoding="utf-8")

    cfg = load_config(
        env={
            "GCAL2DIARY_CONFIG": str(cfg_path),
            "GOOGLE_TOKEN_JSON": "/from/env.json",
            "GCAL2DIARY_DATE_STYLE": "eu",
        }
    )

    assert cfg.token_path == "/from/env.json"
    assert cfg.date_style == "eu"


def test_xdg_config_home_sets_token_path(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert AppConfig().token_path == str(tmp_path / "gcal2diary" / "token.json")


def test_invalid_yaml_is_a_configuration_error(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("date_style: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(str(cfg_path), env={})


def test_non_integer_window_is_rejected(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("days_back: soon\n", encoding="utf-8")

    with pytest.raises(ConfigurationError) as exc:
        load_config(str(cfg_path), env={})

    assert exc.value.key == "days_back"


@pytest.mark.parametrize(
    "overrides,key",
    [
        ({"date_style": "jp"}, "date_style"),
        ({"timezone": "Mars/Olympus"}, "timezone"),
        ({"days_ahead": -1}, "days_ahead"),
        ({"calendar_ids": []}, "calendar_ids"),
        ({"credentials_path": ""}, "credentials_path"),
    ],
)
def test_validate_rejects_bad_values(overrides, key):
    with pytest.raises(ConfigurationError) as exc:
        AppConfig(**overrides).validate()

    assert exc.value.key == key


def test_empty_timezone_uses_local_zone():
    assert AppConfig().tz() is not None
    assert AppConfig(timezone="UTC").tz().key == "UTC"


def test_local_zone_follows_tz_environment(monkeypatch):
    monkeypatch.setenv("TZ", "America/New_York")

    zone = AppConfig().tz()

    assert zone.key == "America/New_York"
    assert zone.utcoffset(datetime(2024, 1, 15)) != zone.utcoffset(datetime(2024, 7, 15))


def test_diary_config_carries_the_configured_zone():
    assert AppConfig(timezone="Europe/Berlin").diary_config().tz.key == "Europe/Berlin"
