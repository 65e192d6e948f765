from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .diary import DiaryConfig
from .errors import ConfigurationError
from .formatting import parse_date_style

CONFIG_ENV_VAR = "GCAL2DIARY_CONFIG"


def default_token_path() -> str:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return str(Path(config_home).expanduser() / "gcal2diary" / "token.json")
    try:
        return str(Path.home() / ".config" / "gcal2diary" / "token.json")
    except RuntimeError:
        return "./token.json"


def _tz_name_from_path(path: Path) -> Optional[str]:
    try:
        resolved = path.resolve().as_posix()
    except OSError:
        return None
    marker = "/zoneinfo/"
    if marker in resolved:
        return resolved.split(marker, 1)[1]
    return None


def _detect_tz_name() -> Optional[str]:
    name = os.environ.get("TZ", "").lstrip(":")
    if name:
        return name

    timezone_file = Path("/etc/timezone")
    if timezone_file.exists():
        try:
            content = timezone_file.read_text(encoding="utf-8").strip()
        except OSError:
            content = ""
        if content:
            return content

    localtime = Path("/etc/localtime")
    if localtime.exists():
        return _tz_name_from_path(localtime)
    return None


def local_zone() -> tzinfo:
    """The system zone as a ZoneInfo, so offsets follow DST across the year."""
    name = _detect_tz_name()
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    # Fixed offset of today; only used when no zone name can be found.
    return datetime.now().astimezone().tzinfo


@dataclass
class AppConfig:
    date_style: str = "iso"
    timezone: str = ""                      # "" = system local zone
    calendar_ids: List[str] = field(default_factory=lambda: ["primary"])
    days_back: int = 31
    days_ahead: int = 31
    credentials_path: str = "./credentials.json"
    token_path: str = field(default_factory=default_token_path)
    debug: bool = False

    def diary_config(self) -> DiaryConfig:
        return DiaryConfig(date_style=parse_date_style(self.date_style), tz=self.tz())

    def tz(self) -> tzinfo:
        if not self.timezone:
            return local_zone()
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(
                f"Unknown timezone '{self.timezone}'", key="timezone", value=self.timezone
            ) from None

    def validate(self) -> None:
        self.diary_config()
        self.tz()
        for key in ("days_back", "days_ahead"):
            if getattr(self, key) < 0:
                raise ConfigurationError(f"'{key}' must not be negative", key=key, value=getattr(self, key))
        if not self.calendar_ids:
            raise ConfigurationError("At least one calendar id is required", key="calendar_ids")
        if not self.credentials_path:
            raise ConfigurationError(
                "--credentials not set. Must provide path to credentials file", key="credentials_path"
            )


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Failed to read config file ({path}): {exc}", key="config", value=str(path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse config file ({path}): {exc}", key="config", value=str(path)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file ({path}) must contain a mapping", key="config", value=str(path))
    return data


def _as_int(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be an integer", key=key, value=value) from None


def load_config(path: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> AppConfig:
    """Build the config from defaults, an optional YAML file and the environment."""
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_ENV_VAR, "")

    data: Dict[str, Any] = _read_yaml(Path(path).expanduser()) if path else {}
    defaults = AppConfig()

    calendar_ids = data.get("calendar_ids", defaults.calendar_ids)
    if isinstance(calendar_ids, str):
        calendar_ids = [calendar_ids]

    cfg = AppConfig(
        date_style=str(data.get("date_style", defaults.date_style)),
        timezone=str(data.get("timezone", defaults.timezone) or ""),
        calendar_ids=[str(c) for c in calendar_ids],
        days_back=_as_int(data, "days_back", defaults.days_back),
        days_ahead=_as_int(data, "days_ahead", defaults.days_ahead),
        credentials_path=str(data.get("credentials_path", defaults.credentials_path)),
        token_path=str(data.get("token_path", defaults.token_path)),
        debug=bool(data.get("debug", defaults.debug)),
    )

    overrides: Dict[str, Any] = {}
    if env.get("GOOGLE_CREDENTIALS_JSON"):
        overrides["credentials_path"] = env["GOOGLE_CREDENTIALS_JSON"]
    if env.get("GOOGLE_TOKEN_JSON"):
        overrides["token_path"] = env["GOOGLE_TOKEN_JSON"]
    if env.get("GCAL2DIARY_DATE_STYLE"):
        overrides["date_style"] = env["GCAL2DIARY_DATE_STYLE"]
    return replace(cfg, **overrides) if overrides else cfg
